import numpy as np
import pytest

from timeclock.detect.detect import UltraLightFaceDetector, generate_priors, postprocess


class TestPriors:

    def test_shape_for_rfb_320(self):
        priors = generate_priors((320, 240))
        assert priors.shape == (4420, 4)
        assert priors.dtype == np.float32

    def test_normalised(self):
        priors = generate_priors()
        assert np.all(priors[:, :2] > 0) and np.all(priors[:, :2] < 1)


class TestPostprocess:

    def setup_method(self):
        self.priors = generate_priors()
        self.boxes = np.zeros((len(self.priors), 4), dtype=np.float32)
        self.scores = np.tile(np.array([[0.99, 0.01]], dtype=np.float32), (len(self.priors), 1))

    def test_nothing_above_threshold(self):
        assert postprocess(self.boxes, self.scores, self.priors, (640, 480)) == []

    def test_single_face_decoded_from_prior(self):
        # First anchor of the 32px stride: centre (0.05, 0.0625), 64x64 at 320x240
        idx = 3600 + 600
        self.scores[idx] = [0.05, 0.95]

        results = postprocess(self.boxes, self.scores, self.priors, (320, 240))

        assert len(results) == 1
        box, conf = results[0]
        assert conf == pytest.approx(0.95)
        assert box.width > 0 and box.height > 0
        assert box.x >= 0 and box.y >= 0
        assert box.x + box.width <= 320 and box.y + box.height <= 240

    def test_overlapping_boxes_suppressed(self):
        # Same anchor twice (identical boxes): NMS keeps the stronger one
        idx = 3600 + 600
        self.scores[idx] = [0.1, 0.9]
        self.scores[idx + 1] = [0.05, 0.95]
        self.boxes[idx + 1] = self.boxes[idx]
        self.priors = self.priors.copy()
        self.priors[idx + 1] = self.priors[idx]

        results = postprocess(self.boxes, self.scores, self.priors, (320, 240))

        assert len(results) == 1
        assert results[0][1] == pytest.approx(0.95)


class TestDetectorWithoutModel:

    def test_missing_model_is_not_ready(self, tmp_path):
        detector = UltraLightFaceDetector(str(tmp_path / "missing.tflite"))
        assert not detector.is_ready
        assert detector.detect_faces(np.zeros((240, 320, 3), dtype=np.uint8)) == []
