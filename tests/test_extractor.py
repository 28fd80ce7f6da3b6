import numpy as np
import pytest

from timeclock.core.errors import EmbeddingDimensionError, ExtractorError
from timeclock.recognition.extractor import FaceEmbeddingExtractor
from timeclock.recognition.types import BoundingBox, as_embedding


class StubDetector:
    def __init__(self, faces, ready=True):
        self.faces = faces
        self.is_ready = ready

    def detect_faces(self, frame):
        return list(self.faces)


class StubEmbedder:
    """Embeds a crop as [height, width, 0, ...] so tests can tell crops apart."""

    def __init__(self, dim=4, output_dim=None, ready=True):
        self.embedding_dim = dim
        self.output_dim = output_dim or dim
        self.is_ready = ready
        self.crops = []

    def get_embedding(self, face):
        self.crops.append(face.shape)
        values = np.zeros(self.output_dim, dtype=np.float32)
        values[0], values[1] = face.shape[0], face.shape[1]
        return as_embedding(values)


@pytest.fixture
def frame():
    return np.zeros((480, 640, 3), dtype=np.uint8)


class TestFaceEmbeddingExtractor:

    def test_largest_face_is_embedded(self, frame):
        detector = StubDetector([
            (BoundingBox(0, 0, 80, 80), 0.99),
            (BoundingBox(200, 100, 150, 160), 0.80),
            (BoundingBox(400, 300, 100, 100), 0.95),
        ])
        extractor = FaceEmbeddingExtractor(detector, StubEmbedder(), min_face_size=60)

        detection = extractor.extract(frame)

        assert detection.box == BoundingBox(200, 100, 150, 160)
        assert detection.confidence == pytest.approx(0.80)
        assert detection.embedding[:2].tolist() == [160.0, 150.0]

    def test_small_faces_ignored(self, frame):
        detector = StubDetector([(BoundingBox(10, 10, 40, 40), 0.99)])
        extractor = FaceEmbeddingExtractor(detector, StubEmbedder(), min_face_size=60)
        assert extractor.extract(frame) is None

    def test_no_faces(self, frame):
        extractor = FaceEmbeddingExtractor(StubDetector([]), StubEmbedder())
        assert extractor.extract(frame) is None

    def test_models_not_ready(self, frame):
        extractor = FaceEmbeddingExtractor(StubDetector([], ready=False), StubEmbedder())
        assert not extractor.is_ready
        with pytest.raises(ExtractorError):
            extractor.extract(frame)

    def test_empty_frame(self):
        extractor = FaceEmbeddingExtractor(StubDetector([]), StubEmbedder())
        with pytest.raises(ExtractorError):
            extractor.extract(np.zeros((0, 0, 3), dtype=np.uint8))

    def test_wrong_embedding_length(self, frame):
        detector = StubDetector([(BoundingBox(0, 0, 100, 100), 0.9)])
        extractor = FaceEmbeddingExtractor(detector, StubEmbedder(dim=4, output_dim=3))
        with pytest.raises(EmbeddingDimensionError):
            extractor.extract(frame)

    def test_detector_failure_is_extractor_error(self, frame):
        class FailingDetector(StubDetector):
            def detect_faces(self, frame):
                raise RuntimeError("tflite invoke failed")

        extractor = FaceEmbeddingExtractor(FailingDetector([]), StubEmbedder())
        with pytest.raises(ExtractorError):
            extractor.extract(frame)

    def test_embedder_failure_is_extractor_error(self, frame):
        class NanEmbedder(StubEmbedder):
            def get_embedding(self, face):
                return as_embedding([float('nan')] * self.output_dim)

        detector = StubDetector([(BoundingBox(0, 0, 100, 100), 0.9)])
        extractor = FaceEmbeddingExtractor(detector, NanEmbedder())
        with pytest.raises(ExtractorError):
            extractor.extract(frame)
