import numpy as np
import pytest

from timeclock.core.errors import ExtractorError, FrameUnavailableError, NoFaceFoundError
from timeclock.processing.enrollment import capture_and_enroll, capture_face, enroll
from timeclock.recognition.resolver import resolve

from conftest import FakeFrameSource, ScriptedExtractor, make_detection


class TestCaptureFace:

    def test_returns_detection(self, frame_source):
        detection = capture_face(frame_source, ScriptedExtractor([[0.5, 0.5]]))
        np.testing.assert_array_equal(detection.embedding, [0.5, 0.5])

    def test_no_frame(self):
        with pytest.raises(FrameUnavailableError):
            capture_face(FakeFrameSource(available=False), ScriptedExtractor([[0.0]]))

    def test_no_face(self, frame_source):
        with pytest.raises(NoFaceFoundError):
            capture_face(frame_source, ScriptedExtractor([None]))

    def test_model_error_propagates(self, frame_source):
        with pytest.raises(ExtractorError):
            capture_face(frame_source, ScriptedExtractor([ExtractorError()]))


class TestEnroll:

    def test_enrolled_face_is_recognized(self, registry, random_embedding):
        embedding = random_embedding()
        identity = enroll(registry, "Maria", make_detection(embedding), role="cashier")

        match = resolve(embedding, registry.snapshot())
        assert match.identity.id == identity.id
        assert match.distance == 0.0

    def test_capture_retries_until_face_found(self, registry, frame_source):
        extractor = ScriptedExtractor([None, None, [0.1, 0.2]])
        identity = capture_and_enroll(
            frame_source, extractor, registry, "Maria", attempts=5, retry_delay=0
        )

        assert extractor.calls == 3
        assert identity.display_name == "Maria"
        assert len(registry) == 1

    def test_capture_gives_up(self, registry, frame_source):
        extractor = ScriptedExtractor([None])
        with pytest.raises(NoFaceFoundError):
            capture_and_enroll(
                frame_source, extractor, registry, "Maria", attempts=3, retry_delay=0
            )
        assert extractor.calls == 3
        assert len(registry) == 0

    def test_camera_error_not_retried(self, registry):
        source = FakeFrameSource(available=False)
        with pytest.raises(FrameUnavailableError):
            capture_and_enroll(
                source, ScriptedExtractor([[0.0]]), registry, "Maria", retry_delay=0
            )
        assert source.calls == 1
