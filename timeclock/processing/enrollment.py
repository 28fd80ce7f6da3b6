# timeclock/processing/enrollment.py
"""
One-shot face capture for registering a new employee.

No matching against the registry happens here: the operator types the
employee's name, the camera only supplies the face signature.
"""
import time
import logging
from typing import Optional

from ..core.errors import FrameUnavailableError, NoFaceFoundError
from ..recognition.types import FaceDetection, Identity

logger = logging.getLogger(__name__)


def capture_face(frame_source, extractor) -> FaceDetection:
    """
    Grab one frame and extract exactly one face from it.

    Raises:
        FrameUnavailableError: camera returned no frame
        ExtractorError: face models not ready
        NoFaceFoundError: no usable face in the frame
    """
    frame = frame_source.get_current_frame()
    if frame is None:
        raise FrameUnavailableError()

    detection = extractor.extract(frame)
    if detection is None:
        raise NoFaceFoundError()
    return detection


def enroll(registry, display_name: str, detection: FaceDetection,
           role: str = "", department: Optional[str] = None) -> Identity:
    """Persist a captured face as a new identity."""
    return registry.add_identity(
        display_name, detection.embedding, role=role, department=department
    )


def capture_and_enroll(
    frame_source,
    extractor,
    registry,
    display_name: str,
    role: str = "",
    department: Optional[str] = None,
    attempts: int = 10,
    retry_delay: float = 0.5
) -> Identity:
    """
    Capture with retries, then enroll.

    Only "no face" is retried; camera and model errors propagate at once.

    Raises:
        NoFaceFoundError: no face after `attempts` captures
    """
    for attempt in range(1, attempts + 1):
        try:
            detection = capture_face(frame_source, extractor)
        except NoFaceFoundError:
            logger.info(f"👤 No face found ({attempt}/{attempts}), look at the camera...")
            if attempt < attempts:
                time.sleep(retry_delay)
            continue
        logger.info(f"📸 Face captured (confidence={detection.confidence:.2f})")
        return enroll(registry, display_name, detection, role=role, department=department)

    raise NoFaceFoundError(f"no face found after {attempts} attempts")
