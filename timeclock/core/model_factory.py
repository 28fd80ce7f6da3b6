# timeclock/core/model_factory.py
"""
Factory functions for the face models.

Usage:
    from timeclock.core.model_factory import create_extractor

    extractor = create_extractor()
    detection = extractor.extract(frame)
"""
import logging

from .settings import settings

logger = logging.getLogger(__name__)


def create_detector(model_path=None, conf_threshold=None):
    """
    Build the face detector.

    Args:
        model_path: TFLite model (None = settings.DETECTION_MODEL)
        conf_threshold: Minimum face score (None = settings.DETECTION_CONFIDENCE)
    """
    from ..detect.detect import UltraLightFaceDetector

    if model_path is None:
        model_path = settings.DETECTION_MODEL
    if conf_threshold is None:
        conf_threshold = settings.DETECTION_CONFIDENCE

    logger.info(f"[Detector] Model: {model_path}")
    return UltraLightFaceDetector(
        model_path=model_path,
        conf_threshold=conf_threshold,
        num_threads=settings.TFLITE_NUM_THREADS
    )


def create_embedder(model_path=None):
    """
    Build the face embedder.

    Args:
        model_path: TFLite model (None = settings.RECOGNITION_MODEL)
    """
    from ..recognition.embedder import FaceEmbedder

    if model_path is None:
        model_path = settings.RECOGNITION_MODEL

    logger.info(f"[Embedder] Model: {model_path}")
    return FaceEmbedder(
        model_path=model_path,
        enable_histogram_eq=settings.ENABLE_HISTOGRAM_EQ,
        num_threads=settings.TFLITE_NUM_THREADS
    )


def create_extractor(detection_model=None, recognition_model=None, min_face_size=None):
    """Detector + embedder wrapped as one embedding extractor."""
    from ..recognition.extractor import FaceEmbeddingExtractor

    if min_face_size is None:
        min_face_size = settings.MIN_FACE_SIZE

    return FaceEmbeddingExtractor(
        create_detector(detection_model),
        create_embedder(recognition_model),
        min_face_size=min_face_size
    )
