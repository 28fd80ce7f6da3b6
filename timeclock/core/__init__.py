# timeclock/core/__init__.py
"""
Core modules - Infrastructure & Configuration.

- settings: Unified configuration
- errors: Error taxonomy
- camera: Camera frame source
- tflite_helper: TFLite interpreter helper
- model_factory: Factory for detector/embedder/extractor
"""

from .settings import settings, Settings
from .errors import (
    TimeClockError,
    ConfigurationError,
    EmbeddingDimensionError,
    DuplicateIdentityError,
    TransientError,
    FrameUnavailableError,
    ExtractorError,
    NoFaceFoundError,
)
from .camera import CameraManager, CameraConfig, create_camera
from .tflite_helper import get_interpreter
from .model_factory import create_detector, create_embedder, create_extractor

__all__ = [
    'settings',
    'Settings',
    'TimeClockError',
    'ConfigurationError',
    'EmbeddingDimensionError',
    'DuplicateIdentityError',
    'TransientError',
    'FrameUnavailableError',
    'ExtractorError',
    'NoFaceFoundError',
    'CameraManager',
    'CameraConfig',
    'create_camera',
    'get_interpreter',
    'create_detector',
    'create_embedder',
    'create_extractor',
]
