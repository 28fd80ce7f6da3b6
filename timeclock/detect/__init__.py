# timeclock/detect/__init__.py
"""
Face Detection module - Ultra-Light SSD on TFLite (float32 or INT8).
"""

from .detect import UltraLightFaceDetector, generate_priors, postprocess

__all__ = [
    'UltraLightFaceDetector',
    'generate_priors',
    'postprocess',
]
