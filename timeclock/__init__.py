# timeclock package
"""
TimeClock - Face Recognition Time Clock

Structure:
    timeclock/
    ├── core/                     # Core infrastructure
    │   ├── settings.py           # Configuration
    │   ├── errors.py             # Error taxonomy
    │   ├── camera.py             # Camera frame source
    │   ├── tflite_helper.py      # TFLite interpreter helper
    │   └── model_factory.py      # Factory for detector/embedder/extractor
    ├── detect/                   # Face detection
    │   └── detect.py             # Ultra-Light SSD detector
    ├── recognition/              # Face recognition
    │   ├── types.py              # Embedding, Identity, MatchResult, snapshot
    │   ├── embedder.py           # MobileFaceNet embedding
    │   ├── extractor.py          # Frame -> FaceDetection
    │   └── resolver.py           # Nearest identity under threshold
    ├── processing/               # Runtime logic
    │   ├── cooldown.py           # Debounce of repeated recognitions
    │   ├── detection_loop.py     # Detection loop scheduler
    │   ├── enrollment.py         # One-shot capture for registration
    │   └── attendance.py         # Check-in / check-out sink
    ├── data/                     # Data layer
    │   ├── database.py           # SQLite storage
    │   └── registry.py           # Employee registry
    └── main.py                   # CLI entry point

Usage:
    from timeclock import resolve, RegistrySnapshot

    match = resolve(embedding, snapshot, threshold=0.6)
"""

from .core.settings import settings
from .recognition import (
    Identity,
    MatchResult,
    RegistrySnapshot,
    as_embedding,
    euclidean_distance,
    resolve,
)
from .processing import CooldownController, DetectionLoop, TimeClock
from .data import EmployeeRegistry

__version__ = "1.0.0"

__all__ = [
    'settings',
    'Identity',
    'MatchResult',
    'RegistrySnapshot',
    'as_embedding',
    'euclidean_distance',
    'resolve',
    'CooldownController',
    'DetectionLoop',
    'TimeClock',
    'EmployeeRegistry',
]
