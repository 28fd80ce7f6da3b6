# timeclock/recognition/__init__.py
"""
Face Recognition module.

- types: FaceEmbedding, Identity, MatchResult, RegistrySnapshot
- embedder: MobileFaceNet embedding
- extractor: frame -> FaceDetection
- resolver: nearest identity under a Euclidean threshold
"""

from .types import (
    FaceEmbedding,
    BoundingBox,
    FaceDetection,
    Identity,
    MatchResult,
    RegistrySnapshot,
    as_embedding,
    confidence_percent,
)
from .resolver import resolve, euclidean_distance, DEFAULT_THRESHOLD
from .embedder import FaceEmbedder
from .extractor import FaceEmbeddingExtractor

__all__ = [
    'FaceEmbedding',
    'BoundingBox',
    'FaceDetection',
    'Identity',
    'MatchResult',
    'RegistrySnapshot',
    'as_embedding',
    'confidence_percent',
    'resolve',
    'euclidean_distance',
    'DEFAULT_THRESHOLD',
    'FaceEmbedder',
    'FaceEmbeddingExtractor',
]
