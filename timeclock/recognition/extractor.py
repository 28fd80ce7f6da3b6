# timeclock/recognition/extractor.py
"""
Embedding extractor: frame -> at most one FaceDetection.

Combines the face detector and the embedder. Only the largest face of at
least `min_face_size` pixels is embedded, which is the person standing at
the clock.
"""
import logging
from typing import Optional

import cv2

from ..core.errors import EmbeddingDimensionError, ExtractorError
from .types import FaceDetection

logger = logging.getLogger(__name__)


class FaceEmbeddingExtractor:
    """
    Extractor over any detector with detect_faces(frame) -> [(box, conf)] and
    embedder with get_embedding(crop) and embedding_dim.
    """

    def __init__(self, detector, embedder, min_face_size: int = 60):
        self.detector = detector
        self.embedder = embedder
        self.min_face_size = min_face_size

    @property
    def is_ready(self) -> bool:
        return (getattr(self.detector, 'is_ready', True)
                and getattr(self.embedder, 'is_ready', True))

    @property
    def embedding_dim(self) -> int:
        return self.embedder.embedding_dim

    def extract(self, frame) -> Optional[FaceDetection]:
        """
        Find the main face in `frame` and embed it.

        Returns:
            FaceDetection, or None when no usable face is in the frame

        Raises:
            ExtractorError: a model is not loaded or inference failed
            EmbeddingDimensionError: the embedder returned the wrong length
        """
        if not self.is_ready:
            raise ExtractorError("face models not ready")
        if frame is None or getattr(frame, 'size', 0) == 0:
            raise ExtractorError("empty frame")

        try:
            faces = self.detector.detect_faces(frame)
        except (RuntimeError, ValueError, cv2.error) as e:
            raise ExtractorError(f"detection failed: {e}") from e

        candidates = [
            (box, conf) for box, conf in faces
            if box.width >= self.min_face_size and box.height >= self.min_face_size
        ]
        if not candidates:
            return None

        box, confidence = max(candidates, key=lambda c: c[0].area)
        face = frame[box.y:box.y + box.height, box.x:box.x + box.width]
        if face.size == 0:
            return None

        try:
            embedding = self.embedder.get_embedding(face)
        except (RuntimeError, ValueError, cv2.error) as e:
            raise ExtractorError(f"embedding failed: {e}") from e

        if embedding.shape[0] != self.embedding_dim:
            raise EmbeddingDimensionError(self.embedding_dim, int(embedding.shape[0]))

        return FaceDetection(embedding=embedding, box=box, confidence=float(confidence))

    def __repr__(self) -> str:
        return (f"FaceEmbeddingExtractor(dim={self.embedding_dim}, "
                f"min_face_size={self.min_face_size}, ready={self.is_ready})")
