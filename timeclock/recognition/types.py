# timeclock/recognition/types.py
"""
Value types shared by the extractor, resolver, registry and detection loop.
"""
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Optional, Tuple

import numpy as np

from ..core.errors import DuplicateIdentityError, EmbeddingDimensionError

# FaceEmbedding: 1-D read-only float32 array
FaceEmbedding = np.ndarray


def as_embedding(values) -> FaceEmbedding:
    """
    Copy `values` into an immutable FaceEmbedding.

    Raises:
        ValueError: not 1-D, empty, or containing NaN/inf
    """
    arr = np.array(values, dtype=np.float32, copy=True)
    if arr.ndim == 2 and arr.shape[0] == 1:
        # Model output with a batch axis
        arr = arr.reshape(-1)
    if arr.ndim != 1:
        raise ValueError(f"Embedding must be 1-D, got shape {arr.shape}")
    if arr.size == 0:
        raise ValueError("Embedding must not be empty")
    if not np.all(np.isfinite(arr)):
        raise ValueError("Embedding contains NaN or inf")
    arr.flags.writeable = False
    return arr


def confidence_percent(distance: float) -> int:
    """round((1 - distance) * 100), clamped to 0..100."""
    return int(min(100, max(0, round((1.0 - distance) * 100))))


@dataclass(frozen=True)
class BoundingBox:
    """Face box in pixel coordinates."""
    x: int
    y: int
    width: int
    height: int

    @property
    def area(self) -> int:
        return self.width * self.height

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return (self.x, self.y, self.width, self.height)


@dataclass(frozen=True)
class FaceDetection:
    """One extracted face: embedding, where it was, how sure the detector is."""
    embedding: FaceEmbedding
    box: BoundingBox
    confidence: float


@dataclass(frozen=True)
class Identity:
    """An enrolled employee and the embedding captured at registration."""
    id: str
    display_name: str
    embedding: FaceEmbedding = field(repr=False)
    role: str = ""
    department: Optional[str] = None

    def __post_init__(self):
        # Frozen float32 vector whatever sequence was passed in
        object.__setattr__(self, 'embedding', as_embedding(self.embedding))

    @property
    def dimension(self) -> int:
        return int(self.embedding.shape[0])


@dataclass(frozen=True)
class MatchResult:
    """Best registry candidate under the threshold."""
    identity: Identity
    distance: float

    @property
    def confidence(self) -> int:
        """Match confidence in percent, as shown to operators."""
        return confidence_percent(self.distance)


class RegistrySnapshot:
    """
    Immutable, ordered view of the enrolled identities.

    Embeddings are pre-stacked into an (n, d) matrix so a resolve call is a
    single vectorised pass. Ids must be unique and all embeddings must share
    one dimension.
    """

    def __init__(self, identities: Iterable[Identity] = ()):
        self._identities: Tuple[Identity, ...] = tuple(identities)
        self._dimension: Optional[int] = None
        self._matrix: Optional[np.ndarray] = None

        seen = set()
        for identity in self._identities:
            if identity.id in seen:
                raise DuplicateIdentityError(f"Duplicate identity id: {identity.id!r}")
            seen.add(identity.id)

            if self._dimension is None:
                self._dimension = identity.dimension
            elif identity.dimension != self._dimension:
                raise EmbeddingDimensionError(
                    self._dimension, identity.dimension, identity.id
                )

        if self._identities:
            self._matrix = np.stack([i.embedding for i in self._identities], axis=0)
            self._matrix.flags.writeable = False

    @classmethod
    def of(cls, registry) -> "RegistrySnapshot":
        """Return `registry` if it already is a snapshot, else build one."""
        if isinstance(registry, cls):
            return registry
        return cls(registry)

    @property
    def dimension(self) -> Optional[int]:
        return self._dimension

    @property
    def matrix(self) -> Optional[np.ndarray]:
        return self._matrix

    @property
    def identities(self) -> Tuple[Identity, ...]:
        return self._identities

    def get(self, identity_id: str) -> Optional[Identity]:
        for identity in self._identities:
            if identity.id == identity_id:
                return identity
        return None

    def __len__(self) -> int:
        return len(self._identities)

    def __iter__(self) -> Iterator[Identity]:
        return iter(self._identities)

    def __bool__(self) -> bool:
        return bool(self._identities)

    def __repr__(self) -> str:
        return f"RegistrySnapshot(n={len(self)}, dim={self._dimension})"
