# timeclock/recognition/resolver.py
"""
Identity resolver: nearest enrolled face under a Euclidean threshold.

Pure functions, no I/O. A linear scan over the registry is enough for the
tens to low hundreds of employees a time clock holds.

Usage:
    from timeclock.recognition.resolver import resolve

    match = resolve(embedding, registry.snapshot(), threshold=0.6)
    if match is not None:
        print(match.identity.display_name, match.distance)
"""
from typing import Optional

import numpy as np

from ..core.errors import EmbeddingDimensionError
from .types import MatchResult, RegistrySnapshot

DEFAULT_THRESHOLD = 0.6


def euclidean_distance(a, b) -> float:
    """sqrt(sum((a[i] - b[i])^2)), computed in float64."""
    a = np.asarray(a, dtype=np.float64).reshape(-1)
    b = np.asarray(b, dtype=np.float64).reshape(-1)
    if a.shape != b.shape:
        raise EmbeddingDimensionError(a.shape[0], b.shape[0])
    return float(np.sqrt(np.sum((a - b) ** 2)))


def resolve(embedding, registry, threshold: float = DEFAULT_THRESHOLD) -> Optional[MatchResult]:
    """
    Find the enrolled identity closest to `embedding`.

    Args:
        embedding: Live face embedding (1-D)
        registry: RegistrySnapshot or any iterable of Identity
        threshold: Positive distance bound; a match needs distance < threshold

    Returns:
        MatchResult for the nearest identity, or None if the registry is empty
        or nothing is close enough. Ties go to the first identity in
        registry order.

    Raises:
        ValueError: threshold is not positive
        EmbeddingDimensionError: embedding length differs from the registry's
    """
    if not threshold > 0:
        raise ValueError(f"threshold must be positive, got {threshold}")

    snapshot = RegistrySnapshot.of(registry)
    if not snapshot:
        return None

    live = np.asarray(embedding, dtype=np.float64).reshape(-1)
    if live.shape[0] != snapshot.dimension:
        raise EmbeddingDimensionError(snapshot.dimension, live.shape[0])

    # (n, d) - (d,) -> n distances
    distances = np.sqrt(np.sum((snapshot.matrix.astype(np.float64) - live) ** 2, axis=1))
    best_i = int(np.argmin(distances))  # first minimum wins ties
    best_dist = float(distances[best_i])

    if best_dist < threshold:
        return MatchResult(identity=snapshot.identities[best_i], distance=best_dist)
    return None
