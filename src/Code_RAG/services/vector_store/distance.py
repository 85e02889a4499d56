"""Distance metric vocabulary per backend."""

from __future__ import annotations

from types import MappingProxyType

from .errors import UnsupportedDistanceError

# canonical metric -> native name per backend
_NATIVE_NAMES = MappingProxyType(
    {
        "cosine": {"lance": "cosine", "chroma": "cosine", "qdrant": "Cosine"},
        "l2": {"lance": "l2", "chroma": "l2", "qdrant": "Euclid"},
        "dot": {"lance": "dot", "chroma": "ip", "qdrant": "Dot"},
    }
)

_ALIASES = MappingProxyType(
    {
        "cos": "cosine",
        "cosine": "cosine",
        "l2": "l2",
        "euclid": "l2",
        "euclidean": "l2",
        "ip": "dot",
        "dot": "dot",
        "inner_product": "dot",
    }
)


def canonical_distance(metric: str, provider: str) -> str:
    """Map any accepted spelling onto ``cosine``, ``l2`` or ``dot``."""
    key = metric.strip().lower()
    canonical = _ALIASES.get(key)
    if canonical is None:
        raise UnsupportedDistanceError(metric, backend=provider)
    return canonical


def normalize_distance(metric: str, provider: str) -> str:
    """Return the native metric name ``provider`` expects.

    Case-insensitive and idempotent: a name that is already native for
    ``provider`` maps to itself.
    """
    backend = provider.strip().lower()
    canonical = canonical_distance(metric, backend)
    natives = _NATIVE_NAMES[canonical]
    if backend not in natives:
        raise UnsupportedDistanceError(metric, backend=provider)
    return natives[backend]


__all__ = ["canonical_distance", "normalize_distance"]
