"""Protocol and data models used by embedding providers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable


@dataclass(slots=True)
class EmbeddingResult:
    """Embedding for a single text.

    When ``error`` is set the embedding is a zero vector of the configured
    dimension so callers can keep collection shapes consistent.
    """

    embedding: list[float] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, dimension: int, error: str) -> EmbeddingResult:
        return cls(embedding=[0.0] * dimension, error=error)


class EmbeddingProviderError(RuntimeError):
    """Raised by providers when a single text cannot be embedded."""


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Interface implemented by local and remote embedding providers."""

    name: str

    def dimension(self) -> int:
        """Return the vector length this provider produces."""

    async def embed(self, text: str) -> list[float]:
        """Embed ``text`` or raise :class:`EmbeddingProviderError`."""
