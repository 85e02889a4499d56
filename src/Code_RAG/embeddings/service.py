"""Unified embedding entry points.

Key Responsibilities:
    - Resolve the configured provider on every call
    - Convert provider failures into zero-vector results so that indexing and
      search never raise because a model or endpoint misbehaved
    - Log and count every failure

Collaborators:
    - Upstream: Retrieval and indexing services
    - Downstream: :class:`LocalEmbeddingProvider`, :class:`RemoteEmbeddingProvider`
"""

from __future__ import annotations

import time
from collections.abc import Sequence

import structlog

from Code_RAG.config.settings import EmbeddingSettings, load_embedding_settings

from .local import LocalEmbeddingProvider
from .ports import EmbeddingProvider, EmbeddingResult
from .remote import RemoteEmbeddingProvider
from .telemetry import record_embedding

logger = structlog.get_logger(__name__)


def select_provider(settings: EmbeddingSettings) -> EmbeddingProvider:
    """Return the provider named by ``settings.embedding_provider``."""
    if settings.embedding_provider == "remote":
        return RemoteEmbeddingProvider(settings)
    return LocalEmbeddingProvider(settings)


def get_embedding_dimension(
    *,
    settings: EmbeddingSettings | None = None,
    provider: EmbeddingProvider | None = None,
) -> int:
    """Vector length produced by the active provider."""
    settings = settings or load_embedding_settings()
    provider = provider or select_provider(settings)
    return provider.dimension()


async def create_embedding(
    text: str,
    *,
    settings: EmbeddingSettings | None = None,
    provider: EmbeddingProvider | None = None,
) -> EmbeddingResult:
    """Embed ``text``. Never raises; failures carry a zero vector and an error."""
    settings = settings or load_embedding_settings()
    provider = provider or select_provider(settings)
    started = time.perf_counter()
    try:
        vector = await provider.embed(text)
    except Exception as exc:
        record_embedding(provider.name, time.perf_counter() - started, failed=True)
        dimension = provider.dimension()
        logger.error(
            "embeddings.create_failed",
            provider=provider.name,
            dimension=dimension,
            error=str(exc),
        )
        return EmbeddingResult.failure(dimension, str(exc))
    record_embedding(provider.name, time.perf_counter() - started, failed=False)
    return EmbeddingResult(embedding=vector)


async def create_embeddings(
    texts: Sequence[str],
    *,
    settings: EmbeddingSettings | None = None,
    provider: EmbeddingProvider | None = None,
) -> list[EmbeddingResult]:
    """Embed each text in order, one request per text."""
    settings = settings or load_embedding_settings()
    provider = provider or select_provider(settings)
    results: list[EmbeddingResult] = []
    for text in texts:
        results.append(await create_embedding(text, settings=settings, provider=provider))
    return results


__all__ = [
    "create_embedding",
    "create_embeddings",
    "get_embedding_dimension",
    "select_provider",
]
