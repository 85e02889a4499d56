"""In-process embeddings built on top of sentence-transformers.

Key Responsibilities:
    - Lazily construct one ``SentenceTransformer`` per model name and share it
      across calls for the lifetime of the process
    - Run encoding in a worker thread so the event loop is never blocked
    - Report the vector dimension from a table of known models

Thread Safety:
    - Model construction is guarded by a lock; concurrent first calls build
      the model exactly once
"""

from __future__ import annotations

import asyncio
import threading
from typing import Any

import numpy as np
import structlog

from Code_RAG.config.settings import EmbeddingSettings

from .ports import EmbeddingProviderError

logger = structlog.get_logger(__name__)

_KNOWN_DIMENSIONS: dict[str, int] = {
    "all-MiniLM-L6-v2": 384,
}

_PIPELINES: dict[str, Any] = {}
_PIPELINE_LOCK = threading.Lock()


def _load_pipeline(model_name: str) -> Any:
    from sentence_transformers import SentenceTransformer

    return SentenceTransformer(model_name)


def _get_pipeline(model_name: str) -> Any:
    with _PIPELINE_LOCK:
        pipeline = _PIPELINES.get(model_name)
        if pipeline is None:
            logger.info("embeddings.local.loading_model", model=model_name)
            pipeline = _load_pipeline(model_name)
            _PIPELINES[model_name] = pipeline
        return pipeline


def clear_pipeline_cache() -> None:
    """Drop every cached model; the next call pays the cold start again."""
    with _PIPELINE_LOCK:
        _PIPELINES.clear()


def known_dimension(model_name: str, fallback: int) -> int:
    for marker, dim in _KNOWN_DIMENSIONS.items():
        if marker in model_name:
            return dim
    return fallback


def _encode(model_name: str, text: str) -> list[float]:
    pipeline = _get_pipeline(model_name)
    vector = pipeline.encode(text, normalize_embeddings=True, convert_to_numpy=True)
    array = np.asarray(vector, dtype=np.float32).reshape(-1)
    return array.astype(float).tolist()


class LocalEmbeddingProvider:
    """Embeds text with a cached in-process sentence-transformers model."""

    name = "local"

    def __init__(self, settings: EmbeddingSettings) -> None:
        self._settings = settings
        self.model = settings.resolved_model

    def dimension(self) -> int:
        return known_dimension(self.model, self._settings.embedding_dimension)

    async def embed(self, text: str) -> list[float]:
        try:
            vector = await asyncio.to_thread(_encode, self.model, text)
        except Exception as exc:
            raise EmbeddingProviderError(
                f"Local embedding with model '{self.model}' failed: {exc}"
            ) from exc
        if not vector:
            raise EmbeddingProviderError(f"Local model '{self.model}' returned an empty vector")
        return vector


__all__ = ["LocalEmbeddingProvider", "clear_pipeline_cache", "known_dimension"]
