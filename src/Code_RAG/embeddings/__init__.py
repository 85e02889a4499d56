"""Embedding providers and the unified embedding entry points."""

from .local import LocalEmbeddingProvider
from .ports import EmbeddingProvider, EmbeddingProviderError, EmbeddingResult
from .remote import RemoteEmbeddingProvider
from .service import (
    create_embedding,
    create_embeddings,
    get_embedding_dimension,
    select_provider,
)

__all__ = [
    "EmbeddingProvider",
    "EmbeddingProviderError",
    "EmbeddingResult",
    "LocalEmbeddingProvider",
    "RemoteEmbeddingProvider",
    "create_embedding",
    "create_embeddings",
    "get_embedding_dimension",
    "select_provider",
]
