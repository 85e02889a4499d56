"""Configuration models and environment loaders."""

from .settings import (
    DEFAULT_LOCAL_MODEL,
    DEFAULT_REMOTE_MODEL,
    EmbeddingSettings,
    LoggingSettings,
    VectorStoreSettings,
    load_embedding_settings,
    load_logging_settings,
    load_vector_store_settings,
)

__all__ = [
    "DEFAULT_LOCAL_MODEL",
    "DEFAULT_REMOTE_MODEL",
    "EmbeddingSettings",
    "LoggingSettings",
    "VectorStoreSettings",
    "load_embedding_settings",
    "load_logging_settings",
    "load_vector_store_settings",
]
