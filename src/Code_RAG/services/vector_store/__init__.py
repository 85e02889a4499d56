"""Vector store subsystem: adapters, schemas and the backend-neutral façade."""

from .distance import normalize_distance
from .errors import (
    ArtifactEmbeddingError,
    BackendUnavailableError,
    CollectionNotFoundError,
    QueryEmbeddingError,
    UnsupportedBackendError,
    UnsupportedDistanceError,
    VectorStoreError,
)
from .factory import VectorStoreFactory, close_adapters
from .models import SearchFilter, SearchResult, VectorPoint, VectorStoreConfig
from .schemas import SCHEMA_SENTINEL_ID, CollectionSchema, get_schema, schema_defaults
from .service import VectorStoreService
from .types import VectorStorePort

__all__ = [
    "ArtifactEmbeddingError",
    "BackendUnavailableError",
    "CollectionNotFoundError",
    "CollectionSchema",
    "QueryEmbeddingError",
    "SCHEMA_SENTINEL_ID",
    "SearchFilter",
    "SearchResult",
    "UnsupportedBackendError",
    "UnsupportedDistanceError",
    "VectorPoint",
    "VectorStoreConfig",
    "VectorStoreError",
    "VectorStoreFactory",
    "VectorStorePort",
    "VectorStoreService",
    "close_adapters",
    "get_schema",
    "normalize_distance",
    "schema_defaults",
]
