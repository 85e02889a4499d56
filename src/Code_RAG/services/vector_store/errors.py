"""Custom exceptions for the vector store subsystem.

The module defines:
- VectorStoreError: Base exception with RFC 7807 problem details
- BackendUnavailableError: The configured backend cannot be reached
- CollectionNotFoundError: An operation requires a collection that is missing
- UnsupportedBackendError: ``VECTOR_DB_PROVIDER`` names an unknown backend
- UnsupportedDistanceError: A distance metric has no native equivalent
- QueryEmbeddingError: The query text of a search could not be embedded
- ArtifactEmbeddingError: A generated artifact could not be embedded for storage

Examples:
    try:
        await search.search_codebase("parse config")
    except CollectionNotFoundError as e:
        return e.problem.to_response()
"""

from __future__ import annotations

from typing import Any

from Code_RAG.utils.errors import FoundationError


class VectorStoreError(FoundationError):
    """Base class for vector store errors with RFC 7807 payloads."""

    def __init__(
        self,
        message: str,
        *,
        status: int,
        detail: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, status=status, detail=detail, extra=extra)


class BackendUnavailableError(VectorStoreError):
    """Error raised when the vector backend is unreachable or unhealthy.

    Examples:
        try:
            await adapter.health_check()
        except BackendUnavailableError as e:
            return e.problem.to_response()
    """

    def __init__(self, backend: str, *, detail: str | None = None) -> None:
        super().__init__(
            "Vector backend unavailable",
            status=503,
            detail=detail or f"Backend '{backend}' did not respond.",
            extra={"backend": backend},
        )


class CollectionNotFoundError(VectorStoreError):
    """Error raised when a required collection does not exist."""

    def __init__(self, collection: str, *, backend: str | None = None) -> None:
        extra: dict[str, Any] = {"collection": collection}
        if backend:
            extra["backend"] = backend
        super().__init__(
            "Collection not found",
            status=404,
            detail=f"Collection '{collection}' does not exist. Index some content first.",
            extra=extra,
        )


class UnsupportedBackendError(VectorStoreError):
    """Error raised when the configured backend name is not recognised."""

    def __init__(self, backend: str, *, supported: list[str]) -> None:
        super().__init__(
            "Unsupported vector backend",
            status=422,
            detail=f"Backend '{backend}' is not one of {', '.join(sorted(supported))}.",
            extra={"backend": backend, "supported": sorted(supported)},
        )


class UnsupportedDistanceError(VectorStoreError):
    """Error raised when a distance metric has no native equivalent."""

    def __init__(self, metric: str, *, backend: str) -> None:
        super().__init__(
            "Unsupported distance metric",
            status=422,
            detail=f"Distance '{metric}' cannot be mapped for backend '{backend}'.",
            extra={"metric": metric, "backend": backend},
        )


class QueryEmbeddingError(VectorStoreError):
    """Error raised when a search query could not be embedded."""

    def __init__(self, reason: str) -> None:
        super().__init__(
            "Query embedding failed",
            status=502,
            detail=f"Failed to generate an embedding for the query: {reason}",
            extra={"reason": reason},
        )


class ArtifactEmbeddingError(VectorStoreError):
    """Error raised when a documentation or diagram artifact could not be embedded."""

    def __init__(self, collection: str, reason: str) -> None:
        super().__init__(
            "Artifact embedding failed",
            status=502,
            detail=f"Failed to generate an embedding for '{collection}': {reason}",
            extra={"collection": collection, "reason": reason},
        )


__all__ = [
    "ArtifactEmbeddingError",
    "BackendUnavailableError",
    "CollectionNotFoundError",
    "QueryEmbeddingError",
    "UnsupportedBackendError",
    "UnsupportedDistanceError",
    "VectorStoreError",
]
