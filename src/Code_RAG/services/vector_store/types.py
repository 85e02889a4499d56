"""Protocol definitions for vector store adapters."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from .models import SearchFilter, SearchResult, VectorPoint


class VectorStorePort(Protocol):
    """Protocol all vector store adapters must implement.

    ``distance`` arguments are always already-native metric names; the façade
    normalises user-facing names before calling into an adapter.
    """

    backend: str
    default_distance: str

    async def health_check(self) -> bool:
        """Return ``True`` or raise ``BackendUnavailableError``."""

    async def collection_exists(self, name: str) -> bool:
        """Return whether the collection exists; never raises for a missing one."""

    async def create_collection(self, name: str, vector_size: int, distance: str) -> bool:
        """Create the collection, or return ``True`` if it already exists."""

    async def upsert_points(self, name: str, points: Sequence[VectorPoint]) -> bool:
        """Insert or replace points by id, creating the collection when missing."""

    async def search(
        self,
        name: str,
        vector: Sequence[float],
        limit: int,
        filter: SearchFilter | None = None,
        *,
        distance: str | None = None,
    ) -> list[SearchResult]:
        """Return up to ``limit`` hits ordered by descending score."""

    async def delete_collection(self, name: str) -> bool:
        """Drop the collection; ``False`` when it did not exist."""

    async def close(self) -> None:
        """Release client resources."""
