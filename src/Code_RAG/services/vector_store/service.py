"""Backend-neutral façade over the configured vector store adapter.

Key Responsibilities:
    - Resolve the active backend from configuration on every call
    - Translate user-facing distance names into the backend's vocabulary
    - Produce point identifiers the active backend accepts
    - Drop schema sentinel rows from search results
    - Time every operation into Prometheus metrics

Collaborators:
    - Upstream: Retrieval and indexing services
    - Downstream: :class:`VectorStoreFactory` and the adapters it builds

Side Effects:
    - Network or disk I/O through the selected adapter
    - Emits metrics for every operation

Example:
    >>> service = VectorStoreService()
    >>> await service.create_collection("code_chunks", 384)
    >>> hits = await service.search("code_chunks", vector, limit=5)
"""

from __future__ import annotations

import random
import threading
import time
import uuid
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any, TypeVar

import structlog

from Code_RAG.config.settings import VectorStoreSettings, load_vector_store_settings

from .distance import normalize_distance
from .factory import VectorStoreFactory, connection_target
from .models import PointId, SearchFilter, SearchResult, VectorPoint, VectorStoreConfig
from .monitoring import record_points_written, record_vector_error, record_vector_operation
from .schemas import SCHEMA_SENTINEL_ID
from .types import VectorStorePort

logger = structlog.get_logger(__name__)

T = TypeVar("T")

_ID_LOCK = threading.Lock()
_last_issued_id = 0


def _next_numeric_id() -> int:
    """Epoch milliseconds plus jitter, strictly increasing within the process."""
    global _last_issued_id
    with _ID_LOCK:
        candidate = int(time.time() * 1000) + random.randint(0, 999)
        _last_issued_id = max(candidate, _last_issued_id + 1)
        return _last_issued_id


def _is_uuid(value: str) -> bool:
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


def qdrant_point_id(point_id: PointId | None) -> PointId:
    """Keep ids Qdrant accepts, otherwise issue a fresh numeric id."""
    if isinstance(point_id, bool):
        return _next_numeric_id()
    if isinstance(point_id, int) and point_id >= 0:
        return point_id
    if isinstance(point_id, str):
        stripped = point_id.strip()
        if stripped.isdigit():
            return int(stripped)
        if _is_uuid(stripped):
            return stripped
    return _next_numeric_id()


class VectorStoreService:
    """Vector store façade with per-call backend resolution.

    Attributes:
        settings: Fixed configuration, or ``None`` to read the environment on
            every call.
        store: Optional adapter that bypasses the factory entirely.
    """

    def __init__(
        self,
        settings: VectorStoreSettings | None = None,
        *,
        store: VectorStorePort | None = None,
    ) -> None:
        self.settings = settings
        self.store = store

    # ------------------------------------------------------------------
    # resolution helpers
    # ------------------------------------------------------------------
    def _settings(self) -> VectorStoreSettings:
        return self.settings or load_vector_store_settings()

    def _adapter(self) -> VectorStorePort:
        if self.store is not None:
            return self.store
        return VectorStoreFactory(self._settings()).build()

    def _native_distance(self, adapter: VectorStorePort, metric: str | None) -> str:
        if metric is None:
            return adapter.default_distance
        return normalize_distance(metric, adapter.backend)

    async def _timed(
        self, operation: str, adapter: VectorStorePort, call: Callable[[], Awaitable[T]]
    ) -> T:
        started = time.perf_counter()
        try:
            return await call()
        except Exception:
            record_vector_error(operation, adapter.backend)
            raise
        finally:
            record_vector_operation(operation, adapter.backend, time.perf_counter() - started)

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    def get_vector_store_config(self) -> VectorStoreConfig:
        settings = self._settings()
        adapter = self._adapter()
        target = connection_target(settings) if self.store is None else ""
        return VectorStoreConfig(
            provider=adapter.backend,
            distance=adapter.default_distance,
            target=target,
        )

    def create_point(
        self,
        point_id: PointId | None,
        vector: Sequence[float],
        payload: Mapping[str, Any] | None = None,
    ) -> VectorPoint:
        """Build a point whose id is valid for the active backend."""
        adapter = self._adapter()
        if adapter.backend == "qdrant":
            resolved: PointId = qdrant_point_id(point_id)
        elif point_id is None:
            resolved = str(uuid.uuid4())
        else:
            resolved = point_id
        return VectorPoint(id=resolved, vector=vector, payload=dict(payload or {}))

    async def health_check(self) -> bool:
        adapter = self._adapter()
        return await self._timed("health_check", adapter, adapter.health_check)

    async def collection_exists(self, name: str) -> bool:
        adapter = self._adapter()
        return await self._timed("collection_exists", adapter, lambda: adapter.collection_exists(name))

    async def create_collection(
        self, name: str, vector_size: int, distance: str | None = None
    ) -> bool:
        adapter = self._adapter()
        native = self._native_distance(adapter, distance)
        return await self._timed(
            "create_collection",
            adapter,
            lambda: adapter.create_collection(name, vector_size, native),
        )

    async def upsert_points(self, name: str, points: Sequence[VectorPoint]) -> bool:
        adapter = self._adapter()
        if adapter.backend == "qdrant":
            points = [
                VectorPoint(id=qdrant_point_id(point.id), vector=point.vector, payload=point.payload)
                for point in points
            ]
        result = await self._timed("upsert_points", adapter, lambda: adapter.upsert_points(name, points))
        record_points_written(adapter.backend, len(points))
        return result

    async def search(
        self,
        name: str,
        vector: Sequence[float],
        limit: int = 10,
        filter: SearchFilter | None = None,
        *,
        distance: str | None = None,
    ) -> list[SearchResult]:
        adapter = self._adapter()
        native = self._native_distance(adapter, distance)
        results = await self._timed(
            "search",
            adapter,
            lambda: adapter.search(name, vector, limit, filter, distance=native),
        )
        return [
            result
            for result in results
            if result.id != SCHEMA_SENTINEL_ID and result.payload.get("id") != SCHEMA_SENTINEL_ID
        ]

    async def delete_collection(self, name: str) -> bool:
        adapter = self._adapter()
        deleted = await self._timed("delete_collection", adapter, lambda: adapter.delete_collection(name))
        if deleted:
            logger.info("vector_store.collection_deleted", backend=adapter.backend, collection=name)
        return deleted

    async def close(self) -> None:
        await self._adapter().close()


__all__ = ["VectorStoreService", "qdrant_point_id"]
