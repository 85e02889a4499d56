"""Qdrant-backed implementation of :class:`VectorStorePort`."""

from __future__ import annotations

from collections.abc import Sequence

import structlog
from qdrant_client import AsyncQdrantClient
from qdrant_client.http import models as qm

from ..errors import BackendUnavailableError
from ..filters import to_qdrant_filter
from ..models import PointId, SearchFilter, SearchResult, VectorPoint

logger = structlog.get_logger(__name__)


def coerce_point_id(point_id: PointId) -> PointId:
    """Qdrant accepts unsigned ints or UUIDs; numeric strings become ints."""
    if isinstance(point_id, str) and point_id.strip().isdigit():
        return int(point_id.strip())
    return point_id


class QdrantVectorStore:
    """Concrete vector store adapter backed by Qdrant.

    The stored dimension is not compared with query or point vectors; Qdrant
    itself rejects mismatched lengths.
    """

    backend = "qdrant"
    default_distance = "Cosine"

    def __init__(
        self,
        client: AsyncQdrantClient | None = None,
        *,
        url: str = "http://localhost:6333",
        api_key: str | None = None,
        default_distance: str = "Cosine",
    ) -> None:
        if client is not None:
            self._client = client
        elif url == ":memory:":
            self._client = AsyncQdrantClient(location=":memory:")
        else:
            self._client = AsyncQdrantClient(url=url, api_key=api_key)
        self.url = url
        self.default_distance = default_distance

    # ------------------------------------------------------------------
    # VectorStorePort implementation
    # ------------------------------------------------------------------
    async def health_check(self) -> bool:
        try:
            await self._client.get_collections()
        except Exception as exc:
            logger.error("vector_store.qdrant.health_failed", url=self.url, error=str(exc))
            raise BackendUnavailableError(self.backend, detail=str(exc)) from exc
        return True

    async def collection_exists(self, name: str) -> bool:
        try:
            return bool(await self._client.collection_exists(collection_name=name))
        except Exception as exc:
            logger.error("vector_store.qdrant.exists_failed", collection=name, error=str(exc))
            raise

    async def create_collection(self, name: str, vector_size: int, distance: str) -> bool:
        try:
            if await self.collection_exists(name):
                return True
            await self._client.create_collection(
                collection_name=name,
                vectors_config=qm.VectorParams(size=vector_size, distance=qm.Distance(distance)),
            )
        except Exception as exc:
            logger.error("vector_store.qdrant.create_failed", collection=name, error=str(exc))
            raise
        logger.info(
            "vector_store.qdrant.collection_created",
            collection=name,
            dimension=vector_size,
            distance=distance,
        )
        return True

    async def upsert_points(self, name: str, points: Sequence[VectorPoint]) -> bool:
        if not points:
            return True
        try:
            if not await self.collection_exists(name):
                await self.create_collection(name, len(points[0].vector), self.default_distance)
            await self._client.upsert(
                collection_name=name,
                points=[
                    qm.PointStruct(
                        id=coerce_point_id(point.id),
                        vector=list(point.vector),
                        payload=dict(point.payload),
                    )
                    for point in points
                ],
                wait=True,
            )
        except Exception as exc:
            logger.error("vector_store.qdrant.upsert_failed", collection=name, error=str(exc))
            raise
        return True

    async def search(
        self,
        name: str,
        vector: Sequence[float],
        limit: int,
        filter: SearchFilter | None = None,
        *,
        distance: str | None = None,
    ) -> list[SearchResult]:
        try:
            if not await self.collection_exists(name):
                return []
            response = await self._client.query_points(
                collection_name=name,
                query=list(vector),
                limit=limit,
                query_filter=to_qdrant_filter(filter),
                with_payload=True,
            )
        except Exception as exc:
            logger.error("vector_store.qdrant.search_failed", collection=name, error=str(exc))
            raise
        return [
            SearchResult(score=float(point.score), payload=dict(point.payload or {}), id=point.id)
            for point in response.points
        ]

    async def delete_collection(self, name: str) -> bool:
        try:
            if not await self.collection_exists(name):
                return False
            await self._client.delete_collection(collection_name=name)
        except Exception as exc:
            logger.error("vector_store.qdrant.delete_failed", collection=name, error=str(exc))
            raise
        return True

    async def close(self) -> None:
        await self._client.close()
