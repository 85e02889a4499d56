"""Chroma client-server adapter.

Chroma metadata only holds scalars, so list and mapping payload values are
stored JSON-encoded and listed under ``__json_fields__``; they are decoded
again when results are read. The point's ``content`` payload is also stored as
the Chroma document.

Search errors propagate to the caller; a missing collection yields no hits.
"""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any

import chromadb
import httpx
import structlog
from chromadb.errors import NotFoundError

from ..errors import BackendUnavailableError
from ..filters import to_chroma_where
from ..models import SearchFilter, SearchResult, VectorPoint
from ..schemas import JSON_FIELDS_KEY

logger = structlog.get_logger(__name__)

_SCALAR_TYPES = (str, int, float, bool)

ClientFactory = Callable[[], Awaitable[Any]]


def encode_metadata(payload: Mapping[str, Any]) -> dict[str, Any]:
    metadata: dict[str, Any] = {}
    encoded: list[str] = []
    for key, value in payload.items():
        if key == JSON_FIELDS_KEY or value is None:
            continue
        if isinstance(value, _SCALAR_TYPES):
            metadata[key] = value
        else:
            metadata[key] = json.dumps(value, default=str)
            encoded.append(key)
    metadata[JSON_FIELDS_KEY] = ",".join(encoded)
    return metadata


def decode_metadata(metadata: Mapping[str, Any] | None) -> dict[str, Any]:
    if not metadata:
        return {}
    payload = dict(metadata)
    encoded = str(payload.pop(JSON_FIELDS_KEY, "") or "")
    for key in filter(None, encoded.split(",")):
        raw = payload.get(key)
        if isinstance(raw, str):
            try:
                payload[key] = json.loads(raw)
            except ValueError:
                logger.warning("vector_store.chroma.metadata_decode_failed", field=key)
    return payload


def _first(result: Mapping[str, Any], key: str) -> list[Any]:
    values = result.get(key)
    if not values:
        return []
    return list(values[0] or [])


class ChromaVectorStore:
    """Adapter over a Chroma server reached through ``chromadb.AsyncHttpClient``."""

    backend = "chroma"
    default_distance = "cosine"

    def __init__(
        self,
        url: str = "http://localhost:8000",
        *,
        default_distance: str = "cosine",
        client_factory: ClientFactory | None = None,
    ) -> None:
        self.url = url
        self.default_distance = default_distance
        self._client_factory = client_factory or self._connect
        self._client: Any | None = None
        self._collections: dict[str, Any] = {}

    async def _connect(self) -> Any:
        parsed = httpx.URL(self.url)
        secure = parsed.scheme == "https"
        port = parsed.port or (443 if secure else 80)
        return await chromadb.AsyncHttpClient(host=parsed.host, port=port, ssl=secure)

    async def _get_client(self) -> Any:
        if self._client is None:
            self._client = await self._client_factory()
        return self._client

    async def _get_collection(self, name: str) -> Any | None:
        cached = self._collections.get(name)
        if cached is not None:
            return cached
        client = await self._get_client()
        try:
            collection = await client.get_collection(name=name)
        except (NotFoundError, ValueError):
            return None
        self._collections[name] = collection
        return collection

    async def health_check(self) -> bool:
        try:
            client = await self._get_client()
            await client.heartbeat()
        except Exception as exc:
            logger.error("vector_store.chroma.health_failed", url=self.url, error=str(exc))
            raise BackendUnavailableError(self.backend, detail=str(exc)) from exc
        return True

    async def collection_exists(self, name: str) -> bool:
        try:
            return await self._get_collection(name) is not None
        except Exception as exc:
            logger.error("vector_store.chroma.exists_failed", collection=name, error=str(exc))
            raise

    async def create_collection(self, name: str, vector_size: int, distance: str) -> bool:
        try:
            if await self._get_collection(name) is not None:
                return True
            client = await self._get_client()
            collection = await client.create_collection(
                name=name,
                metadata={"hnsw:space": distance, "dimension": vector_size},
            )
        except Exception as exc:
            logger.error("vector_store.chroma.create_failed", collection=name, error=str(exc))
            raise
        self._collections[name] = collection
        logger.info(
            "vector_store.chroma.collection_created",
            collection=name,
            dimension=vector_size,
            distance=distance,
        )
        return True

    async def upsert_points(self, name: str, points: Sequence[VectorPoint]) -> bool:
        if not points:
            return True
        try:
            collection = await self._get_collection(name)
            if collection is None:
                await self.create_collection(name, len(points[0].vector), self.default_distance)
                collection = await self._get_collection(name)
            if collection is None:
                raise RuntimeError(f"Collection '{name}' missing after creation")
            await collection.upsert(
                ids=[str(point.id) for point in points],
                embeddings=[list(point.vector) for point in points],
                metadatas=[encode_metadata(point.payload) for point in points],
                documents=[str(point.payload.get("content") or "") for point in points],
            )
        except Exception as exc:
            logger.error("vector_store.chroma.upsert_failed", collection=name, error=str(exc))
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
            collection = await self._get_collection(name)
            if collection is None:
                return []
            result = await collection.query(
                query_embeddings=[list(vector)],
                n_results=limit,
                where=to_chroma_where(filter),
                include=["metadatas", "documents", "distances"],
            )
        except Exception as exc:
            logger.error("vector_store.chroma.search_failed", collection=name, error=str(exc))
            raise

        ids = _first(result, "ids")
        distances = _first(result, "distances")
        metadatas = _first(result, "metadatas")
        documents = _first(result, "documents")
        hits: list[SearchResult] = []
        for index, point_id in enumerate(ids):
            raw_distance = distances[index] if index < len(distances) else None
            score = 1.0 - float(raw_distance) if raw_distance is not None else 1.0
            payload = decode_metadata(metadatas[index] if index < len(metadatas) else None)
            payload["content"] = (documents[index] if index < len(documents) else None) or ""
            hits.append(SearchResult(score=score, payload=payload, id=point_id))
        return hits

    async def delete_collection(self, name: str) -> bool:
        try:
            if await self._get_collection(name) is None:
                return False
            client = await self._get_client()
            await client.delete_collection(name=name)
        except Exception as exc:
            logger.error("vector_store.chroma.delete_failed", collection=name, error=str(exc))
            raise
        finally:
            self._collections.pop(name, None)
        return True

    async def close(self) -> None:
        self._collections.clear()
        self._client = None


__all__ = ["ChromaVectorStore", "decode_metadata", "encode_metadata"]
