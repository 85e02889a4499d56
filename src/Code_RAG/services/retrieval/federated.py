"""Federated search over several collections with one query embedding.

Key Responsibilities:
    - Embed the query once and reuse the vector for every collection
    - Skip collections that do not exist instead of failing the search
    - Merge hits into a single list ranked by descending score

Collaborators:
    - Upstream: :class:`SearchService`
    - Downstream: :class:`VectorStoreService`, the embedding entry points

Performance Characteristics:
    - Collections are searched sequentially; latency grows with the number
      of collections
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from typing import Any

import structlog

from Code_RAG.embeddings.ports import EmbeddingResult
from Code_RAG.services.vector_store.errors import QueryEmbeddingError
from Code_RAG.services.vector_store.models import FilterCondition, SearchFilter, SearchResult
from Code_RAG.services.vector_store.service import VectorStoreService

logger = structlog.get_logger(__name__)

EmbedFn = Callable[[str], Awaitable[EmbeddingResult]]


def build_filter(criteria: Mapping[str, Any] | None) -> SearchFilter | None:
    """Turn ``{field: value}`` criteria into a conjunctive filter.

    List values become ``any`` matches, scalars become ``text`` matches.
    ``None``, empty strings and empty lists are ignored.
    """
    if not criteria:
        return None
    conditions: list[FilterCondition] = []
    for key, value in criteria.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple, set, frozenset)):
            values = [item for item in value if item is not None]
            if values:
                conditions.append({"key": key, "match": {"any": values}})
        elif value != "":
            conditions.append({"key": key, "match": {"text": value}})
    if not conditions:
        return None
    return {"must": conditions}


def rank(results: Iterable[SearchResult], limit: int) -> list[SearchResult]:
    """Stable sort by descending score, truncated to ``limit``."""
    return sorted(results, key=lambda result: result.score, reverse=True)[: max(limit, 0)]


class FederatedSearchAggregator:
    def __init__(self, store: VectorStoreService, embed: EmbedFn) -> None:
        self.store = store
        self.embed = embed

    async def embed_query(self, query: str) -> list[float]:
        result = await self.embed(query)
        if result.error is not None:
            raise QueryEmbeddingError(result.error)
        return result.embedding

    async def search(
        self,
        query: str,
        collections: Sequence[str],
        limit: int = 10,
        criteria: Mapping[str, Any] | None = None,
    ) -> list[SearchResult]:
        vector = await self.embed_query(query)
        search_filter = build_filter(criteria)
        merged: list[SearchResult] = []
        for collection in collections:
            if not await self.store.collection_exists(collection):
                logger.warning("retrieval.federated.collection_missing", collection=collection)
                continue
            hits = await self.store.search(collection, vector, limit, search_filter)
            logger.debug("retrieval.federated.collection_searched", collection=collection, hits=len(hits))
            merged.extend(hits)
        return rank(merged, limit)


__all__ = ["FederatedSearchAggregator", "build_filter", "rank"]
