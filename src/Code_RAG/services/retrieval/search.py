"""Search services behind the codebase, documentation and diagram tools."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import asdict, dataclass, field
from functools import partial
from typing import Any

import structlog

from Code_RAG.config.settings import EmbeddingSettings, VectorStoreSettings
from Code_RAG.embeddings.service import create_embedding
from Code_RAG.services.vector_store.errors import CollectionNotFoundError
from Code_RAG.services.vector_store.models import SearchResult
from Code_RAG.services.vector_store.schemas import (
    CODE_CHUNKS,
    DIAGRAMS,
    DOCUMENTATION,
    MERGED_DIAGRAMS,
    MERGED_DOCUMENTATION,
)
from Code_RAG.services.vector_store.service import VectorStoreService

from .federated import EmbedFn, FederatedSearchAggregator, build_filter

logger = structlog.get_logger(__name__)

DOCUMENTATION_COLLECTIONS = (DOCUMENTATION, MERGED_DOCUMENTATION)
DIAGRAM_COLLECTIONS = (DIAGRAMS, MERGED_DIAGRAMS)


def _location(payload: Mapping[str, Any]) -> str:
    file_path = str(payload.get("filePath") or "")
    start = payload.get("startPosition")
    return f"{file_path}:{start}" if start else file_path


@dataclass(slots=True)
class CodeSearchHit:
    content: str
    similarity: float
    file_path: str
    filename: str
    extension: str
    location: str

    @classmethod
    def from_result(cls, result: SearchResult) -> CodeSearchHit:
        payload = result.payload
        return cls(
            content=str(payload.get("content") or ""),
            similarity=result.score,
            file_path=str(payload.get("filePath") or ""),
            filename=str(payload.get("filename") or ""),
            extension=str(payload.get("extension") or ""),
            location=_location(payload),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class DocumentationSearchHit:
    content: str
    similarity: float
    file_path: str
    filename: str
    extension: str
    location: str
    title: str = ""
    section: str = ""
    tags: list[str] = field(default_factory=list)

    @classmethod
    def from_result(cls, result: SearchResult) -> DocumentationSearchHit:
        payload = result.payload
        tags = payload.get("tags") or []
        return cls(
            content=str(payload.get("content") or ""),
            similarity=result.score,
            file_path=str(payload.get("filePath") or ""),
            filename=str(payload.get("filename") or ""),
            extension=str(payload.get("extension") or ""),
            location=_location(payload),
            title=str(payload.get("title") or ""),
            section=str(payload.get("section") or ""),
            tags=[str(tag) for tag in tags] if isinstance(tags, list) else [str(tags)],
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class DiagramSearchHit:
    content: str
    similarity: float
    file_path: str
    filename: str
    extension: str
    location: str
    title: str = ""
    diagram_type: str = ""
    description: str = ""

    @classmethod
    def from_result(cls, result: SearchResult) -> DiagramSearchHit:
        payload = result.payload
        return cls(
            content=str(payload.get("content") or ""),
            similarity=result.score,
            file_path=str(payload.get("filePath") or ""),
            filename=str(payload.get("filename") or ""),
            extension=str(payload.get("extension") or ""),
            location=_location(payload),
            title=str(payload.get("title") or ""),
            diagram_type=str(payload.get("diagramType") or ""),
            description=str(payload.get("description") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class SearchService:
    """Semantic search over indexed code and generated artifacts.

    Args:
        store: Vector store façade; built from ``vector_settings`` when omitted.
        embed: Coroutine producing an :class:`EmbeddingResult` for a query.
        vector_settings: Fixed vector store configuration.
        embedding_settings: Fixed embedding configuration used by the default
            ``embed`` callable.
    """

    def __init__(
        self,
        store: VectorStoreService | None = None,
        embed: EmbedFn | None = None,
        *,
        vector_settings: VectorStoreSettings | None = None,
        embedding_settings: EmbeddingSettings | None = None,
    ) -> None:
        self.store = store or VectorStoreService(vector_settings)
        self.embed = embed or partial(create_embedding, settings=embedding_settings)
        self.aggregator = FederatedSearchAggregator(self.store, self.embed)

    async def search_codebase(
        self,
        query: str,
        limit: int = 10,
        extension: str | Sequence[str] | None = None,
        directory: str | None = None,
        filename: str | None = None,
        collection: str = CODE_CHUNKS,
    ) -> list[CodeSearchHit]:
        """Search one code collection; a missing collection is an error here."""
        if not await self.store.collection_exists(collection):
            raise CollectionNotFoundError(collection)
        extensions = [extension] if isinstance(extension, str) else list(extension or [])
        criteria = {"extension": extensions, "directory": directory, "filename": filename}
        vector = await self.aggregator.embed_query(query)
        logger.info("retrieval.search_codebase", collection=collection, limit=limit)
        results = await self.store.search(collection, vector, limit, build_filter(criteria))
        return [CodeSearchHit.from_result(result) for result in results]

    async def search_documentation(
        self,
        query: str,
        limit: int = 10,
        directory: str | None = None,
        filename: str | None = None,
        section: str | None = None,
        tags: str | Sequence[str] | None = None,
    ) -> list[DocumentationSearchHit]:
        tag_list = [tags] if isinstance(tags, str) else list(tags or [])
        criteria = {"directory": directory, "filename": filename, "section": section, "tags": tag_list}
        logger.info("retrieval.search_documentation", limit=limit)
        results = await self.aggregator.search(query, DOCUMENTATION_COLLECTIONS, limit, criteria)
        return [DocumentationSearchHit.from_result(result) for result in results]

    async def search_diagrams(
        self,
        query: str,
        limit: int = 10,
        diagram_type: str | None = None,
        directory: str | None = None,
        filename: str | None = None,
    ) -> list[DiagramSearchHit]:
        criteria = {"diagramType": diagram_type, "directory": directory, "filename": filename}
        logger.info("retrieval.search_diagrams", limit=limit)
        results = await self.aggregator.search(query, DIAGRAM_COLLECTIONS, limit, criteria)
        return [DiagramSearchHit.from_result(result) for result in results]


__all__ = [
    "CodeSearchHit",
    "DiagramSearchHit",
    "DocumentationSearchHit",
    "SearchService",
]
