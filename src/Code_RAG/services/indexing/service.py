"""Indexing of files and text into a vector collection.

Key Responsibilities:
    - Chunk content with the strategy matching its file type
    - Ensure the target collection exists with the embedding dimension
    - Embed chunks one at a time, skipping and counting failed embeddings
    - Upsert the remaining chunks with file metadata payloads
    - Store generated documentation and diagrams, plain or merged, as single
      points shaped by their collection schema

Collaborators:
    - Upstream: Index, remove-collection and documentation/diagram tools
    - Downstream: :class:`VectorStoreService`, the embedding entry points

Side Effects:
    - Reads files from disk in a worker thread
    - Writes points to, or drops collections from, the vector store
"""

from __future__ import annotations

import asyncio
import re
import uuid
from collections.abc import Callable, Mapping, Sequence
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from functools import partial
from pathlib import Path
from typing import Any

import structlog

from Code_RAG.config.settings import EmbeddingSettings, VectorStoreSettings
from Code_RAG.embeddings.service import create_embedding, get_embedding_dimension
from Code_RAG.services.retrieval.federated import EmbedFn
from Code_RAG.services.vector_store.errors import ArtifactEmbeddingError
from Code_RAG.services.vector_store.models import VectorPoint
from Code_RAG.services.vector_store.schemas import (
    CODE_CHUNKS,
    DIAGRAMS,
    DOCUMENTATION,
    MERGED_DIAGRAMS,
    MERGED_DOCUMENTATION,
)
from Code_RAG.services.vector_store.service import VectorStoreService

from .chunking import create_smart_chunks

logger = structlog.get_logger(__name__)

_UNSAFE_NAME_CHARS = re.compile(r"[^a-z0-9]", re.IGNORECASE)


@dataclass(slots=True)
class IndexResult:
    file_path: str
    collection: str
    total_chunks: int = 0
    embeddings_generated: int = 0
    embedding_errors: int = 0
    stored: bool = False
    size_bytes: int = 0
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class DirectoryIndexResult:
    directory: str
    collection: str
    processed_files: int = 0
    total_chunks: int = 0
    embeddings_generated: int = 0
    errors: int = 0
    files: list[IndexResult] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class RemoveCollectionResult:
    collection: str
    existed: bool
    removed: bool
    message: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class ArtifactIndexResult:
    collection: str
    point_id: str
    stored: bool
    message: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _iso(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _require_sources(sources: Sequence[str], kind: str) -> list[str]:
    if len(sources) < 2:
        raise ValueError(f"Merging {kind} needs at least two source ids, got {len(sources)}")
    return list(sources)


def _read_file(path: Path) -> tuple[str, dict[str, Any]]:
    content = path.read_text(encoding="utf-8", errors="replace")
    stat = path.stat()
    metadata = {
        "size": stat.st_size,
        "created": _iso(getattr(stat, "st_birthtime", stat.st_ctime)),
        "modified": _iso(stat.st_mtime),
        "accessed": _iso(stat.st_atime),
    }
    return content, metadata


def _list_files(
    directory: Path,
    recursive: bool,
    extensions: frozenset[str] | None,
    include_hidden: bool,
) -> list[Path]:
    candidates = directory.rglob("*") if recursive else directory.glob("*")
    files: list[Path] = []
    for candidate in candidates:
        relative = candidate.relative_to(directory)
        if not include_hidden and any(part.startswith(".") for part in relative.parts):
            continue
        if not candidate.is_file():
            continue
        if extensions is not None and candidate.suffix.lower() not in extensions:
            continue
        files.append(candidate)
    return sorted(files)


def chunk_point_id(file_path: str, chunk_index: int) -> str:
    """Deterministic UUID so re-indexing a file replaces its chunks."""
    return str(uuid.uuid5(uuid.NAMESPACE_URL, f"{file_path}#{chunk_index}"))


class IndexingService:
    """Chunks, embeds and stores content in a vector collection."""

    def __init__(
        self,
        store: VectorStoreService | None = None,
        embed: EmbedFn | None = None,
        dimension: Callable[[], int] | None = None,
        *,
        vector_settings: VectorStoreSettings | None = None,
        embedding_settings: EmbeddingSettings | None = None,
    ) -> None:
        self.store = store or VectorStoreService(vector_settings)
        self.embed = embed or partial(create_embedding, settings=embedding_settings)
        self.dimension = dimension or partial(get_embedding_dimension, settings=embedding_settings)

    async def ensure_collection(self, collection: str) -> int:
        dimension = self.dimension()
        if not await self.store.collection_exists(collection):
            await self.store.create_collection(collection, dimension)
        return dimension

    async def index_text(
        self,
        content: str,
        file_path: str,
        *,
        collection: str = CODE_CHUNKS,
        chunk_size: int = 512,
        overlap: int = 50,
        metadata: Mapping[str, Any] | None = None,
    ) -> IndexResult:
        path = Path(file_path)
        extension = path.suffix
        result = IndexResult(
            file_path=file_path,
            collection=collection,
            size_bytes=len(content.encode("utf-8")),
        )
        chunks = create_smart_chunks(content, extension, chunk_size=chunk_size, overlap=overlap)
        result.total_chunks = len(chunks)
        if not chunks:
            result.message = "File is empty or contains only whitespace"
            return result

        await self.ensure_collection(collection)
        safe_name = _UNSAFE_NAME_CHARS.sub("_", path.name)
        points: list[VectorPoint] = []
        for index, chunk in enumerate(chunks):
            embedding = await self.embed(chunk)
            if embedding.error is not None:
                result.embedding_errors += 1
                logger.warning(
                    "indexing.chunk_embedding_failed",
                    file_path=file_path,
                    chunk_index=index,
                    error=embedding.error,
                )
                continue
            payload: dict[str, Any] = {
                "fileNameId": f"{safe_name}-{index}",
                "filePath": file_path,
                "fileName": path.name,
                "chunkIndex": index,
                "content": chunk,
                "startPosition": index * (chunk_size - overlap),
                "fileType": extension[1:],
                "filename": path.name,
                "extension": extension,
                "directory": str(path.parent),
            }
            payload.update(metadata or {})
            points.append(
                self.store.create_point(chunk_point_id(file_path, index), embedding.embedding, payload)
            )

        result.embeddings_generated = len(points)
        if points:
            result.stored = await self.store.upsert_points(collection, points)
        result.message = (
            f"Indexed {len(points)} of {len(chunks)} chunks into '{collection}'"
        )
        logger.info(
            "indexing.file_indexed",
            file_path=file_path,
            collection=collection,
            chunks=len(chunks),
            stored=len(points),
            errors=result.embedding_errors,
        )
        return result

    async def index_file(
        self,
        path: str | Path,
        *,
        collection: str = CODE_CHUNKS,
        chunk_size: int = 512,
        overlap: int = 50,
    ) -> IndexResult:
        file_path = Path(path).expanduser().resolve()
        if not file_path.is_file():
            raise FileNotFoundError(f"File not found: {file_path}")
        content, metadata = await asyncio.to_thread(_read_file, file_path)
        return await self.index_text(
            content,
            str(file_path),
            collection=collection,
            chunk_size=chunk_size,
            overlap=overlap,
            metadata=metadata,
        )

    async def index_directory(
        self,
        directory: str | Path,
        *,
        recursive: bool = True,
        extensions: Sequence[str] | None = None,
        include_hidden: bool = False,
        collection: str = CODE_CHUNKS,
        chunk_size: int = 512,
        overlap: int = 50,
    ) -> DirectoryIndexResult:
        root = Path(directory).expanduser().resolve()
        if not root.is_dir():
            raise NotADirectoryError(f"Directory not found: {root}")
        wanted = (
            frozenset(ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in extensions)
            if extensions
            else None
        )
        files = await asyncio.to_thread(_list_files, root, recursive, wanted, include_hidden)
        summary = DirectoryIndexResult(directory=str(root), collection=collection)
        for file_path in files:
            try:
                result = await self.index_file(
                    file_path, collection=collection, chunk_size=chunk_size, overlap=overlap
                )
            except (OSError, UnicodeError) as exc:
                logger.error("indexing.file_failed", file_path=str(file_path), error=str(exc))
                summary.failures[str(file_path)] = str(exc)
                summary.errors += 1
                continue
            summary.files.append(result)
            summary.total_chunks += result.total_chunks
            summary.embeddings_generated += result.embeddings_generated
            summary.errors += result.embedding_errors
        summary.processed_files = len(files)
        return summary

    async def index_artifact(
        self,
        collection: str,
        payload: Mapping[str, Any],
        *,
        embed_text: str | None = None,
    ) -> ArtifactIndexResult:
        """Embed and store one generated artifact.

        ``embed_text`` defaults to the payload ``content``. Unlike chunk
        indexing, an embedding failure raises :class:`ArtifactEmbeddingError`
        because the artifact would otherwise be lost silently.
        """
        await self.ensure_collection(collection)
        text = embed_text if embed_text is not None else str(payload.get("content") or "")
        embedding = await self.embed(text)
        if embedding.error is not None:
            logger.error(
                "indexing.artifact_embedding_failed",
                collection=collection,
                error=embedding.error,
            )
            raise ArtifactEmbeddingError(collection, embedding.error)
        point = self.store.create_point(None, embedding.embedding, payload)
        stored = await self.store.upsert_points(collection, [point])
        logger.info("indexing.artifact_indexed", collection=collection, point_id=str(point.id))
        return ArtifactIndexResult(
            collection=collection,
            point_id=str(point.id),
            stored=stored,
            message=(
                f"Stored artifact in '{collection}'"
                if stored
                else f"Failed to store artifact in '{collection}'"
            ),
        )

    async def index_documentation(
        self,
        content: str,
        file_path: str,
        *,
        chapters: Sequence[Any] | None = None,
    ) -> ArtifactIndexResult:
        payload = {
            "content": content,
            "filePath": file_path,
            "type": "documentation",
            "chapters": list(chapters or []),
            "createdAt": _now(),
        }
        return await self.index_artifact(DOCUMENTATION, payload)

    async def index_diagram(
        self,
        content: str,
        file_path: str,
        diagram_type: str,
        *,
        description: str = "",
        diagram_elements: Sequence[Any] | None = None,
    ) -> ArtifactIndexResult:
        payload = {
            "content": content,
            "filePath": file_path,
            "description": description,
            "type": "diagram",
            "diagramType": diagram_type,
            "diagramElements": list(diagram_elements or []),
            "createdAt": _now(),
        }
        # the type prefix makes diagrams findable by kind
        return await self.index_artifact(DIAGRAMS, payload, embed_text=f"{diagram_type}: {content}")

    async def index_merged_documentation(
        self,
        content: str,
        source_documentations: Sequence[str],
        *,
        source_files: Sequence[str] | None = None,
        chapters: Sequence[Any] | None = None,
        merge_strategy: str = "",
        parent_id: str = "",
        merge_level: int = 0,
    ) -> ArtifactIndexResult:
        sources = _require_sources(source_documentations, "documentation")
        timestamp = _now()
        payload = {
            "content": content,
            "type": "merged-documentation",
            "chapters": list(chapters or []),
            "sourceDocumentations": sources,
            "sourceFiles": list(source_files or []),
            "mergedFromCount": len(sources),
            "mergeStrategy": merge_strategy,
            "mergeDate": timestamp,
            "parentMergedDocumentationId": parent_id,
            "mergeLevel": merge_level,
            "createdAt": timestamp,
        }
        return await self.index_artifact(MERGED_DOCUMENTATION, payload)

    async def index_merged_diagram(
        self,
        content: str,
        diagram_type: str,
        source_diagrams: Sequence[str],
        *,
        source_files: Sequence[str] | None = None,
        diagram_elements: Sequence[Any] | None = None,
        merge_strategy: str = "",
        parent_id: str = "",
        merge_level: int = 0,
    ) -> ArtifactIndexResult:
        sources = _require_sources(source_diagrams, "diagrams")
        timestamp = _now()
        payload = {
            "content": content,
            "type": "merged-diagram",
            "diagramType": diagram_type,
            "diagramElements": list(diagram_elements or []),
            "sourceDiagrams": sources,
            "sourceFiles": list(source_files or []),
            "mergedFromCount": len(sources),
            "mergeStrategy": merge_strategy,
            "mergeDate": timestamp,
            "parentMergedDiagramId": parent_id,
            "mergeLevel": merge_level,
            "createdAt": timestamp,
        }
        return await self.index_artifact(
            MERGED_DIAGRAMS, payload, embed_text=f"{diagram_type}: {content}"
        )

    async def remove_collection(self, name: str) -> RemoveCollectionResult:
        if not await self.store.collection_exists(name):
            return RemoveCollectionResult(
                collection=name,
                existed=False,
                removed=False,
                message=f"Collection '{name}' does not exist",
            )
        removed = await self.store.delete_collection(name)
        return RemoveCollectionResult(
            collection=name,
            existed=True,
            removed=removed,
            message=(
                f"Collection '{name}' removed"
                if removed
                else f"Collection '{name}' could not be removed"
            ),
        )


__all__ = [
    "ArtifactIndexResult",
    "DirectoryIndexResult",
    "IndexResult",
    "IndexingService",
    "RemoveCollectionResult",
    "chunk_point_id",
]
