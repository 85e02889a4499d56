"""Chunking and indexing of content into vector collections."""

from .chunking import create_chunks, create_paragraph_chunks, create_smart_chunks
from .service import (
    ArtifactIndexResult,
    DirectoryIndexResult,
    IndexingService,
    IndexResult,
    RemoveCollectionResult,
)

__all__ = [
    "ArtifactIndexResult",
    "DirectoryIndexResult",
    "IndexResult",
    "IndexingService",
    "RemoveCollectionResult",
    "create_chunks",
    "create_paragraph_chunks",
    "create_smart_chunks",
]
