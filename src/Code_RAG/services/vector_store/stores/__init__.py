"""Concrete vector store adapters."""

from .chroma import ChromaVectorStore
from .lance import LanceVectorStore
from .qdrant import QdrantVectorStore

__all__ = ["ChromaVectorStore", "LanceVectorStore", "QdrantVectorStore"]
