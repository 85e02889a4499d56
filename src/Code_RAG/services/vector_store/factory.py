"""Factory helpers to construct vector store adapters from configuration."""

from __future__ import annotations

from collections.abc import Callable

from Code_RAG.config.settings import VectorStoreSettings

from .distance import normalize_distance
from .errors import UnsupportedBackendError
from .stores.chroma import ChromaVectorStore
from .stores.lance import LanceVectorStore
from .stores.qdrant import QdrantVectorStore
from .types import VectorStorePort


def _build_lance(settings: VectorStoreSettings) -> VectorStorePort:
    return LanceVectorStore(
        settings.lance_path,
        idle_timeout=settings.lance_idle_timeout,
        default_distance=normalize_distance(settings.vector_db_distance, "lance"),
    )


def _build_chroma(settings: VectorStoreSettings) -> VectorStorePort:
    return ChromaVectorStore(
        settings.chroma_url,
        default_distance=normalize_distance(settings.vector_db_distance, "chroma"),
    )


def _build_qdrant(settings: VectorStoreSettings) -> VectorStorePort:
    api_key = settings.qdrant_api_key.get_secret_value() if settings.qdrant_api_key else None
    return QdrantVectorStore(
        url=settings.qdrant_url,
        api_key=api_key,
        default_distance=normalize_distance(settings.vector_db_distance, "qdrant"),
    )


_SUPPORTED_DRIVERS: dict[str, Callable[[VectorStoreSettings], VectorStorePort]] = {
    "lance": _build_lance,
    "chroma": _build_chroma,
    "qdrant": _build_qdrant,
}

_ADAPTERS: dict[tuple[str, str, str], VectorStorePort] = {}


def connection_target(settings: VectorStoreSettings) -> str:
    provider = settings.vector_db_provider
    if provider == "lance":
        return str(settings.lance_path)
    if provider == "chroma":
        return settings.chroma_url
    if provider == "qdrant":
        return settings.qdrant_url
    return ""


class VectorStoreFactory:
    """Factory that instantiates and caches vector store adapters.

    Adapters are cached per provider, connection target and default metric so
    the LanceDB handle is shared process-wide while a configuration change
    yields a fresh adapter on the next call.
    """

    def __init__(self, settings: VectorStoreSettings) -> None:
        self.settings = settings

    @property
    def driver(self) -> str:
        driver = self.settings.vector_db_provider
        if driver not in _SUPPORTED_DRIVERS:
            raise UnsupportedBackendError(driver, supported=list(_SUPPORTED_DRIVERS))
        return driver

    def build(self) -> VectorStorePort:
        driver = self.driver
        key = (driver, connection_target(self.settings), self.settings.vector_db_distance)
        adapter = _ADAPTERS.get(key)
        if adapter is None:
            adapter = _SUPPORTED_DRIVERS[driver](self.settings)
            _ADAPTERS[key] = adapter
        return adapter


def supported_drivers() -> list[str]:
    return sorted(_SUPPORTED_DRIVERS)


async def close_adapters() -> None:
    """Close and forget every cached adapter."""
    adapters = list(_ADAPTERS.values())
    _ADAPTERS.clear()
    for adapter in adapters:
        await adapter.close()


__all__ = ["VectorStoreFactory", "close_adapters", "connection_target", "supported_drivers"]
