from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure the src/ directory is importable without an editable install.
_SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if _SRC_PATH.is_dir() and str(_SRC_PATH) not in sys.path:
    sys.path.insert(0, str(_SRC_PATH))

from Code_RAG.config.settings import EmbeddingSettings, VectorStoreSettings  # noqa: E402
from Code_RAG.embeddings.local import clear_pipeline_cache  # noqa: E402
from Code_RAG.services.vector_store.factory import close_adapters  # noqa: E402

_CONFIG_KEYS = (
    "VECTOR_DB_PROVIDER",
    "VECTOR_DB_DISTANCE",
    "LANCE_PATH",
    "LANCE_IDLE_TIMEOUT",
    "CHROMA_URL",
    "QDRANT_URL",
    "QDRANT_API_KEY",
    "EMBEDDING_PROVIDER",
    "EMBEDDING_MODEL",
    "EMBEDDING_DIMENSION",
    "OLLAMA_URL",
    "EMBEDDING_TIMEOUT",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch, tmp_path):
    for key in _CONFIG_KEYS:
        monkeypatch.delenv(key, raising=False)
    # keep a developer's .env out of the tests
    monkeypatch.chdir(tmp_path)
    yield
    clear_pipeline_cache()


@pytest.fixture(autouse=True)
async def _reset_adapters():
    yield
    await close_adapters()


@pytest.fixture
def lance_settings(tmp_path) -> VectorStoreSettings:
    return VectorStoreSettings(vector_db_provider="lance", lance_path=tmp_path / "lancedb")


@pytest.fixture
def qdrant_settings() -> VectorStoreSettings:
    return VectorStoreSettings(vector_db_provider="qdrant", qdrant_url=":memory:")


@pytest.fixture
def remote_embedding_settings() -> EmbeddingSettings:
    return EmbeddingSettings(
        embedding_provider="remote",
        embedding_dimension=1024,
        ollama_url="http://ollama.test",
    )
