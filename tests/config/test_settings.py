from __future__ import annotations

from pathlib import Path

import pytest

from Code_RAG.config.settings import (
    DEFAULT_LOCAL_MODEL,
    DEFAULT_REMOTE_MODEL,
    EmbeddingSettings,
    load_embedding_settings,
    load_logging_settings,
    load_vector_store_settings,
)


def test_vector_store_defaults():
    settings = load_vector_store_settings()
    assert settings.vector_db_provider == "lance"
    assert settings.vector_db_distance == "cosine"
    assert settings.lance_path == Path("~/lancedb_data").expanduser()
    assert settings.lance_idle_timeout == 300.0
    assert settings.chroma_url == "http://localhost:8000"
    assert settings.qdrant_url == "http://localhost:6333"
    assert settings.qdrant_api_key is None


def test_vector_store_settings_read_environment_on_each_call(monkeypatch):
    assert load_vector_store_settings().vector_db_provider == "lance"
    monkeypatch.setenv("VECTOR_DB_PROVIDER", "Qdrant")
    monkeypatch.setenv("QDRANT_API_KEY", "secret")
    settings = load_vector_store_settings()
    assert settings.vector_db_provider == "qdrant"
    assert settings.qdrant_api_key is not None
    assert settings.qdrant_api_key.get_secret_value() == "secret"


def test_blank_api_key_is_treated_as_missing(monkeypatch):
    monkeypatch.setenv("QDRANT_API_KEY", "  ")
    assert load_vector_store_settings().qdrant_api_key is None


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("buildin", "local"), ("local", "local"), ("OLLAMA", "remote"), ("remote", "remote")],
)
def test_embedding_provider_aliases(raw, expected):
    assert EmbeddingSettings(embedding_provider=raw).embedding_provider == expected


def test_unknown_embedding_provider_is_a_configuration_error(monkeypatch):
    monkeypatch.setenv("EMBEDDING_PROVIDER", "openai")
    with pytest.raises(RuntimeError, match="Invalid embedding configuration"):
        load_embedding_settings()


def test_resolved_model_defaults_per_provider():
    assert EmbeddingSettings().resolved_model == DEFAULT_LOCAL_MODEL
    assert EmbeddingSettings(embedding_provider="ollama").resolved_model == DEFAULT_REMOTE_MODEL
    custom = EmbeddingSettings(embedding_provider="ollama", embedding_model="nomic-embed-text")
    assert custom.resolved_model == "nomic-embed-text"


def test_embedding_settings_from_environment(monkeypatch):
    monkeypatch.setenv("EMBEDDING_DIMENSION", "768")
    monkeypatch.setenv("OLLAMA_URL", "http://gpu-box:11434")
    settings = load_embedding_settings()
    assert settings.embedding_dimension == 768
    assert settings.ollama_url == "http://gpu-box:11434"
    assert settings.embedding_timeout == 60.0


def test_logging_settings(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    settings = load_logging_settings()
    assert settings.log_level == "DEBUG"
    assert "api_key" in settings.log_scrub_fields
