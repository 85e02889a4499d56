"""Configuration system for the retrieval layer.

Settings are plain pydantic-settings models whose field names mirror the
environment keys the tool server is launched with (``VECTOR_DB_PROVIDER``,
``EMBEDDING_PROVIDER`` ...). Loaders read the environment on every call so a
configuration change takes effect on the next operation; callers that want a
fixed configuration construct the models directly and pass them down.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

VectorBackend = Literal["lance", "chroma", "qdrant"]
EmbeddingBackend = Literal["local", "remote"]

_EMBEDDING_PROVIDER_ALIASES = {
    "buildin": "local",
    "builtin": "local",
    "local": "local",
    "ollama": "remote",
    "remote": "remote",
}

DEFAULT_LOCAL_MODEL = "sentence-transformers/all-MiniLM-L6-v2"
DEFAULT_REMOTE_MODEL = "bge-m3"


class _EnvSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )


class VectorStoreSettings(_EnvSettings):
    """Backend selection and connection targets for the vector store."""

    vector_db_provider: str = Field(default="lance", description="lance, chroma or qdrant")
    vector_db_distance: str = Field(default="cosine", description="Default distance metric")
    lance_path: Path = Field(default=Path("~/lancedb_data"))
    lance_idle_timeout: float = Field(
        default=300.0, gt=0.0, description="Seconds before an idle LanceDB handle is closed"
    )
    chroma_url: str = Field(default="http://localhost:8000")
    qdrant_url: str = Field(default="http://localhost:6333")
    qdrant_api_key: SecretStr | None = None

    @field_validator("vector_db_provider", "vector_db_distance")
    @classmethod
    def _normalise_name(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("lance_path")
    @classmethod
    def _expand_path(cls, value: Path) -> Path:
        return value.expanduser()

    @field_validator("qdrant_api_key", mode="before")
    @classmethod
    def _blank_key_is_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class EmbeddingSettings(_EnvSettings):
    """Embedding provider selection and model parameters."""

    embedding_provider: EmbeddingBackend = "local"
    embedding_model: str | None = None
    embedding_dimension: int = Field(default=1024, ge=1)
    ollama_url: str = Field(default="http://localhost:11434")
    embedding_timeout: float = Field(default=60.0, gt=0.0)

    @field_validator("embedding_provider", mode="before")
    @classmethod
    def _resolve_alias(cls, value: object) -> object:
        if isinstance(value, str):
            key = value.strip().lower()
            return _EMBEDDING_PROVIDER_ALIASES.get(key, key)
        return value

    @property
    def resolved_model(self) -> str:
        if self.embedding_model:
            return self.embedding_model
        if self.embedding_provider == "remote":
            return DEFAULT_REMOTE_MODEL
        return DEFAULT_LOCAL_MODEL


class LoggingSettings(_EnvSettings):
    """Structured logging configuration."""

    log_level: str = Field(default="INFO", description="Log level for application output")
    log_scrub_fields: Sequence[str] = Field(
        default_factory=lambda: ["api_key", "qdrant_api_key", "token", "authorization"],
        description="Fields that should be redacted in logs",
    )


def load_vector_store_settings() -> VectorStoreSettings:
    """Read vector store settings from the current environment."""
    try:
        return VectorStoreSettings()
    except ValidationError as err:
        raise RuntimeError(f"Invalid vector store configuration: {err}") from err


def load_embedding_settings() -> EmbeddingSettings:
    """Read embedding settings from the current environment."""
    try:
        return EmbeddingSettings()
    except ValidationError as err:
        raise RuntimeError(f"Invalid embedding configuration: {err}") from err


def load_logging_settings() -> LoggingSettings:
    try:
        return LoggingSettings()
    except ValidationError as err:
        raise RuntimeError(f"Invalid logging configuration: {err}") from err
