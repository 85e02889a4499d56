"""Embeddings served over HTTP by an Ollama compatible endpoint."""

from __future__ import annotations

import httpx
import structlog

from Code_RAG.config.settings import EmbeddingSettings

from .ports import EmbeddingProviderError

logger = structlog.get_logger(__name__)


class RemoteEmbeddingProvider:
    """Issues one ``POST /api/embeddings`` per text.

    ``transport`` lets tests substitute an ``httpx.MockTransport``.
    """

    name = "remote"

    def __init__(
        self,
        settings: EmbeddingSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport
        self.model = settings.resolved_model
        self.endpoint = settings.ollama_url.rstrip("/") + "/api/embeddings"

    def dimension(self) -> int:
        return self._settings.embedding_dimension

    async def embed(self, text: str) -> list[float]:
        payload = {"model": self.model, "prompt": text}
        try:
            async with httpx.AsyncClient(
                timeout=self._settings.embedding_timeout,
                transport=self._transport,
            ) as client:
                response = await client.post(self.endpoint, json=payload)
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPStatusError as exc:
            raise EmbeddingProviderError(
                f"Embedding endpoint returned HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise EmbeddingProviderError(f"Embedding request failed: {exc}") from exc
        except ValueError as exc:
            raise EmbeddingProviderError("Embedding endpoint returned invalid JSON") from exc

        embedding = body.get("embedding") if isinstance(body, dict) else None
        if not isinstance(embedding, list) or not embedding:
            raise EmbeddingProviderError("Embedding response is missing a non-empty 'embedding'")
        try:
            return [float(value) for value in embedding]
        except (TypeError, ValueError) as exc:
            raise EmbeddingProviderError("Embedding response contains non-numeric values") from exc


__all__ = ["RemoteEmbeddingProvider"]
