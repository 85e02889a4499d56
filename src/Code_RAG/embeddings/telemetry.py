"""Prometheus metrics for embedding generation."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

EMBEDDING_REQUESTS = Counter(
    "code_rag_embedding_requests_total",
    "Embedding requests issued per provider",
    labelnames=("provider",),
)

EMBEDDING_FAILURES = Counter(
    "code_rag_embedding_failures_total",
    "Embedding requests that returned a zero vector",
    labelnames=("provider",),
)

EMBEDDING_LATENCY = Histogram(
    "code_rag_embedding_duration_seconds",
    "Latency of a single embedding request",
    labelnames=("provider",),
)


def record_embedding(provider: str, duration_seconds: float, *, failed: bool) -> None:
    EMBEDDING_REQUESTS.labels(provider=provider).inc()
    EMBEDDING_LATENCY.labels(provider=provider).observe(max(duration_seconds, 0.0))
    if failed:
        EMBEDDING_FAILURES.labels(provider=provider).inc()


__all__ = ["EMBEDDING_FAILURES", "EMBEDDING_REQUESTS", "record_embedding"]
