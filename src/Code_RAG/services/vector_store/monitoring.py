"""Prometheus metrics for vector store operations."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

VECTOR_OPERATION_LATENCY = Histogram(
    "code_rag_vector_operation_duration_seconds",
    "Latency distribution for vector store operations",
    labelnames=("operation", "backend"),
)

VECTOR_OPERATION_COUNTER = Counter(
    "code_rag_vector_operation_total",
    "Vector store operations executed",
    labelnames=("operation", "backend"),
)

VECTOR_OPERATION_ERRORS = Counter(
    "code_rag_vector_operation_errors_total",
    "Vector store operations that raised",
    labelnames=("operation", "backend"),
)

VECTOR_POINTS_WRITTEN = Counter(
    "code_rag_vector_points_written_total",
    "Points upserted into a backend",
    labelnames=("backend",),
)


def record_vector_operation(operation: str, backend: str, duration_seconds: float) -> None:
    VECTOR_OPERATION_LATENCY.labels(operation=operation, backend=backend).observe(
        max(duration_seconds, 0.0)
    )
    VECTOR_OPERATION_COUNTER.labels(operation=operation, backend=backend).inc()


def record_vector_error(operation: str, backend: str) -> None:
    VECTOR_OPERATION_ERRORS.labels(operation=operation, backend=backend).inc()


def record_points_written(backend: str, count: int) -> None:
    if count > 0:
        VECTOR_POINTS_WRITTEN.labels(backend=backend).inc(count)


__all__ = [
    "record_points_written",
    "record_vector_error",
    "record_vector_operation",
]
