"""Shared utilities for errors and logging."""

from .errors import FoundationError, ProblemDetail
from .logging import configure_logging, correlation_context

__all__ = ["FoundationError", "ProblemDetail", "configure_logging", "correlation_context"]
