"""Structured logging setup for the tool process.

Both stdlib records and structlog events are rendered as one JSON object per
line on ``stderr``; ``stdout`` carries the tool protocol stream and must never
receive log lines. Fields named in ``LOG_SCRUB_FIELDS`` are masked as ``***``.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

import structlog

from Code_RAG.config.settings import LoggingSettings, load_logging_settings

_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)

# attributes every LogRecord carries; anything else came in through ``extra``
_RECORD_ATTRIBUTES = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}

_MASK = "***"


def _mask(value: Any, fields: frozenset[str]) -> Any:
    if isinstance(value, dict):
        return {
            key: _MASK if str(key).lower() in fields else _mask(item, fields)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [_mask(item, fields) for item in value]
    return value


class JsonFormatter(logging.Formatter):
    """Single-line JSON rendering of stdlib log records."""

    def __init__(self, *, scrub_fields: Iterable[str] = ()) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")
        self.scrub_fields = frozenset(field.lower() for field in scrub_fields)

    def format(self, record: logging.LogRecord) -> str:
        extra = {
            key: value for key, value in record.__dict__.items() if key not in _RECORD_ATTRIBUTES
        }
        payload: dict[str, Any] = _mask(extra, self.scrub_fields)
        payload.update(
            level=record.levelname,
            logger=record.name,
            message=record.getMessage(),
            time=self.formatTime(record, self.datefmt),
        )
        correlation_id = _correlation_id.get()
        if correlation_id:
            payload["correlation_id"] = correlation_id
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, sort_keys=True, default=str)


def _scrub_processor(scrub_fields: Iterable[str]):
    fields = frozenset(field.lower() for field in scrub_fields)

    def processor(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        return _mask(event_dict, fields)

    return processor


def _level_value(level: int | str) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.upper())
    return value if isinstance(value, int) else logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    settings: LoggingSettings | None = None,
) -> None:
    """Route stdlib logging and structlog to JSON lines on ``stderr``.

    ``settings`` defaults to the environment (``LOG_LEVEL``,
    ``LOG_SCRUB_FIELDS``); an explicit ``level`` overrides its level.
    """
    settings = settings or load_logging_settings()
    level_value = _level_value(level if level is not None else settings.log_level)
    formatter = JsonFormatter(scrub_fields=settings.log_scrub_fields)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    root = logging.getLogger()
    # pytest's capture handlers stay installed so caplog keeps working
    kept = [h for h in root.handlers if type(h).__module__.startswith("_pytest.")]
    for existing in kept:
        existing.setFormatter(formatter)
    logging.basicConfig(level=level_value, handlers=[*kept, handler], force=True)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            _scrub_processor(settings.log_scrub_fields),
            structlog.processors.JSONRenderer(sort_keys=True),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level_value),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


@contextmanager
def correlation_context(value: str) -> Iterator[str]:
    """Tag every log line emitted inside the block with ``correlation_id``."""
    token = _correlation_id.set(value)
    try:
        with structlog.contextvars.bound_contextvars(correlation_id=value):
            yield value
    finally:
        _correlation_id.reset(token)


__all__ = ["JsonFormatter", "configure_logging", "correlation_context"]
