"""Translate the backend-neutral :class:`SearchFilter` into native syntax.

Each function accepts ``None`` or a filter whose ``must`` list holds
``{"key": ..., "match": {"any": [...]}}`` or ``{"key": ..., "match": {"text": ...}}``
conditions, and returns what the matching client expects.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from typing import Any

from qdrant_client.http import models as qm

from .models import Scalar, SearchFilter
from .schemas import SCHEMA_SENTINEL_ID

_PLAIN_IDENTIFIER = re.compile(r"^[a-z_][a-z0-9_]*$")


def _conditions(filter: SearchFilter | None) -> Iterator[tuple[str, str, Any]]:
    if not filter:
        return
    for condition in filter.get("must", []):
        key = condition["key"]
        match = condition["match"]
        if "any" in match:
            yield key, "any", list(match["any"])  # type: ignore[typeddict-item]
        elif "text" in match:
            yield key, "text", match["text"]  # type: ignore[typeddict-item]
        else:
            raise ValueError(f"Unsupported match clause for '{key}': {match!r}")


def _sql_literal(value: Scalar) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    return "'" + str(value).replace("'", "''") + "'"


def _sql_identifier(name: str) -> str:
    if _PLAIN_IDENTIFIER.match(name):
        return name
    return "`" + name.replace("`", "``") + "`"


def to_lance_where(filter: SearchFilter | None) -> str:
    """SQL predicate for LanceDB; always excludes the schema sentinel row."""
    clauses = [f"id != {_sql_literal(SCHEMA_SENTINEL_ID)}"]
    for key, kind, value in _conditions(filter):
        column = _sql_identifier(key)
        if kind == "any":
            if not value:
                clauses.append("false")
                continue
            values = ", ".join(_sql_literal(item) for item in value)
            clauses.append(f"{column} IN ({values})")
        else:
            clauses.append(f"{column} = {_sql_literal(value)}")
    return " AND ".join(clauses)


def to_chroma_where(filter: SearchFilter | None) -> dict[str, Any] | None:
    """Chroma ``where`` clause, or ``None`` when there is nothing to filter."""
    parts: list[dict[str, Any]] = []
    for key, kind, value in _conditions(filter):
        if kind == "any":
            parts.append({key: {"$in": value}})
        else:
            parts.append({key: value})
    if not parts:
        return None
    if len(parts) == 1:
        return parts[0]
    return {"$and": parts}


def to_qdrant_filter(filter: SearchFilter | None) -> qm.Filter | None:
    """Validated ``qdrant_client`` filter of the same shape."""
    if not filter or not filter.get("must"):
        return None
    return qm.Filter.model_validate(filter)


__all__ = ["to_chroma_where", "to_lance_where", "to_qdrant_filter"]
