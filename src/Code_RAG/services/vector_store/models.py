"""Backend-neutral data structures shared by every vector store adapter."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, TypedDict, Union

PointId = Union[str, int]
Scalar = Union[str, int, float, bool]


class MatchAny(TypedDict):
    any: list[Scalar]


class MatchText(TypedDict):
    text: Scalar


class FilterCondition(TypedDict):
    key: str
    match: MatchAny | MatchText


class SearchFilter(TypedDict):
    """Conjunction of conditions; every condition must hold."""

    must: list[FilterCondition]


@dataclass(slots=True)
class VectorPoint:
    """A vector with its identifier and arbitrary metadata payload."""

    id: PointId
    vector: Sequence[float]
    payload: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.vector = [float(value) for value in self.vector]
        self.payload = dict(self.payload)


@dataclass(slots=True)
class SearchResult:
    """One similarity hit; a higher score means more similar."""

    score: float
    payload: dict[str, Any] = field(default_factory=dict)
    id: PointId | None = None


@dataclass(slots=True, frozen=True)
class VectorStoreConfig:
    """Resolved view of the active backend for diagnostics."""

    provider: str
    distance: str
    target: str


__all__ = [
    "FilterCondition",
    "MatchAny",
    "MatchText",
    "PointId",
    "Scalar",
    "SearchFilter",
    "SearchResult",
    "VectorPoint",
    "VectorStoreConfig",
]
