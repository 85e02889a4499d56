"""Retrieval services: federated aggregation and typed search entry points."""

from .federated import FederatedSearchAggregator, build_filter, rank
from .search import CodeSearchHit, DiagramSearchHit, DocumentationSearchHit, SearchService

__all__ = [
    "CodeSearchHit",
    "DiagramSearchHit",
    "DocumentationSearchHit",
    "FederatedSearchAggregator",
    "SearchService",
    "build_filter",
    "rank",
]
