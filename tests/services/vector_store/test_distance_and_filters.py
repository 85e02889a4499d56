from __future__ import annotations

import pytest
from qdrant_client.http import models as qm

from Code_RAG.services.vector_store.distance import normalize_distance
from Code_RAG.services.vector_store.errors import UnsupportedDistanceError
from Code_RAG.services.vector_store.filters import (
    to_chroma_where,
    to_lance_where,
    to_qdrant_filter,
)

_EXPECTED = {
    "cosine": {"lance": "cosine", "chroma": "cosine", "qdrant": "Cosine"},
    "l2": {"lance": "l2", "chroma": "l2", "qdrant": "Euclid"},
    "euclid": {"lance": "l2", "chroma": "l2", "qdrant": "Euclid"},
    "ip": {"lance": "dot", "chroma": "ip", "qdrant": "Dot"},
    "dot": {"lance": "dot", "chroma": "ip", "qdrant": "Dot"},
}


@pytest.mark.parametrize("metric", sorted(_EXPECTED))
@pytest.mark.parametrize("provider", ["lance", "chroma", "qdrant"])
def test_every_documented_metric_maps_to_one_native_name(metric, provider):
    assert normalize_distance(metric, provider) == _EXPECTED[metric][provider]
    assert normalize_distance(metric.upper(), provider) == _EXPECTED[metric][provider]


@pytest.mark.parametrize("metric", sorted(_EXPECTED))
@pytest.mark.parametrize("provider", ["lance", "chroma", "qdrant"])
def test_normalisation_is_idempotent(metric, provider):
    native = normalize_distance(metric, provider)
    assert normalize_distance(native, provider) == native


@pytest.mark.parametrize("metric", ["hamming", "manhattan", ""])
def test_unknown_metric_raises_instead_of_defaulting(metric):
    with pytest.raises(UnsupportedDistanceError):
        normalize_distance(metric, "qdrant")


def test_unknown_provider_raises():
    with pytest.raises(UnsupportedDistanceError):
        normalize_distance("cosine", "pinecone")


def test_lance_where_always_excludes_sentinel():
    assert to_lance_where(None) == "id != 'schema_init'"
    assert to_lance_where({"must": []}) == "id != 'schema_init'"


def test_lance_where_joins_conditions():
    where = to_lance_where(
        {
            "must": [
                {"key": "extension", "match": {"any": [".py", ".ts"]}},
                {"key": "directory", "match": {"text": "src/app's"}},
                {"key": "chunkIndex", "match": {"any": [1, 2]}},
            ]
        }
    )
    assert where == (
        "id != 'schema_init' AND extension IN ('.py', '.ts') "
        "AND directory = 'src/app''s' AND `chunkIndex` IN (1, 2)"
    )


def test_chroma_where_single_and_multiple_conditions():
    assert to_chroma_where(None) is None
    single = {"must": [{"key": "extension", "match": {"any": [".py"]}}]}
    assert to_chroma_where(single) == {"extension": {"$in": [".py"]}}
    multiple = {
        "must": [
            {"key": "extension", "match": {"any": [".py"]}},
            {"key": "filename", "match": {"text": "main.py"}},
        ]
    }
    assert to_chroma_where(multiple) == {
        "$and": [{"extension": {"$in": [".py"]}}, {"filename": "main.py"}]
    }


def test_qdrant_filter_is_validated_model():
    assert to_qdrant_filter(None) is None
    result = to_qdrant_filter(
        {
            "must": [
                {"key": "extension", "match": {"any": [".py"]}},
                {"key": "directory", "match": {"text": "src"}},
            ]
        }
    )
    assert isinstance(result, qm.Filter)
    first, second = result.must
    assert isinstance(first.match, qm.MatchAny)
    assert first.match.any == [".py"]
    assert isinstance(second.match, qm.MatchText)
    assert second.match.text == "src"
