from __future__ import annotations

import asyncio
from typing import Any

import pytest

from Code_RAG.services.vector_store.models import VectorPoint
from Code_RAG.services.vector_store.schemas import SCHEMA_SENTINEL_ID, schema_defaults
from Code_RAG.services.vector_store.stores import lance
from Code_RAG.services.vector_store.stores.lance import LanceVectorStore, resize_vector

pytestmark = pytest.mark.integration


@pytest.fixture
async def store(tmp_path):
    adapter = LanceVectorStore(tmp_path / "lance")
    yield adapter
    await adapter.close()


def _points() -> list[VectorPoint]:
    return [
        VectorPoint(id="a", vector=[1.0, 0.0, 0.0, 0.0], payload={"content": "alpha", "extension": ".py"}),
        VectorPoint(id="b", vector=[0.0, 1.0, 0.0, 0.0], payload={"content": "beta", "extension": ".ts"}),
        VectorPoint(id="c", vector=[0.7, 0.7, 0.0, 0.0], payload={"content": "gamma", "extension": ".py"}),
    ]


def test_resize_vector_truncates_and_pads():
    assert resize_vector([1.0, 2.0, 3.0], 2) == [1.0, 2.0]
    assert resize_vector([1.0], 3) == [1.0, 0.0, 0.0]
    assert resize_vector([1.0, 2.0], None) == [1.0, 2.0]


@pytest.mark.asyncio
async def test_create_exists_delete(store):
    assert await store.collection_exists("code_chunks") is False
    assert await store.create_collection("code_chunks", 4, "cosine") is True
    assert await store.collection_exists("code_chunks") is True
    assert await store.create_collection("code_chunks", 4, "cosine") is True
    assert await store.delete_collection("code_chunks") is True
    assert await store.collection_exists("code_chunks") is False
    assert await store.delete_collection("code_chunks") is False


@pytest.mark.asyncio
async def test_health_check(store):
    assert await store.health_check() is True


@pytest.mark.asyncio
async def test_exact_vector_ranks_first_and_sentinel_hidden(store):
    await store.upsert_points("code_chunks", _points())
    results = await store.search("code_chunks", [1.0, 0.0, 0.0, 0.0], 10)
    assert [result.id for result in results][0] == "a"
    assert results[0].score == pytest.approx(1.0, abs=1e-5)
    assert all(result.id != SCHEMA_SENTINEL_ID for result in results)
    assert {result.id for result in results} == {"a", "b", "c"}
    assert results[0].score >= max(result.score for result in results[1:])


@pytest.mark.asyncio
async def test_payload_round_trip_fills_schema_defaults(store):
    await store.upsert_points("code_chunks", _points()[:1])
    (hit,) = await store.search("code_chunks", [1.0, 0.0, 0.0, 0.0], 1)
    defaults = schema_defaults("code_chunks")
    assert set(defaults) <= set(hit.payload)
    assert hit.payload["content"] == "alpha"
    assert hit.payload["extension"] == ".py"
    assert hit.payload["chunkIndex"] == defaults["chunkIndex"]
    assert hit.payload["filePath"] == defaults["filePath"]
    assert "vector" not in hit.payload
    assert "_distance" not in hit.payload


@pytest.mark.asyncio
async def test_upsert_replaces_by_id_and_drops_unknown_keys(store):
    await store.upsert_points("code_chunks", _points())
    replacement = VectorPoint(
        id="a",
        vector=[1.0, 0.0, 0.0, 0.0],
        payload={"content": "alpha v2", "unknownField": "dropped", "vector": [9.0]},
    )
    await store.upsert_points("code_chunks", [replacement])
    results = await store.search("code_chunks", [1.0, 0.0, 0.0, 0.0], 10)
    assert [result.id for result in results].count("a") == 1
    hit = next(result for result in results if result.id == "a")
    assert hit.payload["content"] == "alpha v2"
    assert "unknownField" not in hit.payload


@pytest.mark.asyncio
async def test_filters_apply(store):
    await store.upsert_points("code_chunks", _points())
    search_filter = {"must": [{"key": "extension", "match": {"any": [".py"]}}]}
    results = await store.search("code_chunks", [0.0, 1.0, 0.0, 0.0], 10, search_filter)
    assert {result.id for result in results} == {"a", "c"}
    text_filter = {"must": [{"key": "content", "match": {"text": "beta"}}]}
    results = await store.search("code_chunks", [1.0, 0.0, 0.0, 0.0], 10, text_filter)
    assert [result.id for result in results] == ["b"]


@pytest.mark.asyncio
async def test_query_vector_is_resized_to_table_dimension(store):
    await store.upsert_points("code_chunks", _points())
    longer = await store.search("code_chunks", [1.0, 0.0, 0.0, 0.0, 5.0, 5.0], 1)
    shorter = await store.search("code_chunks", [1.0, 0.0], 1)
    assert longer[0].id == "a"
    assert shorter[0].id == "a"


@pytest.mark.asyncio
async def test_search_missing_collection_returns_empty(store):
    assert await store.search("does_not_exist", [1.0, 0.0], 5) == []


@pytest.mark.asyncio
async def test_search_errors_fail_soft(store):
    await store.upsert_points("code_chunks", _points())
    broken = {"must": [{"key": "noSuchColumn", "match": {"text": "x"}}]}
    assert await store.search("code_chunks", [1.0, 0.0, 0.0, 0.0], 5, broken) == []


@pytest.mark.asyncio
async def test_empty_upsert_is_noop(store):
    assert await store.upsert_points("code_chunks", []) is True
    assert await store.collection_exists("code_chunks") is False


@pytest.mark.asyncio
async def test_list_payloads_on_documentation_schema(store):
    point = VectorPoint(
        id="doc-1",
        vector=[0.0, 0.0, 1.0, 0.0],
        payload={"content": "# Intro", "chapters": ["Intro", "Usage"], "filePath": "README.md"},
    )
    await store.upsert_points("documentation", [point])
    (hit,) = await store.search("documentation", [0.0, 0.0, 1.0, 0.0], 1)
    assert hit.payload["chapters"] == ["Intro", "Usage"]
    assert hit.payload["type"] == "documentation"


@pytest.mark.asyncio
async def test_idle_timer_closes_and_reopens_handle(tmp_path):
    adapter = LanceVectorStore(tmp_path / "idle", idle_timeout=0.05)
    try:
        await adapter.create_collection("code_chunks", 4, "cosine")
        assert adapter.is_open
        await asyncio.sleep(0.2)
        assert not adapter.is_open
        assert await adapter.collection_exists("code_chunks") is True
        assert adapter.is_open
    finally:
        await adapter.close()
    assert not adapter.is_open


class RecordingLogger:
    def __init__(self) -> None:
        self.warnings: list[tuple[str, dict[str, Any]]] = []

    def warning(self, event: str, **kwargs: Any) -> None:
        self.warnings.append((event, kwargs))

    def __getattr__(self, name: str):
        return lambda *args, **kwargs: None


@pytest.mark.asyncio
async def test_structured_payload_values_round_trip(store):
    elements = [{"id": "A", "label": "Start"}, {"id": "B", "label": "End", "next": None}]
    point = VectorPoint(
        id="diagram-1",
        vector=[0.0, 1.0, 0.0, 0.0],
        payload={
            "content": "graph TD; A-->B",
            "diagramType": "flowchart",
            "diagramElements": elements,
            "description": {"summary": "two steps"},
            "filePath": "src/flow.py",
        },
    )
    await store.upsert_points("diagrams", [point])
    (hit,) = await store.search("diagrams", [0.0, 1.0, 0.0, 0.0], 1)
    assert hit.payload["diagramElements"] == elements
    assert hit.payload["description"] == {"summary": "two steps"}
    assert hit.payload["diagramType"] == "flowchart"
    assert hit.payload["filePath"] == "src/flow.py"
    assert "__json_fields__" not in hit.payload


@pytest.mark.asyncio
async def test_mixed_string_lists_keep_item_types(store):
    chapters = ["Intro", {"title": "Usage", "level": 2}, 3]
    point = VectorPoint(id="doc-2", vector=[1.0, 0.0, 0.0, 0.0], payload={"chapters": chapters})
    await store.upsert_points("documentation", [point])
    (hit,) = await store.search("documentation", [1.0, 0.0, 0.0, 0.0], 1)
    assert hit.payload["chapters"] == chapters


@pytest.mark.asyncio
async def test_unknown_payload_keys_are_logged(store, monkeypatch):
    recorder = RecordingLogger()
    monkeypatch.setattr(lance, "logger", recorder)
    point = VectorPoint(
        id="doc-3",
        vector=[0.0, 0.0, 0.0, 1.0],
        payload={"content": "guide", "tags": ["api"], "section": "Usage"},
    )
    await store.upsert_points("documentation", [point])
    dropped = [kwargs for event, kwargs in recorder.warnings if event == "vector_store.lance.fields_dropped"]
    assert dropped == [{"collection": "documentation", "point_id": "doc-3", "fields": ["section", "tags"]}]


@pytest.mark.asyncio
async def test_table_listing_uses_paginated_api(store, recwarn):
    await store.create_collection("code_chunks", 4, "cosine")
    await store.create_collection("diagrams", 4, "cosine")
    assert await store.collection_exists("diagrams") is True
    assert await store.health_check() is True
    assert not [warning for warning in recwarn if "table_names" in str(warning.message)]
