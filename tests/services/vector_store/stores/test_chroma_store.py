from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from typing import Any

import pytest
from chromadb.errors import NotFoundError

from Code_RAG.services.vector_store.errors import BackendUnavailableError
from Code_RAG.services.vector_store.models import VectorPoint
from Code_RAG.services.vector_store.stores.chroma import (
    JSON_FIELDS_KEY,
    ChromaVectorStore,
    decode_metadata,
    encode_metadata,
)


def _cosine_distance(left: Sequence[float], right: Sequence[float]) -> float:
    dot = sum(a * b for a, b in zip(left, right))
    norm = math.sqrt(sum(a * a for a in left)) * math.sqrt(sum(b * b for b in right))
    return 1.0 - dot / norm if norm else 1.0


def _matches(metadata: Mapping[str, Any], where: Mapping[str, Any] | None) -> bool:
    if not where:
        return True
    if "$and" in where:
        return all(_matches(metadata, clause) for clause in where["$and"])
    for key, expected in where.items():
        if isinstance(expected, Mapping) and "$in" in expected:
            if metadata.get(key) not in expected["$in"]:
                return False
        elif metadata.get(key) != expected:
            return False
    return True


class FakeCollection:
    def __init__(self, name: str, metadata: Mapping[str, Any]) -> None:
        self.name = name
        self.metadata = dict(metadata)
        self.records: dict[str, dict[str, Any]] = {}
        self.queries: list[dict[str, Any]] = []
        self.fail_queries = False

    async def upsert(self, *, ids, embeddings, metadatas, documents) -> None:
        for point_id, embedding, metadata, document in zip(ids, embeddings, metadatas, documents):
            assert all(isinstance(value, (str, int, float, bool)) for value in metadata.values())
            self.records[point_id] = {
                "embedding": embedding,
                "metadata": metadata,
                "document": document,
            }

    async def query(self, *, query_embeddings, n_results, where=None, include=None):
        self.queries.append({"n_results": n_results, "where": where, "include": include})
        if self.fail_queries:
            raise RuntimeError("query exploded")
        vector = query_embeddings[0]
        scored = sorted(
            (
                (_cosine_distance(vector, record["embedding"]), point_id, record)
                for point_id, record in self.records.items()
                if _matches(record["metadata"], where)
            ),
            key=lambda item: item[0],
        )[:n_results]
        return {
            "ids": [[point_id for _, point_id, _ in scored]],
            "distances": [[distance for distance, _, _ in scored]],
            "metadatas": [[record["metadata"] for _, _, record in scored]],
            "documents": [[record["document"] for _, _, record in scored]],
        }


class FakeAsyncChromaClient:
    def __init__(self) -> None:
        self.collections: dict[str, FakeCollection] = {}
        self.get_calls = 0
        self.healthy = True

    async def heartbeat(self) -> int:
        if not self.healthy:
            raise ConnectionError("server down")
        return 1

    async def get_collection(self, *, name: str) -> FakeCollection:
        self.get_calls += 1
        if name not in self.collections:
            raise NotFoundError(f"Collection {name} does not exist.")
        return self.collections[name]

    async def create_collection(self, *, name: str, metadata: Mapping[str, Any]) -> FakeCollection:
        collection = FakeCollection(name, metadata)
        self.collections[name] = collection
        return collection

    async def delete_collection(self, *, name: str) -> None:
        del self.collections[name]


@pytest.fixture
def client() -> FakeAsyncChromaClient:
    return FakeAsyncChromaClient()


@pytest.fixture
def store(client) -> ChromaVectorStore:
    async def factory() -> FakeAsyncChromaClient:
        return client

    return ChromaVectorStore("http://chroma.test:8000", client_factory=factory)


def test_metadata_codec():
    encoded = encode_metadata({"content": "x", "chapters": ["a", "b"], "size": 3, "skip": None})
    assert encoded == {
        "content": "x",
        "chapters": '["a", "b"]',
        "size": 3,
        JSON_FIELDS_KEY: "chapters",
    }
    assert decode_metadata(encoded) == {"content": "x", "chapters": ["a", "b"], "size": 3}


@pytest.mark.asyncio
async def test_create_records_distance_and_dimension(store, client):
    assert await store.create_collection("code_chunks", 4, "cosine") is True
    assert client.collections["code_chunks"].metadata == {"hnsw:space": "cosine", "dimension": 4}
    assert await store.create_collection("code_chunks", 4, "cosine") is True
    assert await store.collection_exists("code_chunks") is True


@pytest.mark.asyncio
async def test_collection_handles_are_cached(store, client):
    await store.create_collection("code_chunks", 4, "cosine")
    calls = client.get_calls
    await store.collection_exists("code_chunks")
    await store.collection_exists("code_chunks")
    assert client.get_calls == calls


@pytest.mark.asyncio
async def test_upsert_and_search_round_trip(store, client):
    points = [
        VectorPoint(id=1, vector=[1.0, 0.0], payload={"content": "alpha", "tags": ["x"]}),
        VectorPoint(id="2", vector=[0.0, 1.0], payload={"content": "beta"}),
    ]
    assert await store.upsert_points("docs", points) is True
    record = client.collections["docs"].records["1"]
    assert record["document"] == "alpha"

    results = await store.search("docs", [1.0, 0.0], 5)
    assert [result.id for result in results] == ["1", "2"]
    assert results[0].score == pytest.approx(1.0)
    assert results[0].payload == {"content": "alpha", "tags": ["x"]}


@pytest.mark.asyncio
async def test_search_translates_filter(store, client):
    await store.upsert_points(
        "docs",
        [
            VectorPoint(id="a", vector=[1.0, 0.0], payload={"content": "a", "extension": ".py"}),
            VectorPoint(id="b", vector=[1.0, 0.0], payload={"content": "b", "extension": ".md"}),
        ],
    )
    search_filter = {
        "must": [
            {"key": "extension", "match": {"any": [".py"]}},
            {"key": "content", "match": {"text": "a"}},
        ]
    }
    results = await store.search("docs", [1.0, 0.0], 5, search_filter)
    assert [result.id for result in results] == ["a"]
    assert client.collections["docs"].queries[-1]["where"] == {
        "$and": [{"extension": {"$in": [".py"]}}, {"content": "a"}]
    }


@pytest.mark.asyncio
async def test_missing_distance_scores_one(store, client):
    await store.create_collection("docs", 2, "cosine")
    collection = client.collections["docs"]

    async def query(**_: Any):
        return {"ids": [["x"]], "metadatas": [[{"content": "m"}]], "documents": [["doc"]]}

    collection.query = query  # type: ignore[method-assign]
    (hit,) = await store.search("docs", [1.0, 0.0], 1)
    assert hit.score == 1.0
    assert hit.payload["content"] == "doc"


@pytest.mark.asyncio
async def test_search_missing_collection_returns_empty(store):
    assert await store.search("nope", [1.0, 0.0], 5) == []


@pytest.mark.asyncio
async def test_search_errors_propagate(store, client):
    await store.create_collection("docs", 2, "cosine")
    client.collections["docs"].fail_queries = True
    with pytest.raises(RuntimeError, match="query exploded"):
        await store.search("docs", [1.0, 0.0], 5)


@pytest.mark.asyncio
async def test_delete_collection(store, client):
    await store.create_collection("docs", 2, "cosine")
    assert await store.delete_collection("docs") is True
    assert "docs" not in client.collections
    assert await store.collection_exists("docs") is False
    assert await store.delete_collection("docs") is False


@pytest.mark.asyncio
async def test_health_check_wraps_failures(store, client):
    assert await store.health_check() is True
    client.healthy = False
    with pytest.raises(BackendUnavailableError):
        await store.health_check()
