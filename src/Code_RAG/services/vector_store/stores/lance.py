"""Embedded LanceDB adapter.

Key Responsibilities:
    - Share one lazily opened connection handle per database path and close it
      after a period of inactivity
    - Materialise each table from a sample row holding every schema field so
      later upserts always find their columns
    - Repair query vectors whose length differs from the table's vector column
      by truncating or zero-padding them
    - Store structured payload values JSON-encoded in string columns, listing
      them under ``__json_fields__`` so they are decoded again on read

Error Policy:
    - create/upsert/delete errors are logged and re-raised
    - search errors are logged and produce an empty result list
    - index build failures after table creation are logged and swallowed

Thread Safety:
    - The connection state machine (closed -> open -> idle timeout -> closed)
      is guarded by an ``asyncio.Lock``; the idle timer is re-armed on every
      access
"""

from __future__ import annotations

import asyncio
import json
import time
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import lancedb
import pyarrow as pa
import structlog
from lancedb.index import IvfPq

from ..errors import BackendUnavailableError
from ..filters import to_lance_where
from ..models import SearchFilter, SearchResult, VectorPoint
from ..schemas import JSON_FIELDS_KEY, SCHEMA_SENTINEL_ID, get_schema

logger = structlog.get_logger(__name__)

INDEX_NUM_PARTITIONS = 256
INDEX_NUM_SUB_VECTORS = 16
_RESULT_DROP_COLUMNS = frozenset({"vector", "_distance", JSON_FIELDS_KEY})
_RESERVED_KEYS = frozenset({"id", "vector", JSON_FIELDS_KEY})


def _arrow_type(value: Any) -> pa.DataType:
    if isinstance(value, bool):
        return pa.bool_()
    if isinstance(value, int):
        return pa.int64()
    if isinstance(value, float):
        return pa.float64()
    if isinstance(value, (list, tuple)):
        return pa.list_(pa.string())
    return pa.string()


def build_arrow_schema(collection: str, dimension: int) -> pa.Schema:
    """Arrow schema for ``collection`` derived from its default payload."""
    fields = [
        pa.field("id", pa.string(), nullable=False),
        pa.field("vector", pa.list_(pa.float32(), dimension)),
    ]
    for name, default in get_schema(collection).fields.items():
        fields.append(pa.field(name, _arrow_type(default)))
    fields.append(pa.field(JSON_FIELDS_KEY, pa.string()))
    return pa.schema(fields)


def _is_string_list(data_type: pa.DataType) -> bool:
    return pa.types.is_list(data_type) and pa.types.is_string(data_type.value_type)


def _needs_json(value: Any, data_type: pa.DataType) -> bool:
    """True when ``value`` only fits its string column once JSON-encoded."""
    if value is None:
        return False
    if pa.types.is_string(data_type):
        return not isinstance(value, str)
    if _is_string_list(data_type):
        items = value if isinstance(value, (list, tuple)) else [value]
        return any(not isinstance(item, str) for item in items)
    return False


def _coerce(value: Any, data_type: pa.DataType, *, as_json: bool = False) -> Any:
    if value is None:
        return None
    if pa.types.is_string(data_type):
        return json.dumps(value, default=str) if as_json else str(value)
    if pa.types.is_boolean(data_type):
        return bool(value)
    if pa.types.is_integer(data_type):
        return int(value)
    if pa.types.is_floating(data_type):
        return float(value)
    if pa.types.is_list(data_type) or pa.types.is_fixed_size_list(data_type):
        items = value if isinstance(value, (list, tuple)) else [value]
        if pa.types.is_string(data_type.value_type):
            if as_json:
                return [json.dumps(item, default=str) for item in items]
            return [str(item) for item in items]
        return [float(item) for item in items]
    return value


def _decode_row(row: dict[str, Any]) -> dict[str, Any]:
    encoded = str(row.get(JSON_FIELDS_KEY) or "")
    for key in filter(None, encoded.split(",")):
        raw = row.get(key)
        try:
            if isinstance(raw, str):
                row[key] = json.loads(raw)
            elif isinstance(raw, list):
                row[key] = [json.loads(item) for item in raw]
        except ValueError:
            logger.warning("vector_store.lance.payload_decode_failed", field=key)
    return row


def resize_vector(vector: Sequence[float], dimension: int | None) -> list[float]:
    """Truncate or zero-pad ``vector`` to ``dimension`` entries."""
    values = [float(item) for item in vector]
    if dimension is None or len(values) == dimension:
        return values
    if len(values) > dimension:
        return values[:dimension]
    return values + [0.0] * (dimension - len(values))


def _vector_dimension(schema: pa.Schema) -> int | None:
    try:
        field = schema.field("vector")
    except KeyError:
        return None
    if pa.types.is_fixed_size_list(field.type):
        return field.type.list_size
    return None


async def _table_names(db: Any) -> list[str]:
    names: list[str] = []
    page_token: str | None = None
    while True:
        response = await db.list_tables(page_token=page_token)
        names.extend(response.tables)
        page_token = response.page_token
        if not page_token or not response.tables:
            return names


class LanceVectorStore:
    """Adapter over an embedded LanceDB database directory."""

    backend = "lance"
    default_distance = "cosine"

    def __init__(
        self,
        path: str | Path,
        *,
        idle_timeout: float = 300.0,
        default_distance: str = "cosine",
    ) -> None:
        self.path = Path(path).expanduser()
        self.idle_timeout = idle_timeout
        self.default_distance = default_distance
        self._db: Any | None = None
        self._lock = asyncio.Lock()
        self._idle_handle: asyncio.TimerHandle | None = None

    # ------------------------------------------------------------------
    # connection lifecycle
    # ------------------------------------------------------------------
    @property
    def is_open(self) -> bool:
        return self._db is not None

    async def _connection(self) -> Any:
        async with self._lock:
            if self._db is None:
                try:
                    self.path.mkdir(parents=True, exist_ok=True)
                    self._db = await lancedb.connect_async(str(self.path))
                except Exception as exc:
                    logger.error("vector_store.lance.connect_failed", path=str(self.path), error=str(exc))
                    raise
                logger.info("vector_store.lance.connected", path=str(self.path))
            self._arm_idle_timer()
            return self._db

    def _arm_idle_timer(self) -> None:
        if self._idle_handle is not None:
            self._idle_handle.cancel()
        loop = asyncio.get_running_loop()
        self._idle_handle = loop.call_later(self.idle_timeout, self._on_idle)

    def _on_idle(self) -> None:
        self._idle_handle = None
        if self._db is not None:
            logger.info("vector_store.lance.idle_close", path=str(self.path))
            self._release()

    def _release(self) -> None:
        db, self._db = self._db, None
        if db is not None:
            db.close()

    async def close(self) -> None:
        async with self._lock:
            if self._idle_handle is not None:
                self._idle_handle.cancel()
                self._idle_handle = None
            self._release()

    # ------------------------------------------------------------------
    # operations
    # ------------------------------------------------------------------
    async def health_check(self) -> bool:
        try:
            db = await self._connection()
            await _table_names(db)
        except Exception as exc:
            logger.error("vector_store.lance.health_failed", error=str(exc))
            raise BackendUnavailableError(self.backend, detail=str(exc)) from exc
        return True

    async def collection_exists(self, name: str) -> bool:
        db = await self._connection()
        return name in await _table_names(db)

    async def create_collection(self, name: str, vector_size: int, distance: str) -> bool:
        db = await self._connection()
        try:
            if name in await _table_names(db):
                return True
            schema = build_arrow_schema(name, vector_size)
            sample = pa.Table.from_pylist([get_schema(name).sample_row(vector_size)], schema=schema)
            table = await db.create_table(name, data=sample, schema=schema)
        except Exception as exc:
            logger.error("vector_store.lance.create_failed", collection=name, error=str(exc))
            raise
        logger.info(
            "vector_store.lance.collection_created",
            collection=name,
            dimension=vector_size,
            distance=distance,
        )
        try:
            await table.create_index(
                "vector",
                config=IvfPq(
                    distance_type=distance,
                    num_partitions=INDEX_NUM_PARTITIONS,
                    num_sub_vectors=INDEX_NUM_SUB_VECTORS,
                ),
            )
        except Exception as exc:
            logger.warning("vector_store.lance.index_failed", collection=name, error=str(exc))
        return True

    def _record(self, point: VectorPoint, collection: str, schema: pa.Schema) -> dict[str, Any]:
        row: dict[str, Any] = get_schema(collection).defaults()
        dropped: list[str] = []
        for key, value in point.payload.items():
            if key in _RESERVED_KEYS:
                continue
            if schema.get_field_index(key) < 0:
                dropped.append(key)
                continue
            row[key] = value
        if dropped:
            logger.warning(
                "vector_store.lance.fields_dropped",
                collection=collection,
                point_id=str(point.id),
                fields=sorted(dropped),
            )
        row["id"] = str(point.id)
        row["vector"] = point.vector
        record: dict[str, Any] = {}
        encoded: list[str] = []
        for field in schema:
            if field.name == JSON_FIELDS_KEY:
                continue
            value = row.get(field.name)
            as_json = field.name not in _RESERVED_KEYS and _needs_json(value, field.type)
            if as_json:
                encoded.append(field.name)
            record[field.name] = _coerce(value, field.type, as_json=as_json)
        if schema.get_field_index(JSON_FIELDS_KEY) >= 0:
            record[JSON_FIELDS_KEY] = ",".join(encoded)
        return record

    async def upsert_points(self, name: str, points: Sequence[VectorPoint]) -> bool:
        if not points:
            return True
        try:
            if not await self.collection_exists(name):
                await self.create_collection(name, len(points[0].vector), self.default_distance)
            db = await self._connection()
            table = await db.open_table(name)
            schema = await table.schema()
            records = [self._record(point, name, schema) for point in points]
            data = pa.Table.from_pylist(records, schema=schema)
            await (
                table.merge_insert("id")
                .when_matched_update_all()
                .when_not_matched_insert_all()
                .execute(data)
            )
        except Exception as exc:
            logger.error("vector_store.lance.upsert_failed", collection=name, error=str(exc))
            raise
        return True

    async def search(
        self,
        name: str,
        vector: Sequence[float],
        limit: int,
        filter: SearchFilter | None = None,
        *,
        distance: str | None = None,
    ) -> list[SearchResult]:
        started = time.perf_counter()
        try:
            if not await self.collection_exists(name):
                return []
            db = await self._connection()
            table = await db.open_table(name)
            dimension = _vector_dimension(await table.schema())
            query_vector = resize_vector(vector, dimension)
            if dimension is not None and dimension != len(vector):
                logger.warning(
                    "vector_store.lance.vector_resized",
                    collection=name,
                    expected=dimension,
                    received=len(vector),
                )
            rows = (
                await table.query()
                .nearest_to(query_vector)
                .distance_type(distance or self.default_distance)
                .where(to_lance_where(filter))
                .limit(limit)
                .to_arrow()
            ).to_pylist()
            rows = [_decode_row(row) for row in rows]
        except Exception as exc:
            logger.error("vector_store.lance.search_failed", collection=name, error=str(exc))
            return []

        results: list[SearchResult] = []
        for row in rows:
            if row.get("id") == SCHEMA_SENTINEL_ID:
                continue
            raw_distance = row.get("_distance")
            score = 1.0 - float(raw_distance) if raw_distance is not None else 1.0
            payload = {key: value for key, value in row.items() if key not in _RESULT_DROP_COLUMNS}
            results.append(SearchResult(score=score, payload=payload, id=row.get("id")))
        logger.debug(
            "vector_store.lance.search",
            collection=name,
            hits=len(results),
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return results

    async def delete_collection(self, name: str) -> bool:
        try:
            if not await self.collection_exists(name):
                return False
            db = await self._connection()
            await db.drop_table(name)
        except Exception as exc:
            logger.error("vector_store.lance.delete_failed", collection=name, error=str(exc))
            raise
        return True


__all__ = ["LanceVectorStore", "build_arrow_schema", "resize_vector"]
