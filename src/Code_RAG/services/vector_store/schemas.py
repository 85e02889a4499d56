"""Static payload schemas for the known collections.

Columnar backends fix their shape when a table is created, so every collection
carries a schema describing each payload field and its default. A sample row
built from these defaults (with the sentinel id) materialises the table, and
every upsert is merged over the defaults so no column is ever missing.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

SCHEMA_SENTINEL_ID = "schema_init"
JSON_FIELDS_KEY = "__json_fields__"

CODE_CHUNKS = "code_chunks"
DOCUMENTATION = "documentation"
DIAGRAMS = "diagrams"
MERGED_DOCUMENTATION = "merged_documentation"
MERGED_DIAGRAMS = "merged_diagrams"


@dataclass(slots=True, frozen=True)
class CollectionSchema:
    name: str
    description: str
    fields: Mapping[str, Any]

    def defaults(self) -> dict[str, Any]:
        """Fresh, mutable copy of the default field values."""
        return copy.deepcopy(dict(self.fields))

    def sample_row(self, dimension: int) -> dict[str, Any]:
        row: dict[str, Any] = {"id": SCHEMA_SENTINEL_ID, "vector": [0.0] * dimension}
        row.update(self.defaults())
        return row


def _schema(name: str, description: str, fields: dict[str, Any]) -> CollectionSchema:
    return CollectionSchema(name=name, description=description, fields=MappingProxyType(fields))


_SCHEMAS: Mapping[str, CollectionSchema] = MappingProxyType(
    {
        CODE_CHUNKS: _schema(
            CODE_CHUNKS,
            "Chunks of indexed source files",
            {
                "content": "",
                "filePath": "",
                "fileName": "",
                "fileNameId": "",
                "fileType": "",
                "chunkIndex": 0,
                "language": "",
                "startPosition": 0,
                "filename": "",
                "extension": "",
                "directory": "",
                "size": 0,
                "created": "",
                "modified": "",
                "accessed": "",
            },
        ),
        DOCUMENTATION: _schema(
            DOCUMENTATION,
            "Generated documentation for a source file",
            {
                "content": "",
                "filePath": "",
                "type": "documentation",
                "chapters": [],
                "createdAt": "",
            },
        ),
        DIAGRAMS: _schema(
            DIAGRAMS,
            "Generated diagrams for a source file",
            {
                "content": "",
                "filePath": "",
                "description": "",
                "type": "diagram",
                "diagramType": "",
                "diagramElements": [],
                "createdAt": "",
            },
        ),
        MERGED_DOCUMENTATION: _schema(
            MERGED_DOCUMENTATION,
            "Documentation merged from several sources",
            {
                "content": "",
                "type": "merged-documentation",
                "chapters": [],
                "sourceDocumentations": [],
                "sourceFiles": [],
                "mergedFromCount": 0,
                "mergeStrategy": "",
                "mergeDate": "",
                "parentMergedDocumentationId": "",
                "mergeLevel": 0,
                "createdAt": "",
            },
        ),
        MERGED_DIAGRAMS: _schema(
            MERGED_DIAGRAMS,
            "Diagrams merged from several sources",
            {
                "content": "",
                "type": "merged-diagram",
                "diagramType": "",
                "diagramElements": [],
                "sourceDiagrams": [],
                "sourceFiles": [],
                "mergedFromCount": 0,
                "mergeStrategy": "",
                "mergeDate": "",
                "parentMergedDiagramId": "",
                "mergeLevel": 0,
                "createdAt": "",
            },
        ),
    }
)


def get_schema(name: str) -> CollectionSchema:
    """Schema for ``name``; unknown collections use the code chunk schema."""
    return _SCHEMAS.get(name, _SCHEMAS[CODE_CHUNKS])


def schema_defaults(name: str) -> dict[str, Any]:
    return get_schema(name).defaults()


def known_collections() -> tuple[str, ...]:
    return tuple(_SCHEMAS)


__all__ = [
    "CODE_CHUNKS",
    "DIAGRAMS",
    "DOCUMENTATION",
    "JSON_FIELDS_KEY",
    "MERGED_DIAGRAMS",
    "MERGED_DOCUMENTATION",
    "SCHEMA_SENTINEL_ID",
    "CollectionSchema",
    "get_schema",
    "known_collections",
    "schema_defaults",
]
