# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Document store interface (DB-agnostic).

The engine never talks to a database directly; it relies on five operations:
list collections, report a collection's schema, create a record, remove all
records of a collection and list them back. Implementations may wrap Mongo,
an ODM, or anything else that hands out ids on insert.

Schema information is reported as reflected per-path type info (`PathInfo`),
the way document mappers expose it. Turning that into reference descriptors
is the engine's job (`scenariokit.graph.descriptors`).
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

__all__ = [
    "INSTANCE_OBJECT_ID",
    "INSTANCE_ARRAY",
    "INSTANCE_DOCUMENT_ARRAY",
    "INSTANCE_EMBEDDED",
    "PathInfo",
    "SchemaInfo",
    "StoreError",
    "DocumentStore",
]

INSTANCE_OBJECT_ID = "ObjectId"
INSTANCE_ARRAY = "Array"
INSTANCE_DOCUMENT_ARRAY = "DocumentArray"
INSTANCE_EMBEDDED = "Embedded"


class StoreError(RuntimeError):
    """Base error for store operations (validation, connectivity, ...)."""


@dataclass(frozen=True)
class PathInfo:
    """
    Reflected type of one schema path.

    Attributes:
        instance: Type name of the path (`ObjectId`, `Array`, `DocumentArray`,
            `Embedded`, `String`, `Number`, ...).
        caster: For `Array` paths, the type name of the elements.
        schema: For `DocumentArray`/`Embedded` paths, the nested schema.
        ref: Target collection of a reference path, when known (informational).
    """

    instance: str
    caster: str | None = None
    schema: Mapping[str, PathInfo] | None = None
    ref: str | None = None


SchemaInfo = Mapping[str, PathInfo]


@runtime_checkable
class DocumentStore(Protocol):
    """
    Async store collaborator.

    Notes:
        - `get_schema` returns None for a collection the store does not know.
        - `create` returns the new record's id in a stable string form.
        - `find_all` returns plain dicts including the id field (`_id`).
    """

    async def list_collections(self) -> list[str]: ...
    async def get_schema(self, collection: str) -> SchemaInfo | None: ...
    async def create(self, collection: str, row: Mapping[str, Any]) -> str: ...
    async def remove_all(self, collection: str) -> None: ...
    async def find_all(self, collection: str) -> list[dict[str, Any]]: ...
