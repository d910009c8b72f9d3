# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Foreign-key descriptors.

A descriptor tree classifies every schema path of a collection:

    NONE         plain value
    SINGLE_REF   one reference to another record
    ARRAY_REF    list of references
    SUBDOCUMENT  array of nested documents with their own descriptor tree

Trees are keyed by dotted path, matching `flatten()` output, so a reference in
a nested mapping (`preferences.defaults.items`) is just another key, and so is
one inside a single embedded document. Trees are
built once per collection from the store's reflected schema and cached by
`DescriptorCache`.
"""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

from ..api.errors import ConfigurationError
from ..core.log import get_logger
from ..core.types import ID_FIELDS, CollectionName
from ..storage.base import (
    INSTANCE_ARRAY,
    INSTANCE_DOCUMENT_ARRAY,
    INSTANCE_EMBEDDED,
    INSTANCE_OBJECT_ID,
    DocumentStore,
    SchemaInfo,
)

__all__ = [
    "FieldKind",
    "FieldDescriptor",
    "DescriptorTree",
    "DescriptorCache",
    "build_tree",
    "iter_refs",
]

log = get_logger("graph.descriptors")


class FieldKind(str, Enum):
    NONE = "none"
    SINGLE_REF = "single_ref"
    ARRAY_REF = "array_ref"
    SUBDOCUMENT = "subdocument"


@dataclass(frozen=True)
class FieldDescriptor:
    kind: FieldKind
    children: DescriptorTree | None = field(default=None)

    @property
    def is_ref(self) -> bool:
        return self.kind is not FieldKind.NONE


DescriptorTree = Mapping[str, FieldDescriptor]

_NONE = FieldDescriptor(FieldKind.NONE)
_SINGLE = FieldDescriptor(FieldKind.SINGLE_REF)
_ARRAY = FieldDescriptor(FieldKind.ARRAY_REF)


def build_tree(schema: SchemaInfo) -> DescriptorTree:
    """Classify each path of a reflected schema. The identity path is skipped."""
    out: dict[str, FieldDescriptor] = {}
    for path, info in schema.items():
        if path in ID_FIELDS:
            continue
        if info.instance == INSTANCE_OBJECT_ID:
            out[path] = _SINGLE
        elif info.instance == INSTANCE_ARRAY and info.caster == INSTANCE_OBJECT_ID:
            out[path] = _ARRAY
        elif info.instance == INSTANCE_DOCUMENT_ARRAY and info.schema is not None:
            out[path] = FieldDescriptor(FieldKind.SUBDOCUMENT, build_tree(info.schema))
        elif info.instance == INSTANCE_EMBEDDED and info.schema is not None:
            # a single embedded document flattens like a nested mapping
            for sub, desc in build_tree(info.schema).items():
                out[f"{path}.{sub}"] = desc
        else:
            out[path] = _NONE
    return MappingProxyType(out)


def iter_refs(tree: DescriptorTree, prefix: str = "") -> Iterator[tuple[str, FieldKind]]:
    """Yield (path, kind) for every reference path, descending into sub-documents."""
    for path, desc in tree.items():
        full = f"{prefix}.{path}" if prefix else path
        if desc.kind is FieldKind.SUBDOCUMENT and desc.children is not None:
            yield from iter_refs(desc.children, full)
        elif desc.is_ref:
            yield full, desc.kind


class DescriptorCache:
    """
    Per-collection descriptor trees, built on first use.

    The cache lives as long as its owner (normally one `Scenario`). Schema
    changes in the store are not detected; call `reset()` to rebuild.
    """

    def __init__(self, store: DocumentStore) -> None:
        self.store = store
        self._trees: dict[CollectionName, DescriptorTree] = {}

    def __contains__(self, collection: object) -> bool:
        return collection in self._trees

    def reset(self) -> None:
        self._trees.clear()

    async def describe(self, collection: CollectionName) -> DescriptorTree:
        tree = self._trees.get(collection)
        if tree is not None:
            return tree
        schema = await self.store.get_schema(collection)
        if schema is None:
            raise ConfigurationError(f"Unknown collection {collection!r}: the store has no schema for it")
        tree = build_tree(schema)
        # concurrent first lookups compute the same tree; last write wins
        self._trees[collection] = tree
        log.debug(
            "descriptors.built",
            event="descriptors.built",
            collection=collection,
            refs=[p for p, _ in iter_refs(tree)],
        )
        return tree
