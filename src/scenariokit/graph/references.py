# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Reference extraction and injection over flattened rows.

`dependencies()` lists the labels a row needs before it can be created;
`inject()` walks the same paths and swaps those labels for real ids. Both only
look at paths present in the row: an omitted reference is an optional one.
"""

from collections.abc import Mapping
from typing import Any, Protocol

from ..api.errors import ReferenceNotReady
from ..core.types import DEFAULT_AFTER_KEY, FlatRow, Label
from ..core.utils import as_label_list
from .descriptors import DescriptorTree, FieldKind
from .flatten import flatten, unflatten

__all__ = ["Resolver", "dependencies", "inject"]


class Resolver(Protocol):
    def resolve(self, label: Label) -> str | None: ...


def _elements(value: Any) -> list[Any]:
    """Sub-document values are a list of documents or a single document."""
    if isinstance(value, Mapping):
        return [value]
    if isinstance(value, list):
        return value
    return []


def dependencies(
    flat_row: Mapping[str, Any], tree: DescriptorTree, *, after_key: str | None = DEFAULT_AFTER_KEY
) -> list[Label]:
    deps: list[Label] = []
    for path, desc in tree.items():
        value = flat_row.get(path)
        if value is None:
            continue
        if desc.kind is FieldKind.SINGLE_REF:
            deps.append(value)
        elif desc.kind is FieldKind.ARRAY_REF:
            deps.extend(as_label_list(value))
        elif desc.kind is FieldKind.SUBDOCUMENT and desc.children is not None:
            for item in _elements(value):
                if isinstance(item, Mapping):
                    deps.extend(dependencies(flatten(item), desc.children, after_key=None))

    if after_key is not None:
        deps.extend(as_label_list(flat_row.get(after_key)))
    return deps


def inject(flat_row: FlatRow, tree: DescriptorTree, refs: Resolver, *, prefix: str = "") -> FlatRow:
    """Replace labels with resolved ids in place; returns `flat_row`."""

    def lookup(label: Label, path: str) -> str:
        rid = refs.resolve(label)
        if rid is None:
            raise ReferenceNotReady(label, f"{prefix}{path}")
        return rid

    for path, desc in tree.items():
        value = flat_row.get(path)
        if value is None:
            continue
        if desc.kind is FieldKind.SINGLE_REF:
            flat_row[path] = lookup(value, path)
        elif desc.kind is FieldKind.ARRAY_REF:
            flat_row[path] = [lookup(label, path) for label in as_label_list(value)]
        elif desc.kind is FieldKind.SUBDOCUMENT and desc.children is not None:
            rebuilt: list[Any] = []
            for i, item in enumerate(_elements(value)):
                if isinstance(item, Mapping):
                    sub = inject(flatten(item), desc.children, refs, prefix=f"{prefix}{path}.{i}.")
                    rebuilt.append(unflatten(sub))
                else:
                    rebuilt.append(item)
            flat_row[path] = rebuilt[0] if isinstance(value, Mapping) else rebuilt
    return flat_row
