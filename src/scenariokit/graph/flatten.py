# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Flattening of nested rows into dotted paths and back.

    flatten({"foo": {"bar": [1, 2]}, "baz": False}) == {"foo.bar": [1, 2], "baz": False}

Only mappings are recursed into; lists and scalars are leaves, so an array of
labels stays one value at its path. Empty nested mappings are dropped.
`unflatten` is the exact inverse for anything `flatten` produces.
"""

from collections.abc import Mapping
from typing import Any

from ..core.types import FlatRow, Row

__all__ = ["flatten", "unflatten"]


def flatten(row: Mapping[str, Any], *, prefix: str = "") -> FlatRow:
    out: FlatRow = {}

    def rec(cur: Mapping[str, Any], path: str) -> None:
        for k, v in cur.items():
            key = f"{path}.{k}" if path else str(k)
            if isinstance(v, Mapping):
                rec(v, key)
            else:
                out[key] = v

    rec(row, prefix)
    return out


def unflatten(flat: Mapping[str, Any]) -> Row:
    out: Row = {}
    for path, value in flat.items():
        *parents, leaf = path.split(".")
        cur = out
        for seg in parents:
            nxt = cur.get(seg)
            if not isinstance(nxt, dict):
                nxt = {}
                cur[seg] = nxt
            cur = nxt
        cur[leaf] = value
    return out
