# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Store export: every record of every (or the selected) collection as plain rows.
"""

import asyncio
from collections.abc import Iterable, Mapping
from typing import Any

from ..api.errors import ConfigurationError
from ..core.log import get_logger
from ..core.types import DEFAULT_REVISION, REVISION_FIELD, CollectionName, Row
from ..storage.base import DocumentStore

__all__ = ["export_records", "export_row"]

log = get_logger("runtime.export")


def export_row(record: Mapping[str, Any]) -> Row:
    """Copy a stored record; the revision marker is kept only when it was bumped."""
    row = dict(record)
    if row.get(REVISION_FIELD) == DEFAULT_REVISION:
        row.pop(REVISION_FIELD)
    return row


async def export_records(
    store: DocumentStore,
    *,
    collections: Iterable[CollectionName] | None = None,
) -> dict[CollectionName, list[Row]]:
    known = await store.list_collections()
    if collections is None:
        names = list(known)
    else:
        names = list(dict.fromkeys(collections))
        unknown = [n for n in names if n not in known]
        if unknown:
            raise ConfigurationError(f"Cannot export unknown collection(s): {', '.join(unknown)}")

    dumps = await asyncio.gather(*(store.find_all(name) for name in names))
    out = {name: [export_row(rec) for rec in records] for name, records in zip(names, dumps, strict=True)}
    log.debug(
        "scenario.exported",
        event="scenario.exported",
        counts={name: len(rows) for name, rows in out.items()},
    )
    return out
