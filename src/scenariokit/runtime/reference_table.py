# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Reference table: symbolic label -> real record id.

Entries are write-once. A second write for the same label means two tasks
claimed one label, which the orchestrator rules out up front, so it is raised
as an invariant violation rather than handled.

The table belongs to one `Scenario` and is only touched from its event loop,
so it carries no lock, like the rest of the run state.
"""

from ..api.errors import DuplicateReferenceError
from ..core.types import Label, RecordId


class ReferenceTable:
    def __init__(self) -> None:
        self._ids: dict[Label, RecordId] = {}

    def resolve(self, label: Label) -> RecordId | None:
        return self._ids.get(label)

    def set(self, label: Label, record_id: RecordId) -> None:
        existing = self._ids.get(label)
        if existing is not None:
            raise DuplicateReferenceError(label, existing, record_id)
        self._ids[label] = record_id

    def reset(self) -> None:
        self._ids.clear()

    def labels(self) -> frozenset[Label]:
        return frozenset(self._ids)

    def snapshot(self) -> dict[Label, RecordId]:
        return dict(self._ids)

    def __contains__(self, label: object) -> bool:
        return label in self._ids

    def __len__(self) -> int:
        return len(self._ids)
