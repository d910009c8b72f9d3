from __future__ import annotations

"""
scenariokit.core.types
======================

Shared type aliases and small constants used across the codebase.
Keep this module **tiny** and dependency-free.
"""

from typing import Any, Final

# ---- Rows --------------------------------------------------------------------

Row = dict[str, Any]  # nested input record as authored in a scenario
FlatRow = dict[str, Any]  # dotted path -> scalar | list

# ---- Time & IDs --------------------------------------------------------------

Millis = int
TimestampMs = int  # wall-clock epoch timestamp (ms)
MonotonicMs = int  # process-local monotonic time (ms)

CollectionName = str
Label = str  # symbolic reference chosen by the scenario author
TaskId = str  # label, or an anonymous id for unlabeled rows
RecordId = str  # store-assigned id in its stable string form

# ---- Constants ---------------------------------------------------------------

DEFAULT_REF_KEY: Final[str] = "_ref"
DEFAULT_AFTER_KEY: Final[str] = "_after"
DEFAULT_TIMEOUT_MS: Final[int] = 2000
DEFAULT_WATCHDOG_TICK_MS: Final[int] = 50

# Fields never treated as references (the record's own identity).
ID_FIELDS: Final[frozenset[str]] = frozenset({"_id", "id"})

# Store-side revision marker; exported only when it differs from the default.
REVISION_FIELD: Final[str] = "__v"
DEFAULT_REVISION: Final[int] = 0

# NanoID defaults (URL-safe alphabet).
DEFAULT_NANOID_ALPHABET: Final[str] = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ_abcdefghijklmnopqrstuvwxyz-"
DEFAULT_NANOID_SIZE: Final[int] = 21


__all__ = [
    "Row",
    "FlatRow",
    "Millis",
    "TimestampMs",
    "MonotonicMs",
    "CollectionName",
    "Label",
    "TaskId",
    "RecordId",
    "DEFAULT_REF_KEY",
    "DEFAULT_AFTER_KEY",
    "DEFAULT_TIMEOUT_MS",
    "DEFAULT_WATCHDOG_TICK_MS",
    "ID_FIELDS",
    "REVISION_FIELD",
    "DEFAULT_REVISION",
    "DEFAULT_NANOID_ALPHABET",
    "DEFAULT_NANOID_SIZE",
]
