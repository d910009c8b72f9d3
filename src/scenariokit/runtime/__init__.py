# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

from .export import export_records
from .orchestrator import Progress, Scenario
from .reference_table import ReferenceTable
from .scheduler import GraphResult, GraphTask, TaskGraph, TaskState

__all__ = [
    "GraphResult",
    "GraphTask",
    "Progress",
    "ReferenceTable",
    "Scenario",
    "TaskGraph",
    "TaskState",
    "export_records",
]
