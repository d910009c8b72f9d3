# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Error taxonomy for scenario imports.

Everything raised out of `Scenario.import_data()` derives from `ScenarioError`
and carries the progress record as it stood when the run stopped, so callers
can see which rows were created before a failure.

Two classes (`ReferenceNotReady`, `DuplicateReferenceError`) signal broken
engine invariants rather than bad input; they also derive from
`AssertionError`.
"""

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..runtime.orchestrator import Progress


class ScenarioError(Exception):
    """Base class for all scenariokit errors."""

    progress: Progress | None = None


class ConfigurationError(ScenarioError):
    """
    Invalid call shape or options: non-mapping scenario, missing store handle,
    unknown collection, duplicate labels. Raised before any row is created.
    """


class CreationError(ScenarioError):
    """The store rejected a row. The original store error is chained as `__cause__`."""

    def __init__(self, collection: str, row: Mapping[str, Any], task_id: str, message: str) -> None:
        super().__init__(f"Error creating item in {collection!r} ({task_id}): {message}")
        self.collection = collection
        self.row = dict(row)
        self.task_id = task_id


class WipeError(ScenarioError):
    """Removing the existing records of a collection failed; nothing was created."""

    def __init__(self, collection: str, message: str) -> None:
        super().__init__(f"Error wiping collection {collection!r}: {message}")
        self.collection = collection


class ReferenceNotReady(ScenarioError, AssertionError):
    """A task ran before one of its references was resolved."""

    def __init__(self, label: str, field: str) -> None:
        super().__init__(f"Reference {label!r} used by field {field!r} is not resolved yet")
        self.label = label
        self.field = field


class DuplicateReferenceError(ScenarioError, AssertionError):
    """A label was resolved twice within one reference table lifetime."""

    def __init__(self, label: str, existing: str, new: str) -> None:
        super().__init__(f"Reference {label!r} is already resolved as {existing!r} (attempted {new!r})")
        self.label = label


class UnresolvableReferenceError(ScenarioError):
    """
    No task completed within the stall budget while tasks were still pending:
    some dependency is missing from the scenario or part of a cycle.
    """

    def __init__(
        self,
        *,
        waiting_on: Mapping[str, Sequence[str]],
        processed: int,
        running: Sequence[str] = (),
    ) -> None:
        self.waiting_on = {k: list(v) for k, v in waiting_on.items()}
        self.unresolved = list(self.waiting_on)
        self.processed = processed
        self.running = list(running)
        lines = [f"  {tid} (waiting on: {', '.join(deps) or '-'})" for tid, deps in self.waiting_on.items()]
        if self.running:
            lines.append(f"  still running: {', '.join(self.running)}")
        super().__init__(
            "Unresolvable circular reference. Remaining refs:\n"
            + "\n".join(lines)
            + f"\nProcessed {processed} task(s) before stalling."
        )

    @property
    def payload(self) -> dict[str, Any]:
        return {"unresolved": list(self.unresolved), "processed": self.processed}


class MissingKeysError(ScenarioError):
    """Dependencies that no row in the scenario provides (fast-fail check)."""

    def __init__(self, keys: Sequence[str]) -> None:
        self.keys = sorted(set(keys))
        super().__init__(f"Missing Keys: {', '.join(self.keys)}")

    @property
    def payload(self) -> dict[str, Any]:
        return {"error": "Missing Keys", "keys": list(self.keys)}


__all__ = [
    "ScenarioError",
    "ConfigurationError",
    "CreationError",
    "WipeError",
    "ReferenceNotReady",
    "DuplicateReferenceError",
    "UnresolvableReferenceError",
    "MissingKeysError",
]
