# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Scenario orchestrator.

One `Scenario` owns a store handle, the per-collection descriptor cache and
the reference table. Each `import_data()` call:

  1) merges per-call overrides over the instance options;
  2) validates the scenario shape and resolves descriptors for every
     collection in it (unknown collections fail before anything is written);
  3) resets progress and, unless `reset=False`, the reference table;
  4) wipes the requested collections (`nuke`), concurrently;
  5) registers one task per row, keyed by the row's label (or an anonymous
     id), depending on the labels the row references;
  6) runs the task graph; each task injects resolved ids, creates the record
     and publishes its own label.

Calls on one instance are serialized: the reference table is shared state.
"""

import asyncio
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from ..api.errors import (
    ConfigurationError,
    CreationError,
    MissingKeysError,
    ScenarioError,
    UnresolvableReferenceError,
    WipeError,
)
from ..core.config import ScenarioOptions
from ..core.log import get_logger, log_context
from ..core.time import Clock, SystemClock
from ..core.types import CollectionName, FlatRow, Label, Row, TaskId
from ..core.utils import anonymous_task_id, nanoid
from ..graph.descriptors import DescriptorCache, DescriptorTree
from ..graph.flatten import flatten, unflatten
from ..graph.references import dependencies, inject
from ..graph.spec import validate_row_keys, validate_scenario
from ..observability.metrics import ScenarioMetrics, default_metrics
from ..storage.base import DocumentStore
from .export import export_records
from .reference_table import ReferenceTable
from .scheduler import TaskGraph, Work

__all__ = ["Progress", "Scenario"]


@dataclass
class Progress:
    """Per-run counters: rows created per collection and collections wiped."""

    created: dict[CollectionName, int] = field(default_factory=dict)
    nuked: list[CollectionName] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(self.created.values())

    def as_dict(self) -> dict[str, Any]:
        return {"created": dict(self.created), "nuked": list(self.nuked)}


class Scenario:
    """
    Populate a document store from a scenario.

    Example:
        scenario = Scenario(store=MongoStore(db, {"users": User, "widgets": Widget}))
        progress = await scenario.import_data({
            "widgets": [{"_ref": "w1", "name": "Widget"}],
            "users": [{"name": "U", "favourite": "w1"}],
        })
        assert progress.created == {"widgets": 1, "users": 1}
    """

    def __init__(
        self,
        store: DocumentStore | None = None,
        *,
        options: ScenarioOptions | None = None,
        clock: Clock | None = None,
        metrics: ScenarioMetrics | None = None,
        references: ReferenceTable | None = None,
    ) -> None:
        self.store = store
        self.options = options or ScenarioOptions()
        self.clock = clock or SystemClock()
        self.metrics = metrics or default_metrics()
        self.references = references or ReferenceTable()
        self.progress = Progress()
        self.log = get_logger("runtime.orchestrator")
        self._caches: dict[int, DescriptorCache] = {}
        self._lock = asyncio.Lock()

    # ---- public API

    async def import_data(self, data: Any, *, store: DocumentStore | None = None, **overrides: Any) -> Progress:
        """Create every row of `data` (collection -> rows). Raises a ScenarioError on failure."""
        opts = self.options.merged(**overrides)
        target = self._require_store(store)
        scenario = validate_scenario(data)
        async with self._lock:
            return await self._run(target, scenario, opts)

    async def import_collection(
        self,
        collection: CollectionName,
        rows: Mapping[str, Any] | Sequence[Mapping[str, Any]],
        *,
        store: DocumentStore | None = None,
        **overrides: Any,
    ) -> Progress:
        """Shorthand for a single collection; accepts one row or a list of rows."""
        if not isinstance(collection, str) or not collection:
            raise ConfigurationError("collection must be a non-empty string")
        if isinstance(rows, Mapping):
            rows = [rows]
        elif isinstance(rows, str) or not isinstance(rows, Sequence):
            raise ConfigurationError(
                f"Invalid scenario invoke style - import_collection({collection!r}, {type(rows).__name__})"
            )
        return await self.import_data({collection: list(rows)}, store=store, **overrides)

    async def export_data(self, *, store: DocumentStore | None = None, **overrides: Any) -> dict[str, list[Row]]:
        """Dump every record of every known collection (or `collections=`) as plain rows."""
        opts = self.options.merged(**overrides)
        target = self._require_store(store)
        with log_context(run_id=nanoid(8)):
            return await export_records(target, collections=opts.collections)

    def descriptors(self, store: DocumentStore | None = None) -> DescriptorCache:
        target = self._require_store(store)
        cache = self._caches.get(id(target))
        if cache is None or cache.store is not target:
            cache = DescriptorCache(target)
            self._caches[id(target)] = cache
        return cache

    # ---- run

    def _require_store(self, store: DocumentStore | None) -> DocumentStore:
        target = store if store is not None else self.store
        if target is None:
            raise ConfigurationError("No store handle: pass store= to Scenario() or to the call")
        return target

    async def _run(self, store: DocumentStore, scenario: dict[str, list[Row]], opts: ScenarioOptions) -> Progress:
        progress = Progress()
        self.progress = progress
        started_ms = self.clock.mono_ms()

        with log_context(run_id=nanoid(8)):
            self.log.info(
                "scenario.run.start",
                event="scenario.run.start",
                collections=list(scenario),
                rows=sum(len(rows) for rows in scenario.values()),
                reset=opts.reset,
                nuke=opts.nuke,
            )
            try:
                if opts.reset:
                    self.references.reset()
                cache = self.descriptors(store)
                if opts.reset_descriptors:
                    cache.reset()

                trees = {name: await cache.describe(name) for name in scenario}
                await self._nuke(store, opts, progress)

                graph = self._build_graph(store, scenario, trees, opts, progress)
                if opts.check_dependencies:
                    missing = graph.missing_dependencies()
                    if missing:
                        raise MissingKeysError(missing)

                await graph.run(timeout_ms=opts.timeout_ms, tick_ms=opts.watchdog_tick)
            except Exception as e:
                if isinstance(e, ScenarioError):
                    e.progress = progress
                result = "stalled" if isinstance(e, UnresolvableReferenceError) else "failed"
                self._observe(result, started_ms)
                self.log.warning(
                    "scenario.run.failed",
                    event="scenario.run.failed",
                    result=result,
                    error=str(e),
                    rows_created=dict(progress.created),
                )
                raise

            self._observe("ok", started_ms)
            self.log.info("scenario.run.done", event="scenario.run.done", rows_created=dict(progress.created))
        return progress

    def _observe(self, result: str, started_ms: int) -> None:
        self.metrics.runs_total.labels(result=result).inc()
        self.metrics.run_duration_ms.observe(self.clock.mono_ms() - started_ms)

    # ---- nuke

    async def _nuke(self, store: DocumentStore, opts: ScenarioOptions, progress: Progress) -> None:
        if opts.nuke is False:
            return
        known = await store.list_collections()
        if opts.nuke is True:
            targets = list(known)
        else:
            unknown = [name for name in opts.nuke if name not in known]
            if unknown:
                raise ConfigurationError(f"Cannot nuke unknown collection(s): {', '.join(unknown)}")
            targets = list(dict.fromkeys(opts.nuke))

        results = await asyncio.gather(*(store.remove_all(name) for name in targets), return_exceptions=True)
        for name, res in zip(targets, results, strict=True):
            if isinstance(res, Exception):
                raise WipeError(name, str(res)) from res
        progress.nuked = targets
        self.metrics.collections_wiped_total.inc(len(targets))
        self.log.debug("scenario.nuked", event="scenario.nuked", collections=targets)

    # ---- graph

    def _build_graph(
        self,
        store: DocumentStore,
        scenario: dict[str, list[Row]],
        trees: Mapping[CollectionName, DescriptorTree],
        opts: ScenarioOptions,
        progress: Progress,
    ) -> TaskGraph:
        graph = TaskGraph(clock=self.clock, resolved=self.references.labels())
        anonymous: set[TaskId] = set()

        # anonymous ids step around every label, carried-over ones included
        taken: set[str] = set(self.references.labels())
        for collection, rows in scenario.items():
            for index, row in enumerate(rows):
                validate_row_keys(collection, index, row, ref_key=opts.ref_key, after_key=opts.after_key)
                if row.get(opts.ref_key) is not None:
                    taken.add(row[opts.ref_key])

        for collection, rows in scenario.items():
            tree = trees[collection]
            for index, row in enumerate(rows):
                flat = flatten(row)
                deps = dependencies(flat, tree, after_key=opts.after_key)
                for key in opts.omit_fields:
                    flat.pop(key, None)

                label: Label | None = row.get(opts.ref_key)
                if label is None:
                    task_id = anonymous_task_id(collection, index, taken)
                    anonymous.add(task_id)
                else:
                    task_id = label
                work = self._make_work(store, collection, task_id, label, flat, tree, progress)
                graph.add(task_id, deps, work, meta={"collection": collection})

        for task in graph.tasks:
            bad = [d for d in task.depends_on if d in anonymous]
            if bad:
                raise ConfigurationError(
                    f"{task.task_id} depends on unlabeled row(s) {', '.join(bad)}; give them a {opts.ref_key!r}"
                )
        return graph

    def _make_work(
        self,
        store: DocumentStore,
        collection: CollectionName,
        task_id: TaskId,
        label: Label | None,
        flat: FlatRow,
        tree: DescriptorTree,
        progress: Progress,
    ) -> Work:
        async def work() -> None:
            row = unflatten(inject(flat, tree, self.references))
            try:
                record_id = await store.create(collection, row)
            except Exception as e:
                raise CreationError(collection, row, task_id, str(e)) from e

            if label is not None:
                self.references.set(label, record_id)
            progress.created[collection] = progress.created.get(collection, 0) + 1
            self.metrics.rows_created_total.labels(collection=collection).inc()
            self.log.debug("scenario.row.created", event="scenario.row.created", id=record_id)

        return work
