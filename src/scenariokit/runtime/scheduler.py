# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Task graph scheduler.

Runs a set of named async work items, each depending on zero or more other
names, with these rules:

- a task starts only after every name it depends on is done (or was resolved
  before the run, see `resolved=`);
- every task whose dependencies are done runs concurrently; there is no
  throttling here, the store applies its own limits;
- dependencies may name tasks registered later (even while running), so
  waiting happens on a per-name event created on first use;
- the first failing task aborts the run: pending tasks never start, tasks
  already running settle, and the failure is re-raised;
- a watchdog fails the run when no task has finished for `timeout_ms` while
  some task is still pending. This is the only cycle / missing-reference
  detection: since targets may appear after being depended upon,
  "unsatisfiable" is only known once progress stops. Running tasks with
  nothing pending behind them are waited for, however slow.

State per task: pending -> running -> done | failed.
"""

import asyncio
from collections.abc import Awaitable, Callable, Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum

from ..api.errors import ConfigurationError, UnresolvableReferenceError
from ..core.log import get_logger, log_context
from ..core.time import Clock, SystemClock
from ..core.types import DEFAULT_TIMEOUT_MS, DEFAULT_WATCHDOG_TICK_MS, Millis, TaskId

__all__ = ["TaskState", "GraphTask", "GraphResult", "TaskGraph", "Work"]

Work = Callable[[], Awaitable[None]]


class TaskState(str, Enum):
    pending = "pending"
    running = "running"
    done = "done"
    failed = "failed"


@dataclass
class GraphTask:
    task_id: TaskId
    depends_on: tuple[TaskId, ...]
    work: Work
    state: TaskState = TaskState.pending
    meta: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class GraphResult:
    processed: int
    duration_ms: Millis


class TaskGraph:
    """
    One-shot dependency graph of async tasks.

    Usage:
        graph = TaskGraph()
        graph.add("w1", [], create_widget)
        graph.add("u1", ["w1"], create_user)
        await graph.run(timeout_ms=2000)
    """

    def __init__(self, *, clock: Clock | None = None, resolved: Iterable[TaskId] = ()) -> None:
        self.clock = clock or SystemClock()
        self.log = get_logger("runtime.scheduler")
        self._resolved = frozenset(resolved)
        self._tasks: dict[TaskId, GraphTask] = {}
        self._events: dict[TaskId, asyncio.Event] = {}
        self._runners: dict[TaskId, asyncio.Task[None]] = {}
        self._running = False
        self._started = False
        self._failure: BaseException | None = None
        self._wakeup: asyncio.Event | None = None
        self._last_done_ms: Millis = 0
        self.processed = 0

    # ---- registration

    def add(
        self,
        task_id: TaskId,
        depends_on: Sequence[TaskId],
        work: Work,
        *,
        meta: dict[str, str] | None = None,
    ) -> GraphTask:
        if task_id in self._tasks:
            raise ConfigurationError(f"Duplicate task {task_id!r}: each label may be used by one row only")
        if task_id in self._resolved:
            raise ConfigurationError(f"Label {task_id!r} is already resolved by an earlier run")
        task = GraphTask(task_id=task_id, depends_on=tuple(dict.fromkeys(depends_on)), work=work, meta=meta or {})
        self._tasks[task_id] = task
        if self._running:
            self._spawn(task)
        return task

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    @property
    def tasks(self) -> list[GraphTask]:
        return list(self._tasks.values())

    def states(self) -> dict[TaskId, TaskState]:
        return {tid: t.state for tid, t in self._tasks.items()}

    def missing_dependencies(self) -> list[TaskId]:
        """Names depended upon that no task provides and that were not resolved before the run."""
        missing: dict[TaskId, None] = {}
        for task in self._tasks.values():
            for dep in task.depends_on:
                if dep not in self._tasks and dep not in self._resolved:
                    missing[dep] = None
        return list(missing)

    # ---- execution

    async def run(
        self,
        *,
        timeout_ms: Millis = DEFAULT_TIMEOUT_MS,
        tick_ms: Millis = DEFAULT_WATCHDOG_TICK_MS,
    ) -> GraphResult:
        if self._started:
            raise RuntimeError("TaskGraph.run() may only be called once")
        self._started = True
        self._running = True
        self._wakeup = asyncio.Event()
        started_ms = self.clock.mono_ms()
        self._last_done_ms = started_ms

        self.log.debug("graph.run.start", event="graph.run.start", tasks=len(self._tasks), timeout_ms=timeout_ms)
        for task in list(self._tasks.values()):
            self._spawn(task)

        stalled = False
        try:
            while not self._finished():
                if self._has_pending() and self.clock.mono_ms() - self._last_done_ms >= timeout_ms:
                    stalled = True
                    break
                await self._tick(tick_ms)
        finally:
            self._running = False
            await self._shutdown(settle_running=self._failure is not None and not stalled)

        if self._failure is not None:
            raise self._failure
        if stalled:
            raise self._stall_error()

        duration = self.clock.mono_ms() - started_ms
        self.log.debug("graph.run.done", event="graph.run.done", processed=self.processed, duration_ms=duration)
        return GraphResult(processed=self.processed, duration_ms=duration)

    def _finished(self) -> bool:
        if self._failure is not None:
            return True
        return all(t.state is TaskState.done for t in self._tasks.values())

    def _has_pending(self) -> bool:
        return any(t.state is TaskState.pending for t in self._tasks.values())

    async def _tick(self, tick_ms: Millis) -> None:
        """Wait for one watchdog tick or an early wakeup (all done / failure)."""
        assert self._wakeup is not None
        sleeper = asyncio.ensure_future(self.clock.sleep_ms(tick_ms))
        waiter = asyncio.ensure_future(self._wakeup.wait())
        try:
            await asyncio.wait({sleeper, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for fut in (sleeper, waiter):
                if not fut.done():
                    fut.cancel()
            await asyncio.gather(sleeper, waiter, return_exceptions=True)

    def _event(self, name: TaskId) -> asyncio.Event:
        ev = self._events.get(name)
        if ev is None:
            ev = asyncio.Event()
            if name in self._resolved:
                ev.set()
            self._events[name] = ev
        return ev

    def _is_done(self, name: TaskId) -> bool:
        if name in self._resolved:
            return True
        task = self._tasks.get(name)
        return task is not None and task.state is TaskState.done

    def _spawn(self, task: GraphTask) -> None:
        if task.task_id in self._runners:
            return
        self._runners[task.task_id] = asyncio.create_task(
            self._run_task(task), name=f"scenariokit:{task.task_id}"
        )

    async def _run_task(self, task: GraphTask) -> None:
        with log_context(task_id=task.task_id, **task.meta):
            for dep in task.depends_on:
                await self._event(dep).wait()
            if self._failure is not None or not self._running:
                return

            task.state = TaskState.running
            self.log.debug("graph.task.start", event="graph.task.start", depends_on=list(task.depends_on))
            try:
                await task.work()
            except Exception as e:
                task.state = TaskState.failed
                self.log.debug("graph.task.failed", event="graph.task.failed", error=str(e))
                if self._failure is None:
                    self._failure = e
                self._wake()
                return
            except asyncio.CancelledError:
                task.state = TaskState.failed
                raise

            task.state = TaskState.done
            self.processed += 1
            self._last_done_ms = self.clock.mono_ms()
            self._event(task.task_id).set()
            self.log.debug("graph.task.done", event="graph.task.done", processed=self.processed)
            if self._finished():
                self._wake()

    def _wake(self) -> None:
        if self._wakeup is not None:
            self._wakeup.set()

    async def _shutdown(self, *, settle_running: bool) -> None:
        """Cancel waiting tasks; running ones are awaited (failure) or cancelled (stall)."""
        for tid, runner in self._runners.items():
            if runner.done():
                continue
            state = self._tasks[tid].state
            if state is TaskState.pending or not settle_running:
                runner.cancel()
        if self._runners:
            await asyncio.gather(*self._runners.values(), return_exceptions=True)

    def _stall_error(self) -> UnresolvableReferenceError:
        waiting_on: dict[TaskId, list[TaskId]] = {}
        running: list[TaskId] = []
        for tid, task in self._tasks.items():
            if task.state is TaskState.pending:
                waiting_on[tid] = [d for d in task.depends_on if not self._is_done(d)]
            elif task.state in (TaskState.running, TaskState.failed):
                # cancelled by the shutdown above while still inside work()
                running.append(tid)
        err = UnresolvableReferenceError(waiting_on=waiting_on, processed=self.processed, running=running)
        self.log.warning(
            "graph.run.stalled",
            event="graph.run.stalled",
            unresolved=err.unresolved,
            processed=self.processed,
            running=running,
        )
        return err
