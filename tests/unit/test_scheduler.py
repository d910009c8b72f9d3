from __future__ import annotations

import asyncio

import pytest

from scenariokit.api.errors import ConfigurationError, UnresolvableReferenceError
from scenariokit.core.time import ManualClock
from scenariokit.runtime import TaskGraph, TaskState

pytestmark = [pytest.mark.unit]


def _recorder(log: list[str], name: str):
    async def work():
        log.append(name)

    return work


@pytest.mark.asyncio
async def test_dependents_run_after_their_prerequisites():
    order: list[str] = []
    g = TaskGraph(clock=ManualClock())
    # dependencies may be registered after their dependents
    g.add("u1", ["w1", "w2"], _recorder(order, "u1"))
    g.add("w1", [], _recorder(order, "w1"))
    g.add("w2", ["w1"], _recorder(order, "w2"))

    res = await g.run(timeout_ms=500, tick_ms=10)

    assert res.processed == 3
    assert order == ["w1", "w2", "u1"]
    assert set(g.states().values()) == {TaskState.done}


@pytest.mark.asyncio
async def test_independent_tasks_run_concurrently():
    gate = asyncio.Event()

    async def waiter():
        await gate.wait()

    async def opener():
        gate.set()

    g = TaskGraph(clock=ManualClock())
    g.add("a", [], waiter)
    g.add("b", [], opener)
    res = await g.run(timeout_ms=500, tick_ms=10)
    assert res.processed == 2


@pytest.mark.asyncio
async def test_resolved_names_count_as_done():
    order: list[str] = []
    g = TaskGraph(clock=ManualClock(), resolved=["w1"])
    g.add("u1", ["w1"], _recorder(order, "u1"))
    assert g.missing_dependencies() == []
    await g.run(timeout_ms=500, tick_ms=10)
    assert order == ["u1"]


@pytest.mark.asyncio
async def test_missing_dependency_stalls_with_report():
    order: list[str] = []
    clock = ManualClock()
    g = TaskGraph(clock=clock)
    g.add("w1", [], _recorder(order, "w1"))
    g.add("u1", ["w1", "ghost"], _recorder(order, "u1"))
    assert g.missing_dependencies() == ["ghost"]

    with pytest.raises(UnresolvableReferenceError) as ei:
        await g.run(timeout_ms=500, tick_ms=10)

    err = ei.value
    assert order == ["w1"]
    assert err.waiting_on == {"u1": ["ghost"]}
    assert err.payload == {"unresolved": ["u1"], "processed": 1}
    assert str(err).startswith("Unresolvable circular reference")
    assert clock.mono_ms() >= 500


@pytest.mark.asyncio
async def test_cycle_stalls():
    g = TaskGraph(clock=ManualClock())
    g.add("a", ["b"], _recorder([], "a"))
    g.add("b", ["a"], _recorder([], "b"))
    with pytest.raises(UnresolvableReferenceError) as ei:
        await g.run(timeout_ms=200, tick_ms=10)
    assert ei.value.unresolved == ["a", "b"]
    assert ei.value.processed == 0


@pytest.mark.asyncio
async def test_stall_cancels_and_reports_running_tasks():
    async def hang():
        await asyncio.Event().wait()

    g = TaskGraph(clock=ManualClock())
    g.add("slow", [], hang)
    g.add("after", ["slow"], _recorder([], "after"))
    with pytest.raises(UnresolvableReferenceError) as ei:
        await g.run(timeout_ms=200, tick_ms=10)
    assert ei.value.running == ["slow"]
    assert ei.value.unresolved == ["after"]


@pytest.mark.asyncio
async def test_slow_task_with_nothing_pending_is_not_a_stall():
    clock = ManualClock()
    release = asyncio.Event()

    async def slow():
        await release.wait()

    async def release_after_budget():
        while clock.mono_ms() < 1000:
            await asyncio.sleep(0)
        release.set()

    g = TaskGraph(clock=clock)
    g.add("slow", [], slow)
    releaser = asyncio.create_task(release_after_budget())

    res = await g.run(timeout_ms=200, tick_ms=10)
    await releaser

    assert res.processed == 1
    assert clock.mono_ms() >= 1000
    assert g.states() == {"slow": TaskState.done}


@pytest.mark.asyncio
async def test_first_failure_aborts_and_dependents_never_start():
    order: list[str] = []

    async def boom():
        raise RuntimeError("store down")

    g = TaskGraph(clock=ManualClock())
    g.add("w1", [], boom)
    g.add("u1", ["w1"], _recorder(order, "u1"))

    with pytest.raises(RuntimeError, match="store down"):
        await g.run(timeout_ms=500, tick_ms=10)

    assert order == []
    assert g.states()["w1"] is TaskState.failed
    assert g.states()["u1"] is TaskState.pending


@pytest.mark.asyncio
async def test_running_tasks_settle_after_a_failure():
    finished: list[str] = []
    release = asyncio.Event()

    async def slow():
        await release.wait()
        finished.append("slow")

    async def boom():
        release.set()
        raise RuntimeError("nope")

    g = TaskGraph(clock=ManualClock())
    g.add("slow", [], slow)
    g.add("boom", [], boom)
    with pytest.raises(RuntimeError):
        await g.run(timeout_ms=500, tick_ms=10)
    assert finished == ["slow"]


def test_duplicate_and_resolved_ids_are_rejected():
    g = TaskGraph(resolved=["w0"])
    g.add("w1", [], _recorder([], "w1"))
    with pytest.raises(ConfigurationError, match="Duplicate"):
        g.add("w1", [], _recorder([], "w1"))
    with pytest.raises(ConfigurationError, match="already resolved"):
        g.add("w0", [], _recorder([], "w0"))


def test_dependencies_are_deduplicated():
    g = TaskGraph()
    task = g.add("u1", ["w1", "w1", "w2"], _recorder([], "u1"))
    assert task.depends_on == ("w1", "w2")
    assert "u1" in g and len(g) == 1


@pytest.mark.asyncio
async def test_run_is_one_shot():
    g = TaskGraph(clock=ManualClock())
    await g.run(timeout_ms=100, tick_ms=10)
    with pytest.raises(RuntimeError):
        await g.run(timeout_ms=100, tick_ms=10)
