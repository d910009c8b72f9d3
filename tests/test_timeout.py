from __future__ import annotations

import pytest

from scenariokit import Scenario, ScenarioOptions, UnresolvableReferenceError
from scenariokit.core.time import SystemClock

pytestmark = [pytest.mark.e2e]


@pytest.mark.asyncio
async def test_missing_reference_reports_unresolved_and_processed(scenario, inmemory_db, registry):
    with pytest.raises(UnresolvableReferenceError, match=r"^Unresolvable circular reference") as ei:
        await scenario.import_data(
            {
                "widgets": [{"_ref": "widgets-a", "name": "A"}],
                "users": [
                    {"_ref": "users-bob", "name": "Bob", "favourite": "widgets-a"},
                    {"_ref": "users-wendy", "name": "Wendy", "favourite": "widgets-missing"},
                ],
            }
        )

    err = ei.value
    assert "Remaining refs" in str(err)
    assert "users-wendy" in str(err)
    assert err.payload == {"unresolved": ["users-wendy"], "processed": 2}
    # what completed before the stall stays created and is reported
    assert err.progress is scenario.progress
    assert err.progress.created == {"widgets": 1, "users": 1}
    assert await inmemory_db.users.count_documents({}) == 1
    assert registry.get_sample_value("scenariokit_runs_total", {"result": "stalled"}) == 1


@pytest.mark.asyncio
async def test_circular_references_stall(scenario, inmemory_db):
    with pytest.raises(UnresolvableReferenceError) as ei:
        await scenario.import_data(
            {
                "users": [
                    {"_ref": "a", "name": "A", "friends": ["b"]},
                    {"_ref": "b", "name": "B", "friends": ["a"]},
                    {"name": "Loner"},
                ]
            }
        )
    assert ei.value.payload == {"unresolved": ["a", "b"], "processed": 1}
    assert ei.value.waiting_on == {"a": ["b"], "b": ["a"]}
    assert await inmemory_db.users.count_documents({}) == 1


@pytest.mark.asyncio
async def test_self_reference_stalls(scenario):
    with pytest.raises(UnresolvableReferenceError) as ei:
        await scenario.import_data({"users": [{"_ref": "me", "name": "Me", "friends": ["me"]}]})
    assert ei.value.unresolved == ["me"]


@pytest.mark.asyncio
@pytest.mark.opts(timeout_ms=2000, watchdog_tick_ms=50)
async def test_stall_budget_is_measured_since_last_completion(scenario, manual_clock):
    with pytest.raises(UnresolvableReferenceError):
        await scenario.import_data({"users": [{"_ref": "u1", "name": "U", "favourite": "nope"}]})
    assert 2000 <= manual_clock.mono_ms() < 2100


@pytest.mark.asyncio
async def test_slow_store_is_not_mistaken_for_a_stall(store, inmemory_db, metrics):
    inmemory_db.slow("insert", "widgets", 0.3)
    scenario = Scenario(
        store=store,
        options=ScenarioOptions.load(overrides={"timeout_ms": 100, "watchdog_tick_ms": 10}),
        clock=SystemClock(),
        metrics=metrics,
    )

    progress = await scenario.import_data({"widgets": [{"_ref": "w1", "name": "A"}]})

    assert progress.created == {"widgets": 1}
    assert scenario.references.resolve("w1") == inmemory_db.widgets.rows[0]["_id"]


@pytest.mark.asyncio
async def test_slow_prerequisite_still_stalls_its_dependents(scenario, inmemory_db, manual_clock):
    inmemory_db.slow("insert", "widgets", 5)
    with pytest.raises(UnresolvableReferenceError) as ei:
        await scenario.import_data(
            {"widgets": [{"_ref": "w1", "name": "A"}], "users": [{"_ref": "u1", "name": "U", "favourite": "w1"}]}
        )
    assert ei.value.running == ["w1"]
    assert ei.value.unresolved == ["u1"]
