# conftest.py
from __future__ import annotations

import os
import uuid

import pytest
from prometheus_client import CollectorRegistry

from scenariokit import Scenario, ScenarioOptions
from scenariokit.core.log import (
    bind_context,
    configure_from_env,
    enable_stdout_logging,
    get_logger,
    log_context,
)
from scenariokit.core.time import ManualClock
from scenariokit.observability.metrics import ScenarioMetrics
from scenariokit.storage import MongoStore
from tests.helpers import MODELS, InMemDB


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast component tests")
    config.addinivalue_line("markers", "e2e: full scenario imports against the in-memory store")
    config.addinivalue_line("markers", "opts(**kw): per-test ScenarioOptions overrides for the `scenario` fixture")


def pytest_addoption(parser):
    parser.addoption(
        "--log-json",
        action="store_true",
        default=False,
        help="Emit scenariokit logs in JSON format during tests",
    )


@pytest.fixture(scope="session", autouse=True)
def _configure_scenariokit_logging(request):
    configure_from_env()
    prefer_json = request.config.getoption("--log-json")
    # unless enabled explicitly through env, turn it on here (human-readable by default)
    if os.getenv("SCENARIOKIT_LOG_STDOUT", "").lower() not in ("1", "true", "yes", "on"):
        enable_stdout_logging(level="DEBUG", json_output=prefer_json)
    bind_context(role="pytest")


@pytest.fixture(scope="session")
def session_run_id():
    return uuid.uuid4().hex[:8]


@pytest.fixture(autouse=True)
def _test_log_context(request, session_run_id):
    log = get_logger("test")
    with log_context(pytest_nodeid=request.node.nodeid, test=request.node.name, test_run=session_run_id):
        log.debug("pytest.test.start", event="pytest.test.start")
        yield


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item, call):
    outcome = yield
    rep = outcome.get_result()
    if rep.when == "call":
        log = get_logger("test")
        with log_context(pytest_nodeid=item.nodeid, test=item.name):
            log.debug(
                "pytest.test.finish",
                event="pytest.test.finish",
                outcome=rep.outcome,
                duration=getattr(rep, "duration", None),
            )


def _opts_from_marker(request) -> dict:
    m = request.node.get_closest_marker("opts")
    return dict(m.kwargs) if m else {}


# short stall budget: the manual clock makes it elapse without real waiting
_FAST_OPTS = {
    "timeout_ms": 500,
    "watchdog_tick_ms": 10,
}


@pytest.fixture
def tlog():
    return get_logger("test")


@pytest.fixture
def manual_clock():
    return ManualClock()


@pytest.fixture(scope="function")
def inmemory_db():
    """Single injection point for DB."""
    return InMemDB()


@pytest.fixture
def store(inmemory_db):
    return MongoStore(inmemory_db, MODELS)


@pytest.fixture
def registry():
    return CollectorRegistry()


@pytest.fixture
def metrics(registry):
    return ScenarioMetrics.create(registry)


@pytest.fixture
def options(request):
    return ScenarioOptions.load(overrides={**_FAST_OPTS, **_opts_from_marker(request)})


@pytest.fixture
def scenario(store, options, manual_clock, metrics):
    return Scenario(store=store, options=options, clock=manual_clock, metrics=metrics)
