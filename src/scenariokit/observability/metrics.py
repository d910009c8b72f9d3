# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Low-cardinality Prometheus metrics for scenario imports.

Labels stay conservative (collection, result); labels and ids of rows are
never used as label values.
"""

from dataclasses import dataclass
from typing import Any

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram

__all__ = ["ScenarioMetrics", "default_metrics"]


@dataclass
class ScenarioMetrics:
    rows_created_total: Any
    runs_total: Any
    collections_wiped_total: Any
    run_duration_ms: Any

    @classmethod
    def create(cls, registry: CollectorRegistry | None = None) -> ScenarioMetrics:
        reg = registry or REGISTRY
        return cls(
            rows_created_total=Counter(
                "scenariokit_rows_created_total", "Rows created", ["collection"], registry=reg
            ),
            runs_total=Counter("scenariokit_runs_total", "Import runs by result", ["result"], registry=reg),
            collections_wiped_total=Counter(
                "scenariokit_collections_wiped_total", "Collections wiped before import", registry=reg
            ),
            run_duration_ms=Histogram(
                "scenariokit_run_duration_ms",
                "Import run duration (ms)",
                buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000),
                registry=reg,
            ),
        )


_default: ScenarioMetrics | None = None


def default_metrics() -> ScenarioMetrics:
    """Process-wide metrics bound to the default registry (created once)."""
    global _default
    if _default is None:
        _default = ScenarioMetrics.create()
    return _default
