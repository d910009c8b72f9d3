# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

from .metrics import ScenarioMetrics, default_metrics

__all__ = ["ScenarioMetrics", "default_metrics"]
