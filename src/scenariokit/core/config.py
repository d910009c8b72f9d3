from __future__ import annotations

"""
scenariokit.core.config
=======================

Strongly-typed, immutable options for a scenario import.

- Defaults cover every knob; a run merges per-call overrides on top of the
  options the `Scenario` was built with (`ScenarioOptions.merged`).
- Optional JSON file loading and small env overrides for convenience.
"""

import json
import os
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any

from ..api.errors import ConfigurationError
from .types import DEFAULT_AFTER_KEY, DEFAULT_REF_KEY, DEFAULT_TIMEOUT_MS, DEFAULT_WATCHDOG_TICK_MS


def _try_load_json(path: Path | None) -> dict[str, Any]:
    if not path or not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Cannot read options file {str(path)!r}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Options file {str(path)!r} must contain a JSON object")
    return data


def _env_bool(name: str) -> bool | None:
    val = os.getenv(name)
    if val is None or val == "":
        return None
    return val.lower() in ("1", "true", "yes", "on")


# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ScenarioOptions:
    """Options for one import run."""

    # ---- Store preparation
    nuke: bool | tuple[str, ...] = False
    reset: bool = True
    reset_descriptors: bool = False

    # ---- Row keys
    ref_key: str = DEFAULT_REF_KEY
    after_key: str = DEFAULT_AFTER_KEY

    # ---- Stall detection (milliseconds)
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    watchdog_tick_ms: int = DEFAULT_WATCHDOG_TICK_MS

    # ---- Validation policy
    check_dependencies: bool = False

    # ---- Export
    collections: tuple[str, ...] | None = field(default=None)

    # ---- Methods ------------------------------------------------------------

    def __post_init__(self) -> None:
        if isinstance(self.nuke, list):
            object.__setattr__(self, "nuke", tuple(self.nuke))
        if isinstance(self.collections, list):
            object.__setattr__(self, "collections", tuple(self.collections))

        if not isinstance(self.nuke, bool) and not (
            isinstance(self.nuke, tuple) and all(isinstance(x, str) and x for x in self.nuke)
        ):
            raise ConfigurationError("nuke must be a boolean or a list of collection names")
        if self.collections is not None and not all(isinstance(x, str) and x for x in self.collections):
            raise ConfigurationError("collections must be a list of collection names")
        if not isinstance(self.timeout_ms, int) or self.timeout_ms <= 0:
            raise ConfigurationError("timeout_ms must be a positive integer")
        if not isinstance(self.watchdog_tick_ms, int) or self.watchdog_tick_ms <= 0:
            raise ConfigurationError("watchdog_tick_ms must be a positive integer")
        if not self.ref_key or not self.after_key:
            raise ConfigurationError("ref_key and after_key must be non-empty strings")
        if self.ref_key == self.after_key:
            raise ConfigurationError("ref_key and after_key must differ")

    @property
    def omit_fields(self) -> frozenset[str]:
        """Row fields consumed by the engine and never persisted."""
        return frozenset({self.ref_key, self.after_key})

    @property
    def watchdog_tick(self) -> int:
        # never poll slower than the budget itself
        return min(self.watchdog_tick_ms, self.timeout_ms)

    def merged(self, **overrides: Any) -> ScenarioOptions:
        """Return a copy with `overrides` applied; unknown keys are rejected."""
        known = {f.name for f in fields(self)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ConfigurationError(f"Unknown option(s): {', '.join(unknown)}")
        if not overrides:
            return self
        return replace(self, **overrides)

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)

    # Loader
    @classmethod
    def load(cls, path: Path | str | None = None, *, overrides: dict[str, Any] | None = None) -> ScenarioOptions:
        """
        Load options from a JSON file (if provided), then apply env and overrides.

        Env overrides:
          - SCENARIOKIT_TIMEOUT_MS
          - SCENARIOKIT_CHECK_DEPENDENCIES (1/true/yes/on)
        """
        data: dict[str, Any] = {}
        data.update(_try_load_json(Path(path) if path else None))

        if os.getenv("SCENARIOKIT_TIMEOUT_MS"):
            try:
                data["timeout_ms"] = int(os.environ["SCENARIOKIT_TIMEOUT_MS"])
            except ValueError as e:
                raise ConfigurationError("SCENARIOKIT_TIMEOUT_MS must be an integer") from e
        check = _env_bool("SCENARIOKIT_CHECK_DEPENDENCIES")
        if check is not None:
            data["check_dependencies"] = check

        if overrides:
            data.update(overrides)

        return cls().merged(**data)
