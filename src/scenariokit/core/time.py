from __future__ import annotations

"""
scenariokit.core.time
=====================

Clock abstractions:
- Clock Protocol for dependency-injection and testing.
- SystemClock: production default implementation.
- ManualClock: deterministic time control for the stall watchdog in tests.
"""

import asyncio
import time
from typing import Protocol

from .types import Millis, MonotonicMs, TimestampMs


class Clock(Protocol):
    """Minimal clock protocol used by the scheduler and the orchestrator."""

    def now_ms(self) -> TimestampMs: ...
    def mono_ms(self) -> MonotonicMs: ...
    async def sleep_ms(self, ms: Millis) -> None: ...


class SystemClock:
    """Default clock backed by system time."""

    def now_ms(self) -> TimestampMs:
        """Epoch milliseconds from system clock."""
        return time.time_ns() // 1_000_000

    def mono_ms(self) -> MonotonicMs:
        """Process-local monotonic milliseconds (not related to wall clock)."""
        return time.monotonic_ns() // 1_000_000

    async def sleep_ms(self, ms: Millis) -> None:
        await asyncio.sleep(max(0.0, ms / 1000.0))


class ManualClock(SystemClock):
    """
    Controllable clock for tests.

    Time starts at `start_ms` and advances only through `sleep_ms` or `advance`.
    `sleep_ms` still yields to the event loop once, so tasks waiting on the loop
    get a chance to run between watchdog ticks.
    """

    def __init__(self, start_ms: Millis = 0) -> None:
        self._mono: Millis = start_ms

    def now_ms(self) -> TimestampMs:
        return self._mono

    def mono_ms(self) -> MonotonicMs:
        return self._mono

    def advance(self, ms: Millis) -> None:
        self._mono += max(0, int(ms))

    async def sleep_ms(self, ms: Millis) -> None:
        self.advance(ms)
        await asyncio.sleep(0)
