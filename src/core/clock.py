"""Clock implementations reporting time in integer milliseconds."""

from __future__ import annotations

import time


class MonotonicClock:
    # Unaffected by wall-clock adjustments; the default for caches
    def now_ms(self) -> int:
        return time.monotonic_ns() // 1_000_000


class SystemClock:
    def now_ms(self) -> int:
        return time.time_ns() // 1_000_000


class ManualClock:
    """Clock that only moves when told to. Used for deterministic tests."""

    def __init__(self, start_ms: int = 0) -> None:
        self._now = int(start_ms)

    def now_ms(self) -> int:
        return self._now

    def advance(self, delta_ms: int) -> int:
        if delta_ms < 0:
            raise ValueError("ManualClock cannot move backwards")
        self._now += int(delta_ms)
        return self._now

    def set(self, now_ms: int) -> None:
        if now_ms < self._now:
            raise ValueError("ManualClock cannot move backwards")
        self._now = int(now_ms)
