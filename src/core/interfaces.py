"""Core protocol and interface definitions.

Defines the Clock and TaskScheduler capabilities injected into caches,
and the KeyedCache protocol shared by the cache implementations so the
tools and server can use either of them.
"""

from __future__ import annotations

from typing import Any, Callable, Hashable, Optional, Protocol

from core.models import CacheSnapshot


class Clock(Protocol):
    """Source of the current time in integer milliseconds."""
    def now_ms(self) -> int:
        ...


class ScheduledTask(Protocol):
    """Handle for a callback that has been handed to a TaskScheduler."""
    def cancel(self) -> bool:
        ...


class TaskScheduler(Protocol):
    """Runs a callback once, after a delay, on some worker."""
    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> ScheduledTask:
        ...

    def shutdown(self) -> None:
        ...


class KeyedCache(Protocol):
    """Contract for any TTL cache (coalesced blocks, per-key timers)."""
    def add(self, key: Hashable, value: Any, lifetime_ms: int) -> bool:
        ...

    def get(self, key: Hashable) -> Optional[Any]:
        ...

    def remove(self, key: Hashable) -> Optional[Any]:
        ...

    def destroy(self) -> None:
        ...

    def snapshot(self) -> CacheSnapshot:
        ...

    @property
    def size(self) -> int:
        ...
