"""TTL cache with one scheduled removal per key.

The straightforward counterpart of TimedBlockCache: every add() cancels the
key's previous removal task and schedules a new one, so entries leave the
map close to their exact expiry at the cost of one outstanding task per key.
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass
from typing import Dict, Generic, Hashable, Optional, Set, TypeVar

from core.clock import MonotonicClock
from core.errors import CacheDestroyedError
from core.interfaces import Clock, ScheduledTask, TaskScheduler
from core.models import CacheSnapshot
from core.scheduler import ThreadScheduler

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


@dataclass(eq=False, slots=True)
class _TimedEntry(Generic[V]):
    value: V
    expires_at: int
    task: Optional[ScheduledTask] = None


class TimedCache(Generic[K, V]):
    # Per-key timers; no ceiling on lifetime
    def __init__(
        self,
        *,
        clock: Optional[Clock] = None,
        scheduler: Optional[TaskScheduler] = None,
    ) -> None:
        self._clock: Clock = clock or MonotonicClock()
        self._owns_scheduler = scheduler is None
        self._scheduler: TaskScheduler = scheduler or ThreadScheduler()

        self._lock = threading.RLock()
        self._map: Dict[K, _TimedEntry[V]] = {}

        # Keys whose expiry task was refused by the scheduler
        self._unscheduled: Set[K] = set()
        self._destroyed = False

    def add(self, key: K, value: V, lifetime_ms: int) -> bool:
        with self._lock:
            self._ensure_alive()

            if not 0 < lifetime_ms < math.inf or lifetime_ms != int(lifetime_ms):
                logger.debug("Rejected %r: lifetime %s ms is not a positive whole number", key, lifetime_ms)
                return False

            now = self._clock.now_ms()
            if self._unscheduled:
                self._reap_unscheduled(now)

            previous = self._map.get(key)
            if previous is not None and previous.task is not None:
                previous.task.cancel()

            entry: _TimedEntry[V] = _TimedEntry(value=value, expires_at=now + int(lifetime_ms))
            try:
                entry.task = self._scheduler.schedule(int(lifetime_ms), lambda: self._expire(key, entry))
            except Exception:
                logger.warning(
                    "Could not schedule expiry of %r; it will be reaped on a later insert",
                    key,
                    exc_info=True,
                )
                self._unscheduled.add(key)
            else:
                self._unscheduled.discard(key)

            self._map[key] = entry
            return True

    def get(self, key: K) -> Optional[V]:
        with self._lock:
            self._ensure_alive()
            entry = self._map.get(key)
            now = self._clock.now_ms()

        if entry is not None and now < entry.expires_at:
            return entry.value
        return None

    def remove(self, key: K) -> Optional[V]:
        with self._lock:
            self._ensure_alive()
            entry = self._map.pop(key, None)
            now = self._clock.now_ms()

        if entry is None:
            return None
        if entry.task is not None:
            entry.task.cancel()
        if now < entry.expires_at:
            return entry.value
        return None

    def destroy(self) -> None:
        with self._lock:
            if self._destroyed:
                return
            self._destroyed = True
            tasks = [e.task for e in self._map.values() if e.task is not None]
            self._map = {}
            self._unscheduled = set()

        for task in tasks:
            task.cancel()

        if self._owns_scheduler:
            self._scheduler.shutdown()

    @property
    def is_destroyed(self) -> bool:
        return self._destroyed

    @property
    def size(self) -> int:
        with self._lock:
            self._ensure_alive()
            return len(self._map)

    def snapshot(self) -> CacheSnapshot:
        with self._lock:
            self._ensure_alive()
            now = self._clock.now_ms()
            live = sum(1 for e in self._map.values() if now < e.expires_at)
            return CacheSnapshot(
                taken_at_ms=now,
                size=len(self._map),
                indexed_keys=len(self._map),
                live_keys=live,
                scheduled_tasks=sum(1 for e in self._map.values() if e.task is not None),
            )

    def __enter__(self) -> "TimedCache[K, V]":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.destroy()

    def _ensure_alive(self) -> None:
        if self._destroyed:
            raise CacheDestroyedError("Cache has been destroyed")

    def _expire(self, key: K, entry: _TimedEntry[V]) -> None:
        with self._lock:
            # Only the task of the entry still mapped may remove it
            if self._destroyed or self._map.get(key) is not entry:
                return

            now = self._clock.now_ms()
            if now < entry.expires_at:
                try:
                    entry.task = self._scheduler.schedule(
                        entry.expires_at - now, lambda: self._expire(key, entry)
                    )
                except Exception:
                    logger.warning("Could not reschedule expiry of %r", key, exc_info=True)
                    entry.task = None
                    self._unscheduled.add(key)
                return

            del self._map[key]
            logger.debug("Expired %r", key)

    def _reap_unscheduled(self, now: int) -> None:
        pending, self._unscheduled = self._unscheduled, set()
        for k in pending:
            entry = self._map.get(k)
            if entry is None or entry.task is not None:
                continue
            if entry.expires_at <= now:
                del self._map[k]
            else:
                self._unscheduled.add(k)
