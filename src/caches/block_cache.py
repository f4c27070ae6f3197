"""Coalesced-expiry TTL cache.

Entries are grouped into blocks that share one reclamation deadline (the
block's horizon). A single scheduled task per block drops the whole block
when the horizon passes, so the number of outstanding timers depends on
elapsed time rather than on the number of entries inserted.

Reads re-check each entry's own expiry (lazy expiry), because a block
can outlive the entries inside it by up to block_width * max_entry_life.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, Generic, Hashable, List, Optional, Set, TypeVar

from core.clock import MonotonicClock
from core.errors import CacheDestroyedError, ValidationError
from core.interfaces import Clock, ScheduledTask, TaskScheduler
from core.models import BlockInfo, CacheSnapshot, Entry
from core.scheduler import ThreadScheduler

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

BLOCK_WIDTH = 2


@dataclass(eq=False, slots=True)
class Block(Generic[K, V]):
    # Append-only group of entries reclaimed together; hashed by identity
    horizon: int
    members: List[Entry[K, V]] = field(default_factory=list)
    task: Optional[ScheduledTask] = None
    schedule_failures: int = 0

    def add(self, entry: Entry[K, V]) -> None:
        self.members.append(entry)

    def __repr__(self) -> str:
        return f"Block(horizon={self.horizon}, members={len(self.members)})"


class TimedBlockCache(Generic[K, V]):
    """TTL cache that reclaims entries in coarse, time-bucketed blocks.

    Key behavior:
      - add() rejects lifetimes outside (0, max_entry_life_ms) by returning False.
      - A new block opens only when the current one cannot cover the new
        entry's expiry; its horizon is now + block_width * max_entry_life_ms.
      - get()/remove() treat entries past their own expiry as absent.
      - destroy() cancels this cache's reclamation tasks and shuts the
        scheduler down only if the cache created it.

    All shared state is guarded by one re-entrant lock; reclamation callbacks
    may arrive on scheduler threads while callers insert from others.
    """

    def __init__(
        self,
        *,
        max_entry_life_ms: int,
        block_width: float = BLOCK_WIDTH,
        clock: Optional[Clock] = None,
        scheduler: Optional[TaskScheduler] = None,
    ) -> None:
        if int(max_entry_life_ms) <= 0:
            raise ValidationError("max_entry_life_ms must be positive")
        if float(block_width) <= 1:
            raise ValidationError("block_width must be greater than 1")

        self._max_entry_life = int(max_entry_life_ms)
        self._block_width = float(block_width)
        self._block_span = int(self._block_width * self._max_entry_life)

        self._clock: Clock = clock or MonotonicClock()
        self._owns_scheduler = scheduler is None
        self._scheduler: TaskScheduler = scheduler or ThreadScheduler()

        self._lock = threading.RLock()
        self._index: Dict[K, Entry[K, V]] = {}
        self._blocks: Set[Block[K, V]] = set()
        self._current: Optional[Block[K, V]] = None

        # Blocks whose reclamation could not be scheduled; reaped on insert
        self._unscheduled: List[Block[K, V]] = []
        self._destroyed = False

    @property
    def max_entry_life_ms(self) -> int:
        return self._max_entry_life

    @property
    def block_width(self) -> float:
        return self._block_width

    def add(self, key: K, value: V, lifetime_ms: int) -> bool:
        """Store value under key for lifetime_ms. Returns False if the lifetime is out of range."""
        with self._lock:
            self._ensure_alive()

            if not 0 < lifetime_ms < self._max_entry_life or lifetime_ms != int(lifetime_ms):
                logger.debug(
                    "Rejected %r: lifetime %s ms not a whole number in (0, %s)",
                    key,
                    lifetime_ms,
                    self._max_entry_life,
                )
                return False

            now = self._clock.now_ms()
            if self._unscheduled:
                self._reap_unscheduled(now)

            expires_at = now + int(lifetime_ms)

            block = self._current
            if block is None or block.horizon < expires_at:
                block = self._open_block(now)

            entry = Entry(key=key, value=value, expires_at=expires_at)
            block.add(entry)
            self._index[key] = entry
            return True

    def get(self, key: K) -> Optional[V]:
        with self._lock:
            self._ensure_alive()
            entry = self._index.get(key)
            now = self._clock.now_ms()

        if entry is not None and entry.is_live(now):
            return entry.value
        return None

    def remove(self, key: K) -> Optional[V]:
        """Drop key from the index and return its value if it had not yet expired.

        The entry itself stays in its block until the block is reclaimed.
        """
        with self._lock:
            self._ensure_alive()
            entry = self._index.pop(key, None)
            now = self._clock.now_ms()

        if entry is not None and entry.is_live(now):
            return entry.value
        return None

    def destroy(self) -> None:
        with self._lock:
            if self._destroyed:
                return
            self._destroyed = True

            tasks = [b.task for b in self._blocks if b.task is not None]
            remaining = len(self._blocks)
            self._blocks = set()
            self._index = {}
            self._current = None
            self._unscheduled = []

        for task in tasks:
            task.cancel()

        if self._owns_scheduler:
            self._scheduler.shutdown()

        logger.debug("Destroyed cache; dropped %d blocks, cancelled %d tasks", remaining, len(tasks))

    @property
    def is_destroyed(self) -> bool:
        return self._destroyed

    @property
    def size(self) -> int:
        # Raw members of live blocks, including expired or orphaned entries
        with self._lock:
            self._ensure_alive()
            return sum(len(b.members) for b in self._blocks)

    @property
    def block_count(self) -> int:
        with self._lock:
            self._ensure_alive()
            return len(self._blocks)

    def snapshot(self) -> CacheSnapshot:
        with self._lock:
            self._ensure_alive()
            now = self._clock.now_ms()
            blocks = sorted(self._blocks, key=lambda b: b.horizon)
            return CacheSnapshot(
                taken_at_ms=now,
                size=sum(len(b.members) for b in blocks),
                indexed_keys=len(self._index),
                live_keys=sum(1 for e in self._index.values() if e.is_live(now)),
                scheduled_tasks=sum(1 for b in blocks if b.task is not None),
                blocks=tuple(BlockInfo(horizon=b.horizon, members=len(b.members)) for b in blocks),
            )

    def __enter__(self) -> "TimedBlockCache[K, V]":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.destroy()

    def _ensure_alive(self) -> None:
        if self._destroyed:
            raise CacheDestroyedError("Cache has been destroyed")

    def _open_block(self, now: int) -> Block[K, V]:
        # Caller holds the lock
        block: Block[K, V] = Block(horizon=now + self._block_span)
        self._blocks.add(block)
        self._current = block

        if not self._schedule_reclaim(block, self._block_span):
            self._unscheduled.append(block)

        logger.debug("Opened %r; %d blocks live", block, len(self._blocks))
        return block

    def _schedule_reclaim(self, block: Block[K, V], delay_ms: int) -> bool:
        # Any failure parks the block; injected schedulers may raise their own types
        try:
            block.task = self._scheduler.schedule(delay_ms, lambda: self._reclaim(block))
        except Exception:
            block.task = None
            if block.schedule_failures == 0:
                logger.warning(
                    "Could not schedule reclamation of %r; it will be reaped on a later insert",
                    block,
                    exc_info=True,
                )
            else:
                logger.debug("Scheduler still refusing reclamation of %r", block)
            block.schedule_failures += 1
            return False
        return True

    def _reap_unscheduled(self, now: int) -> None:
        # Fallback trigger for blocks the scheduler refused: drop the overdue
        # ones and retry scheduling the rest.
        pending, self._unscheduled = self._unscheduled, []
        for block in pending:
            if block not in self._blocks:
                continue
            if block.horizon <= now:
                self._drop_block(block)
            elif not self._schedule_reclaim(block, block.horizon - now):
                self._unscheduled.append(block)

    def _reclaim(self, block: Block[K, V]) -> None:
        with self._lock:
            if self._destroyed or block not in self._blocks:
                return

            now = self._clock.now_ms()
            if now < block.horizon:
                # Fired ahead of the cache clock; wait out the remainder
                if not self._schedule_reclaim(block, block.horizon - now):
                    self._unscheduled.append(block)
                return

            self._drop_block(block)

    def _drop_block(self, block: Block[K, V]) -> None:
        # Caller holds the lock. Block leaves the set, the current slot and
        # the index in one step.
        self._blocks.discard(block)
        if self._current is block:
            self._current = None
        block.task = None

        for entry in block.members:
            if self._index.get(entry.key) is entry:
                del self._index[entry.key]

        logger.debug("Reclaimed %r; %d blocks remain", block, len(self._blocks))
