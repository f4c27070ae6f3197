"""Factory for selecting the cache implementation.

Exposes create_cache which returns either a TimedBlockCache (coalesced
expiry) or a TimedCache (one timer per key) behind the KeyedCache protocol.
"""

from __future__ import annotations

from typing import Literal, Optional

from caches.block_cache import BLOCK_WIDTH, TimedBlockCache
from caches.timed_cache import TimedCache
from core.errors import ValidationError
from core.interfaces import Clock, KeyedCache, TaskScheduler

CacheVariant = Literal["block", "timed"]


def create_cache(
    variant: Optional[CacheVariant] = None,
    *,
    max_entry_life_ms: int,
    block_width: float = BLOCK_WIDTH,
    clock: Optional[Clock] = None,
    scheduler: Optional[TaskScheduler] = None,
) -> KeyedCache:
    """
    Factory that returns the requested cache implementation.

    - "block" (default): TimedBlockCache, entries bucketed into blocks.
    - "timed": TimedCache, one scheduled removal per key. max_entry_life_ms
      and block_width do not apply to it.

    An injected scheduler is shared, never owned: destroy() on the returned
    cache leaves it running.
    """

    kind = (variant or "block").strip().lower()

    if kind == "block":
        return TimedBlockCache(
            max_entry_life_ms=max_entry_life_ms,
            block_width=block_width,
            clock=clock,
            scheduler=scheduler,
        )

    if kind == "timed":
        return TimedCache(clock=clock, scheduler=scheduler)

    raise ValidationError(f"Unknown cache variant: {variant!r}")
