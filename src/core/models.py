"""Immutable dataclasses shared by the cache implementations.

Entry is the value record stored under a key; CacheSnapshot and
BlockInfo are point-in-time diagnostics returned by snapshot().
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Generic, Hashable, Tuple, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


@dataclass(frozen=True, slots=True)
class Entry(Generic[K, V]):
    # Value stamped with an absolute expiry on the cache clock (ms)
    key: K
    value: V
    expires_at: int

    def is_live(self, now_ms: int) -> bool:
        return now_ms < self.expires_at


@dataclass(frozen=True)
class BlockInfo:
    """Diagnostic view of one live block."""

    horizon: int
    members: int


@dataclass(frozen=True)
class CacheSnapshot:
    """Point-in-time view of a cache.

    Field groups:
    - Time: taken_at_ms (cache clock)
    - Counts: size (raw stored entries, expired-but-unreclaimed included),
      indexed_keys, live_keys (indexed and not yet expired)
    - Scheduling: scheduled_tasks, blocks (empty for per-key caches)
    """

    taken_at_ms: int
    size: int
    indexed_keys: int
    live_keys: int
    scheduled_tasks: int
    blocks: Tuple[BlockInfo, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
