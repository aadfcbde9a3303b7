"""
Bounded memoization of corpus projections.

Purpose
-------
The FI age search probes the same (monthly investment, years, step-up)
combinations many times across scenarios of one optimization run. The
``ComputationCache`` stores the projected total value for each key so
repeat probes are free.

Lifetime and policy
-------------------
- One cache per optimization run; ``clear()`` is called when a run starts.
- Capacity and eviction fraction are constructor parameters.
- When an insertion pushes the size above capacity, the oldest
  ``floor(capacity * eviction_fraction)`` insertions (at least one) are
  dropped. Re-setting an existing key keeps its original position.
- Thread-safe: scenario phases may share one cache across threads.

Example
-------
>>> cache = ComputationCache(capacity=1000)
>>> key = cache.make_key(50_000, 20, 10)
>>> cache.get(key) is None
True
>>> cache.set(key, 1.25e8)
>>> cache.get(key)
125000000.0
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass
from typing import Dict, Hashable, Iterator, Optional, Tuple

from . import constants as C
from .exceptions import ValidationError

__all__ = [
    "CacheKey",
    "CacheStats",
    "ComputationCache",
]

logger = logging.getLogger(__name__)

CacheKey = Tuple[float, float, float]


@dataclass(frozen=True)
class CacheStats:
    """Snapshot of cache counters."""
    size: int
    capacity: int
    hits: int
    misses: int
    evictions: int

    @property
    def hit_rate(self) -> float:
        lookups = self.hits + self.misses
        return self.hits / lookups if lookups else 0.0


class ComputationCache:
    """
    Insertion-ordered, capacity-bounded map from projection keys to values.

    Parameters
    ----------
    capacity : int, default 1000
        Maximum number of entries retained after any insertion.
    eviction_fraction : float, default 0.2
        Share of ``capacity`` evicted (oldest first) on overflow.

    Raises
    ------
    ValidationError
        If capacity < 1 or eviction_fraction is outside (0, 1].
    """

    def __init__(
        self,
        capacity: int = C.DEFAULT_CACHE_CAPACITY,
        eviction_fraction: float = C.DEFAULT_CACHE_EVICTION_FRACTION,
    ):
        if not isinstance(capacity, int) or capacity < 1:
            raise ValidationError(f"capacity must be an int >= 1, got {capacity!r}.")
        if not (0 < eviction_fraction <= 1):
            raise ValidationError(
                f"eviction_fraction must be in (0, 1], got {eviction_fraction}."
            )
        self.capacity = capacity
        self.eviction_fraction = eviction_fraction
        self._entries: Dict[Hashable, float] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @staticmethod
    def make_key(monthly_investment: float, years: float, step_up_percent: float) -> CacheKey:
        """Normalized key; 5 and 5.0 map to the same entry."""
        return (float(monthly_investment), float(years), float(step_up_percent))

    @property
    def eviction_batch(self) -> int:
        return max(1, math.floor(self.capacity * self.eviction_fraction))

    def get(self, key: Hashable) -> Optional[float]:
        with self._lock:
            value = self._entries.get(key)
            if value is None:
                self._misses += 1
            else:
                self._hits += 1
            return value

    def set(self, key: Hashable, value: float) -> None:
        with self._lock:
            self._entries[key] = float(value)
            if len(self._entries) > self.capacity:
                self._evict_oldest(self.eviction_batch)

    def _evict_oldest(self, n: int) -> None:
        stale = list(self._entries)[:n]
        for key in stale:
            del self._entries[key]
        self._evictions += len(stale)
        logger.debug("Evicted %d cache entries (size now %d)", len(stale), len(self._entries))

    def clear(self) -> None:
        """Drop every entry and reset counters."""
        with self._lock:
            self._entries.clear()
            self._hits = self._misses = self._evictions = 0

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                size=len(self._entries),
                capacity=self.capacity,
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
            )

    def keys(self) -> Tuple[Hashable, ...]:
        """Keys in insertion order (oldest first)."""
        with self._lock:
            return tuple(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._entries

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self.keys())

    def __repr__(self) -> str:
        return f"ComputationCache(size={len(self)}, capacity={self.capacity})"
