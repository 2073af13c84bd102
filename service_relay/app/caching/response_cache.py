"""
In-memory store of assembled relay results.

Entries live for the process lifetime at most. An entry leaves the map
when its own expiry passes (the window of the request that stored it,
re-armed on every store) or when the map is full and a new key arrives,
in which case the oldest-inserted entry goes first.
"""

import copy
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, asdict
from typing import Any, Callable, Dict, Optional, TYPE_CHECKING

from shared.logging import get_logger

from ..domain.models import CacheEntry, CacheKey, JsonArrayResult

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


DEFAULT_MAX_ENTRIES = 1024


@dataclass
class CacheStats:
    """Counters for cache monitoring."""

    hits: int = 0
    misses: int = 0
    stale: int = 0
    stores: int = 0
    expired: int = 0
    evicted: int = 0


class ResponseCache:
    """Thread-safe, capacity-bounded map of CacheKey to CacheEntry.

    The lock is only held while the map is read or written; callers must
    never hold it across upstream I/O. Stored results are private
    snapshots: they are copied on the way in and on the way out.
    """

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        *,
        clock: Callable[[], float] = time.monotonic,
        metrics: Optional["MetricsCollector"] = None,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self.clock = clock
        self.metrics = metrics
        self.logger = get_logger("relay.cache")

        self._entries: "OrderedDict[CacheKey, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()
        self._stats = CacheStats()

    def get(self, key: CacheKey, max_age: float) -> Optional[JsonArrayResult]:
        """Return a copy of the entry for ``key`` if no older than ``max_age`` seconds."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._stats.misses += 1
                self._record("cache_misses_total", reason="absent")
                return None

            now = self.clock()
            if entry.is_expired(now):
                del self._entries[key]
                self._stats.misses += 1
                self._stats.expired += 1
                self._record("cache_misses_total", reason="expired")
                self._record("cache_evictions_total", reason="expired")
                return None

            if entry.age(now) > max_age:
                self._stats.misses += 1
                self._stats.stale += 1
                self._record("cache_misses_total", reason="stale")
                return None

            self._stats.hits += 1
            self._record("cache_hits_total")
            stored = entry.result

        # Stored results are never mutated, so copying can happen unlocked
        return copy.deepcopy(stored)

    def insert(self, key: CacheKey, result: JsonArrayResult, ttl: float) -> None:
        """Store ``result`` for ``key``, replacing any previous entry."""
        snapshot = copy.deepcopy(result)
        evicted = []

        with self._lock:
            now = self.clock()
            self._entries.pop(key, None)
            self._entries[key] = CacheEntry(result=snapshot, generated_at=now, expires_at=now + ttl)
            self._stats.stores += 1

            while len(self._entries) > self.max_entries:
                oldest, _ = self._entries.popitem(last=False)
                evicted.append(oldest)
                self._stats.evicted += 1
                self._record("cache_evictions_total", reason="capacity")

        for oldest in evicted:
            self.logger.debug("Evicted oldest cache entry", path=oldest.path)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: CacheKey) -> bool:
        with self._lock:
            return key in self._entries

    def stats(self) -> Dict[str, Any]:
        """Snapshot of cache counters and occupancy."""
        with self._lock:
            stats = asdict(self._stats)
            stats["size"] = len(self._entries)
        stats["max_entries"] = self.max_entries
        return stats

    def _record(self, metric_name: str, **labels) -> None:
        if self.metrics:
            self.metrics.increment_counter(metric_name, **labels)
