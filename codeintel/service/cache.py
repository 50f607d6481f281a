"""In-memory TTL cache for computed query artifacts.

Read-mostly after startup: lookups and invalidations may come from any
request thread, so every operation takes the cache lock.
"""

import threading
import time
from dataclasses import dataclass
from typing import Any

from ..config import CacheConfig
from ..utils.logging import get_logger

logger = get_logger("cache")


@dataclass
class CacheEntry:
    """Entry in the artifact cache."""

    key: str
    value: Any
    timestamp: float


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    evictions: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "hit_rate": round(self.hit_rate, 4),
        }


class ArtifactCache:
    """TTL cache with hit/miss statistics and a bounded number of entries.

    When full, the oldest entry is evicted first.
    """

    def __init__(self, config: CacheConfig | None = None, clock=time.monotonic):
        self.config = config or CacheConfig()
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._stats = CacheStats()
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    def _is_expired(self, entry: CacheEntry) -> bool:
        return (self._clock() - entry.timestamp) > self.config.ttl_seconds

    def get(self, key: str) -> Any | None:
        if not self.enabled:
            return None
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._stats.misses += 1
                return None
            if self._is_expired(entry):
                del self._entries[key]
                self._stats.misses += 1
                logger.debug(f"Cache miss for {key}: expired")
                return None
            self._stats.hits += 1
            return entry.value

    def put(self, key: str, value: Any) -> None:
        if not self.enabled:
            return
        with self._lock:
            self._entries.pop(key, None)
            while len(self._entries) >= self.config.max_entries:
                oldest = next(iter(self._entries))
                del self._entries[oldest]
                self._stats.evictions += 1
            self._entries[key] = CacheEntry(key, value, self._clock())

    def remove(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def invalidate_prefix(self, prefix: str) -> int:
        """Drop every entry whose key starts with ``prefix``."""
        with self._lock:
            keys = [key for key in self._entries if key.startswith(prefix)]
            for key in keys:
                del self._entries[key]
        if keys:
            logger.debug(f"Invalidated {len(keys)} cache entries for {prefix}")
        return len(keys)

    def cleanup_expired(self) -> int:
        with self._lock:
            expired = [key for key, entry in self._entries.items() if self._is_expired(entry)]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._stats = CacheStats()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_stats(self) -> dict[str, Any]:
        with self._lock:
            stats = self._stats.to_dict()
            stats["entries"] = len(self._entries)
            stats["max_entries"] = self.config.max_entries
            stats["ttl_seconds"] = self.config.ttl_seconds
        return stats
