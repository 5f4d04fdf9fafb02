"""In-memory TTL cache for aggregated deal data.

Entries expire lazily on read and are also swept periodically by the
maintenance scheduler, so keys that are written but never read again do
not pile up. All operations take a lock, which keeps concurrent
aggregator calls and the sweep job consistent.
"""

import re
import threading
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, Optional, Pattern, Union

import structlog

from dealradar.marketplace.types import CacheEntry


logger = structlog.get_logger(__name__)


class DealCache:
    """Time-boxed key/value store with per-entry hit counters."""

    def __init__(
        self,
        default_ttl: int = 300,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """Initialize cache.

        Args:
            default_ttl: TTL in seconds used when set() gets none
            clock: Wall clock, injectable for tests
        """
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: Dict[str, CacheEntry[Any]] = {}
        self._lock = threading.RLock()
        self.logger = logger.bind(service="deal_cache")

    def get(self, key: str) -> Optional[Any]:
        """Get a value, or None if missing or expired (expired entries are evicted)."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.logger.debug("cache_miss", key=key)
                return None

            if self._clock() > entry.expires_at:
                del self._entries[key]
                self.logger.debug("cache_expired", key=key)
                return None

            entry.hits += 1
            self.logger.debug("cache_hit", key=key, hits=entry.hits)
            return entry.data

    def set(self, key: str, data: Any, ttl: Optional[int] = None) -> None:
        """Store a value.

        Args:
            key: Cache key
            data: Value to cache (stored as-is, not copied)
            ttl: Time-to-live in seconds (default: ``default_ttl``)
        """
        ttl = self.default_ttl if ttl is None else ttl
        now = self._clock()
        with self._lock:
            self._entries[key] = CacheEntry(
                data=data,
                cached_at=now,
                expires_at=now + timedelta(seconds=ttl),
                hits=0,
            )
        self.logger.debug("cache_set", key=key, ttl=ttl)

    def has(self, key: str) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            if self._clock() > entry.expires_at:
                del self._entries[key]
                return False
            return True

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        self.logger.info("cache_cleared", count=count)

    def invalidate(self, pattern: Union[str, Pattern[str]]) -> int:
        """Delete every key matching a regex (searched anywhere in the key).

        Returns:
            Number of entries removed
        """
        regex = re.compile(pattern) if isinstance(pattern, str) else pattern
        with self._lock:
            doomed = [key for key in self._entries if regex.search(key)]
            for key in doomed:
                del self._entries[key]

        self.logger.info("cache_invalidated", pattern=regex.pattern, count=len(doomed))
        return len(doomed)

    def cleanup(self) -> int:
        """Sweep out expired entries. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if now > entry.expires_at]
            for key in expired:
                del self._entries[key]

        if expired:
            self.logger.debug("cache_swept", count=len(expired))
        return len(expired)

    def get_stats(self) -> Dict[str, Any]:
        """Size, keys, total hits and oldest entry timestamp, for monitoring."""
        with self._lock:
            entries = list(self._entries.items())

        oldest = min((entry.cached_at for _, entry in entries), default=None)
        return {
            "size": len(entries),
            "keys": [key for key, _ in entries],
            "total_hits": sum(entry.hits for _, entry in entries),
            "oldest_entry": oldest,
        }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def cache_key_for_deals(sources: Iterable[str], category: Optional[str] = None, city: Optional[str] = None) -> str:
    return f"deals:{'-'.join(sources)}:{category or 'all'}:{city or 'all'}"


def cache_key_for_search(query: str, sources: Iterable[str]) -> str:
    return f"search:{query}:{'-'.join(sources)}"


def cache_key_for_hot_deals() -> str:
    return "hot-deals"
