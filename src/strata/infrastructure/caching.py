"""
Process-local expiring cache.

Entries carry an absolute expiry instant and are checked at read time: an
expired entry is never returned and is evicted by whichever read or scan
observes it. There is no background sweep; ``purge_expired`` exists for
callers that want to reclaim memory explicitly.
"""

import threading
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, TypeVar, Union, Generic

from strata.infrastructure.observability.factory import get_infrastructure_logger


T = TypeVar('T')

TTL = Union[int, float, timedelta]

DEFAULT_TTL = timedelta(minutes=30)

_MISSING = object()


def _ttl_seconds(ttl: TTL) -> float:
    if isinstance(ttl, timedelta):
        return ttl.total_seconds()
    return float(ttl)


@dataclass
class CacheEntry(Generic[T]):
    """Cache entry with an absolute expiry on the cache's clock."""
    key: str
    value: T
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class ExpiringCache:
    """
    Thread-safe key-value store with per-entry time-to-live.

    Args:
        default_ttl: TTL applied when ``set`` is called without one
            (seconds or ``timedelta``; 30 minutes by default)
        clock: Monotonic time source in seconds, injectable for tests
    """

    def __init__(self, default_ttl: TTL = DEFAULT_TTL, clock: Optional[Callable[[], float]] = None):
        self.default_ttl = _ttl_seconds(default_ttl)
        self._clock = clock or time.monotonic
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self._logger = get_infrastructure_logger("cache")
        self._stats = {
            "hits": 0,
            "misses": 0,
            "evictions": 0,
            "sets": 0
        }

    def set(self, key: str, value: Any, ttl: Optional[TTL] = None) -> None:
        """Store ``value`` under ``key``, replacing any existing entry."""
        seconds = self.default_ttl if ttl is None else _ttl_seconds(ttl)
        with self._lock:
            self._entries[key] = CacheEntry(key=key, value=value, expires_at=self._clock() + seconds)
            self._stats["sets"] += 1
        self._logger.debug("Cache set", extra={"key": key, "ttl_seconds": seconds})

    def try_get(self, key: str) -> Tuple[Any, bool]:
        """Return ``(value, True)`` for a live entry, ``(None, False)`` otherwise."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._stats["misses"] += 1
                return None, False

            if entry.is_expired(self._clock()):
                del self._entries[key]
                self._stats["misses"] += 1
                self._stats["evictions"] += 1
                self._logger.debug("Cache entry expired", extra={"key": key})
                return None, False

            self._stats["hits"] += 1
            return entry.value, True

    def get(self, key: str, default: Any = None) -> Any:
        value, found = self.try_get(key)
        return value if found else default

    def get_or_set(self, key: str, factory: Callable[[], T], ttl: Optional[TTL] = None) -> T:
        """
        Return the cached value for ``key`` or compute, store and return it.

        The factory runs under the cache lock, so concurrent callers for the
        same key compute the value once.
        """
        with self._lock:
            value, found = self.try_get(key)
            if found:
                return value
            value = factory()
            self.set(key, value, ttl)
            return value

    def remove(self, key: str) -> None:
        with self._lock:
            removed = self._entries.pop(key, _MISSING) is not _MISSING
        if removed:
            self._logger.debug("Cache entry removed", extra={"key": key})

    def clear(self) -> None:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        self._logger.info("Cache cleared", extra={"cleared_count": count})

    def purge_expired(self) -> int:
        """Evict every expired entry now; returns how many were removed."""
        with self._lock:
            return len(self._evict_expired())

    def keys(self) -> List[str]:
        with self._lock:
            self._evict_expired()
            return list(self._entries.keys())

    def items(self) -> List[Tuple[str, Any]]:
        with self._lock:
            self._evict_expired()
            return [(key, entry.value) for key, entry in self._entries.items()]

    def _evict_expired(self) -> List[str]:
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        if expired:
            self._stats["evictions"] += len(expired)
            self._logger.debug("Evicted expired entries", extra={
                "evicted_count": len(expired),
                "current_size": len(self._entries)
            })
        return expired

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            if entry.is_expired(self._clock()):
                del self._entries[key]
                self._stats["evictions"] += 1
                return False
            return True

    def __len__(self) -> int:
        with self._lock:
            self._evict_expired()
            return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def get_stats(self) -> Dict[str, Any]:
        """Hit/miss counters and current size (expired-but-unread entries included)."""
        with self._lock:
            total_requests = self._stats["hits"] + self._stats["misses"]
            hit_rate = self._stats["hits"] / total_requests if total_requests > 0 else 0.0
            return {
                **self._stats,
                "current_size": len(self._entries),
                "hit_rate": hit_rate
            }
