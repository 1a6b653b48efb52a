from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable, Hashable
from dataclasses import dataclass, replace
from typing import Any, Generic, TypeVar

from .config import DEFAULT_QUERY_CACHE_CONFIG, QueryCacheConfig
from .models import CacheStats

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


@dataclass
class CacheEntry(Generic[K, V]):
    key: K
    value: V
    created_at: float
    last_accessed_at: float
    access_count: int
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class LRUCache(Generic[K, V]):
    """
    Bounded in-memory key/value store with per-entry TTL and LRU eviction.

    The two eviction triggers are independent: an entry disappears when its
    TTL elapses or when it is the least recently used entry of a full cache,
    whichever happens first. Every operation holds the instance lock, so a
    background sweeper and request handlers never interleave mutations.

    The cache is best-effort. An internal fault is logged, the store is
    dropped, and the call reports a miss instead of raising.
    """

    def __init__(
        self,
        max_size: int = 500,
        default_ttl: float = 300.0,
        clock: Callable[[], float] = time.time,
        name: str = "cache",
    ) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")
        self.max_size = max_size
        self.default_ttl = default_ttl
        self.name = name
        self._clock = clock
        self._entries: OrderedDict[K, CacheEntry[K, V]] = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _degrade(self, operation: str) -> None:
        logger.warning(
            "%s cache fault during %s, dropping %d entries",
            self.name, operation, len(self._entries), exc_info=True,
        )
        self._entries.clear()

    def get(self, key: K) -> V | None:
        with self._lock:
            try:
                entry = self._entries.get(key)
                if entry is None:
                    self._misses += 1
                    return None
                now = self._clock()
                if entry.is_expired(now):
                    del self._entries[key]
                    self._misses += 1
                    return None
                entry.access_count += 1
                entry.last_accessed_at = now
                self._entries.move_to_end(key)
                self._hits += 1
                return entry.value
            except Exception:
                self._degrade("get")
                return None

    def set(self, key: K, value: V, ttl: float | None = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        if ttl <= 0:
            return
        with self._lock:
            try:
                now = self._clock()
                entry = CacheEntry(
                    key=key,
                    value=value,
                    created_at=now,
                    last_accessed_at=now,
                    access_count=0,
                    expires_at=now + ttl,
                )
                if key in self._entries:
                    del self._entries[key]
                elif len(self._entries) >= self.max_size:
                    evicted, _ = self._entries.popitem(last=False)
                    logger.debug("%s cache full, evicted %r", self.name, evicted)
                self._entries[key] = entry
            except Exception:
                self._degrade("set")

    def delete(self, key: K) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def remove_where(self, predicate: Callable[[K], bool]) -> int:
        """Atomically drop every entry whose key satisfies *predicate*."""
        return self.remove_matching(lambda key, _value: predicate(key))

    def remove_matching(self, predicate: Callable[[K, V], bool]) -> int:
        """Atomically drop every entry for which predicate(key, value) holds."""
        with self._lock:
            try:
                doomed = [k for k, e in self._entries.items() if predicate(k, e.value)]
                for k in doomed:
                    del self._entries[k]
                return len(doomed)
            except Exception:
                self._degrade("remove_matching")
                return 0

    def evict_expired(self) -> int:
        with self._lock:
            try:
                now = self._clock()
                expired = [k for k, e in self._entries.items() if e.is_expired(now)]
                for k in expired:
                    del self._entries[k]
            except Exception:
                self._degrade("evict_expired")
                return 0
        if expired:
            logger.info("%s cache evicted %d expired entries", self.name, len(expired))
        return len(expired)

    def snapshot(self) -> list[CacheEntry[K, V]]:
        """Copies of the live entries, most recently accessed first."""
        with self._lock:
            now = self._clock()
            return [
                replace(e) for e in reversed(self._entries.values())
                if not e.is_expired(now)
            ]

    def stats(self, average_response_time_ms: float = 0.0) -> CacheStats:
        with self._lock:
            total = self._hits + self._misses
            return CacheStats(
                size=len(self._entries),
                total_queries=total,
                hits=self._hits,
                misses=self._misses,
                hit_rate=round(self._hits / total, 4) if total > 0 else 0.0,
                average_response_time_ms=average_response_time_ms,
            )

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0


class QueryCache(LRUCache[str, Any]):
    """Fingerprint -> search result cache."""

    @classmethod
    def from_config(
        cls,
        config: QueryCacheConfig = DEFAULT_QUERY_CACHE_CONFIG,
        clock: Callable[[], float] = time.time,
    ) -> "QueryCache":
        return cls(
            max_size=config.max_size,
            default_ttl=config.default_ttl,
            clock=clock,
            name="search",
        )

    def invalidate_property(self, property_id: str) -> int:
        """Drop every cached search whose results include *property_id*."""
        property_id = str(property_id)
        removed = self.remove_matching(
            lambda _key, value: any(getattr(p, "id", None) == property_id for p in value or ()),
        )
        if removed:
            logger.info("Invalidated %d search entries for property %s", removed, property_id)
        return removed
