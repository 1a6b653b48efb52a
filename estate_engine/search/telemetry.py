from __future__ import annotations

import json
import threading
from collections import OrderedDict, deque

from .cache import CacheEntry, LRUCache
from .config import DEFAULT_TELEMETRY_CONFIG, TelemetryConfig
from .models import PopularSearch, RecentSearch


def _decode(fingerprint: str) -> dict:
    try:
        decoded = json.loads(fingerprint)
    except ValueError:
        return {}
    return decoded if isinstance(decoded, dict) else {}


class PopularityTracker:
    """Read-only popularity view over a query cache's entries."""

    def __init__(self, cache: LRUCache) -> None:
        self._cache = cache

    def _entries(self) -> list[CacheEntry]:
        # snapshot() hands out copies ordered most recent first
        return self._cache.snapshot()

    def get_popular_searches(self, n: int = 10) -> list[PopularSearch]:
        if n <= 0:
            return []
        entries = sorted(
            self._entries(),
            key=lambda e: (e.access_count, e.last_accessed_at),
            reverse=True,
        )
        return [
            PopularSearch(
                fingerprint=e.key,
                filters=_decode(e.key),
                access_count=e.access_count,
                last_accessed_at=e.last_accessed_at,
            )
            for e in entries[:n]
        ]

    def get_recent_searches(self, n: int = 10) -> list[RecentSearch]:
        if n <= 0:
            return []
        entries = sorted(self._entries(), key=lambda e: e.last_accessed_at, reverse=True)
        return [
            RecentSearch(
                fingerprint=e.key,
                filters=_decode(e.key),
                last_accessed_at=e.last_accessed_at,
                created_at=e.created_at,
            )
            for e in entries[:n]
        ]


class PerformanceRecorder:
    """Rolling per-query latency windows."""

    def __init__(self, config: TelemetryConfig = DEFAULT_TELEMETRY_CONFIG) -> None:
        if config.window_size < 1:
            raise ValueError("window_size must be at least 1")
        if config.max_tracked_queries < 1:
            raise ValueError("max_tracked_queries must be at least 1")
        self._window_size = config.window_size
        self._max_queries = config.max_tracked_queries
        # Least recently recorded query first
        self._windows: OrderedDict[str, deque[float]] = OrderedDict()
        self._recorded = 0
        self._lock = threading.Lock()

    def record_query_performance(self, query: str, latency_ms: float) -> None:
        if latency_ms < 0:
            raise ValueError("latency_ms must be non-negative")
        with self._lock:
            window = self._windows.get(query)
            if window is None:
                window = self._windows[query] = deque(maxlen=self._window_size)
                if len(self._windows) > self._max_queries:
                    self._windows.popitem(last=False)
            else:
                self._windows.move_to_end(query)
            window.append(float(latency_ms))
            self._recorded += 1

    @property
    def total_recorded(self) -> int:
        with self._lock:
            return self._recorded

    def average_response_time(self, query: str | None = None) -> float:
        """Mean latency of the current window(s); 0.0 when nothing is recorded."""
        with self._lock:
            if query is not None:
                samples = list(self._windows.get(query, ()))
            else:
                samples = [s for w in self._windows.values() for s in w]
        return round(sum(samples) / len(samples), 2) if samples else 0.0

    def slowest_queries(self, n: int = 5) -> list[dict[str, float | str]]:
        with self._lock:
            averages = [
                (q, sum(w) / len(w)) for q, w in self._windows.items() if w
            ]
        averages.sort(key=lambda item: (-item[1], item[0]))
        return [
            {"query": q, "average_response_time_ms": round(avg, 2)}
            for q, avg in averages[:n]
        ]

    def clear(self) -> None:
        with self._lock:
            self._windows.clear()
            self._recorded = 0
