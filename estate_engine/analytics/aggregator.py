from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone

from ..search.cache import QueryCache
from ..search.config import DEFAULT_TELEMETRY_CONFIG, TelemetryConfig
from ..search.models import PopularSearch, RecentSearch
from ..search.telemetry import PerformanceRecorder, PopularityTracker
from .models import AnalyticsSnapshot, PerformanceMetrics, SearchTrends, SlowQuery


def calculate_search_trends(
    popular: Sequence[PopularSearch],
    recent: Sequence[RecentSearch],
    limit: int = 5,
) -> SearchTrends:
    """Set-difference trends between the recent and popular lists.

    ``new_trends`` are recent fingerprints missing from the popular list,
    ``trending_down`` the reverse. Both keep scan order and are capped at
    *limit*. ``trending_up`` is reserved and always empty.
    """
    popular_keys = {p.fingerprint for p in popular}
    recent_keys = {r.fingerprint for r in recent}

    new_trends = [r.fingerprint for r in recent if r.fingerprint not in popular_keys]
    trending_down = [p.fingerprint for p in popular if p.fingerprint not in recent_keys]

    return SearchTrends(
        trending_up=[],
        trending_down=trending_down[:limit],
        new_trends=new_trends[:limit],
    )


class AnalyticsReporter:
    def __init__(
        self,
        cache: QueryCache,
        popularity: PopularityTracker,
        performance: PerformanceRecorder,
        config: TelemetryConfig = DEFAULT_TELEMETRY_CONFIG,
    ) -> None:
        self.cache = cache
        self.popularity = popularity
        self.performance = performance
        self.config = config

    def snapshot(self) -> AnalyticsSnapshot:
        avg_time = self.performance.average_response_time()
        cache_stats = self.cache.stats(average_response_time_ms=avg_time)

        popular = self.popularity.get_popular_searches(self.config.popular_limit)
        recent = self.popularity.get_recent_searches(self.config.recent_limit)

        performance_metrics = PerformanceMetrics(
            average_response_time_ms=avg_time,
            hit_rate=cache_stats.hit_rate,
            total_queries=cache_stats.total_queries,
            cache_size=cache_stats.size,
            recorded_queries=self.performance.total_recorded,
            slowest_queries=[
                SlowQuery(**item) for item in self.performance.slowest_queries()
            ],
        )

        return AnalyticsSnapshot(
            cache_stats=cache_stats,
            popular_searches=popular,
            recent_searches=recent,
            search_trends=calculate_search_trends(
                popular, recent, limit=self.config.trend_limit,
            ),
            performance_metrics=performance_metrics,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )
