from __future__ import annotations

from pydantic import Field

from ..schemas import CamelModel
from ..search.models import CacheStats, PopularSearch, RecentSearch


class SearchTrends(CamelModel):
    trending_up: list[str] = Field(default_factory=list)
    trending_down: list[str] = Field(default_factory=list)
    new_trends: list[str] = Field(default_factory=list)


class SlowQuery(CamelModel):
    query: str
    average_response_time_ms: float


class PerformanceMetrics(CamelModel):
    average_response_time_ms: float
    hit_rate: float
    total_queries: int
    cache_size: int
    recorded_queries: int
    slowest_queries: list[SlowQuery] = Field(default_factory=list)


class AnalyticsSnapshot(CamelModel):
    cache_stats: CacheStats
    popular_searches: list[PopularSearch]
    recent_searches: list[RecentSearch]
    search_trends: SearchTrends
    performance_metrics: PerformanceMetrics
    timestamp: str
