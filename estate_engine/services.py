"""Service objects shared by the request handlers, built once per process."""
from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from .analytics.aggregator import AnalyticsReporter
from .catalog import Catalog, PropertyCatalog
from .catalog.config import DEFAULT_CATALOG_CONFIG
from .recommendations.cache import RecommendationCache
from .recommendations.config import (
    DEFAULT_PERSONALIZATION_CONFIG,
    DEFAULT_RECOMMENDATION_CACHE_CONFIG,
    DEFAULT_SIMILARITY_WEIGHTS,
    PersonalizationConfig,
    RecommendationCacheConfig,
    SimilarityWeights,
)
from .recommendations.personalization import InteractionLog, PersonalizationScorer
from .recommendations.retrieval import SimilarPropertiesService
from .recommendations.similarity import SimilarityEngine
from .search.cache import QueryCache
from .search.config import (
    DEFAULT_QUERY_CACHE_CONFIG,
    DEFAULT_TELEMETRY_CONFIG,
    QueryCacheConfig,
    TelemetryConfig,
)
from .search.service import SearchService
from .search.telemetry import PerformanceRecorder, PopularityTracker

logger = logging.getLogger(__name__)


class EvictionTimer:
    """Daemon thread that periodically sweeps expired cache entries."""

    def __init__(self, interval: float, sweeps: Sequence[Callable[[], int]]) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = interval
        self._sweeps = list(sweeps)
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="cache-eviction", daemon=True,
        )
        self._thread.start()

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            for sweep in self._sweeps:
                sweep()

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None


@dataclass
class EngineServices:
    catalog: Catalog
    query_cache: QueryCache
    performance: PerformanceRecorder
    popularity: PopularityTracker
    search: SearchService
    recommendation_cache: RecommendationCache
    recommendations: SimilarPropertiesService
    analytics: AnalyticsReporter
    eviction_timer: EvictionTimer = field(repr=False)

    def start(self) -> None:
        self.eviction_timer.start()
        logger.info(
            "Engine services started (eviction every %.0fs)", self.eviction_timer.interval,
        )

    def shutdown(self) -> None:
        self.eviction_timer.stop()
        logger.info("Engine services stopped")

    def clear_caches(self) -> None:
        self.query_cache.clear()
        self.recommendation_cache.clear()
        self.performance.clear()

    def invalidate_property(self, property_id: str) -> dict[str, int]:
        """Evict cached searches and similar-property lists that involve *property_id*."""
        return {
            "search": self.query_cache.invalidate_property(property_id),
            "recommendations": self.recommendation_cache.invalidate_property(property_id),
        }


def build_services(
    catalog: Catalog | None = None,
    query_cache_config: QueryCacheConfig = DEFAULT_QUERY_CACHE_CONFIG,
    telemetry_config: TelemetryConfig = DEFAULT_TELEMETRY_CONFIG,
    recommendation_cache_config: RecommendationCacheConfig = DEFAULT_RECOMMENDATION_CACHE_CONFIG,
    similarity_weights: SimilarityWeights = DEFAULT_SIMILARITY_WEIGHTS,
    personalization_config: PersonalizationConfig = DEFAULT_PERSONALIZATION_CONFIG,
    clock: Callable[[], float] = time.time,
) -> EngineServices:
    """Wire every engine component together. Nothing is started yet."""
    catalog = catalog if catalog is not None else PropertyCatalog()

    query_cache = QueryCache.from_config(query_cache_config, clock=clock)
    performance = PerformanceRecorder(telemetry_config)
    popularity = PopularityTracker(query_cache)

    engine = SimilarityEngine(similarity_weights)
    scorer = PersonalizationScorer(
        engine,
        config=personalization_config,
        log=InteractionLog(clock=clock),
        clock=clock,
    )
    recommendation_cache = RecommendationCache(recommendation_cache_config, clock=clock)

    return EngineServices(
        catalog=catalog,
        query_cache=query_cache,
        performance=performance,
        popularity=popularity,
        search=SearchService(catalog, query_cache, performance),
        recommendation_cache=recommendation_cache,
        recommendations=SimilarPropertiesService(
            catalog,
            engine,
            scorer,
            recommendation_cache,
            candidate_multiplier=DEFAULT_CATALOG_CONFIG.candidate_multiplier,
            clock=clock,
        ),
        analytics=AnalyticsReporter(query_cache, popularity, performance, telemetry_config),
        eviction_timer=EvictionTimer(
            query_cache_config.cleanup_interval,
            [query_cache.evict_expired, recommendation_cache.evict_expired],
        ),
    )
