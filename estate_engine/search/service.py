from __future__ import annotations

import logging
import time

from ..catalog import Catalog
from .cache import QueryCache
from .fingerprint import fingerprint
from .models import SearchFilters, SearchResponse
from .telemetry import PerformanceRecorder

logger = logging.getLogger(__name__)


class SearchService:
    """Fingerprint -> query cache -> catalog pipeline for property searches."""

    def __init__(
        self,
        catalog: Catalog,
        cache: QueryCache,
        performance: PerformanceRecorder,
    ) -> None:
        self.catalog = catalog
        self.cache = cache
        self.performance = performance

    def search(self, filters: SearchFilters) -> SearchResponse:
        start_time = time.perf_counter()
        key = fingerprint(filters)

        cached = self.cache.get(key)
        if cached is not None:
            elapsed_ms = round((time.perf_counter() - start_time) * 1000, 2)
            self.performance.record_query_performance(key, elapsed_ms)
            logger.debug("Search cache hit for %s", key)
            return SearchResponse(
                properties=cached,
                total=len(cached),
                cached=True,
                fingerprint=key,
                search_time_ms=elapsed_ms,
            )

        # CatalogError propagates; nothing is cached for a failed query
        properties = self.catalog.find_candidate_properties(filters)
        self.cache.set(key, list(properties))

        elapsed_ms = round((time.perf_counter() - start_time) * 1000, 2)
        self.performance.record_query_performance(key, elapsed_ms)
        return SearchResponse(
            properties=properties,
            total=len(properties),
            cached=False,
            fingerprint=key,
            search_time_ms=elapsed_ms,
        )
