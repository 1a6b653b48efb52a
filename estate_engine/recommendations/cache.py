from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

from ..search.cache import LRUCache
from ..search.models import CacheStats
from .config import DEFAULT_RECOMMENDATION_CACHE_CONFIG, RecommendationCacheConfig
from .models import SimilarPropertiesResult

logger = logging.getLogger(__name__)

# Key slot used for requests without a user id; never a valid user id
ANONYMOUS = ""

CacheKey = tuple[str, str, int]


class RecommendationCache:
    """Final similar-property lists keyed by (property, user or anonymous, limit).

    Every invalidation advances a generation counter. A caller captures the
    generation before computing a list and passes it back to ``set``; if an
    invalidation happened in between, the now-stale list is not stored.
    """

    def __init__(
        self,
        config: RecommendationCacheConfig = DEFAULT_RECOMMENDATION_CACHE_CONFIG,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._cache: LRUCache[CacheKey, SimilarPropertiesResult] = LRUCache(
            max_size=config.max_size,
            default_ttl=config.default_ttl,
            clock=clock,
            name="recommendations",
        )
        self._generation = 0
        self._lock = threading.Lock()

    @staticmethod
    def _key(property_id: str, user_id: str | None, limit: int) -> CacheKey:
        return (str(property_id), user_id or ANONYMOUS, int(limit))

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def get(
        self, property_id: str, user_id: str | None, limit: int,
    ) -> SimilarPropertiesResult | None:
        return self._cache.get(self._key(property_id, user_id, limit))

    def set(
        self,
        property_id: str,
        user_id: str | None,
        limit: int,
        result: SimilarPropertiesResult,
        generation: int | None = None,
    ) -> bool:
        """Store *result*; returns False when it was computed before an invalidation."""
        with self._lock:
            if generation is not None and generation != self._generation:
                logger.debug(
                    "Skipping stale recommendations for %s/%s", property_id, user_id,
                )
                return False
            self._cache.set(self._key(property_id, user_id, limit), result)
            return True

    def _invalidate_where(
        self, predicate: Callable[[CacheKey, SimilarPropertiesResult], bool],
    ) -> int:
        with self._lock:
            self._generation += 1
            return self._cache.remove_matching(predicate)

    def invalidate(self, user_id: str | None) -> int:
        """Drop every cached list for *user_id*."""
        if not user_id:
            return 0
        removed = self._invalidate_where(lambda key, _result: key[1] == user_id)
        if removed:
            logger.info("Invalidated %d recommendation entries for user %s", removed, user_id)
        return removed

    def invalidate_property(self, property_id: str) -> int:
        """Drop every cached list that targets or contains *property_id*, for all users."""
        property_id = str(property_id)

        def involves(key: CacheKey, result: SimilarPropertiesResult) -> bool:
            return key[0] == property_id or any(
                p.id == property_id for p in result.properties
            )

        removed = self._invalidate_where(involves)
        if removed:
            logger.info(
                "Invalidated %d recommendation entries for property %s", removed, property_id,
            )
        return removed

    def evict_expired(self) -> int:
        return self._cache.evict_expired()

    def stats(self) -> CacheStats:
        return self._cache.stats()

    def clear(self) -> None:
        with self._lock:
            self._generation += 1
            self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)
