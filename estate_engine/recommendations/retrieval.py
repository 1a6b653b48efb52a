from __future__ import annotations

import logging
import time
from collections.abc import Callable

from ..catalog import Catalog
from ..catalog.config import DEFAULT_CATALOG_CONFIG
from ..catalog.models import PropertyCandidate
from .cache import RecommendationCache
from .models import (
    InteractionType,
    PersonalizedRecommendation,
    SimilarPropertiesMetadata,
    SimilarPropertiesResult,
    UserInteraction,
)
from .personalization import PersonalizationScorer, recommendation_reason
from .similarity import SimilarityEngine

logger = logging.getLogger(__name__)


class PropertyNotFoundError(LookupError):
    """The requested property id is not in the catalog."""


class SimilarPropertiesService:
    def __init__(
        self,
        catalog: Catalog,
        engine: SimilarityEngine,
        scorer: PersonalizationScorer,
        cache: RecommendationCache,
        candidate_multiplier: int = DEFAULT_CATALOG_CONFIG.candidate_multiplier,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.catalog = catalog
        self.engine = engine
        self.scorer = scorer
        self.cache = cache
        self.candidate_multiplier = candidate_multiplier
        self._clock = clock

    def get_similar_properties(
        self,
        property_id: str,
        user_id: str | None = None,
        limit: int = 6,
    ) -> SimilarPropertiesResult | None:
        """Ranked similar properties for *property_id*, or None if it does not exist."""
        start_time = time.perf_counter()

        # --- Cache check ---
        cached = self.cache.get(property_id, user_id, limit)
        if cached is not None:
            elapsed_ms = round((time.perf_counter() - start_time) * 1000, 2)
            metadata = cached.metadata.model_copy(update={
                "processing_time_ms": elapsed_ms,
                "cache_stats": self.cache.stats(),
            })
            return cached.model_copy(update={"cache_hit": True, "metadata": metadata})

        # Invalidations after this point make the computed list stale
        generation = self.cache.generation

        # --- Candidates (CatalogError propagates, nothing is cached) ---
        target = self.catalog.get_property(property_id)
        if target is None:
            return None
        candidates = self.catalog.find_similar_candidates(
            target, pool_size=limit * self.candidate_multiplier,
        )

        # --- Scoring ---
        ranking = self.engine.find_similar(target, candidates, limit)
        scores, algorithm = self.scorer.personalize(ranking, user_id)

        # --- Assemble response ---
        by_id = {candidate.id: candidate for candidate, _ in ranking}
        scores = self._explain(target, scores, by_id)
        elapsed_ms = round((time.perf_counter() - start_time) * 1000, 2)
        result = SimilarPropertiesResult(
            properties=[by_id[s.property_id] for s in scores],
            personalized_scores=scores,
            cache_hit=False,
            algorithm=algorithm,
            metadata=SimilarPropertiesMetadata(
                processing_time_ms=elapsed_ms,
                total_candidates=len(candidates),
                cache_stats=self.cache.stats(),
            ),
        )

        self.cache.set(property_id, user_id, limit, result, generation=generation)
        return result

    def _explain(
        self,
        target: PropertyCandidate,
        scores: list[PersonalizedRecommendation],
        by_id: dict[str, PropertyCandidate],
    ) -> list[PersonalizedRecommendation]:
        """Attach the per-component breakdown and a short reason to each score."""
        breakdown = self.engine.explain(target, [by_id[s.property_id] for s in scores])
        explained = []
        for rec, components in zip(scores, breakdown):
            factors = {name: round(value, 4) for name, value in components.items()}
            explained.append(rec.model_copy(update={
                "factors": factors,
                "reason": recommendation_reason(
                    factors, rec.base_similarity, rec.personalization_boost,
                ),
            }))
        return explained

    def record_interaction(
        self,
        user_id: str | None,
        property_id: str,
        interaction_type: InteractionType,
    ) -> UserInteraction | None:
        """Append an interaction and invalidate the user's cached lists.

        Returns None without doing anything when *user_id* is absent.
        Raises PropertyNotFoundError for an unknown property.
        """
        if not user_id:
            return None

        profile = self.catalog.get_property(property_id)
        if profile is None:
            raise PropertyNotFoundError(property_id)

        interaction = UserInteraction(
            user_id=user_id,
            property_id=profile.id,
            type=interaction_type,
            timestamp=self._clock(),
            profile=profile,
        )
        self.scorer.log.record(interaction)
        self.cache.invalidate(user_id)
        logger.info(
            "Recorded %s interaction for user %s on property %s",
            interaction_type.value, user_id, profile.id,
        )
        return interaction
