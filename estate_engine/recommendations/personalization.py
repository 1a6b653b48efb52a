from __future__ import annotations

import logging
import math
import threading
import time
from collections import OrderedDict
from collections.abc import Callable, Iterable, Sequence

import numpy as np

from ..catalog.models import PropertyCandidate
from .config import (
    DEFAULT_INTERACTION_RETENTION,
    DEFAULT_PERSONALIZATION_CONFIG,
    InteractionRetention,
    PersonalizationConfig,
)
from .models import Algorithm, PersonalizedRecommendation, UserInteraction
from .similarity import SimilarityEngine

logger = logging.getLogger(__name__)

_SECONDS_PER_DAY = 86400.0

_FACTOR_PHRASES = {
    "location": "Same location",
    "bhk": "Same bedroom count",
    "price": "Comparable price",
    "area": "Comparable size",
    "category": "Shared amenities",
}


def recommendation_reason(
    factors: dict[str, float], base_similarity: float, boost: float,
) -> str:
    """Short human-readable explanation of a recommendation score."""
    reasons = []
    if base_similarity > 0.7:
        reasons.append("Very similar to this property")
    elif base_similarity > 0.5:
        reasons.append("Similar to this property")

    if factors:
        best = max(factors, key=lambda name: (factors[name], name))
        if factors[best] >= 0.9:
            reasons.append(_FACTOR_PHRASES.get(best, best))

    if boost > 0.7:
        reasons.append("Based on your activity")
    elif boost > 0.5:
        reasons.append("Similar to your previous choices")

    return ", ".join(reasons) if reasons else "Recommended for you"


class InteractionLog:
    """Append-only per-user interaction history, trimmed on every append.

    At most ``max_users`` histories are kept; the user who recorded least
    recently is forgotten first.
    """

    def __init__(
        self,
        retention: InteractionRetention = DEFAULT_INTERACTION_RETENTION,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.retention = retention
        self._clock = clock
        self._by_user: OrderedDict[str, list[UserInteraction]] = OrderedDict()
        self._lock = threading.Lock()

    def record(self, interaction: UserInteraction) -> None:
        cutoff = self._clock() - self.retention.max_age_days * _SECONDS_PER_DAY
        with self._lock:
            history = self._by_user.setdefault(interaction.user_id, [])
            history.append(interaction)
            kept = [i for i in history if i.timestamp >= cutoff]
            self._by_user[interaction.user_id] = kept[-self.retention.max_per_user:]
            self._by_user.move_to_end(interaction.user_id)
            while len(self._by_user) > self.retention.max_users:
                self._by_user.popitem(last=False)

    def for_user(self, user_id: str) -> list[UserInteraction]:
        with self._lock:
            return list(self._by_user.get(user_id, ()))

    def clear(self, user_id: str | None = None) -> None:
        with self._lock:
            if user_id is None:
                self._by_user.clear()
            else:
                self._by_user.pop(user_id, None)


class PersonalizationScorer:
    """
    Re-weights a content-similarity ranking with a user's interaction history.

    Every interaction contributes an affinity profile (the interacted
    property's features) weighted by interaction type and recency decay.
    Each candidate's boost is the weighted mean of its similarity to those
    profiles; the final score blends base similarity and boost with ``blend``.
    """

    def __init__(
        self,
        engine: SimilarityEngine,
        config: PersonalizationConfig = DEFAULT_PERSONALIZATION_CONFIG,
        log: InteractionLog | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.engine = engine
        self.config = config
        self.log = log or InteractionLog(clock=clock)
        self._clock = clock

    def interaction_weight(self, interaction: UserInteraction, now: float) -> float:
        type_weight = self.config.type_weights.get(interaction.type.value, 0.0)
        age_days = max(0.0, now - interaction.timestamp) / _SECONDS_PER_DAY
        return type_weight * math.exp(-age_days / self.config.half_life_days)

    def _profiles(
        self, user_id: str, interactions: Iterable[UserInteraction], now: float,
    ) -> list[tuple[PropertyCandidate, float]]:
        profiles = []
        for interaction in interactions:
            if interaction.user_id != user_id or interaction.profile is None:
                continue
            weight = self.interaction_weight(interaction, now)
            if weight > 0:
                profiles.append((interaction.profile, weight))
        return profiles

    def personalize(
        self,
        base_ranking: Sequence[tuple[PropertyCandidate, float]],
        user_id: str | None,
        interactions: Iterable[UserInteraction] | None = None,
        now: float | None = None,
    ) -> tuple[list[PersonalizedRecommendation], Algorithm]:
        if not user_id:
            return [
                PersonalizedRecommendation(
                    property_id=candidate.id,
                    score=min(max(score, 0.0), 1.0),
                    base_similarity=score,
                    personalization_boost=0.0,
                )
                for candidate, score in base_ranking
            ], Algorithm.content

        now = self._clock() if now is None else now
        if interactions is None:
            interactions = self.log.for_user(user_id)

        candidates = [candidate for candidate, _ in base_ranking]
        base = np.array([score for _, score in base_ranking], dtype=float)
        profiles = self._profiles(user_id, interactions, now)

        if profiles and candidates:
            weights = np.array([w for _, w in profiles])
            affinity = np.vstack([
                self.engine.score_against(profile, candidates) for profile, _ in profiles
            ])
            boost = weights @ affinity / weights.sum()
            blend = self.config.blend
            final = np.clip(base * (1.0 - blend) + boost * blend, 0.0, 1.0)
        else:
            # Nothing to learn from yet: keep the content ranking
            boost = np.zeros(len(candidates))
            final = np.clip(base, 0.0, 1.0)

        recommendations = [
            PersonalizedRecommendation(
                property_id=candidate.id,
                score=round(float(s), 4),
                base_similarity=float(b),
                personalization_boost=round(float(p), 4),
            )
            for candidate, s, b, p in zip(candidates, final, base, boost)
        ]
        recommendations.sort(key=lambda r: (-r.score, r.property_id))
        logger.debug(
            "Personalized %d candidates for user %s from %d profiles",
            len(recommendations), user_id, len(profiles),
        )
        return recommendations, Algorithm.personalized
