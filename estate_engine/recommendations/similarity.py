from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from ..catalog.models import PropertyCandidate
from .config import DEFAULT_SIMILARITY_WEIGHTS, SimilarityWeights

COMPONENTS = ("price", "area", "bhk", "location", "category")

_MAX_BHK_GAP = 3


def _closeness(value: float, others: np.ndarray) -> np.ndarray:
    """1 - |a - b| / max(a, b), clamped to [0, 1]; equal zeros count as identical."""
    others = np.asarray(others, dtype=float)
    denom = np.maximum(value, others)
    with np.errstate(divide="ignore", invalid="ignore"):
        ratio = np.where(denom > 0, np.abs(value - others) / denom, 0.0)
    return np.clip(1.0 - ratio, 0.0, 1.0)


def _jaccard(a: set[str], b: set[str]) -> float:
    if not a and not b:
        return 1.0
    return len(a & b) / len(a | b)


class SimilarityEngine:
    """
    Content-based similarity between property records.

    The score is a weighted mean of five components, each in [0, 1]:
    price closeness, area closeness, bedroom-count match, location match
    and category overlap (Jaccard). Weights are normalised to sum to 1.
    """

    def __init__(self, weights: SimilarityWeights = DEFAULT_SIMILARITY_WEIGHTS) -> None:
        normalised = weights.normalised()
        self.weights = normalised
        self._weight_vector = np.array([normalised[c] for c in COMPONENTS])

    def component_matrix(
        self, target: PropertyCandidate, candidates: Sequence[PropertyCandidate],
    ) -> np.ndarray:
        """Shape (len(candidates), 5) matrix of component scores."""
        if not candidates:
            return np.zeros((0, len(COMPONENTS)))

        prices = np.array([c.price for c in candidates], dtype=float)
        areas = np.array([c.area for c in candidates], dtype=float)
        bedrooms = np.array([c.bedrooms for c in candidates], dtype=float)

        gap = np.minimum(np.abs(bedrooms - target.bedrooms), _MAX_BHK_GAP)
        target_categories = set(target.category_ids)

        return np.column_stack([
            _closeness(target.price, prices),
            _closeness(target.area, areas),
            1.0 - gap / _MAX_BHK_GAP,
            np.array([c.location_id == target.location_id for c in candidates], dtype=float),
            np.array([_jaccard(target_categories, set(c.category_ids)) for c in candidates]),
        ])

    def score_against(
        self, profile: PropertyCandidate, candidates: Sequence[PropertyCandidate],
    ) -> np.ndarray:
        """Similarity of every candidate to *profile*, in candidate order."""
        matrix = self.component_matrix(profile, candidates)
        return np.clip(matrix @ self._weight_vector, 0.0, 1.0)

    def explain(
        self, target: PropertyCandidate, candidates: Sequence[PropertyCandidate],
    ) -> list[dict[str, float]]:
        """Per-component scores of each candidate against *target*, by name."""
        matrix = self.component_matrix(target, candidates)
        return [
            {name: float(value) for name, value in zip(COMPONENTS, row)} for row in matrix
        ]

    def score_components(
        self, target: PropertyCandidate, candidate: PropertyCandidate,
    ) -> dict[str, float]:
        return self.explain(target, [candidate])[0]

    def find_similar(
        self,
        target: PropertyCandidate,
        candidates: Sequence[PropertyCandidate],
        limit: int = 6,
    ) -> list[tuple[PropertyCandidate, float]]:
        """Rank *candidates* against *target*, highest score first.

        The target itself is excluded, duplicate ids are scored once, and
        ties are broken by candidate id so the ranking is deterministic.
        """
        if limit <= 0:
            return []

        seen: set[str] = {target.id}
        pool: list[PropertyCandidate] = []
        for candidate in candidates:
            if candidate.id not in seen:
                seen.add(candidate.id)
                pool.append(candidate)

        scores = self.score_against(target, pool)
        ranked = [(c, round(float(s), 4)) for c, s in zip(pool, scores)]
        ranked.sort(key=lambda item: (-item[1], item[0].id))
        return ranked[:limit]
