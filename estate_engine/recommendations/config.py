from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class SimilarityWeights:
    price: float = float(os.getenv("SIMILARITY_WEIGHT_PRICE", "0.25"))
    area: float = float(os.getenv("SIMILARITY_WEIGHT_AREA", "0.20"))
    bhk: float = float(os.getenv("SIMILARITY_WEIGHT_BHK", "0.20"))
    location: float = float(os.getenv("SIMILARITY_WEIGHT_LOCATION", "0.20"))
    category: float = float(os.getenv("SIMILARITY_WEIGHT_CATEGORY", "0.15"))

    def __post_init__(self) -> None:
        for name, value in self.as_dict().items():
            if value <= 0:
                raise ValueError(f"similarity weight {name!r} must be positive")

    def as_dict(self) -> dict[str, float]:
        return {
            "price": self.price,
            "area": self.area,
            "bhk": self.bhk,
            "location": self.location,
            "category": self.category,
        }

    def normalised(self) -> dict[str, float]:
        weights = self.as_dict()
        total = sum(weights.values())
        return {k: v / total for k, v in weights.items()}


@dataclass(frozen=True)
class PersonalizationConfig:
    blend: float = float(os.getenv("PERSONALIZATION_BLEND", "0.4"))
    half_life_days: float = float(os.getenv("PERSONALIZATION_HALF_LIFE_DAYS", "30"))
    type_weights: dict[str, float] = field(
        default_factory=lambda: {
            "contact": 1.0,
            "favorite": 0.7,
            "view": 0.4,
            "search": 0.2,
        }
    )

    def __post_init__(self) -> None:
        if not 0.0 <= self.blend <= 1.0:
            raise ValueError("blend must be within [0, 1]")
        if self.half_life_days <= 0:
            raise ValueError("half_life_days must be positive")


@dataclass(frozen=True)
class InteractionRetention:
    max_per_user: int = int(os.getenv("INTERACTION_MAX_PER_USER", "50"))
    max_age_days: float = float(os.getenv("INTERACTION_MAX_AGE_DAYS", "90"))
    max_users: int = int(os.getenv("INTERACTION_MAX_USERS", "10000"))


@dataclass(frozen=True)
class RecommendationCacheConfig:
    max_size: int = int(os.getenv("RECOMMENDATION_CACHE_MAX_SIZE", "500"))
    default_ttl: float = float(os.getenv("RECOMMENDATION_CACHE_TTL_SECONDS", "300"))
    default_limit: int = 6
    max_limit: int = 50


DEFAULT_SIMILARITY_WEIGHTS = SimilarityWeights()
DEFAULT_PERSONALIZATION_CONFIG = PersonalizationConfig()
DEFAULT_INTERACTION_RETENTION = InteractionRetention()
DEFAULT_RECOMMENDATION_CACHE_CONFIG = RecommendationCacheConfig()
