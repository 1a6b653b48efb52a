from __future__ import annotations

from enum import Enum

from pydantic import Field, field_validator

from ..catalog.models import PropertyCandidate
from ..schemas import CamelModel
from ..search.models import CacheStats


class InteractionType(str, Enum):
    view = "view"
    favorite = "favorite"
    search = "search"
    contact = "contact"


class Algorithm(str, Enum):
    content = "content"
    personalized = "personalized"


class UserInteraction(CamelModel):
    user_id: str
    property_id: str
    type: InteractionType
    timestamp: float
    profile: PropertyCandidate | None = None


class PersonalizedRecommendation(CamelModel):
    property_id: str
    score: float = Field(..., ge=0.0, le=1.0)
    base_similarity: float
    personalization_boost: float
    factors: dict[str, float] = Field(default_factory=dict)
    reason: str = ""


class SimilarPropertiesMetadata(CamelModel):
    processing_time_ms: float
    total_candidates: int
    cache_stats: CacheStats


class SimilarPropertiesResult(CamelModel):
    properties: list[PropertyCandidate]
    personalized_scores: list[PersonalizedRecommendation]
    cache_hit: bool
    algorithm: Algorithm
    metadata: SimilarPropertiesMetadata


class InteractionRequest(CamelModel):
    user_id: str | None = Field(default=None, max_length=128)
    interaction_type: InteractionType | None = None

    @field_validator("user_id", mode="before")
    @classmethod
    def _blank_user(cls, value):
        if value is None:
            return None
        value = str(value).strip()
        return value or None


class SuccessResponse(CamelModel):
    success: bool = True
