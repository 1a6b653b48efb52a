from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator, model_validator

from ..catalog.models import PropertyCandidate
from ..schemas import CamelModel

DEFAULT_SEARCH_LIMIT = 20

NUMERIC_FILTERS = frozenset({"bhk", "min_price", "max_price", "limit"})

# Spellings the search form uses for "no filter"
_EMPTY_MARKERS = {"", "any"}


def parse_number(value: Any) -> Any:
    """Turn numeric strings into int/float; leave everything else to pydantic."""
    if not isinstance(value, str):
        return value
    text = value.strip().replace(",", "")
    if text.lower() in _EMPTY_MARKERS:
        return None
    try:
        number = float(text)
    except ValueError:
        return value
    return int(number) if number.is_integer() else number


def clean_text(value: Any, lower: bool = False) -> str | None:
    """Strip a text filter; blank and "Any" mean the filter is absent."""
    if value is None:
        return None
    text = str(value).strip()
    if text.lower() in _EMPTY_MARKERS:
        return None
    return text.lower() if lower else text


class SearchFilters(CamelModel):
    query: str | None = Field(default=None, max_length=200, description="Free-text query")
    location: str | None = Field(default=None, max_length=64, description="Location id")
    bhk: int | None = Field(default=None, ge=0, le=20)
    min_price: float | None = Field(default=None, ge=0.0)
    max_price: float | None = Field(default=None, ge=0.0)
    limit: int = Field(default=DEFAULT_SEARCH_LIMIT, ge=1, le=100)

    @field_validator("query", mode="before")
    @classmethod
    def _clean_query(cls, value):
        # Matching is case-insensitive, so the canonical query is lowercase
        return clean_text(value, lower=True)

    @field_validator("location", mode="before")
    @classmethod
    def _clean_location(cls, value):
        return clean_text(value)

    @field_validator("bhk", "min_price", "max_price", mode="before")
    @classmethod
    def _coerce_numeric(cls, value):
        return parse_number(value)

    @field_validator("limit", mode="before")
    @classmethod
    def _default_limit(cls, value):
        value = parse_number(value)
        return DEFAULT_SEARCH_LIMIT if value is None else value

    @model_validator(mode="after")
    def _check_price_range(self) -> "SearchFilters":
        if (
            self.min_price is not None
            and self.max_price is not None
            and self.min_price > self.max_price
        ):
            raise ValueError("min_price must not exceed max_price")
        return self


class SearchResponse(CamelModel):
    properties: list[PropertyCandidate]
    total: int
    cached: bool
    fingerprint: str
    search_time_ms: float


class SearchAnalyticsRequest(CamelModel):
    query: str = ""
    filters: SearchFilters = Field(default_factory=SearchFilters)
    response_time_ms: float | None = Field(default=None, ge=0.0)
    result_count: int | None = Field(default=None, ge=0)
    user_id: str | None = Field(default=None, max_length=128)


class CacheStats(CamelModel):
    size: int
    total_queries: int
    hits: int
    misses: int
    hit_rate: float
    average_response_time_ms: float = 0.0


class PopularSearch(CamelModel):
    fingerprint: str
    filters: dict[str, Any]
    access_count: int
    last_accessed_at: float


class RecentSearch(CamelModel):
    fingerprint: str
    filters: dict[str, Any]
    last_accessed_at: float
    created_at: float
