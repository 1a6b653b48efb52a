from __future__ import annotations

from pydantic import ConfigDict, Field, field_validator

from ..schemas import CamelModel


class PropertyCandidate(CamelModel):
    """Read-only projection of a catalog property used for search and scoring."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    title: str = ""
    price: float = Field(default=0.0, ge=0.0)
    area: float = Field(default=0.0, ge=0.0)
    bedrooms: int = Field(default=0, ge=0)
    property_type: str = ""
    location_id: str = ""
    category_ids: tuple[str, ...] = ()

    @field_validator("id", "location_id", mode="before")
    @classmethod
    def _stringify(cls, value):
        return "" if value is None else str(value).strip()

    @field_validator("category_ids", mode="before")
    @classmethod
    def _split_categories(cls, value):
        if value is None:
            return ()
        if isinstance(value, str):
            value = value.split("|")
        # Sorted and de-duplicated so serialisation is stable
        return tuple(sorted({str(v).strip() for v in value if str(v).strip()}))
