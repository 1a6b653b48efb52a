from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

import pandas as pd
from pydantic import ValidationError

from .config import DEFAULT_CATALOG_CONFIG, CatalogConfig
from .models import PropertyCandidate

if TYPE_CHECKING:
    from ..search.models import SearchFilters

logger = logging.getLogger(__name__)

_COLUMNS = [
    "id",
    "title",
    "price",
    "area",
    "bedrooms",
    "property_type",
    "location_id",
    "category_ids",
]


class CatalogError(RuntimeError):
    """The catalog could not be loaded or queried."""


class Catalog(Protocol):
    def get_property(self, property_id: str) -> PropertyCandidate | None: ...

    def find_candidate_properties(self, filters: SearchFilters) -> list[PropertyCandidate]: ...

    def find_similar_candidates(
        self, target: PropertyCandidate, pool_size: int,
    ) -> list[PropertyCandidate]: ...

    def metadata(self) -> dict[str, list[str]]: ...


def _prepare(df: pd.DataFrame) -> pd.DataFrame:
    missing = [c for c in _COLUMNS if c not in df.columns]
    if missing:
        raise CatalogError(f"catalog is missing columns: {', '.join(missing)}")

    df = df[_COLUMNS].copy()
    for col in ("id", "title", "property_type", "location_id", "category_ids"):
        df[col] = df[col].fillna("").astype(str).str.strip()
    for col in ("price", "area"):
        df[col] = pd.to_numeric(df[col], errors="coerce").fillna(0.0).clip(lower=0.0)
    df["bedrooms"] = pd.to_numeric(df["bedrooms"], errors="coerce").fillna(0).astype(int)

    df = df[df["id"] != ""].drop_duplicates(subset="id", keep="first")

    # Lowercased columns for case-insensitive text matching
    df["title_lower"] = df["title"].str.lower()
    df["type_lower"] = df["property_type"].str.lower()

    return df.sort_values("id").reset_index(drop=True)


class PropertyCatalog:
    """In-memory, read-only property catalog backed by a pandas DataFrame."""

    def __init__(
        self,
        csv_path: Path | None = None,
        frame: pd.DataFrame | None = None,
        config: CatalogConfig = DEFAULT_CATALOG_CONFIG,
    ) -> None:
        self.config = config
        self._csv_path = csv_path or config.csv_path
        self._df: pd.DataFrame | None = None
        self._by_id: dict[str, PropertyCandidate] = {}
        self._lock = threading.Lock()
        if frame is not None:
            self._install(frame)

    @classmethod
    def from_records(
        cls,
        records: Iterable[PropertyCandidate | Mapping[str, Any]],
        config: CatalogConfig = DEFAULT_CATALOG_CONFIG,
    ) -> "PropertyCatalog":
        rows = []
        for record in records:
            candidate = (
                record if isinstance(record, PropertyCandidate)
                else PropertyCandidate.model_validate(record)
            )
            row = candidate.model_dump()
            row["category_ids"] = "|".join(candidate.category_ids)
            rows.append(row)
        return cls(frame=pd.DataFrame(rows, columns=_COLUMNS), config=config)

    def _install(self, raw: pd.DataFrame) -> None:
        try:
            df = _prepare(raw)
            by_id = {
                row["id"]: PropertyCandidate.model_validate(row)
                for row in df[_COLUMNS].to_dict(orient="records")
            }
        except (ValidationError, ValueError, KeyError) as exc:
            raise CatalogError(f"invalid catalog data: {exc}") from exc
        self._df = df
        self._by_id = by_id

    def _frame(self) -> pd.DataFrame:
        """Return the catalog DataFrame, loading it on first call."""
        with self._lock:
            if self._df is None:
                try:
                    raw = pd.read_csv(self._csv_path, dtype=str)
                except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
                    raise CatalogError(f"cannot read catalog {self._csv_path}") from exc
                self._install(raw)
                logger.info("Loaded %d properties from %s", len(self._by_id), self._csv_path)
            return self._df

    def _candidates(self, ids: Iterable[str]) -> list[PropertyCandidate]:
        return [self._by_id[i] for i in ids]

    def get_property(self, property_id: str) -> PropertyCandidate | None:
        self._frame()
        return self._by_id.get(str(property_id))

    def find_candidate_properties(self, filters: SearchFilters) -> list[PropertyCandidate]:
        df = self._frame()
        mask = pd.Series(True, index=df.index)

        if filters.query:
            text = filters.query.lower()
            mask &= df["title_lower"].str.contains(text, regex=False) | df[
                "type_lower"
            ].str.contains(text, regex=False)

        if filters.location:
            mask &= df["location_id"] == filters.location

        if filters.bhk is not None:
            mask &= df["bedrooms"] == filters.bhk

        if filters.min_price is not None:
            mask &= df["price"] >= filters.min_price

        if filters.max_price is not None:
            mask &= df["price"] <= filters.max_price

        return self._candidates(df.loc[mask, "id"].head(filters.limit))

    def find_similar_candidates(
        self, target: PropertyCandidate, pool_size: int,
    ) -> list[PropertyCandidate]:
        """Same property type, in the target's location or price neighborhood."""
        df = self._frame()

        same_type = df["property_type"] == target.property_type
        same_location = df["location_id"] == target.location_id
        if target.price > 0:
            near_price = (df["price"] - target.price).abs() <= target.price * self.config.price_tolerance
        else:
            near_price = pd.Series(False, index=df.index)

        mask = same_type & (same_location | near_price) & (df["id"] != target.id)
        pool = df.loc[mask, ["id"]].assign(_tier=(~same_location[mask]).astype(int))

        # Same-location candidates first, then price neighbours
        ordered = pool.sort_values(["_tier", "id"]).head(pool_size)
        return self._candidates(ordered["id"])

    def metadata(self) -> dict[str, list[str]]:
        df = self._frame()
        return {
            "locations": sorted(v for v in df["location_id"].unique().tolist() if v),
            "property_types": sorted(v for v in df["property_type"].unique().tolist() if v),
        }
