from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from estate_engine.catalog import CatalogError, PropertyCatalog
from estate_engine.search.models import SearchFilters

RECORDS = [
    {"id": "A1", "title": "Lake Apartment", "price": 5_000_000, "area": 1000, "bedrooms": 2,
     "property_type": "Apartment", "location_id": "L1", "category_ids": ["gated"]},
    {"id": "A2", "title": "Park Apartment", "price": 5_500_000, "area": 1050, "bedrooms": 2,
     "property_type": "Apartment", "location_id": "L2", "category_ids": ["pool", "gated"]},
    {"id": "A3", "title": "Tower Flat", "price": 9_500_000, "area": 1500, "bedrooms": 3,
     "property_type": "Apartment", "location_id": "L3", "category_ids": []},
    {"id": "A4", "title": "Corner Apartment", "price": 4_000_000, "area": 900, "bedrooms": 1,
     "property_type": "Apartment", "location_id": "L1", "category_ids": "metro|gated"},
    {"id": "V1", "title": "Garden Villa", "price": 5_200_000, "area": 2000, "bedrooms": 4,
     "property_type": "Villa", "location_id": "L1", "category_ids": ["pool"]},
]

catalog = PropertyCatalog.from_records(RECORDS)


def test_get_property():
    prop = catalog.get_property("A4")
    assert prop is not None
    assert prop.category_ids == ("gated", "metro")
    assert catalog.get_property("missing") is None


def test_search_by_location_and_bhk():
    found = catalog.find_candidate_properties(SearchFilters(location="L1", bhk=2))
    assert [p.id for p in found] == ["A1"]


def test_search_by_text_is_case_insensitive():
    found = catalog.find_candidate_properties(SearchFilters(query="APARTMENT"))
    assert [p.id for p in found] == ["A1", "A2", "A3", "A4"]


def test_search_by_price_range_and_limit():
    found = catalog.find_candidate_properties(
        SearchFilters(min_price=4_500_000, max_price=6_000_000, limit=2),
    )
    assert [p.id for p in found] == ["A1", "A2"]


def test_similar_candidates_share_type_and_neighborhood():
    target = catalog.get_property("A1")
    pool = catalog.find_similar_candidates(target, pool_size=10)
    ids = [p.id for p in pool]
    # Same location first, then price neighbours; villa and far-priced flat excluded
    assert ids == ["A4", "A2"]


def test_similar_candidates_respect_pool_size():
    target = catalog.get_property("A1")
    assert len(catalog.find_similar_candidates(target, pool_size=1)) == 1


def test_metadata_lists_locations_and_types():
    assert catalog.metadata() == {
        "locations": ["L1", "L2", "L3"],
        "property_types": ["Apartment", "Villa"],
    }


def test_missing_csv_raises_catalog_error(tmp_path: Path):
    missing = PropertyCatalog(csv_path=tmp_path / "nope.csv")
    with pytest.raises(CatalogError):
        missing.get_property("A1")


def test_missing_columns_raise_catalog_error():
    with pytest.raises(CatalogError):
        PropertyCatalog(frame=pd.DataFrame([{"id": "x", "price": 1}]))


def test_loads_csv(tmp_path: Path):
    path = tmp_path / "props.csv"
    path.write_text(
        "id,title,price,area,bedrooms,property_type,location_id,category_ids\n"
        "C1,Plot,,500,,Land,L5,\n"
    )
    prop = PropertyCatalog(csv_path=path).get_property("C1")
    assert prop is not None
    assert prop.price == 0.0
    assert prop.bedrooms == 0
    assert prop.category_ids == ()


def test_bundled_catalog_loads():
    bundled = PropertyCatalog()
    assert bundled.get_property("P1") is not None
