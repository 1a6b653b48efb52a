from __future__ import annotations

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from estate_engine.app import app
from estate_engine.catalog import CatalogError

client = TestClient(app)
services = app.state.services


@pytest.fixture(autouse=True)
def _fresh_state():
    services.clear_caches()
    services.recommendations.scorer.log.clear()
    yield
    services.clear_caches()
    services.recommendations.scorer.log.clear()


def _similar(property_id="P1", **params):
    resp = client.get(f"/properties/{property_id}/similar", params=params)
    assert resp.status_code == 200
    return resp.json()


def test_anonymous_similar_properties_are_cached():
    first = _similar()
    second = _similar()
    assert first["cacheHit"] is False
    assert second["cacheHit"] is True
    assert first["algorithm"] == "content"
    assert second["personalizedScores"] == first["personalizedScores"]
    assert second["metadata"]["cacheStats"]["hits"] == 1


def test_similar_properties_exclude_target_and_respect_limit():
    body = _similar(limit=4)
    ids = [p["id"] for p in body["properties"]]
    assert "P1" not in ids
    assert len(ids) == 4
    assert ids == [s["propertyId"] for s in body["personalizedScores"]]
    assert body["metadata"]["totalCandidates"] >= 4


def test_scores_are_bounded_and_sorted():
    scores = _similar(limit=10)["personalizedScores"]
    values = [s["score"] for s in scores]
    assert all(0.0 <= v <= 1.0 for v in values)
    assert values == sorted(values, reverse=True)


def test_only_same_type_candidates_are_returned():
    body = _similar("P7")
    assert {p["propertyType"] for p in body["properties"]} == {"Villa"}


def test_limit_is_part_of_the_cache_key():
    _similar(limit=3)
    assert _similar(limit=5)["cacheHit"] is False
    assert _similar(limit=3)["cacheHit"] is True


def test_user_interaction_invalidates_user_cache():
    first = _similar(userId="U1")
    assert first["cacheHit"] is False
    assert first["algorithm"] == "personalized"
    assert _similar(userId="U1")["cacheHit"] is True

    resp = client.post(
        "/properties/P2/similar",
        json={"userId": "U1", "interactionType": "favorite"},
    )
    assert resp.status_code == 200
    assert resp.json() == {"success": True}

    after = _similar(userId="U1")
    assert after["cacheHit"] is False
    assert after["algorithm"] == "personalized"


def test_interaction_leaves_other_cache_entries_alone():
    _similar()
    _similar(userId="U2")
    client.post("/properties/P2/similar", json={"userId": "U1", "interactionType": "view"})
    assert _similar()["cacheHit"] is True
    assert _similar(userId="U2")["cacheHit"] is True


def test_interaction_changes_personalized_ranking():
    base = {s["propertyId"]: s for s in _similar(userId="U3", limit=10)["personalizedScores"]}
    client.post("/properties/P3/similar", json={"userId": "U3", "interactionType": "contact"})
    after = {s["propertyId"]: s for s in _similar(userId="U3", limit=10)["personalizedScores"]}
    assert after["P3"]["personalizationBoost"] == 1.0
    assert after["P3"]["score"] > base["P3"]["score"]


def test_unknown_property_returns_404():
    resp = client.get("/properties/NOPE/similar")
    assert resp.status_code == 404
    assert len(services.recommendation_cache) == 0


@pytest.mark.parametrize("params", [{"limit": 0}, {"limit": 51}, {"userId": ""}])
def test_invalid_similar_params_are_rejected(params):
    resp = client.get("/properties/P1/similar", params=params)
    assert resp.status_code == 422


def test_anonymous_interaction_is_accepted_and_ignored():
    resp = client.post("/properties/P2/similar", json={"interactionType": "view"})
    assert resp.status_code == 200
    assert resp.json() == {"success": True}
    assert services.recommendations.scorer.log.for_user("") == []


def test_interaction_is_logged_with_profile():
    client.post("/properties/P4/similar", json={"userId": "U4", "interactionType": "view"})
    log = services.recommendations.scorer.log.for_user("U4")
    assert len(log) == 1
    assert log[0].property_id == "P4"
    assert log[0].profile is not None
    assert log[0].profile.location_id == "L1"


@pytest.mark.parametrize(
    "body",
    [
        {"userId": "U1", "interactionType": "like"},
        {"userId": "U1"},
    ],
)
def test_bad_interaction_is_rejected(body):
    resp = client.post("/properties/P2/similar", json=body)
    assert resp.status_code == 422


def test_interaction_on_unknown_property_returns_404():
    resp = client.post(
        "/properties/NOPE/similar", json={"userId": "U1", "interactionType": "view"},
    )
    assert resp.status_code == 404


def test_catalog_failure_returns_503_and_caches_nothing():
    with patch.object(
        services.catalog, "find_similar_candidates", side_effect=CatalogError("down"),
    ):
        resp = client.get("/properties/P1/similar")
    assert resp.status_code == 503
    assert len(services.recommendation_cache) == 0


def test_scores_explain_each_component():
    body = _similar()
    by_id = {p["id"]: p for p in body["properties"]}
    for score in body["personalizedScores"]:
        factors = score["factors"]
        assert set(factors) == {"price", "area", "bhk", "location", "category"}
        assert all(0.0 <= v <= 1.0 for v in factors.values())
        same_location = by_id[score["propertyId"]]["locationId"] == "L1"
        assert factors["location"] == (1.0 if same_location else 0.0)
        assert score["reason"]


def test_property_invalidation_evicts_search_and_similar_lists():
    client.get("/properties/search", params={"location": "L1", "bhk": "2"})
    client.get("/properties/search", params={"location": "L3"})
    _similar()
    _similar("P7")

    resp = client.delete("/cache/properties/P2")
    assert resp.status_code == 200
    assert resp.json() == {
        "status": "invalidated",
        "removed": {"search": 1, "recommendations": 1},
    }
    assert _similar()["cacheHit"] is False
    assert _similar("P7")["cacheHit"] is True
    search = client.get("/properties/search", params={"location": "L1", "bhk": "2"}).json()
    assert search["cached"] is False
