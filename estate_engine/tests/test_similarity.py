from __future__ import annotations

import importlib

import pytest

from estate_engine.catalog.models import PropertyCandidate
from estate_engine.recommendations import config as recommendation_config
from estate_engine.recommendations.config import SimilarityWeights
from estate_engine.recommendations.similarity import COMPONENTS, SimilarityEngine

engine = SimilarityEngine()


def _prop(
    pid: str,
    price: float = 5_000_000,
    area: float = 1000,
    bedrooms: int = 2,
    location: str = "L1",
    categories: tuple[str, ...] = ("gated",),
) -> PropertyCandidate:
    return PropertyCandidate(
        id=pid,
        price=price,
        area=area,
        bedrooms=bedrooms,
        property_type="Apartment",
        location_id=location,
        category_ids=categories,
    )


def test_self_similarity_is_one_on_every_component():
    p = _prop("A")
    components = engine.score_components(p, p)
    assert set(components) == set(COMPONENTS)
    assert all(v == 1.0 for v in components.values())
    assert engine.score_against(p, [p])[0] == pytest.approx(1.0)


def test_scores_stay_within_bounds():
    target = _prop("T")
    extremes = [
        _prop("z", price=0, area=0, bedrooms=0, location="", categories=()),
        _prop("h", price=10**12, area=10**7, bedrooms=20, location="L9", categories=("x", "y")),
        _prop("s", price=1, area=1, bedrooms=1),
    ]
    for score in engine.score_against(target, extremes):
        assert 0.0 <= score <= 1.0


def test_component_formulas():
    target = _prop("T", price=100, area=200, bedrooms=2, categories=("a", "b"))
    other = _prop("O", price=50, area=100, bedrooms=7, location="L2", categories=("b", "c"))
    components = engine.score_components(target, other)
    assert components["price"] == pytest.approx(0.5)
    assert components["area"] == pytest.approx(0.5)
    assert components["bhk"] == 0.0
    assert components["location"] == 0.0
    assert components["category"] == pytest.approx(1 / 3)


def test_bhk_gap_scales_linearly():
    target = _prop("T", bedrooms=2)
    assert engine.score_components(target, _prop("O", bedrooms=3))["bhk"] == pytest.approx(2 / 3)
    assert engine.score_components(target, _prop("O", bedrooms=4))["bhk"] == pytest.approx(1 / 3)


def test_find_similar_excludes_target_and_respects_limit():
    target = _prop("T")
    candidates = [target, _prop("A"), _prop("B", price=9_000_000), _prop("C", location="L2")]
    ranked = engine.find_similar(target, candidates, limit=2)
    assert len(ranked) == 2
    assert all(c.id != "T" for c, _ in ranked)


def test_find_similar_orders_by_score_then_id():
    target = _prop("T")
    candidates = [
        _prop("far", price=20_000_000, area=4000, bedrooms=5, location="L9", categories=()),
        _prop("b"),
        _prop("a"),
    ]
    ranked = engine.find_similar(target, candidates, limit=10)
    assert [c.id for c, _ in ranked] == ["a", "b", "far"]
    scores = [s for _, s in ranked]
    assert scores == sorted(scores, reverse=True)


def test_find_similar_scores_duplicates_once():
    target = _prop("T")
    ranked = engine.find_similar(target, [_prop("A"), _prop("A")], limit=5)
    assert [c.id for c, _ in ranked] == ["A"]


def test_find_similar_with_empty_input():
    assert engine.find_similar(_prop("T"), [], limit=5) == []
    assert engine.find_similar(_prop("T"), [_prop("A")], limit=0) == []


def test_weights_are_normalised():
    custom = SimilarityEngine(SimilarityWeights(price=2, area=2, bhk=2, location=2, category=2))
    assert sum(custom.weights.values()) == pytest.approx(1.0)
    assert custom.weights["price"] == pytest.approx(0.2)


def test_non_positive_weight_rejected():
    with pytest.raises(ValueError):
        SimilarityWeights(price=0)


def test_weights_default_from_environment(monkeypatch):
    monkeypatch.setenv("SIMILARITY_WEIGHT_PRICE", "0.5")
    monkeypatch.setenv("SIMILARITY_WEIGHT_CATEGORY", "0.05")
    try:
        reloaded = importlib.reload(recommendation_config)
        weights = reloaded.SimilarityWeights()
        assert weights.price == 0.5
        assert weights.category == 0.05
        assert weights.area == 0.20
    finally:
        monkeypatch.undo()
        importlib.reload(recommendation_config)


def test_explain_lists_components_in_candidate_order():
    target = _prop("T")
    near = _prop("N", location="L1")
    away = _prop("A", location="L2")
    breakdown = engine.explain(target, [near, away])
    assert [b["location"] for b in breakdown] == [1.0, 0.0]
    assert breakdown[1] == engine.score_components(target, away)
    assert engine.explain(target, []) == []
