from __future__ import annotations

from estate_engine.search.fingerprint import canonical_filters, fingerprint
from estate_engine.search.models import SearchFilters


def test_key_order_does_not_matter():
    assert fingerprint({"location": "L1", "bhk": 2}) == fingerprint({"bhk": 2, "location": "L1"})


def test_model_and_mapping_agree():
    model = SearchFilters(location="L1", bhk="2")
    assert fingerprint(model) == fingerprint({"bhk": 2, "location": "L1"})


def test_numeric_strings_normalise_to_numbers():
    assert fingerprint({"bhk": "2", "min_price": "5000000.0"}) == fingerprint(
        {"bhk": 2, "min_price": 5000000}
    )


def test_empty_and_default_values_are_dropped():
    noisy = {"query": "  ", "location": None, "bhk": "Any", "limit": 20, "max_price": ""}
    assert fingerprint(noisy) == "{}"
    assert fingerprint(SearchFilters()) == "{}"
    assert fingerprint(None) == "{}"


def test_text_query_is_case_and_whitespace_insensitive():
    assert fingerprint({"query": " Lake View "}) == fingerprint({"query": "lake view"})


def test_different_effective_values_differ():
    base = fingerprint({"location": "L1", "bhk": 2})
    assert fingerprint({"location": "L1", "bhk": 3}) != base
    assert fingerprint({"location": "L2", "bhk": 2}) != base
    assert fingerprint({"location": "L1", "bhk": 2, "limit": 5}) != base


def test_unusual_input_never_raises():
    assert fingerprint(object()) == "{}"
    assert canonical_filters({"max_price": float("nan")}) == {}
    assert fingerprint({"tags": ["b", "a"]}) == fingerprint({"tags": ("a", "b")})


def test_keys_are_sorted():
    assert fingerprint({"max_price": 100, "bhk": 1, "location": "L3"}) == (
        '{"bhk":1,"location":"L3","max_price":100}'
    )


def test_text_filters_are_not_parsed_as_numbers():
    assert fingerprint({"location": "0123"}) != fingerprint({"location": "123"})
    assert fingerprint({"query": "2.50"}) != fingerprint({"query": "2.5"})
    assert fingerprint(SearchFilters(location="0123")) == '{"location":"0123"}'


def test_any_means_absent_for_text_filters():
    assert SearchFilters(query="Any", location=" any ").model_dump(exclude_none=True) == {
        "limit": 20,
    }
    assert fingerprint(SearchFilters(query="Any")) == "{}"
    assert fingerprint({"query": "Any", "location": "ANY"}) == "{}"


def test_model_key_matches_what_it_was_built_from():
    model = SearchFilters(location=" L1 ", bhk="2", min_price="4,500,000", limit="5")
    assert fingerprint(model) == fingerprint(
        {"location": "L1", "bhk": 2, "minPrice": 4500000, "limit": 5}
    )
    assert canonical_filters(model) == {
        "bhk": 2, "limit": 5, "location": "L1", "min_price": 4500000,
    }


def test_query_is_stored_lowercase_on_the_model():
    assert SearchFilters(query="  Lake VIEW ").query == "lake view"
