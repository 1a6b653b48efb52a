from __future__ import annotations

import json
import logging
import math
from collections.abc import Mapping
from typing import Any

from .models import (
    DEFAULT_SEARCH_LIMIT,
    NUMERIC_FILTERS,
    SearchFilters,
    clean_text,
    parse_number,
)

logger = logging.getLogger(__name__)

_DEFAULTS: dict[str, Any] = {"limit": DEFAULT_SEARCH_LIMIT}

# camelCase spellings accepted from JSON bodies
_ALIASES = {
    info.alias: name
    for name, info in SearchFilters.model_fields.items()
    if info.alias and info.alias != name
}


def _normalise_value(key: str, value: Any) -> Any:
    """Mirror the SearchFilters coercions so a mapping keys like the model it validates to.

    Only numeric filters are parsed from strings; text filters stay text, so
    "0123" and "123" remain different locations.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if key in NUMERIC_FILTERS:
        value = parse_number(value)
        if value is None:
            return None
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        return int(value) if float(value).is_integer() else float(value)
    if isinstance(value, str):
        return clean_text(value, lower=(key == "query"))
    if isinstance(value, (list, tuple, set, frozenset)):
        items = [_normalise_value(key, v) for v in value]
        items = [v for v in items if v is not None]
        return sorted(items, key=str) or None
    return str(value)


def canonical_filters(filters: SearchFilters | Mapping[str, Any] | None) -> dict[str, Any]:
    """Return the effective filter values: empties and defaults removed, keys sorted."""
    if filters is None:
        raw: Mapping[str, Any] = {}
    elif isinstance(filters, SearchFilters):
        raw = filters.model_dump(exclude_none=True)
    elif isinstance(filters, Mapping):
        raw = filters
    else:
        logger.debug("Unsupported filter object %r, fingerprinting as empty", type(filters))
        raw = {}

    items = {_ALIASES.get(str(k), str(k)): v for k, v in raw.items()}
    result: dict[str, Any] = {}
    for key in sorted(items):
        normalised = _normalise_value(key, items[key])
        if normalised is None or _DEFAULTS.get(key) == normalised:
            continue
        result[key] = normalised
    return result


def fingerprint(filters: SearchFilters | Mapping[str, Any] | None) -> str:
    """Canonical cache key for a filter set.

    A SearchFilters model is already canonical, so its key is exactly the set
    of values the catalog filters on. Plain mappings go through the same
    coercions. Logically equal filter sets produce the same key regardless of
    key order or the presence of empty and default-valued fields; the empty
    filter set maps to ``"{}"``.
    """
    return json.dumps(canonical_filters(filters), sort_keys=True, separators=(",", ":"))
