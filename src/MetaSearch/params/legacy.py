"""Folding of legacy split parameters into their canonical combined form.

Two legacy families are supported:

- Structured range values: `{"min-value": a, "max-value": b}` becomes `"a,b"`
  (a missing side leaves an empty segment) and `{"value": a}` becomes `"a"`.
- Split start/end date parameters, defined per concept type, e.g. granule
  `equator-crossing-start-date` and `equator-crossing-end-date` become
  `equator-crossing-date="start,end"`.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Final, Mapping

from MetaSearch.core.query import COLLECTION, GRANULE
from MetaSearch.params.aliases import EXCLUDE_KEY, OPTIONS_KEY

_RANGE_KEYS = frozenset({"value", "min-value", "max-value"})

# canonical field -> (legacy start field, legacy end field)
_LEGACY_DATE_PARAMS: Final[Mapping[str, Mapping[str, tuple[str, str]]]] = MappingProxyType(
    {
        COLLECTION: {},
        GRANULE: {
            "equator-crossing-date": ("equator-crossing-start-date", "equator-crossing-end-date"),
        },
    }
)


def fold_legacy_multi_params(concept_type: str, params: Mapping[str, Any]) -> dict[str, Any]:
    """Fold legacy multi-parameter conditions into canonical parameters.

    Args:
        concept_type: Concept type being searched.
        params: Alias-resolved parameter map.

    Returns:
        A new parameter map. Unrecognized concept types are returned unchanged.
    """
    date_params = _LEGACY_DATE_PARAMS.get(concept_type)
    if date_params is None:
        return dict(params)

    legacy_to_canonical = {
        legacy: canonical
        for canonical, legacy_names in date_params.items()
        for legacy in legacy_names
    }

    folded: dict[str, Any] = {}
    for key, value in params.items():
        canonical = legacy_to_canonical.get(key)
        if canonical is not None:
            start_key, end_key = date_params[canonical]
            start, end = params.get(start_key), params.get(end_key)
            if canonical not in folded and (start is not None or end is not None):
                folded[canonical] = _join_range(start, end)
            continue
        if key not in (OPTIONS_KEY, EXCLUDE_KEY) and _is_range_map(value):
            value = _fold_range_map(value)
        folded[key] = value
    return folded


def _is_range_map(value: Any) -> bool:
    return isinstance(value, Mapping) and bool(value) and set(value.keys()) <= _RANGE_KEYS


def _fold_range_map(value: Mapping[str, Any]) -> str:
    if "value" in value:
        return str(value["value"])
    return _join_range(value.get("min-value"), value.get("max-value"))


def _join_range(start: Any, end: Any) -> str:
    return f"{'' if start is None else start},{'' if end is None else end}"
