"""Request parameter normalization and query construction."""

from __future__ import annotations

from MetaSearch.params.aliases import normalize_param_names, resolve_aliases, resolve_field_name
from MetaSearch.params.conditions import build_condition, build_exclusion, param_type
from MetaSearch.params.legacy import fold_legacy_multi_params
from MetaSearch.params.query import normalize_params, parse_query
from MetaSearch.params.sort_keys import parse_sort_key

__all__ = [
    "normalize_param_names",
    "resolve_aliases",
    "resolve_field_name",
    "fold_legacy_multi_params",
    "build_condition",
    "build_exclusion",
    "param_type",
    "normalize_params",
    "parse_query",
    "parse_sort_key",
]
