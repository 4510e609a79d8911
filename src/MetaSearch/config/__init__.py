"""Public configuration API for MetaSearch."""

from __future__ import annotations

from MetaSearch.config.app import (
    AppConfig,
    load_config,
    load_config_with_defaults,
    merge_config_dicts,
    parse_config_dict,
    parse_yaml,
)
from MetaSearch.config.facets import FacetConfig
from MetaSearch.config.query import QueryConfig
from MetaSearch.config.runtime import RuntimeConfig

__all__ = [
    "RuntimeConfig",
    "QueryConfig",
    "FacetConfig",
    "AppConfig",
    "load_config",
    "load_config_with_defaults",
    "merge_config_dicts",
    "parse_config_dict",
    "parse_yaml",
]
