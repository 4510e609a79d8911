"""Command implementations for the MetaSearch CLI.

Each command holds its parsed inputs and returns the text to print, keeping
click parameter handling out of the business logic.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from MetaSearch.config import AppConfig
from MetaSearch.core.keywords import HIERARCHICAL_FIELDS
from MetaSearch.facets import (
    create_hierarchical_facets,
    create_link,
    get_depth_for_hierarchical_field,
    nested_facet_aggregation,
)
from MetaSearch.http.formats import resolve_result_format, validate_query
from MetaSearch.http.params import parse_flat_query_string, parse_query_string
from MetaSearch.params import parse_query
from MetaSearch.renderers.json import render_facets, render_query
from MetaSearch.utils.log import log


def _dump(payload: Any) -> str:
    return json.dumps(payload, ensure_ascii=False, indent=2)


@dataclass(slots=True)
class ParseCommand:
    """Parse a query string into a query and print its condition tree."""

    config: AppConfig
    concept_type: str
    query_string: str

    def execute(self) -> str:
        params = parse_query_string(self.query_string)
        query = parse_query(self.concept_type, params, config=self.config.query)
        errors = validate_query(query)
        if errors:
            raise ValueError("; ".join(errors))
        log.info("Parsed %s query", self.concept_type)
        return _dump(render_query(query))


@dataclass(slots=True)
class FacetLinkCommand:
    """Print the apply or remove link for one hierarchical facet value."""

    config: AppConfig
    query_string: str
    field_name: str
    value: str
    ancestors: Mapping[str, str] = field(default_factory=dict)
    parent_indexes: tuple[int, ...] = ()
    has_siblings: bool = False
    applied_children: tuple[tuple[str, str], ...] = ()

    def execute(self) -> str:
        params = parse_flat_query_string(self.query_string)
        link = create_link(
            self.config.facets.base_url,
            params,
            self.field_name,
            self.value,
            self.ancestors,
            self.parent_indexes,
            self.has_siblings,
            self.applied_children,
        )
        log.debug("Facet link for %s=%s: %s", self.field_name, self.value, link)
        return _dump(link)


@dataclass(slots=True)
class FacetsCommand:
    """Build hierarchical facets from an aggregations JSON file."""

    config: AppConfig
    query_string: str
    aggregations_path: Path

    def execute(self) -> str:
        params = parse_flat_query_string(self.query_string)
        aggregations = json.loads(self.aggregations_path.read_text(encoding="utf-8"))
        if not isinstance(aggregations, Mapping):
            raise ValueError(f"Aggregations file must hold a JSON object: {self.aggregations_path}")
        facets = create_hierarchical_facets(aggregations, self.config.facets.base_url, params)
        log.info("Built %d hierarchical facet(s)", len(facets))
        return _dump(render_facets(facets))


@dataclass(slots=True)
class FacetAggregationCommand:
    """Print the nested aggregation request for every hierarchical field."""

    config: AppConfig
    query_string: str

    def execute(self) -> str:
        params = parse_flat_query_string(self.query_string)
        aggregations: dict[str, Any] = {}
        for field_name in HIERARCHICAL_FIELDS:
            depth = get_depth_for_hierarchical_field(params, field_name)
            log.debug("Aggregating %s to depth %d", field_name, depth)
            aggregations[field_name] = nested_facet_aggregation(field_name, self.config.facets.size, depth)
        return _dump(aggregations)


@dataclass(slots=True)
class FormatCommand:
    """Resolve the result format of a search request."""

    config: AppConfig
    path: str
    accept: str | None = None
    content_type: str | None = None
    default_mime_type: str = "application/xml"

    def execute(self) -> str:
        headers: dict[str, str] = {}
        if self.accept:
            headers["accept"] = self.accept
        if self.content_type:
            headers["content-type"] = self.content_type
        fmt = resolve_result_format(self.path, headers, self.default_mime_type)
        if fmt is None:
            raise ValueError(f"No result format for default mime type [{self.default_mime_type}]")
        return fmt
