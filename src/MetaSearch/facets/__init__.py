"""Facet navigation: hierarchical facet trees and their apply/remove links."""

from __future__ import annotations

from MetaSearch.facets.hierarchical_facets import (
    FacetNode,
    create_hierarchical_facets,
    get_depth_for_hierarchical_field,
    nested_facet_aggregation,
)
from MetaSearch.facets.hierarchical_links import (
    HierarchicalFieldName,
    create_apply_link,
    create_link,
    create_remove_link,
    generate_query_string,
)

__all__ = [
    "FacetNode",
    "HierarchicalFieldName",
    "create_apply_link",
    "create_hierarchical_facets",
    "create_link",
    "create_remove_link",
    "generate_query_string",
    "get_depth_for_hierarchical_field",
    "nested_facet_aggregation",
]
