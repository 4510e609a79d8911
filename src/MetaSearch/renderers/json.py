"""JSON renderers.

Converts condition trees, queries and facet trees into JSON-serializable
Python objects for CLI output and debugging.
"""

from __future__ import annotations

from dataclasses import fields, is_dataclass
from datetime import datetime
from typing import Any, Iterable, Mapping

from MetaSearch.core.conditions import (
    AttributeNameCondition,
    BooleanCondition,
    Condition,
    ConditionGroup,
    DateRangeCondition,
    MatchAllCondition,
    MatchNoneCondition,
    NegatedCondition,
    NestedCondition,
    NumericRangeCondition,
    NumericRangeIntersectionCondition,
    ScriptCondition,
    StringCondition,
    StringsCondition,
)
from MetaSearch.core.query import Query
from MetaSearch.facets.hierarchical_facets import FacetNode

_CONDITION_TYPES: dict[type, str] = {
    MatchAllCondition: "match-all",
    MatchNoneCondition: "match-none",
    StringCondition: "string",
    StringsCondition: "strings",
    NumericRangeCondition: "numeric-range",
    DateRangeCondition: "date-range",
    NumericRangeIntersectionCondition: "numeric-range-intersection",
    BooleanCondition: "boolean",
    AttributeNameCondition: "attribute-name",
    ScriptCondition: "script",
}


def _json_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, tuple):
        return [_json_value(item) for item in value]
    if isinstance(value, Mapping):
        return {str(k): _json_value(v) for k, v in value.items()}
    return value


def render_condition(condition: Condition) -> dict[str, Any]:
    """Render a condition tree as nested dicts with a `type` key per node."""
    if isinstance(condition, ConditionGroup):
        return {
            "type": "group",
            "operation": condition.operation,
            "conditions": [render_condition(child) for child in condition.conditions],
        }
    if isinstance(condition, NestedCondition):
        return {"type": "nested", "path": condition.path, "condition": render_condition(condition.condition)}
    if isinstance(condition, NegatedCondition):
        return {"type": "not", "condition": render_condition(condition.condition)}

    out: dict[str, Any] = {"type": _CONDITION_TYPES[type(condition)]}
    if is_dataclass(condition):
        for f in fields(condition):
            out[f.name] = _json_value(getattr(condition, f.name))
    return out


def render_query(query: Query) -> dict[str, Any]:
    """Render a query with its condition tree."""
    return {
        "concept_type": query.concept_type,
        "condition": render_condition(query.condition),
        "page_size": query.page_size,
        "page_num": query.page_num,
        "sort_keys": (
            [{"field": key.field, "order": key.order} for key in query.sort_keys]
            if query.sort_keys is not None
            else None
        ),
        "result_format": query.result_format,
        "skip_acls": query.skip_acls,
        "echo_compatible": query.echo_compatible,
        "pretty": query.pretty,
        "all_revisions": query.all_revisions_index,
    }


def render_facet(node: FacetNode) -> dict[str, Any]:
    """Render one facet node in the v2 facet response layout."""
    out: dict[str, Any] = {"title": node.title, "type": node.type, "applied": node.applied}
    if node.count is not None:
        out["count"] = node.count
    if node.links is not None:
        out["links"] = dict(node.links)
    out["has_children"] = node.has_children
    if node.children:
        out["children"] = [render_facet(child) for child in node.children]
    return out


def render_facets(nodes: Iterable[FacetNode]) -> list[dict[str, Any]]:
    return [render_facet(node) for node in nodes]
