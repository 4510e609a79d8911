"""Hierarchical facets built from nested terms aggregations.

Hierarchical fields such as science keywords are aggregated one subfield per
level (category, then topic, then term, ...). Each aggregation bucket becomes
a filter node carrying an apply or remove link; each level of buckets is held
by a group node named after the subfield.

The aggregation results are expected in the engine's shape:

    {"science-keywords": {"category": {"buckets": [
        {"key": "EARTH SCIENCE", "doc_count": 12, "coll-count": {"doc_count": 7},
         "topic": {"buckets": [...]}}]}}}
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Iterable, Mapping, Sequence

from MetaSearch.core.keywords import HIERARCHICAL_FIELDS, HUMAN_READABLE_LABELS, to_snake
from MetaSearch.facets.hierarchical_links import (
    REMOVE,
    HierarchicalFieldName,
    ParamValue,
    create_apply_link,
    create_link,
    get_matching_ancestor_indexes,
    params_by_index,
)
from MetaSearch.utils.log import log

GROUP = "group"
FILTER = "filter"

MIN_AGGREGATION_DEPTH = 3


@dataclass(frozen=True, slots=True)
class FacetNode:
    """One node of a facet tree.

    Attributes:
        title: Subfield name for group nodes, term for filter nodes.
        type: `group` or `filter`.
        applied: Whether the node (or, for groups, one of its children) is applied.
        count: Number of matching collections (filter nodes only).
        links: `{"apply": url}` or `{"remove": url}` (filter nodes only).
        has_children: Whether deeper terms exist, even when pruned from `children`.
        children: Child nodes, or None when there are none to show.
    """

    title: str
    type: str
    applied: bool
    count: int | None = None
    links: Mapping[str, str] | None = None
    has_children: bool = False
    children: tuple["FacetNode", ...] | None = None


def filter_node(title: str, count: int, links: Mapping[str, str], children: FacetNode | None) -> FacetNode:
    return FacetNode(
        title=title,
        type=FILTER,
        applied=REMOVE in links,
        count=count,
        links=dict(links),
        has_children=children is not None,
        children=(children,) if children is not None else None,
    )


def group_node(title: str, children: Sequence[FacetNode]) -> FacetNode:
    return FacetNode(
        title=title,
        type=GROUP,
        applied=any(child.applied for child in children),
        has_children=bool(children),
        children=tuple(children) if children else None,
    )


def get_depth_for_hierarchical_field(params: Mapping[str, Any], field: str) -> int:
    """Return how many subfield levels to aggregate for a hierarchical field.

    At least three levels (category, topic and term for science keywords),
    otherwise two levels below the deepest applied subfield.
    """
    subfields = [to_snake(subfield) for subfield in HIERARCHICAL_FIELDS[field]]
    applied_positions = [
        subfields.index(subfield)
        for group in params_by_index(params, to_snake(field)).values()
        for subfield in group
        if subfield in subfields
    ]
    deepest = max(applied_positions) + 1 if applied_positions else 0
    return max(MIN_AGGREGATION_DEPTH, 2 + deepest)


def nested_facet_aggregation(field: str, size: int, depth: int | None = None) -> dict[str, Any]:
    """Return the nested terms aggregation request for a hierarchical field."""
    subfields = HIERARCHICAL_FIELDS[field]
    if depth is not None:
        subfields = subfields[:depth]

    aggregations: dict[str, Any] = {}
    for subfield in reversed(subfields):
        aggregations = {
            subfield: {
                "terms": {"field": f"{field}.{subfield}", "size": size},
                "aggs": {"coll-count": {"reverse_nested": {}}, **aggregations},
            }
        }
    return {"nested": {"path": field}, "aggs": aggregations}


def _field_applied(params: Mapping[str, Any], base: str, subfield: str) -> bool:
    return any(subfield in group for group in params_by_index(params, base).values())


def _applied_descendants(node: FacetNode | None) -> list[tuple[str, str]]:
    """Return (subfield, term) pairs for every applied filter below a group node."""
    if node is None or not node.children:
        return []
    pairs: list[tuple[str, str]] = []
    for child in node.children:
        if child.applied:
            pairs.append((node.title, child.title))
        for grandchild in child.children or ():
            pairs.extend(_applied_descendants(grandchild))
    return pairs


def _bucket_count(bucket: Mapping[str, Any]) -> int:
    coll_count = bucket.get("coll-count")
    if isinstance(coll_count, Mapping) and "doc_count" in coll_count:
        return int(coll_count["doc_count"])
    return int(bucket.get("doc_count", 0))


def _parse_level(
    field: str,
    subfields: Sequence[str],
    base_url: str,
    params: Mapping[str, ParamValue],
    aggregations: Mapping[str, Any],
    ancestors: Mapping[str, str],
) -> FacetNode | None:
    if not subfields:
        return None
    subfield = subfields[0]
    buckets = (aggregations.get(subfield) or {}).get("buckets") or []
    if not buckets:
        return None

    base = to_snake(field)
    field_name = HierarchicalFieldName(base=base, index=0, subfield=to_snake(subfield))
    applied = _field_applied(params, base, field_name.subfield)
    by_index = params_by_index(params, base)
    parent_indexes = sorted(get_matching_ancestor_indexes(params, base, by_index, ancestors)) if ancestors else []
    has_siblings = any(field_name.subfield in by_index.get(index, {}) for index in parent_indexes)

    children: list[FacetNode] = []
    for bucket in buckets:
        value = str(bucket["key"])
        child_ancestors = {**ancestors, to_snake(subfield): value}
        sub_facets = _parse_level(field, subfields[1:], base_url, params, bucket, child_ancestors)
        if applied:
            links = create_link(
                base_url,
                params,
                field_name,
                value,
                ancestors,
                parent_indexes,
                has_siblings,
                _applied_descendants(sub_facets),
            )
        else:
            links = create_apply_link(base_url, params, field_name, value, ancestors, parent_indexes, has_siblings)
        children.append(filter_node(value, _bucket_count(bucket), links, sub_facets))
    return group_node(field_name.subfield, children)


def prune_facet(node: FacetNode, show_unapplied_children: bool = True) -> FacetNode:
    """Limit a facet tree to one level below the deepest applied term.

    Group nodes are transparent. The children of a filter node are kept when
    the filter is applied or `show_unapplied_children` is set, which the top
    level uses so the first two levels are always returned.
    """
    if not node.children:
        return node
    if node.type == GROUP:
        return replace(
            node, children=tuple(prune_facet(child, show_unapplied_children) for child in node.children)
        )
    if node.applied or show_unapplied_children:
        return replace(node, children=tuple(prune_facet(child, False) for child in node.children))
    return replace(node, children=None)


def _terms_at_depth(node: FacetNode | None, depth: int) -> list[str]:
    """Return the filter titles `depth` group levels below a group node."""
    if node is None or not node.children:
        return []
    if depth <= 0:
        return [child.title for child in node.children]
    terms: list[str] = []
    for child in node.children:
        for grandchild in child.children or ():
            terms.extend(_terms_at_depth(grandchild, depth - 1))
    return terms


def _applied_terms(params: Mapping[str, ParamValue], base: str, subfield: str) -> list[str]:
    terms: list[str] = []
    for group in params_by_index(params, base).values():
        value = group.get(subfield)
        if value is None:
            continue
        terms.extend([value] if isinstance(value, str) else [str(item) for item in value])
    return terms


def missing_applied_terms(field: str, facet: FacetNode | None, params: Mapping[str, ParamValue]) -> list[tuple[str, str]]:
    """Return (subfield, term) pairs applied in params but absent from the facet tree."""
    base = to_snake(field)
    missing: list[tuple[str, str]] = []
    for depth, subfield in enumerate(HIERARCHICAL_FIELDS[field]):
        snake_subfield = to_snake(subfield)
        present = {term.lower() for term in _terms_at_depth(facet, depth)}
        for term in _applied_terms(params, base, snake_subfield):
            if term.lower() not in present:
                missing.append((snake_subfield, term))
    return missing


def _hierarchical_facet(
    field: str,
    aggregations: Mapping[str, Any],
    base_url: str,
    params: Mapping[str, ParamValue],
) -> FacetNode | None:
    parsed = _parse_level(field, HIERARCHICAL_FIELDS[field], base_url, params, aggregations, {})
    facet = prune_facet(parsed) if parsed is not None else None

    base = to_snake(field)
    zero_matches = [
        filter_node(
            term,
            0,
            create_link(base_url, params, HierarchicalFieldName(base=base, index=0, subfield=subfield), term),
            None,
        )
        for subfield, term in missing_applied_terms(field, facet, params)
    ]
    children = list(facet.children or ()) if facet is not None else []
    children.extend(zero_matches)
    if not children:
        return None
    if zero_matches:
        log.debug("Added %d zero match %s facet(s)", len(zero_matches), field)

    return FacetNode(
        title=HUMAN_READABLE_LABELS.get(field, field),
        type=GROUP,
        applied=bool(params_by_index(params, base)),
        has_children=True,
        children=tuple(children),
    )


def create_hierarchical_facets(
    aggregations: Mapping[str, Any],
    base_url: str,
    params: Mapping[str, ParamValue],
    fields: Iterable[str] | None = None,
) -> list[FacetNode]:
    """Build the facet tree of every hierarchical field.

    Args:
        aggregations: Aggregation results keyed by hierarchical field name.
        base_url: Root URL of the generated links.
        params: Current flat query parameters.
        fields: Hierarchical fields to build, all known ones by default.

    Returns:
        One root group node per field that has buckets or applied terms.
    """
    facets: list[FacetNode] = []
    for field in fields if fields is not None else HIERARCHICAL_FIELDS:
        facet = _hierarchical_facet(field, aggregations.get(field) or {}, base_url, params)
        if facet is not None:
            facets.append(facet)
    return facets
