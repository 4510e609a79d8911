"""Removal of facet field conditions from a query.

Facet counts for a field are computed without the field's own filter, so a
user can see the other values they could switch to. These walkers find and
drop the conditions on one facet field.
"""

from __future__ import annotations

import re
from dataclasses import replace

from MetaSearch.core.conditions import (
    MATCH_ALL,
    Condition,
    ConditionGroup,
    NestedCondition,
    StringCondition,
    StringsCondition,
    group_conds,
)
from MetaSearch.core.keywords import to_kebab
from MetaSearch.core.query import Query


def _is_facet_field(field: str, field_key: str) -> bool:
    return re.match(re.escape(to_kebab(field_key)), field) is not None


def has_field(condition: Condition, field_key: str) -> bool:
    """Return whether the condition tree filters on the facet field."""
    if isinstance(condition, ConditionGroup):
        return any(has_field(child, field_key) for child in condition.conditions)
    if isinstance(condition, NestedCondition):
        return has_field(condition.condition, field_key)
    if isinstance(condition, (StringCondition, StringsCondition)):
        return _is_facet_field(condition.field, field_key)
    return False


def adjust_facet_condition(condition: Condition, field_key: str) -> Condition | None:
    """Return the condition without the facet field's conditions, or None if nothing remains."""
    if isinstance(condition, ConditionGroup):
        remaining = []
        for child in condition.conditions:
            adjusted = adjust_facet_condition(child, field_key)
            if adjusted is not None:
                remaining.append(adjusted)
        return group_conds(condition.operation, remaining) if remaining else None
    if isinstance(condition, NestedCondition):
        return None if has_field(condition.condition, field_key) else condition
    if isinstance(condition, (StringCondition, StringsCondition)):
        return None if _is_facet_field(condition.field, field_key) else condition
    return condition


def adjust_facet_query(query: Query, field_key: str) -> Query:
    """Return the query without the facet field's conditions.

    A query left without conditions matches everything.
    """
    adjusted = adjust_facet_condition(query.condition, field_key)
    return replace(query, condition=adjusted if adjusted is not None else MATCH_ALL)
