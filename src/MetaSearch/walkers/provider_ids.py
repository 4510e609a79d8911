"""Extraction of the provider ids a query is limited to.

Conditions on `provider`, `concept-id` and `collection-concept-id` pin a query
to known providers. Any other condition, and any pattern match, could match
documents of any provider.
"""

from __future__ import annotations

import re
from typing import Final, Iterable

from MetaSearch.core.conditions import (
    OR,
    Condition,
    ConditionGroup,
    StringCondition,
    StringsCondition,
)
from MetaSearch.core.query import Query

ANY: Final = "*any*"
NONE: Final = "*none*"

_CONCEPT_ID_PATTERN = re.compile(r"[A-Z]+\d+-(?P<provider>[A-Za-z0-9_]+)")
_CONCEPT_ID_FIELDS = frozenset({"concept-id", "collection-concept-id"})


def concept_id_to_provider_id(concept_id: str) -> str:
    """Return the provider id of a concept id such as `C1200000001-PROV1`, or ANY."""
    match = _CONCEPT_ID_PATTERN.fullmatch(concept_id)
    return match.group("provider") if match else ANY


def _field_provider_ids(field: str, values: Iterable[str]) -> set[str]:
    if field == "provider":
        return set(values)
    if field in _CONCEPT_ID_FIELDS:
        return {concept_id_to_provider_id(value) for value in values}
    return {ANY}


def condition_provider_ids(condition: Condition) -> set[str]:
    """Return provider ids for a condition, possibly including the ANY or NONE markers."""
    if isinstance(condition, ConditionGroup):
        provider_ids: set[str] = set()
        for child in condition.conditions:
            provider_ids |= condition_provider_ids(child)
        if NONE in provider_ids:
            return {NONE}
        if condition.operation == OR and ANY in provider_ids:
            return {ANY}
        return (provider_ids - {ANY}) or {ANY}
    if isinstance(condition, StringCondition):
        if condition.pattern:
            return {ANY}
        return _field_provider_ids(condition.field, [condition.value])
    if isinstance(condition, StringsCondition):
        return _field_provider_ids(condition.field, condition.values)
    return {ANY}


def extract_provider_ids(query: Query) -> set[str]:
    """Return the provider ids the query is limited to.

    An empty set means the query is not limited to specific providers.
    """
    provider_ids = condition_provider_ids(query.condition)
    if ANY in provider_ids or NONE in provider_ids:
        return set()
    return provider_ids
