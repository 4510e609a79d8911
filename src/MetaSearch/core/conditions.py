"""Query condition tree.

Conditions are immutable leaf nodes combined with AND/OR groups. The tree is
built once per request from the request parameters and handed to the search
engine adapter, which translates each node type into its own filter clause.

Leaf types
- StringCondition / StringsCondition: exact or pattern matches on one field
- NumericRangeCondition / DateRangeCondition: inclusive ranges, open on a
  missing side
- NumericRangeIntersectionCondition: a stored [min_field, max_field] range
  that overlaps the given range
- BooleanCondition, AttributeNameCondition
- ScriptCondition: opaque engine script (spatial)
- NestedCondition: condition on a nested document path
- NegatedCondition: excludes whatever the wrapped condition matches

Groups are always created through `group_conds` (or `and_conds`/`or_conds`)
so a group never has zero children and never wraps a single child.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Union

AND = "and"
OR = "or"
_OPERATIONS = frozenset({AND, OR})


@dataclass(frozen=True, slots=True)
class MatchAllCondition:
    """Matches every document."""


@dataclass(frozen=True, slots=True)
class MatchNoneCondition:
    """Matches no documents."""


MATCH_ALL = MatchAllCondition()
MATCH_NONE = MatchNoneCondition()


@dataclass(frozen=True, slots=True)
class StringCondition:
    """Match a single string value on a field.

    Attributes:
        field: Canonical field name.
        value: Literal value. Wildcards are only interpreted when `pattern` is set.
        case_sensitive: Whether matching respects case.
        pattern: Whether `*` and `?` in the value act as wildcards.
    """

    field: str
    value: str
    case_sensitive: bool = False
    pattern: bool = False


@dataclass(frozen=True, slots=True)
class StringsCondition:
    """Match any of several exact values on a field."""

    field: str
    values: tuple[str, ...]
    case_sensitive: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", tuple(self.values))


@dataclass(frozen=True, slots=True)
class NumericRangeCondition:
    field: str
    min_value: float | None = None
    max_value: float | None = None


@dataclass(frozen=True, slots=True)
class DateRangeCondition:
    field: str
    start_date: datetime | None = None
    end_date: datetime | None = None


@dataclass(frozen=True, slots=True)
class NumericRangeIntersectionCondition:
    """Match documents whose [min_field, max_field] range intersects [min_value, max_value]."""

    min_field: str
    max_field: str
    min_value: float
    max_value: float


@dataclass(frozen=True, slots=True)
class BooleanCondition:
    field: str
    value: bool


@dataclass(frozen=True, slots=True)
class AttributeNameCondition:
    """Match documents that carry an additional attribute with the given name."""

    name: str
    pattern: bool = False


@dataclass(frozen=True, slots=True)
class ScriptCondition:
    """Opaque script passed through to the search engine.

    Attributes:
        name: Script name registered with the engine (e.g. "spatial").
        params: Script parameters, kept as a read-only mapping.
    """

    name: str
    params: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "params", MappingProxyType(dict(self.params)))


@dataclass(frozen=True, slots=True)
class NestedCondition:
    path: str
    condition: "Condition"


@dataclass(frozen=True, slots=True)
class NegatedCondition:
    condition: "Condition"


@dataclass(frozen=True, slots=True)
class ConditionGroup:
    """AND/OR combination of two or more conditions."""

    operation: str
    conditions: tuple["Condition", ...]

    def __post_init__(self) -> None:
        if self.operation not in _OPERATIONS:
            raise ValueError(f"Unknown group operation: {self.operation}")
        conditions = tuple(self.conditions)
        if not conditions:
            raise ValueError("A condition group requires at least one condition")
        object.__setattr__(self, "conditions", conditions)


Condition = Union[
    MatchAllCondition,
    MatchNoneCondition,
    StringCondition,
    StringsCondition,
    NumericRangeCondition,
    DateRangeCondition,
    NumericRangeIntersectionCondition,
    BooleanCondition,
    AttributeNameCondition,
    ScriptCondition,
    NestedCondition,
    NegatedCondition,
    ConditionGroup,
]


def group_conds(operation: str, conditions: Iterable[Condition]) -> Condition:
    """Combine conditions with the given operation.

    Nested groups with the same operation are flattened, match-all and
    match-none sentinels are simplified away, and a single remaining condition
    is returned as-is.

    Args:
        operation: `AND` or `OR`.
        conditions: Conditions to combine.

    Returns:
        The combined condition.

    Raises:
        ValueError: If `conditions` is empty or the operation is unknown.
    """
    if operation not in _OPERATIONS:
        raise ValueError(f"Unknown group operation: {operation}")
    items = list(conditions)
    if not items:
        raise ValueError("Cannot group an empty list of conditions")

    flattened: list[Condition] = []
    for condition in items:
        if isinstance(condition, ConditionGroup) and condition.operation == operation:
            flattened.extend(condition.conditions)
        else:
            flattened.append(condition)

    if operation == AND:
        if any(c == MATCH_NONE for c in flattened):
            return MATCH_NONE
        flattened = [c for c in flattened if c != MATCH_ALL] or [MATCH_ALL]
    else:
        if any(c == MATCH_ALL for c in flattened):
            return MATCH_ALL
        flattened = [c for c in flattened if c != MATCH_NONE] or [MATCH_NONE]

    if len(flattened) == 1:
        return flattened[0]
    return ConditionGroup(operation=operation, conditions=tuple(flattened))


def and_conds(conditions: Iterable[Condition]) -> Condition:
    return group_conds(AND, conditions)


def or_conds(conditions: Iterable[Condition]) -> Condition:
    return group_conds(OR, conditions)
