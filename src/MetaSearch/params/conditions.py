"""Per-field condition builders and the registry that selects them.

Each canonical field of a concept type has a parameter type. The parameter
type decides which builder turns the raw value and options into a condition:

- string: exact or pattern string matches
- num-range: `min,max` numeric ranges, a single value matches exactly
- date-range: `start,end` ISO 8601 ranges, a single value is start-only
- boolean: `true`, `false` or `unset` (no condition)
- spatial: bounding-box, point, line and polygon shapes
- attribute-name: additional attribute names
- readable-granule-name: granule-ur or producer-granule-id
- science-keywords: indexed keyword groups matched as nested documents
"""

from __future__ import annotations

import math
from collections.abc import Callable
from datetime import datetime
from types import MappingProxyType
from typing import Any, Final, Mapping

from dateutil import parser as date_parser
from dateutil import tz

from MetaSearch.core.conditions import (
    AND,
    OR,
    AttributeNameCondition,
    BooleanCondition,
    Condition,
    DateRangeCondition,
    NegatedCondition,
    NestedCondition,
    NumericRangeCondition,
    StringCondition,
    StringsCondition,
    and_conds,
    group_conds,
)
from MetaSearch.core.context import QueryContext
from MetaSearch.core.errors import (
    InvalidDateError,
    InvalidParameterValueError,
    NumericRangeParseError,
    UnsupportedParameterError,
)
from MetaSearch.core.keywords import HIERARCHICAL_FIELDS, SCIENCE_KEYWORDS
from MetaSearch.core.query import COLLECTION, GRANULE
from MetaSearch.params.options import (
    OR_OPTION,
    as_values,
    is_and,
    is_case_sensitive,
    is_pattern,
    option_flag,
)
from MetaSearch.params.spatial import SPATIAL_FIELDS, build_spatial_condition

STRING = "string"
NUM_RANGE = "num-range"
DATE_RANGE = "date-range"
BOOLEAN = "boolean"
SPATIAL = "spatial"
ATTRIBUTE_NAME = "attribute-name"
READABLE_GRANULE_NAME = "readable-granule-name"
SCIENCE_KEYWORDS_TYPE = "science-keywords"

ConditionBuilder = Callable[
    [str, str, Any, "Mapping[str, Any] | None", "QueryContext | None"], "Condition | None"
]

_SHARED_PARAM_TYPES: Final[dict[str, str]] = {
    "concept-id": STRING,
    "provider": STRING,
    "short-name": STRING,
    "version": STRING,
    "entry-title": STRING,
    "platform": STRING,
    "instrument": STRING,
    "sensor": STRING,
    "project": STRING,
    "downloadable": BOOLEAN,
    "browsable": BOOLEAN,
    "temporal": DATE_RANGE,
    "updated-since": DATE_RANGE,
    "revision-date": DATE_RANGE,
    "attribute-name": ATTRIBUTE_NAME,
    **{field: SPATIAL for field in SPATIAL_FIELDS},
}

PARAM_TYPES: Final[Mapping[str, Mapping[str, str]]] = MappingProxyType(
    {
        COLLECTION: MappingProxyType(
            {
                **_SHARED_PARAM_TYPES,
                "entry-id": STRING,
                "processing-level-id": STRING,
                "archive-center": STRING,
                "has-granules": BOOLEAN,
                SCIENCE_KEYWORDS: SCIENCE_KEYWORDS_TYPE,
            }
        ),
        GRANULE: MappingProxyType(
            {
                **_SHARED_PARAM_TYPES,
                "granule-ur": STRING,
                "producer-granule-id": STRING,
                "readable-granule-name": READABLE_GRANULE_NAME,
                "collection-concept-id": STRING,
                "day-night": STRING,
                "cloud-cover": NUM_RANGE,
                "orbit-number": NUM_RANGE,
                "equator-crossing-longitude": NUM_RANGE,
                "equator-crossing-date": DATE_RANGE,
            }
        ),
    }
)

# Fields accepted inside the `exclude` parameter map.
EXCLUDABLE_FIELDS = frozenset({"concept-id"})


def param_type(concept_type: str, field: str) -> str:
    """Return the parameter type of a canonical field.

    Raises:
        UnsupportedParameterError: If the field is not searchable for the concept type.
    """
    field_types = PARAM_TYPES.get(concept_type, {})
    kind = field_types.get(field)
    if kind is None:
        raise UnsupportedParameterError(field, concept_type)
    return kind


def build_condition(
    concept_type: str,
    field: str,
    value: Any,
    options: Mapping[str, Any] | None = None,
    context: QueryContext | None = None,
) -> Condition | None:
    """Build the condition for one canonical parameter.

    Args:
        concept_type: Concept type being searched.
        field: Canonical (alias-resolved, kebab-case) field name.
        value: A string, a list of strings, or a nested map for hierarchical fields.
        options: The whole `options` parameter map; only `options[field]` is read.
        context: Collaborators for spatial and orbital conditions.

    Returns:
        The condition, or None when the value asks for no filtering (`unset`).

    Raises:
        ParameterValidationError: For unknown fields and invalid values.
    """
    builder = _condition_builders()[param_type(concept_type, field)]
    return builder(concept_type, field, value, options, context)


def build_exclusion(concept_type: str, field: str, value: Any) -> Condition:
    """Build the negated condition for one entry of the `exclude` map."""
    if field not in EXCLUDABLE_FIELDS:
        raise InvalidParameterValueError(
            f"Parameter [{field}] is not a valid [exclude] search term for {concept_type} searches."
        )
    return and_conds(
        NegatedCondition(StringCondition(field=field, value=item, case_sensitive=True))
        for item in as_values(field, value)
    )


def _condition_builders() -> dict[str, ConditionBuilder]:
    """Return the builder registry keyed by parameter type."""
    return {
        STRING: _build_string,
        NUM_RANGE: _build_num_range,
        DATE_RANGE: _build_date_range,
        BOOLEAN: _build_boolean,
        SPATIAL: build_spatial_condition,
        ATTRIBUTE_NAME: _build_attribute_name,
        READABLE_GRANULE_NAME: _build_readable_granule_name,
        SCIENCE_KEYWORDS_TYPE: _build_science_keywords,
    }


def _multi_value_operation(field: str, options: Mapping[str, Any] | None) -> str:
    return AND if is_and(field, options) else OR


def _build_string(
    concept_type: str,
    field: str,
    value: Any,
    options: Mapping[str, Any] | None,
    context: QueryContext | None,
) -> Condition:
    del concept_type, context
    values = as_values(field, value)
    case_sensitive = is_case_sensitive(field, options)
    pattern = is_pattern(field, options)

    if len(values) == 1:
        return StringCondition(field=field, value=values[0], case_sensitive=case_sensitive, pattern=pattern)
    if is_and(field, options) or pattern:
        return group_conds(
            _multi_value_operation(field, options),
            [
                StringCondition(field=field, value=item, case_sensitive=case_sensitive, pattern=pattern)
                for item in values
            ],
        )
    return StringsCondition(field=field, values=tuple(values), case_sensitive=case_sensitive)


def _build_readable_granule_name(
    concept_type: str,
    field: str,
    value: Any,
    options: Mapping[str, Any] | None,
    context: QueryContext | None,
) -> Condition:
    """Match either the granule UR or the producer granule id."""
    del concept_type, context
    case_sensitive = is_case_sensitive(field, options)
    pattern = is_pattern(field, options)
    per_value = [
        group_conds(
            OR,
            [
                StringCondition(field=target, value=item, case_sensitive=case_sensitive, pattern=pattern)
                for target in ("granule-ur", "producer-granule-id")
            ],
        )
        for item in as_values(field, value)
    ]
    return group_conds(_multi_value_operation(field, options), per_value)


def _build_attribute_name(
    concept_type: str,
    field: str,
    value: Any,
    options: Mapping[str, Any] | None,
    context: QueryContext | None,
) -> Condition:
    del concept_type, context
    pattern = is_pattern(field, options)
    return group_conds(
        _multi_value_operation(field, options),
        [AttributeNameCondition(name=item, pattern=pattern) for item in as_values(field, value)],
    )


def _build_boolean(
    concept_type: str,
    field: str,
    value: Any,
    options: Mapping[str, Any] | None,
    context: QueryContext | None,
) -> Condition | None:
    del concept_type, options, context
    values = as_values(field, value)
    if len(values) != 1:
        raise InvalidParameterValueError(f"Parameter [{field}] must have a single value.")
    text = values[0].strip().lower()
    if text == "unset":
        return None
    if text not in ("true", "false"):
        raise InvalidParameterValueError(
            f"Parameter [{field}] must take value of true, false, or unset, but was [{values[0]}]."
        )
    return BooleanCondition(field=field, value=text == "true")


def parse_numeric_range(field: str, value: str) -> tuple[float | None, float | None]:
    """Parse `min,max` (either side may be empty) or a single exact value.

    Raises:
        NumericRangeParseError: If the value is not a valid range.
    """
    parts = [part.strip() for part in value.split(",")]
    if len(parts) == 1:
        parts = [parts[0], parts[0]]
    if len(parts) != 2:
        raise NumericRangeParseError(field, value, "Expected [min,max] or a single value.")

    bounds: list[float | None] = []
    for part in parts:
        if not part:
            bounds.append(None)
            continue
        try:
            number = float(part)
        except ValueError as exc:
            raise NumericRangeParseError(field, value, f"[{part}] is not a number.") from exc
        if not math.isfinite(number):
            raise NumericRangeParseError(field, value, f"[{part}] is not a finite number.")
        bounds.append(number)

    min_value, max_value = bounds
    if min_value is None and max_value is None:
        raise NumericRangeParseError(field, value, "At least one of min or max is required.")
    if min_value is not None and max_value is not None and min_value > max_value:
        raise NumericRangeParseError(field, value, "The min value must not exceed the max value.")
    return min_value, max_value


def _build_num_range(
    concept_type: str,
    field: str,
    value: Any,
    options: Mapping[str, Any] | None,
    context: QueryContext | None,
) -> Condition:
    del concept_type, context
    ranges = []
    for item in as_values(field, value):
        min_value, max_value = parse_numeric_range(field, item)
        ranges.append(NumericRangeCondition(field=field, min_value=min_value, max_value=max_value))
    return group_conds(_multi_value_operation(field, options), ranges)


def parse_date(field: str, raw: str, text: str) -> datetime:
    """Parse one ISO 8601 date. Dates without a zone are taken as UTC.

    Raises:
        InvalidDateError: If `text` is not a valid ISO 8601 date.
    """
    try:
        parsed = date_parser.isoparse(text)
    except (ValueError, OverflowError) as exc:
        raise InvalidDateError(field, raw, f"[{text}] is not a valid ISO 8601 date.") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz.UTC)
    return parsed


def parse_date_range(field: str, value: str) -> tuple[datetime | None, datetime | None]:
    """Parse `start,end` (either side may be empty) or a start-only date."""
    parts = [part.strip() for part in value.split(",")]
    if len(parts) > 2:
        raise InvalidDateError(field, value, "Expected [start,end] or a single date.")
    if len(parts) == 1:
        parts.append("")

    start_text, end_text = parts
    start = parse_date(field, value, start_text) if start_text else None
    end = parse_date(field, value, end_text) if end_text else None
    if start is None and end is None:
        raise InvalidDateError(field, value, "At least one of start or end is required.")
    if start is not None and end is not None and start > end:
        raise InvalidDateError(field, value, "The start date must not be after the end date.")
    return start, end


def _build_date_range(
    concept_type: str,
    field: str,
    value: Any,
    options: Mapping[str, Any] | None,
    context: QueryContext | None,
) -> Condition:
    del concept_type, context
    ranges = []
    for item in as_values(field, value):
        start, end = parse_date_range(field, item)
        ranges.append(DateRangeCondition(field=field, start_date=start, end_date=end))
    return group_conds(_multi_value_operation(field, options), ranges)


def _build_science_keywords(
    concept_type: str,
    field: str,
    value: Any,
    options: Mapping[str, Any] | None,
    context: QueryContext | None,
) -> Condition:
    """Build one nested condition per keyword index.

    The value is `{index: {subfield: value-or-values}}`. All subfields of one
    index must match the same keyword. Indexes are ANDed unless
    `options[science-keywords][or]=true`.
    """
    del concept_type, context
    if not isinstance(value, Mapping) or not value:
        raise InvalidParameterValueError(
            f"Parameter [{field}] must be of the form {field}[<index>][<subfield>]=<value>."
        )
    subfields = HIERARCHICAL_FIELDS[field]
    case_sensitive = is_case_sensitive(field, options)
    pattern = is_pattern(field, options)

    nested: list[Condition] = []
    for index, group in value.items():
        if not isinstance(group, Mapping) or not group:
            raise InvalidParameterValueError(
                f"Parameter [{field}[{index}]] must be a map of subfields to values."
            )
        subfield_conds: list[Condition] = []
        for subfield, subfield_value in group.items():
            if subfield not in subfields:
                raise InvalidParameterValueError(
                    f"Parameter [{field}[{index}][{subfield}]] is not a valid {field} subfield."
                )
            subfield_conds.append(
                group_conds(
                    OR,
                    [
                        StringCondition(
                            field=f"{field}.{subfield}",
                            value=item,
                            case_sensitive=case_sensitive,
                            pattern=pattern,
                        )
                        for item in as_values(subfield, subfield_value)
                    ],
                )
            )
        nested.append(NestedCondition(path=field, condition=and_conds(subfield_conds)))

    operation = OR if option_flag(options, field, OR_OPTION, False) else AND
    return group_conds(operation, nested)
