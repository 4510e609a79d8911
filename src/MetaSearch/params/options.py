"""Per-field option handling (`options[<field>][<option>]=<value>`)."""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from MetaSearch.core.errors import InvalidOptionValueError, InvalidParameterValueError

IGNORE_CASE = "ignore-case"
PATTERN = "pattern"
AND_OPTION = "and"
OR_OPTION = "or"

_TRUE_VALUES = frozenset({"true"})
_FALSE_VALUES = frozenset({"false"})
_UNSET_VALUES = frozenset({"unset", ""})

# Identifiers are matched exactly regardless of the ignore-case option.
ALWAYS_CASE_SENSITIVE = frozenset({"concept-id", "collection-concept-id"})


def option_flag(options: Mapping[str, Any] | None, field: str, option: str, default: bool) -> bool:
    """Return a boolean option for a field.

    Args:
        options: The `options` parameter map, keyed by canonical field name.
        field: Canonical field name.
        option: Option name such as `ignore-case`.
        default: Value used when the option is absent or `unset`.

    Raises:
        InvalidOptionValueError: If the value is not true, false or unset.
    """
    if not options:
        return default
    field_options = options.get(field)
    if not isinstance(field_options, Mapping) or option not in field_options:
        return default
    raw = field_options[option]
    if isinstance(raw, bool):
        return raw
    text = str(raw).strip().lower() if isinstance(raw, str) else None
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    if text in _UNSET_VALUES:
        return default
    raise InvalidOptionValueError(field, option, raw)


def is_case_sensitive(field: str, options: Mapping[str, Any] | None) -> bool:
    if field in ALWAYS_CASE_SENSITIVE:
        return True
    return not option_flag(options, field, IGNORE_CASE, True)


def is_pattern(field: str, options: Mapping[str, Any] | None) -> bool:
    return option_flag(options, field, PATTERN, False)


def is_and(field: str, options: Mapping[str, Any] | None) -> bool:
    """Return whether multiple values should be ANDed (default is OR)."""
    return option_flag(options, field, AND_OPTION, False)


def as_values(field: str, value: Any) -> list[str]:
    """Normalize a scalar or list parameter value into a list of strings.

    Raises:
        InvalidParameterValueError: If the value is a nested map or empty list.
    """
    if isinstance(value, str):
        return [value]
    if isinstance(value, Mapping):
        raise InvalidParameterValueError(f"Parameter [{field}] must be a value or list of values.")
    if isinstance(value, Sequence):
        values = [str(item) for item in value]
        if not values:
            raise InvalidParameterValueError(f"Parameter [{field}] must have at least one value.")
        return values
    return [str(value)]
