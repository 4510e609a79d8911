"""Query string parsing at the HTTP boundary.

`parse_query_string` turns a raw query string into the nested parameter map
the query parser consumes:

- `key=v1&key=v2` and `key[]=v` produce lists
- `key[sub]=v` produces nested maps
- a key used both as a value and as a map (`foo=1&foo[bar]=2`) is rejected
"""

from __future__ import annotations

import re
from typing import Any, Mapping
from urllib.parse import parse_qsl

from MetaSearch.core.errors import InvalidParameterValueError, MixedArityParameterError

_MIXED_ARITY_PATTERNS = (
    re.compile(r"(^|&)(.*?)=.*?\2\["),
    re.compile(r"(^|&)(.*?)\[.*?\2="),
)
_KEY_PATTERN = re.compile(r"(?P<name>[^\[\]]+)(?P<segments>(?:\[[^\[\]]*\])*)")
_SEGMENT_PATTERN = re.compile(r"\[([^\[\]]*)\]")


def find_mixed_arity_param(query_string: str | None) -> str | None:
    """Return the first parameter used both single valued and as a map, else None.

    `foo=1&foo[bar]=2` and `foo[]=1&foo[bar]=2` are mixed arity,
    `foo=1&foo[]=2` is not.
    """
    if not query_string:
        return None
    normalized = query_string.replace("%5B", "[").replace("%5D", "]").replace("[]", "")
    for pattern in _MIXED_ARITY_PATTERNS:
        match = pattern.search(normalized)
        if match is not None:
            return match.group(2)
    return None


def _split_key(key: str) -> tuple[str, list[str]]:
    match = _KEY_PATTERN.fullmatch(key)
    if match is None:
        raise InvalidParameterValueError(f"Parameter name [{key}] is not valid.")
    return match.group("name"), _SEGMENT_PATTERN.findall(match.group("segments"))


def _append(target: dict[str, Any], name: str, value: str, *, as_list: bool, param: str) -> None:
    existing = target.get(name)
    if existing is None:
        target[name] = [value] if as_list else value
    elif isinstance(existing, Mapping):
        raise MixedArityParameterError(param)
    elif isinstance(existing, list):
        existing.append(value)
    else:
        target[name] = [existing, value]


def parse_query_string(query_string: str) -> dict[str, Any]:
    """Parse a query string into nested parameters.

    Raises:
        MixedArityParameterError: If a parameter is both single valued and a map.
        InvalidParameterValueError: If a parameter name is malformed.
    """
    mixed = find_mixed_arity_param(query_string)
    if mixed is not None:
        raise MixedArityParameterError(mixed)

    params: dict[str, Any] = {}
    for key, value in parse_qsl(query_string, keep_blank_values=True):
        name, segments = _split_key(key)
        as_list = bool(segments) and segments[-1] == ""
        if as_list:
            segments = segments[:-1]
        if any(segment == "" for segment in segments):
            raise InvalidParameterValueError(f"Parameter name [{key}] is not valid.")

        target = params
        path = [name, *segments]
        for part in path[:-1]:
            child = target.setdefault(part, {})
            if not isinstance(child, dict):
                raise MixedArityParameterError(name)
            target = child
        _append(target, path[-1], value, as_list=as_list, param=name)
    return params


def flatten_hierarchical_params(params: Mapping[str, Any]) -> dict[str, Any]:
    """Re-flatten nested maps into bracketed names.

    `{"science_keywords": {"0": {"topic": "X"}}}` becomes
    `{"science_keywords[0][topic]": "X"}`. Scalars and lists are kept as-is.
    """
    flat: dict[str, Any] = {}

    def visit(prefix: str, value: Any) -> None:
        if isinstance(value, Mapping):
            for key, child in value.items():
                visit(f"{prefix}[{key}]", child)
        else:
            flat[prefix] = value

    for key, value in params.items():
        if isinstance(value, Mapping):
            for child_key, child in value.items():
                visit(f"{key}[{child_key}]", child)
        else:
            flat[key] = value
    return flat


def parse_flat_query_string(query_string: str) -> dict[str, Any]:
    """Parse a query string keeping bracketed names flat.

    Repeated keys and `key[]` produce lists. This is the parameter form used
    by facet links.
    """
    return flatten_hierarchical_params(parse_query_string(query_string))
