"""Parameter name normalization and legacy alias resolution.

Requests may use snake_case or kebab-case names and a handful of legacy names
inherited from older APIs. Both are rewritten to the canonical kebab-case name
before any condition is built.

Rules
- Aliases are resolved at the top level and inside `options` and `exclude`.
- When an alias collides with a key that is already present, the values are
  merged: existing value(s) first, then the incoming value(s), without
  deduplication.
- Colliding `options` entries are merged per field; keys already present win.
- Unknown keys pass through unchanged.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Final, Mapping

OPTIONS_KEY = "options"
EXCLUDE_KEY = "exclude"

PARAM_ALIASES: Final[Mapping[str, str]] = MappingProxyType(
    {
        "dataset-id": "entry-title",
        "dif-entry-id": "entry-id",
        "echo-granule-id": "concept-id",
        "echo-collection-id": "concept-id",
        "campaign": "project",
        "online-only": "downloadable",
        "browse-only": "browsable",
        "day-night-flag": "day-night",
    }
)


def resolve_field_name(name: str) -> str:
    """Return the canonical name for a single field name."""
    return PARAM_ALIASES.get(name, name)


def normalize_param_names(params: Mapping[str, Any]) -> dict[str, Any]:
    """Rewrite snake_case parameter names to kebab-case, recursively.

    Values are left untouched; only mapping keys are rewritten.
    """
    normalized: dict[str, Any] = {}
    for key, value in params.items():
        name = str(key).replace("_", "-")
        if isinstance(value, Mapping):
            value = normalize_param_names(value)
        if name in normalized:
            normalized[name] = _merge_values(normalized[name], value)
        else:
            normalized[name] = value
    return normalized


def resolve_aliases(params: Mapping[str, Any]) -> dict[str, Any]:
    """Rename legacy parameter names to canonical names.

    Args:
        params: Parameter map with kebab-case keys.

    Returns:
        A new parameter map. The input is not modified.
    """
    resolved: dict[str, Any] = {}
    for key, value in params.items():
        if key == OPTIONS_KEY and isinstance(value, Mapping):
            resolved[key] = _resolve_options(value)
        elif key == EXCLUDE_KEY and isinstance(value, Mapping):
            resolved[key] = _resolve_flat(value)
        else:
            _put(resolved, resolve_field_name(key), value)
    return resolved


def _resolve_flat(params: Mapping[str, Any]) -> dict[str, Any]:
    resolved: dict[str, Any] = {}
    for key, value in params.items():
        _put(resolved, resolve_field_name(key), value)
    return resolved


def _resolve_options(options: Mapping[str, Any]) -> dict[str, Any]:
    resolved: dict[str, Any] = {}
    for field, field_options in options.items():
        name = resolve_field_name(field)
        existing = resolved.get(name)
        if isinstance(existing, Mapping) and isinstance(field_options, Mapping):
            merged = dict(existing)
            for option, option_value in field_options.items():
                merged.setdefault(option, option_value)
            resolved[name] = merged
        elif isinstance(field_options, Mapping):
            resolved[name] = dict(field_options)
        else:
            resolved[name] = field_options
    return resolved


def _put(target: dict[str, Any], key: str, value: Any) -> None:
    if key in target:
        target[key] = _merge_values(target[key], value)
    else:
        target[key] = value


def _merge_values(existing: Any, incoming: Any) -> Any:
    if isinstance(existing, Mapping) and isinstance(incoming, Mapping):
        merged = dict(existing)
        for key, value in incoming.items():
            merged[key] = _merge_values(merged[key], value) if key in merged else value
        return merged
    return _as_list(existing) + _as_list(incoming)


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]
