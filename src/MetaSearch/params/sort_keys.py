"""Parsing of the `sort-key` parameter."""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Final, Mapping

from MetaSearch.core.errors import InvalidSortFieldError
from MetaSearch.core.query import ASC, COLLECTION, DESC, GRANULE, SortKey
from MetaSearch.params.aliases import resolve_field_name
from MetaSearch.params.options import as_values

_SHARED_SORTABLE = frozenset(
    {
        "entry-title",
        "short-name",
        "version",
        "provider",
        "platform",
        "instrument",
        "sensor",
        "start-date",
        "end-date",
        "revision-date",
        "concept-id",
    }
)

SORTABLE_FIELDS: Final[Mapping[str, frozenset[str]]] = MappingProxyType(
    {
        COLLECTION: _SHARED_SORTABLE | {"entry-id", "processing-level-id", "archive-center", "score"},
        GRANULE: _SHARED_SORTABLE
        | {
            "granule-ur",
            "producer-granule-id",
            "readable-granule-name",
            "data-size",
            "cloud-cover",
            "day-night",
            "downloadable",
            "browsable",
            "orbit-number",
        },
    }
)


def parse_sort_key(value: Any, concept_type: str | None = None) -> tuple[SortKey, ...] | None:
    """Parse a sort key value into ordered sort keys.

    Each entry may carry a `+` (ascending, the default) or `-` (descending)
    prefix. Field names are alias-resolved, so `dataset-id` sorts by
    `entry-title`.

    Args:
        value: None, a string, or a list of strings.
        concept_type: When given, fields are checked against the sortable fields
            of that concept type.

    Returns:
        The sort keys in input order, or None when no sort key was given.

    Raises:
        InvalidSortFieldError: If a field is not sortable for the concept type.
    """
    if value is None:
        return None

    sort_keys: list[SortKey] = []
    for entry in as_values("sort-key", value):
        order = ASC
        name = entry.strip()
        if name[:1] in ("+", "-"):
            order = DESC if name[0] == "-" else ASC
            name = name[1:]
        field = resolve_field_name(name.replace("_", "-"))
        if not field:
            raise InvalidSortFieldError(entry, concept_type)
        if concept_type is not None and field not in SORTABLE_FIELDS.get(concept_type, frozenset()):
            raise InvalidSortFieldError(field, concept_type)
        sort_keys.append(SortKey(field=field, order=order))
    return tuple(sort_keys)
