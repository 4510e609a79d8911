"""Apply and remove links for hierarchical facet fields.

A hierarchical field is sent as flat bracketed parameters such as
`science_keywords[0][category]=EARTH SCIENCE&science_keywords[0][topic]=ATMOSPHERE`.
The index groups subfields that describe one keyword path; separate
selections use separate indexes.

Every function here takes the current flat parameters and returns a link to
the same search with one value applied or removed. The input parameters are
never modified. Values are compared case-insensitively.

Commonly used arguments:

- params: flat parameters, each value a string or a list of strings.
- field_name: a `base[index][subfield]` name. Its index is irrelevant: the
  index used by a link is computed from `params`.
- ancestors: subfield -> value for the parent terms of the value, e.g.
  `{"category": "EARTH SCIENCE", "topic": "ATMOSPHERE"}` for a term.
- parent_indexes: indexes whose parameters hold the parent terms.
- has_siblings: whether a sibling of the value is already applied under the
  same parent, so the value needs an index of its own.
- applied_children: (subfield, value) pairs of applied descendants that are
  removed together with the value.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Any, Iterable, Mapping, Sequence
from urllib.parse import urlencode

from MetaSearch.core.errors import MalformedFieldNameError
from MetaSearch.core.keywords import to_snake

ParamValue = str | Sequence[str]
Link = dict[str, str]

APPLY = "apply"
REMOVE = "remove"

_FIELD_NAME_PATTERN = re.compile(r"(?P<base>[^\[\]]+)\[(?P<index>\d+)\]\[(?P<subfield>[^\[\]]+)\]")
_EXCLUDED_LINK_PARAMS = frozenset({"page_num", "page-num"})


@dataclass(frozen=True, slots=True)
class HierarchicalFieldName:
    """Parsed `base[index][subfield]` parameter name.

    Base and subfield are kept in their snake_case query parameter spelling.
    """

    base: str
    index: int
    subfield: str

    @classmethod
    def parse(cls, name: str) -> HierarchicalFieldName:
        """Parse a bracketed parameter name.

        Raises:
            MalformedFieldNameError: If `name` is not of the form `base[index][subfield]`.
        """
        parsed = cls.try_parse(name)
        if parsed is None:
            raise MalformedFieldNameError(name)
        return parsed

    @classmethod
    def try_parse(cls, name: str) -> HierarchicalFieldName | None:
        match = _FIELD_NAME_PATTERN.fullmatch(name)
        if match is None:
            return None
        return cls(
            base=to_snake(match.group("base")),
            index=int(match.group("index")),
            subfield=to_snake(match.group("subfield")),
        )

    def at(self, index: int) -> HierarchicalFieldName:
        return replace(self, index=index)

    def with_subfield(self, subfield: str) -> HierarchicalFieldName:
        return replace(self, subfield=to_snake(subfield))

    def __str__(self) -> str:
        return f"{self.base}[{self.index}][{self.subfield}]"


def _values(value: ParamValue) -> list[str]:
    if isinstance(value, str):
        return [value]
    return [str(item) for item in value]


def _contains(value: ParamValue, term: str) -> bool:
    term = term.lower()
    return any(item.lower() == term for item in _values(value))


def _fields_of(params: Mapping[str, Any], base: str) -> Iterable[tuple[str, HierarchicalFieldName]]:
    """Yield (key, parsed name) for every parameter of the base field."""
    for key in params:
        name = HierarchicalFieldName.try_parse(key)
        if name is not None and name.base == base:
            yield key, name


def get_indexes(params: Mapping[str, Any], base: str) -> set[int]:
    """Return every index used by the base field."""
    return {name.index for _, name in _fields_of(params, base)}


def params_by_index(params: Mapping[str, ParamValue], base: str) -> dict[int, dict[str, ParamValue]]:
    """Group the base field's parameters as index -> subfield -> value."""
    grouped: dict[int, dict[str, ParamValue]] = {}
    for key, name in _fields_of(params, base):
        grouped.setdefault(name.index, {})[name.subfield] = params[key]
    return grouped


def get_max_index(params: Mapping[str, Any], base: str) -> int:
    """Return the highest index used by the base field, or -1 when it is absent."""
    return max(get_indexes(params, base), default=-1)


def value_exists(params: Mapping[str, Any], field: HierarchicalFieldName, value: str) -> bool:
    """Return whether `value` is applied for the field's subfield at any index."""
    return any(
        name.subfield == field.subfield and _contains(params[key], value)
        for key, name in _fields_of(params, field.base)
    )


def generate_query_string(base_url: str, params: Mapping[str, ParamValue]) -> str:
    """Serialize params into a link.

    Keys are sorted and `page_num` is dropped so a link always starts on the
    first page. Brackets are left unescaped. List values of plain keys are
    written as `key[]=value`, list values of bracketed keys repeat the key.
    """
    pairs: list[tuple[str, str]] = []
    for key in sorted(params):
        if key in _EXCLUDED_LINK_PARAMS:
            continue
        value = params[key]
        if isinstance(value, str):
            pairs.append((key, value))
            continue
        name = key if key.endswith("]") else f"{key}[]"
        pairs.extend((name, item) for item in _values(value))
    if not pairs:
        return base_url
    query = urlencode(pairs).replace("%5B", "[").replace("%5D", "]")
    return f"{base_url}?{query}"


def _remove_term(
    params: dict[str, ParamValue],
    base: str,
    subfield: str,
    term: str,
    indexes: set[int] | None,
) -> dict[str, ParamValue]:
    """Remove `term` from every matching subfield parameter.

    Single valued parameters are dropped, list valued parameters lose the
    matching value and are dropped once empty.
    """
    subfield = to_snake(subfield)
    updated = dict(params)
    for key, name in list(_fields_of(params, base)):
        if name.subfield != subfield or (indexes is not None and name.index not in indexes):
            continue
        value = params[key]
        if not _contains(value, term):
            continue
        remaining = [item for item in _values(value) if item.lower() != term.lower()]
        if isinstance(value, str) or not remaining:
            del updated[key]
        else:
            updated[key] = remaining
    return updated


def _comparable(value: ParamValue) -> frozenset[str]:
    return frozenset(item.lower() for item in _values(value))


def find_duplicate_indexes(params: Mapping[str, ParamValue], base: str) -> set[int]:
    """Return indexes whose parameters are duplicated by another index.

    An index is a duplicate when its subfield values (ignoring the index) are a
    proper subset of another index's, or exactly equal to those of a lower index.
    """
    by_index = {
        index: {subfield: _comparable(value) for subfield, value in group.items()}
        for index, group in params_by_index(params, base).items()
    }

    duplicates: set[int] = set()
    for index, group in by_index.items():
        for other_index, other_group in by_index.items():
            if index == other_index:
                continue
            is_subset = all(other_group.get(subfield) == values for subfield, values in group.items())
            if is_subset and (group != other_group or index > other_index):
                duplicates.add(index)
                break
    return duplicates


def remove_duplicate_indexes(params: Mapping[str, ParamValue], base: str) -> dict[str, ParamValue]:
    """Drop every parameter of an index duplicated by another index."""
    duplicates = find_duplicate_indexes(params, base)
    if not duplicates:
        return dict(params)
    duplicate_keys = {key for key, name in _fields_of(params, base) if name.index in duplicates}
    return {key: value for key, value in params.items() if key not in duplicate_keys}


def create_apply_link(
    base_url: str,
    params: Mapping[str, ParamValue],
    field_name: str | HierarchicalFieldName,
    value: str,
    ancestors: Mapping[str, str] | None = None,
    parent_indexes: Iterable[int] = (),
    has_siblings: bool = False,
) -> Link:
    """Return a link that also filters on the hierarchical value.

    The value is attached to its parent's index when possible. When a sibling
    is already applied, or no parent index exists, a fresh index is allocated
    and the ancestors are copied into it so the new index is self-contained.
    """
    field = _as_field_name(field_name)
    parent_indexes = sorted(set(parent_indexes))
    fresh_index = has_siblings or not parent_indexes
    index = get_max_index(params, field.base) + 1 if fresh_index else parent_indexes[0]

    updated: dict[str, ParamValue] = dict(params)
    updated[str(field.at(index))] = value
    if fresh_index:
        for subfield, ancestor_value in (ancestors or {}).items():
            updated[str(field.at(index).with_subfield(subfield))] = ancestor_value
    return {APPLY: generate_query_string(base_url, updated)}


def create_remove_link(
    base_url: str,
    params: Mapping[str, ParamValue],
    field_name: str | HierarchicalFieldName,
    value: str,
    applied_children: Sequence[tuple[str, str]] = (),
    indexes: Iterable[int] | None = None,
) -> Link:
    """Return a link that no longer filters on the hierarchical value.

    Args:
        base_url: Root URL of the link.
        params: Current flat parameters.
        field_name: Hierarchical field name of the value.
        value: Value to remove.
        applied_children: (subfield, value) pairs of applied descendants
            removed along with the value.
        indexes: Restricts removal to these indexes. All indexes when None.
    """
    field = _as_field_name(field_name)
    index_filter = set(indexes) if indexes is not None else None

    updated: dict[str, ParamValue] = dict(params)
    for subfield, term in (*applied_children, (field.subfield, value)):
        updated = _remove_term(updated, field.base, subfield, term, index_filter)
    updated = remove_duplicate_indexes(updated, field.base)
    return {REMOVE: generate_query_string(base_url, updated)}


def get_matching_ancestor_indexes(
    params: Mapping[str, ParamValue],
    base: str,
    parent_indexes: Iterable[int],
    ancestors: Mapping[str, str],
) -> set[int]:
    """Return the parent indexes at which every ancestor value is applied."""
    by_index = params_by_index(params, base)
    matches: set[int] = set()
    for index in parent_indexes:
        applied = by_index.get(index, {})
        if all(
            to_snake(subfield) in applied and _contains(applied[to_snake(subfield)], term)
            for subfield, term in ancestors.items()
        ):
            matches.add(index)
    return matches


def create_link(
    base_url: str,
    params: Mapping[str, ParamValue],
    field_name: str | HierarchicalFieldName,
    value: str,
    ancestors: Mapping[str, str] | None = None,
    parent_indexes: Iterable[int] = (),
    has_siblings: bool = False,
    applied_children: Sequence[tuple[str, str]] = (),
) -> Link:
    """Return a remove link when the value is applied, else an apply link.

    Below the first two levels a value only counts as applied when its full
    ancestor chain is applied at the same index. Top level values count as
    applied wherever they appear.
    """
    field = _as_field_name(field_name)
    ancestors = dict(ancestors or {})
    parent_indexes = tuple(parent_indexes)

    if any(to_snake(subfield) != "category" for subfield in ancestors):
        matched = get_matching_ancestor_indexes(
            params, field.base, parent_indexes, {**ancestors, field.subfield: value}
        )
        if matched:
            return create_remove_link(base_url, params, field, value, applied_children, matched)
    elif value_exists(params, field, value):
        return create_remove_link(base_url, params, field, value, applied_children)
    return create_apply_link(base_url, params, field, value, ancestors, parent_indexes, has_siblings)


def _as_field_name(field_name: str | HierarchicalFieldName) -> HierarchicalFieldName:
    if isinstance(field_name, HierarchicalFieldName):
        return field_name
    return HierarchicalFieldName.parse(field_name)
