"""Assembly of a `Query` from a request parameter map."""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING, Any, Mapping

from MetaSearch.core.conditions import MATCH_ALL, Condition, and_conds
from MetaSearch.core.context import QueryContext
from MetaSearch.core.errors import InvalidParameterValueError, UnsupportedParameterError
from MetaSearch.core.query import (
    CONCEPT_TYPES,
    DEFAULT_PAGE_NUM,
    DEFAULT_PAGE_SIZE,
    GRANULE,
    MAX_PAGE_SIZE,
    Query,
)
from MetaSearch.http.formats import FORMAT_MIME_TYPES
from MetaSearch.params.aliases import EXCLUDE_KEY, OPTIONS_KEY, normalize_param_names, resolve_aliases
from MetaSearch.params.conditions import build_condition, build_exclusion
from MetaSearch.params.legacy import fold_legacy_multi_params
from MetaSearch.params.options import as_values
from MetaSearch.params.sort_keys import parse_sort_key
from MetaSearch.utils.log import log

if TYPE_CHECKING:
    from MetaSearch.config.query import QueryConfig

SORT_KEY = "sort-key"
PAGE_SIZE = "page-size"
PAGE_NUM = "page-num"
RESULT_FORMAT = "result-format"
PRETTY = "pretty"
ECHO_COMPATIBLE = "echo-compatible"
ALL_REVISIONS = "all-revisions"
SKIP_ACLS = "skip-acls"

RESERVED_KEYS = frozenset(
    {
        OPTIONS_KEY,
        EXCLUDE_KEY,
        SORT_KEY,
        PAGE_SIZE,
        PAGE_NUM,
        RESULT_FORMAT,
        PRETTY,
        ECHO_COMPATIBLE,
        ALL_REVISIONS,
        SKIP_ACLS,
    }
)


def normalize_params(concept_type: str, params: Mapping[str, Any]) -> dict[str, Any]:
    """Return kebab-case, alias-resolved and legacy-folded parameters."""
    return fold_legacy_multi_params(concept_type, resolve_aliases(normalize_param_names(params)))


def parse_query(
    concept_type: str,
    params: Mapping[str, Any],
    *,
    context: QueryContext | None = None,
    config: QueryConfig | None = None,
) -> Query:
    """Parse request parameters into an executable query.

    Conditions are built for every non-reserved parameter in parameter order,
    followed by the `exclude` negations, and ANDed together. The first invalid
    parameter aborts the whole query.

    Args:
        concept_type: `collection` or `granule`.
        params: Deep-parsed request parameters.
        context: Collaborators for spatial and orbital conditions.
        config: Paging and result format defaults.

    Returns:
        The parsed query. Its condition is `MATCH_ALL` when nothing filters.

    Raises:
        ParameterValidationError: If any parameter is invalid.
    """
    if concept_type not in CONCEPT_TYPES:
        raise InvalidParameterValueError(f"Concept type [{concept_type}] is not searchable.")

    normalized = normalize_params(concept_type, params)
    options = normalized.get(OPTIONS_KEY)
    if options is not None and not isinstance(options, Mapping):
        raise InvalidParameterValueError(f"Parameter [{OPTIONS_KEY}] must be a map of field options.")
    context = _with_collection_ids(concept_type, normalized, context)

    conditions: list[Condition] = []
    for field, value in normalized.items():
        if field in RESERVED_KEYS:
            continue
        condition = build_condition(concept_type, field, value, options, context)
        if condition is not None:
            conditions.append(condition)

    exclude = normalized.get(EXCLUDE_KEY)
    if exclude is not None:
        if not isinstance(exclude, Mapping):
            raise InvalidParameterValueError(f"Parameter [{EXCLUDE_KEY}] must be a map of fields to values.")
        conditions.extend(build_exclusion(concept_type, field, value) for field, value in exclude.items())

    default_page_size = config.default_page_size if config else DEFAULT_PAGE_SIZE
    max_page_size = config.max_page_size if config else MAX_PAGE_SIZE
    all_revisions = _parse_flag(normalized, ALL_REVISIONS)
    if all_revisions and concept_type == GRANULE:
        raise UnsupportedParameterError(ALL_REVISIONS, concept_type)

    query = Query(
        concept_type=concept_type,
        condition=and_conds(conditions) if conditions else MATCH_ALL,
        page_size=_parse_page_size(normalized.get(PAGE_SIZE), default_page_size, max_page_size),
        page_num=_parse_page_num(normalized.get(PAGE_NUM)),
        sort_keys=parse_sort_key(normalized.get(SORT_KEY), concept_type),
        result_format=_parse_result_format(
            normalized.get(RESULT_FORMAT), config.default_result_format if config else None
        ),
        skip_acls=_parse_flag(normalized, SKIP_ACLS),
        echo_compatible=_parse_flag(normalized, ECHO_COMPATIBLE),
        pretty=_parse_flag(normalized, PRETTY),
        all_revisions_index=all_revisions,
    )
    log.debug(
        "Parsed %s query with %d condition(s), page %d of size %d",
        concept_type,
        len(conditions),
        query.page_num,
        query.page_size,
    )
    return query


def _with_collection_ids(
    concept_type: str, params: Mapping[str, Any], context: QueryContext | None
) -> QueryContext | None:
    """Fill the queried collection ids of a granule query from its parameters."""
    if context is None or concept_type != GRANULE or context.query_collection_ids:
        return context
    collection_ids = params.get("collection-concept-id")
    if collection_ids is None:
        return context
    return replace(context, query_collection_ids=tuple(as_values("collection-concept-id", collection_ids)))


def _single_value(params: Mapping[str, Any], key: str) -> str | None:
    value = params.get(key)
    if value is None:
        return None
    values = as_values(key, value)
    if len(values) != 1:
        raise InvalidParameterValueError(f"Parameter [{key}] must have a single value.")
    return values[0].strip()


def _parse_flag(params: Mapping[str, Any], key: str) -> bool:
    value = _single_value(params, key)
    if value is None:
        return False
    text = value.lower()
    if text not in ("true", "false"):
        raise InvalidParameterValueError(f"Parameter [{key}] must take value of true or false but was [{value}].")
    return text == "true"


def _parse_int(key: str, value: Any) -> int | None:
    text = _single_value({key: value}, key)
    if text is None:
        return None
    try:
        return int(text)
    except ValueError as exc:
        raise InvalidParameterValueError(f"Parameter [{key}] value [{text}] must be an integer.") from exc


def _parse_page_size(value: Any, default: int, maximum: int) -> int:
    page_size = _parse_int(PAGE_SIZE, value)
    if page_size is None:
        return default
    if not 1 <= page_size <= maximum:
        raise InvalidParameterValueError(
            f"{PAGE_SIZE} must be a number between 1 and {maximum} but was [{page_size}]."
        )
    return page_size


def _parse_page_num(value: Any) -> int:
    page_num = _parse_int(PAGE_NUM, value)
    if page_num is None:
        return DEFAULT_PAGE_NUM
    if page_num < 1:
        raise InvalidParameterValueError(
            f"{PAGE_NUM} must be a number greater than or equal to 1 but was [{page_num}]."
        )
    return page_num


def _parse_result_format(value: Any, default: str | None) -> str | None:
    fmt = _single_value({RESULT_FORMAT: value}, RESULT_FORMAT)
    if fmt is None:
        return default
    fmt = fmt.lower()
    if fmt == "iso":
        fmt = "iso19115"
    if fmt not in FORMAT_MIME_TYPES:
        raise InvalidParameterValueError(f"The result format [{fmt}] is not supported.")
    return fmt
