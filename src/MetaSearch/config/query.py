"""Query domain configuration (paging and result format defaults)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from MetaSearch.config.common import expect_int, expect_str, get_section
from MetaSearch.core.query import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from MetaSearch.http.formats import FORMAT_MIME_TYPES


@dataclass(frozen=True, slots=True)
class QueryConfig:
    """Store validated query parsing defaults.

    Attributes:
        default_page_size: Page size used when the request has none.
        max_page_size: Largest page size a request may ask for.
        default_result_format: Result format used when the request has none,
            or None to leave it to the HTTP layer.
    """

    default_page_size: int = DEFAULT_PAGE_SIZE
    max_page_size: int = MAX_PAGE_SIZE
    default_result_format: str | None = None


def load_query(raw: Mapping[str, Any]) -> QueryConfig:
    """Load the optional `query` section.

    Raises:
        TypeError: If config types are invalid.
    """
    section = get_section(raw, "query", required=False)
    result_format = section.get("default_result_format")
    return QueryConfig(
        default_page_size=expect_int(
            section.get("default_page_size", DEFAULT_PAGE_SIZE), "query.default_page_size"
        ),
        max_page_size=expect_int(section.get("max_page_size", MAX_PAGE_SIZE), "query.max_page_size"),
        default_result_format=(
            expect_str(result_format, "query.default_result_format") if result_format is not None else None
        ),
    )


def check_query(config: QueryConfig) -> None:
    """Validate query domain constraints.

    Raises:
        ValueError: If values violate query constraints.
    """
    if not 1 <= config.max_page_size <= MAX_PAGE_SIZE:
        raise ValueError(f"query.max_page_size must be between 1 and {MAX_PAGE_SIZE}")
    if not 1 <= config.default_page_size <= config.max_page_size:
        raise ValueError("query.default_page_size must be between 1 and query.max_page_size")
    if config.default_result_format is not None and config.default_result_format not in FORMAT_MIME_TYPES:
        raise ValueError(
            f"query.default_result_format must be one of {sorted(FORMAT_MIME_TYPES)}"
        )
