from __future__ import annotations

from dataclasses import dataclass

from MetaSearch.core.conditions import MATCH_ALL, Condition

COLLECTION = "collection"
GRANULE = "granule"
CONCEPT_TYPES = (COLLECTION, GRANULE)

ASC = "asc"
DESC = "desc"

DEFAULT_PAGE_SIZE = 10
DEFAULT_PAGE_NUM = 1
MAX_PAGE_SIZE = 2000


@dataclass(frozen=True, slots=True)
class SortKey:
    """One entry of a sort specification.

    Attributes:
        field: Canonical field name.
        order: `asc` or `desc`.
    """

    field: str
    order: str = ASC


@dataclass(frozen=True, slots=True)
class Query:
    """Executable query handed to the search engine adapter.

    The condition is always a single node: an empty parameter map yields
    `MATCH_ALL`, never an empty group.

    Attributes:
        concept_type: `collection` or `granule`.
        condition: Root of the condition tree.
        page_size: Number of results per page.
        page_num: One-based page number.
        sort_keys: Ordered sort keys, or None for the engine default.
        result_format: Requested result format name (e.g. "json").
        skip_acls: Whether ACL filtering is bypassed.
        echo_compatible: Whether legacy-compatible responses are requested.
        pretty: Whether the response should be pretty printed.
        all_revisions_index: Whether all revisions are searched.
    """

    concept_type: str
    condition: Condition = MATCH_ALL
    page_size: int = DEFAULT_PAGE_SIZE
    page_num: int = DEFAULT_PAGE_NUM
    sort_keys: tuple[SortKey, ...] | None = None
    result_format: str | None = None
    skip_acls: bool = False
    echo_compatible: bool = False
    pretty: bool = False
    all_revisions_index: bool = False
