"""Hierarchical keyword fields and their ordered subfields."""

from __future__ import annotations

from types import MappingProxyType
from typing import Final, Mapping

SCIENCE_KEYWORDS = "science-keywords"

HIERARCHICAL_FIELDS: Final[Mapping[str, tuple[str, ...]]] = MappingProxyType(
    {
        SCIENCE_KEYWORDS: (
            "category",
            "topic",
            "term",
            "variable-level-1",
            "variable-level-2",
            "variable-level-3",
        ),
    }
)

HUMAN_READABLE_LABELS: Final[Mapping[str, str]] = MappingProxyType(
    {
        SCIENCE_KEYWORDS: "Keywords",
    }
)


def to_snake(name: str) -> str:
    """Return the query-parameter spelling of a field name (`variable_level_1`)."""
    return name.replace("-", "_")


def to_kebab(name: str) -> str:
    """Return the canonical spelling of a field name (`variable-level-1`)."""
    return name.replace("_", "-")
