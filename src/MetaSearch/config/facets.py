"""Facet domain configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from MetaSearch.config.common import expect_int, expect_str, get_required_value, get_section


@dataclass(frozen=True, slots=True)
class FacetConfig:
    """Store validated facet link settings.

    Attributes:
        base_url: Root URL of generated apply/remove links.
        size: Number of terms aggregated per hierarchical level.
    """

    base_url: str
    size: int


def load_facets(raw: Mapping[str, Any]) -> FacetConfig:
    """Load the `facets` section.

    Raises:
        TypeError: If config types are invalid.
        ValueError: If required keys are missing.
    """
    section = get_section(raw, "facets", required=True)
    return FacetConfig(
        base_url=expect_str(get_required_value(section, "base_url", "facets.base_url"), "facets.base_url"),
        size=expect_int(get_required_value(section, "size", "facets.size"), "facets.size"),
    )


def check_facets(config: FacetConfig) -> None:
    """Validate facet domain constraints.

    Raises:
        ValueError: If values violate facet constraints.
    """
    if not config.base_url.strip():
        raise ValueError("facets.base_url must not be empty")
    if "?" in config.base_url:
        raise ValueError("facets.base_url must not contain a query string")
    if config.size <= 0:
        raise ValueError("facets.size must be positive")
