"""CLI package for MetaSearch."""

from __future__ import annotations

__all__ = ["CommandRunner", "main"]

from MetaSearch.cli.runner import CommandRunner
from MetaSearch.cli.ui import cli


def main() -> None:
    """Run MetaSearch CLI.

    Entry point referenced by console script in pyproject.toml.
    """
    cli()
