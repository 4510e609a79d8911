"""Click CLI interface definitions.

Defines the command-line interface structure and routes commands
to the command runner.
"""

from __future__ import annotations

from pathlib import Path

import click
from dotenv import load_dotenv

from MetaSearch.cli.commands import (
    FacetAggregationCommand,
    FacetLinkCommand,
    FacetsCommand,
    FormatCommand,
    ParseCommand,
)
from MetaSearch.cli.runner import CommandRunner
from MetaSearch.config import load_config_with_defaults
from MetaSearch.core.query import CONCEPT_TYPES


def _pairs(values: tuple[str, ...], option: str) -> tuple[tuple[str, str], ...]:
    """Parse repeated `subfield=value` options."""
    pairs = []
    for item in values:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected subfield=value but got [{item}]", param_hint=option)
        pairs.append((key, value))
    return tuple(pairs)


@click.group(help="MetaSearch: turn search parameters into query condition trees and facet links.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=Path("config/default.yml"),
    show_default=True,
    help="Path to YAML config file, merged over config/default.yml.",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path) -> None:
    """CLI entry group.

    Loads environment variables from .env file before processing config.
    """
    load_dotenv()
    ctx.obj = load_config_with_defaults(config_path)


@cli.command("parse")
@click.argument("concept_type", type=click.Choice(CONCEPT_TYPES))
@click.argument("query_string")
@click.pass_context
def parse_cmd(ctx: click.Context, concept_type: str, query_string: str) -> None:
    """Print the parsed query for QUERY_STRING as JSON."""
    command = ParseCommand(config=ctx.obj, concept_type=concept_type, query_string=query_string)
    CommandRunner(ctx.obj).run(ctx.command.name, command)


@cli.command("facet-link")
@click.argument("query_string")
@click.argument("field_name")
@click.argument("value")
@click.option("--ancestor", "ancestors", multiple=True, help="Parent term as subfield=value.")
@click.option("--parent-index", "parent_indexes", type=int, multiple=True, help="Index holding the parent terms.")
@click.option("--has-siblings", is_flag=True, help="A sibling of VALUE is already applied.")
@click.option("--child", "children", multiple=True, help="Applied child term as subfield=value.")
@click.pass_context
def facet_link_cmd(
    ctx: click.Context,
    query_string: str,
    field_name: str,
    value: str,
    ancestors: tuple[str, ...],
    parent_indexes: tuple[int, ...],
    has_siblings: bool,
    children: tuple[str, ...],
) -> None:
    """Print the apply or remove link for VALUE of FIELD_NAME (e.g. science_keywords[0][topic])."""
    command = FacetLinkCommand(
        config=ctx.obj,
        query_string=query_string,
        field_name=field_name,
        value=value,
        ancestors=dict(_pairs(ancestors, "--ancestor")),
        parent_indexes=parent_indexes,
        has_siblings=has_siblings,
        applied_children=_pairs(children, "--child"),
    )
    CommandRunner(ctx.obj).run(ctx.command.name, command)


@cli.command("facets")
@click.argument("query_string")
@click.argument("aggregations", type=click.Path(path_type=Path, dir_okay=False, exists=True))
@click.pass_context
def facets_cmd(ctx: click.Context, query_string: str, aggregations: Path) -> None:
    """Print hierarchical facets built from an AGGREGATIONS JSON file."""
    command = FacetsCommand(config=ctx.obj, query_string=query_string, aggregations_path=aggregations)
    CommandRunner(ctx.obj).run(ctx.command.name, command)


@cli.command("facet-aggregation")
@click.argument("query_string")
@click.pass_context
def facet_aggregation_cmd(ctx: click.Context, query_string: str) -> None:
    """Print the nested facet aggregation request for QUERY_STRING."""
    command = FacetAggregationCommand(config=ctx.obj, query_string=query_string)
    CommandRunner(ctx.obj).run(ctx.command.name, command)


@cli.command("format")
@click.argument("path")
@click.option("--accept", default=None, help="Accept header value.")
@click.option("--content-type", "content_type", default=None, help="Content-Type header value.")
@click.option("--default", "default_mime_type", default="application/xml", show_default=True)
@click.pass_context
def format_cmd(
    ctx: click.Context, path: str, accept: str | None, content_type: str | None, default_mime_type: str
) -> None:
    """Print the result format requested by PATH and headers."""
    command = FormatCommand(
        config=ctx.obj,
        path=path,
        accept=accept,
        content_type=content_type,
        default_mime_type=default_mime_type,
    )
    CommandRunner(ctx.obj).run(ctx.command.name, command)
