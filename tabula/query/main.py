"""tabula-query CLI entrypoint."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any

import click
import yaml

from tabula.shared.cli import CLIContext, common_cli_options, handle_cli_errors, pass_cli_context

from . import executor, render
from .types import QueryResult

OUTPUT_FORMAT_CHOICES = ("table", "tsv", "csv", "json")
SCHEMA_FORMAT_CHOICES = ("table", "json")
SORT_DIRECTIONS = ("asc", "desc")

data_path_argument = click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
key_column_option = click.option(
    "--key-column",
    "key_column",
    type=str,
    help="Re-key rows by this (unique, not-null) column before querying.",
)
where_option = click.option(
    "-w",
    "--where",
    "where",
    multiple=True,
    metavar='"FIELD OP [VALUE]"',
    help="Filter criterion, e.g. 'age >= 30' or 'name in [Ann, Bob]'. Repeatable.",
)
column_option = click.option(
    "-c",
    "--column",
    "columns",
    multiple=True,
    metavar="COLUMN",
    help="Column to include, in output order. Repeatable; defaults to all columns.",
)


@click.group(help="Query JSON, YAML and CSV data files as tables.")
@common_cli_options
@handle_cli_errors
def cli(cli_ctx: CLIContext) -> None:
    """Primary Click group for tabula-query commands."""
    cli_ctx.logger.debug("Command group initialised.")


@cli.command("schema")
@data_path_argument
@key_column_option
@click.option(
    "--format",
    "output_format",
    default="table",
    show_default=True,
    type=click.Choice(SCHEMA_FORMAT_CHOICES),
)
@pass_cli_context
@handle_cli_errors
def show_schema(
    cli_ctx: CLIContext,
    path: Path,
    key_column: str | None,
    output_format: str,
) -> None:
    """Display the inferred schema of a data file."""
    _log_subcommand_entry(cli_ctx, "schema", path)
    overview = executor.describe_source(config=cli_ctx.config, path=path, key_column=key_column)
    render.render_schema_overview(overview, output_format=output_format, logger=cli_ctx.logger)


@cli.command("query")
@data_path_argument
@where_option
@column_option
@click.option(
    "-o",
    "--order",
    "order",
    multiple=True,
    metavar="COLUMN[:asc|desc]",
    help="Sort column and direction. Repeatable; earlier entries take precedence.",
)
@click.option("--limit", type=int, help="Override the default row limit (0 for no limit).")
@click.option("--offset", type=int, default=0, show_default=True, help="Skip this many matching rows.")
@key_column_option
@click.option("--format", "output_format", type=click.Choice(OUTPUT_FORMAT_CHOICES), help="Output format.")
@pass_cli_context
@handle_cli_errors
def run_query(
    cli_ctx: CLIContext,
    path: Path,
    where: Iterable[str],
    columns: Iterable[str],
    order: Iterable[str],
    limit: int | None,
    offset: int,
    key_column: str | None,
    output_format: str | None,
) -> None:
    """Filter, project, sort and page the rows of a data file."""
    _log_subcommand_entry(cli_ctx, "query", path)
    try:
        criteria = [_parse_where(expression) for expression in where]
        sort_order = [_parse_order(entry) for entry in order]
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc

    result = executor.run_query(
        config=cli_ctx.config,
        path=path,
        criteria=criteria,
        columns=list(columns),
        order=sort_order,
        limit=limit,
        offset=offset,
        key_column=key_column,
    )
    _render_query_output(cli_ctx, result, output_format)


@cli.command("find")
@data_path_argument
@where_option
@column_option
@key_column_option
@click.option("--format", "output_format", type=click.Choice(OUTPUT_FORMAT_CHOICES), help="Output format.")
@pass_cli_context
@handle_cli_errors
def find_record(
    cli_ctx: CLIContext,
    path: Path,
    where: Iterable[str],
    columns: Iterable[str],
    key_column: str | None,
    output_format: str | None,
) -> None:
    """Show the first row matching every criterion."""
    _log_subcommand_entry(cli_ctx, "find", path)
    try:
        criteria = [_parse_where(expression) for expression in where]
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc

    result = executor.find_record(
        config=cli_ctx.config,
        path=path,
        criteria=criteria,
        columns=list(columns),
        key_column=key_column,
    )
    _render_query_output(cli_ctx, result, output_format)


def _log_subcommand_entry(cli_ctx: CLIContext, command: str, path: Path) -> None:
    cli_ctx.logger.debug(f"{command} invoked on {path}")


def _parse_where(expression: str) -> list[Any]:
    """Convert a 'FIELD OP [VALUE]' option into a criterion."""
    parts = expression.strip().split(None, 2)
    if len(parts) < 2:
        raise ValueError(f"Criterion '{expression}' must be in 'FIELD OP [VALUE]' format.")
    if len(parts) == 2:
        return parts
    field, operator, raw_value = parts
    return [field, operator, _parse_value(raw_value)]


def _parse_value(raw: str) -> Any:
    """Read a criterion value with YAML scalar rules (30 -> int, true -> bool)."""
    try:
        value = yaml.safe_load(raw)
    except yaml.YAMLError:
        return raw
    # Dates and mappings stay as typed; tables only hold scalars.
    if value is not None and not isinstance(value, (str, int, float, bool, list)):
        return raw
    return value


def _parse_order(entry: str) -> dict[str, str]:
    """Convert 'COLUMN[:asc|desc]' into a sort entry."""
    column, _, direction = entry.partition(":")
    direction = (direction or "asc").lower()
    if not column or direction not in SORT_DIRECTIONS:
        raise ValueError(f"Sort order '{entry}' must be in COLUMN[:asc|desc] format.")
    return {column: direction}


def _render_query_output(cli_ctx: CLIContext, result: QueryResult, output_format: str | None) -> None:
    render.render_query_result(
        result,
        output_format=output_format or cli_ctx.config.query.output_format,
        logger=cli_ctx.logger,
    )


def main() -> None:
    """Entry point for console_scripts."""
    cli()


if __name__ == "__main__":  # pragma: no cover
    main()
