"""Output rendering helpers for tabula-query."""

from __future__ import annotations

import csv
import json
import sys
from typing import IO

from rich import box
from rich.console import Console
from rich.table import Table

from tabula.shared.logging import Logger

from .types import QueryResult, SchemaOverview


def render_query_result(
    result: QueryResult,
    *,
    output_format: str,
    logger: Logger,
    stream=None,
) -> None:
    """Render a query result set to the desired format."""
    output_stream = stream or sys.stdout
    fmt = (output_format or "table").lower()

    if fmt == "table":
        _render_table(result, logger=logger, stream=output_stream)
    elif fmt == "csv":
        _render_delimited(result, stream=output_stream, delimiter=",")
    elif fmt == "tsv":
        _render_delimited(result, stream=output_stream, delimiter="\t")
    elif fmt == "json":
        _render_json(result, stream=output_stream)
    else:  # pragma: no cover - Click validation should prevent this
        raise ValueError(f"Unsupported output format '{output_format}'.")

    if result.truncated:
        # Warn via logger so callers honour the safety limit in interactive sessions.
        logger.warning(
            f"Result truncated to {result.limit_value} rows. Re-run with --limit 0 or a larger --limit for full output."
        )


def render_schema_overview(
    overview: SchemaOverview,
    *,
    output_format: str,
    logger: Logger,
    stream=None,
) -> None:
    """Render inferred schema metadata to the output stream."""
    output_stream = stream or sys.stdout
    fmt = (output_format or "table").lower()

    if fmt == "json":
        payload = {
            "source": str(overview.source_path),
            "row_count": overview.row_count,
            "key_type": overview.key_type,
            "key_column": overview.key_column,
            "columns": [
                {"name": column.name, "type": column.type, "not_null": column.not_null}
                for column in overview.columns
            ],
        }
        json.dump(payload, output_stream, indent=2)
        output_stream.write("\n")
        return

    console = Console(file=output_stream, highlight=False, force_terminal=False)
    console.print(f"[bold]{overview.source_path}[/bold]")
    column_table = Table(box=box.SIMPLE, show_header=True, header_style="bold")
    column_table.add_column("Column")
    column_table.add_column("Type")
    column_table.add_column("Not Null")
    for column in overview.columns:
        column_table.add_row(column.name, column.type, "yes" if column.not_null else "")
    console.print(column_table)

    summary = f"{overview.row_count} rows, {overview.key_type} keys"
    if overview.key_column:
        summary += f" (keyed by {overview.key_column})"
    console.print(summary, markup=False)

    if not overview.columns:
        logger.info(f"No columns found in {overview.source_path}.")


def _render_table(result: QueryResult, *, logger: Logger, stream: IO[str]) -> None:
    console = Console(file=stream, highlight=False, force_terminal=False)
    if result.description:
        console.print(f"[bold]{result.description}[/bold]")

    table = Table(box=box.SIMPLE_HEAVY, show_header=bool(result.columns), header_style="bold")
    for column in result.columns:
        table.add_column(column or "")

    if result.rows:
        for row in result.rows:
            table.add_row(*[_stringify(cell) for cell in row])
    else:
        logger.info("Query returned zero rows.")

    console.print(table)


def _render_delimited(result: QueryResult, *, stream: IO[str], delimiter: str) -> None:
    writer = csv.writer(stream, delimiter=delimiter)
    if result.columns:
        writer.writerow(result.columns)
    for row in result.rows:
        writer.writerow(_stringify(cell) for cell in row)


def _render_json(result: QueryResult, *, stream: IO[str]) -> None:
    records = [dict(zip(result.columns, row)) for row in result.rows]
    json.dump(records, stream, indent=2)
    stream.write("\n")


def _stringify(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
