"""Query execution helpers for tabula-query."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Any

from tabula.shared.config import AppConfig
from tabula.shared.exceptions import QueryError
from tabula.table import Table

from . import loader
from .types import ColumnDescription, QueryResult, SchemaOverview

DEFAULT_ROW_LIMIT = 200


def run_query(
    *,
    config: AppConfig,
    path: str | Path,
    criteria: Sequence[Any] | None = None,
    columns: Sequence[str] | None = None,
    order: Sequence[Any] | None = None,
    limit: int | None = None,
    offset: int = 0,
    key_column: str | None = None,
) -> QueryResult:
    """Load a data file, run the select/project/sort/limit pipeline and return the rows."""
    if offset < 0:
        raise QueryError("Offset must not be negative.")

    table = loader.load_table(path, config=config, key_column=key_column)
    effective_limit = _normalise_limit(limit, config)

    # One extra row tells us whether the limit cut anything off.
    fetch_limit = effective_limit + 1 if effective_limit is not None else 0
    view = table.find_all(criteria, columns, order, fetch_limit, offset)
    rows, truncated = _fetch_rows(view, effective_limit)

    return QueryResult(
        columns=tuple(view.columns),
        rows=rows,
        limit_applied=effective_limit is not None,
        limit_value=effective_limit,
        description=None,
        truncated=truncated,
    )


def find_record(
    *,
    config: AppConfig,
    path: str | Path,
    criteria: Sequence[Any],
    columns: Sequence[str] | None = None,
    key_column: str | None = None,
) -> QueryResult:
    """Return the first row matching ``criteria`` as a zero- or one-row result."""
    if not criteria:
        raise QueryError("At least one --where criterion is required.")

    table = loader.load_table(path, config=config, key_column=key_column)
    record = table.find(criteria, columns)
    names = tuple(columns) if columns else tuple(table.columns)
    rows = [tuple(record[name] for name in names)] if record else []
    return QueryResult(columns=names, rows=rows)


def describe_source(
    *,
    config: AppConfig,
    path: str | Path,
    key_column: str | None = None,
) -> SchemaOverview:
    """Infer the schema of a data file."""
    table = loader.load_table(path, config=config, key_column=key_column)
    rules = table.column_rules()
    columns = [
        ColumnDescription(name=name, type=rule.type, not_null=rule.not_null, default=rule.default)
        for name, rule in rules.items()
    ]
    return SchemaOverview(
        source_path=Path(path),
        columns=columns,
        row_count=len(table),
        key_type=table.key_type,
        key_column=table.key_column or None,
    )


def _normalise_limit(limit: int | None, config: AppConfig) -> int | None:
    if limit is None:
        limit = config.query.default_limit
    if limit <= 0:
        return None
    return limit


def _fetch_rows(view: Table, limit: int | None) -> tuple[list[tuple[Any, ...]], bool]:
    columns = view.columns
    rows = [tuple(row[column] for column in columns) for row in view.values()]
    if limit is None:
        return rows, False
    return rows[:limit], len(rows) > limit
