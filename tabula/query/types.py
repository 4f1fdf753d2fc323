"""Data structures shared across tabula-query modules."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence


@dataclass(frozen=True, slots=True)
class QueryResult:
    """Structured result set returned by the executor layer."""

    columns: tuple[str, ...]
    rows: Sequence[tuple[Any, ...]]
    limit_applied: bool = False
    limit_value: int | None = None
    description: str | None = None
    truncated: bool = False


@dataclass(frozen=True, slots=True)
class ColumnDescription:
    """Inferred rules for one column of a data file."""

    name: str
    type: str
    not_null: bool
    default: Any = None


@dataclass(frozen=True, slots=True)
class SchemaOverview:
    """Inferred schema details for a data file."""

    source_path: Path
    columns: Sequence[ColumnDescription]
    row_count: int
    key_type: str
    key_column: str | None = None
