"""Project-wide custom exceptions."""

from __future__ import annotations

from typing import Any, Mapping


class TabulaError(Exception):
    """Base exception for the tabula package."""


class ConfigurationError(TabulaError):
    """Raised when configuration loading or validation fails."""


class DataLoadError(TabulaError):
    """Raised when a data file cannot be read into raw rows."""


class QueryError(TabulaError):
    """Raised when query orchestration from the command line fails."""


class TableError(TabulaError):
    """Base exception for table and schema faults."""


class DefinitionError(TableError):
    """Raised when a column definition is invalid."""


class StructuralDataError(TableError):
    """Raised when raw row data cannot form a table.

    All problems found by the analysis pass are reported together; the raw
    error bag is kept on ``errors`` so callers can inspect it.
    """

    def __init__(self, message: str, errors: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.errors: dict[str, Any] = dict(errors or {})


class ValidationError(TableError):
    """Raised when a row or field value does not match the schema."""


class UsageError(TableError):
    """Raised when the table API is misused."""


class ImmutableTableError(UsageError):
    """Raised when a mutating call is made on an immutable table."""


class CriterionError(UsageError):
    """Raised for malformed selection criteria."""
