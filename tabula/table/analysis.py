"""Schema inference over raw, untyped row data."""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from tabula.shared.exceptions import StructuralDataError

from .types import KEY_TYPES, NULL, STRING, type_name

# Messages used when the error bag is turned into an aggregate report.
ERROR_MESSAGES: dict[str, str] = {
    "mixed_keys": (
        "Mixed row keys were detected. The row keys should be either integers"
        " or strings, but not a mix of the two."
    ),
    "invalid_keys": "Invalid row keys were detected. Row keys should be integers or strings.",
    "invalid_rows": "Invalid rows were detected. All rows should be mappings of column names to values.",
    "invalid_column_ids": "Invalid column IDs were found. All column identifiers should be strings.",
    "nonscalar_values": (
        "Non-scalar values were found. Column values can only be scalar types"
        " (boolean, integer, float, string) or null."
    ),
    "inconsistent_value_types": (
        "Inconsistent value types were detected. The values for each column"
        " should be of the same type or equal to null."
    ),
}


@dataclass(slots=True)
class ColumnSummary:
    """Value tally for one column: ``all`` plus one count per observed type."""

    type: str | None = None
    not_null: bool = False
    values: dict[str, int] = field(default_factory=lambda: {"all": 0})

    @property
    def observed_types(self) -> list[str]:
        return [name for name in self.values if name not in ("all", NULL)]


@dataclass(slots=True)
class DataAnalysis:
    """Summary of a raw data set, including any structural defects."""

    row_count: int = 0
    key_type: str | None = None
    key_values: dict[str, int] = field(default_factory=dict)
    columns: dict[str, ColumnSummary] = field(default_factory=dict)
    errors: dict[str, Any] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def inferred_rules(self) -> dict[str, dict[str, Any]]:
        """Return ``{column: {type, not_null}}`` for every well-typed column."""
        return {
            name: {"type": summary.type, "not_null": summary.not_null}
            for name, summary in self.columns.items()
            if summary.type is not None
        }

    def error_report(self) -> str:
        lines = [f" - {message}" for key, message in ERROR_MESSAGES.items() if key in self.errors]
        return "\n".join(["The given data is not a valid table:", *lines])

    def raise_for_errors(self) -> None:
        if self.errors:
            raise StructuralDataError(self.error_report(), errors=self.errors)


def iter_raw_rows(data: Any) -> Iterator[tuple[Any, Any]]:
    """Yield ``(key, row)`` pairs from a mapping or a sequence of rows."""
    if data is None:
        return iter(())
    if isinstance(data, Mapping):
        return iter(data.items())
    if isinstance(data, Sequence) and not isinstance(data, (str, bytes)):
        return iter(enumerate(data))
    raise StructuralDataError(
        "The given data is not a valid table: expected a mapping of keys to rows or a sequence of rows.",
        errors={"invalid_container": type(data).__name__},
    )


def analyze(data: Any) -> DataAnalysis:
    """Scan raw rows and tally key types, column value types and defects.

    A column's inferred type is its single non-null value type (``string``
    when only nulls were seen); it is not-null when every row supplied a
    non-null value for it.
    """
    analysis = DataAnalysis()
    errors = analysis.errors

    for row_key, row in iter_raw_rows(data):
        analysis.row_count += 1
        key_type = type_name(row_key)
        analysis.key_values[key_type] = analysis.key_values.get(key_type, 0) + 1
        if key_type not in KEY_TYPES:
            errors.setdefault("invalid_keys", []).append(row_key)
        if not isinstance(row, Mapping):
            errors.setdefault("invalid_rows", []).append(row_key)
            continue
        for column, value in row.items():
            if not isinstance(column, str):
                errors.setdefault("invalid_column_ids", []).append(column)
                continue
            summary = analysis.columns.setdefault(column, ColumnSummary())
            summary.values["all"] += 1
            value_type = type_name(value)
            if value_type in ("array", "object"):
                errors.setdefault("nonscalar_values", {}).setdefault(row_key, []).append(column)
                continue
            summary.values[value_type] = summary.values.get(value_type, 0) + 1

    if analysis.key_values:
        if len(analysis.key_values) > 1:
            errors["mixed_keys"] = True
        else:
            analysis.key_type = next(iter(analysis.key_values))

    for column, summary in analysis.columns.items():
        types = summary.observed_types
        if len(types) == 1:
            summary.type = types[0]
        elif not types:
            summary.type = STRING
        else:
            errors.setdefault("inconsistent_value_types", []).append(column)
        summary.not_null = NULL not in summary.values and summary.values["all"] == analysis.row_count

    return analysis
