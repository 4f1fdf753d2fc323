"""Serialisation helpers for tables: JSON, delimited text and pandas frames."""

from __future__ import annotations

import csv
import io
import json
import math
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

try:
    import pandas as pd
except ImportError:  # pragma: no cover - pandas is a declared dependency
    pd = None  # type: ignore[assignment]

from tabula.shared.exceptions import UsageError

from .types import BOOLEAN, DATA_TYPES, DOUBLE, INTEGER, STRING, Row, is_scalar

if TYPE_CHECKING:  # pragma: no cover
    from .table import Table


def _ensure_pandas() -> "pd":
    """Return the pandas module or raise a helpful error if missing."""

    if pd is None:
        raise ImportError("pandas is required for DataFrame conversion. Install it with 'pip install pandas'.")
    return pd


def to_json(table: "Table", *, pretty: bool = False) -> str:
    """Encode rows as JSON.

    Tables keyed 0..n-1 become a list of objects; any other keying becomes
    an object keyed by row key.
    """
    keys = table.keys()
    payload: Any
    if keys == list(range(len(keys))):
        payload = table.to_records()
    else:
        payload = {str(key): row for key, row in table.items()}
    if pretty:
        return json.dumps(payload, indent=2)
    return json.dumps(payload, separators=(",", ":"))


def to_csv(table: "Table", *, header: bool = True, delimiter: str = ",") -> str:
    """Encode rows as delimited text; nulls become empty cells."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, delimiter=delimiter, lineterminator="\n")
    columns = table.columns
    if header:
        writer.writerow(columns)
    for row in table.values():
        writer.writerow([_csv_cell(row[column]) for column in columns])
    return buffer.getvalue()


def _csv_cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


def to_dataframe(table: "Table") -> "pd.DataFrame":
    """Return a DataFrame indexed by row key with one column per table column."""
    pandas = _ensure_pandas()
    return pandas.DataFrame.from_records(table.values(), index=table.keys(), columns=table.columns)


def frame_to_rows(frame: "pd.DataFrame") -> dict[Any, Row]:
    """Convert a DataFrame into raw rows keyed by its index.

    Missing values become ``None`` and numpy scalars are unwrapped into
    plain Python values so the rows pass table inference.
    """
    _ensure_pandas()
    rows: dict[Any, Row] = {}
    for key, record in zip(frame.index, frame.to_dict(orient="records")):
        rows[_plain(key)] = {str(column): _plain(value) for column, value in record.items()}
    return rows


def _plain(value: Any) -> Any:
    if hasattr(value, "item") and not isinstance(value, (str, bytes)):
        try:
            value = value.item()
        except (TypeError, ValueError):
            pass
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    if pd is not None and not isinstance(value, (str, bool, int, float)) and pd.isna(value):
        return None
    return value


def mapping_to_rows(mapping: Mapping[Any, Any], value_type: str = STRING) -> list[Row]:
    """Turn a flat mapping into ``{"property", "value"}`` rows.

    Every value is cast to ``value_type``; non-scalar values are JSON
    encoded when casting to string.
    """
    if value_type not in DATA_TYPES:
        raise UsageError(f'Invalid data type "{value_type}"')
    return [{"property": str(key), "value": _cast(value, value_type)} for key, value in mapping.items()]


def _cast(value: Any, value_type: str) -> Any:
    if value_type == STRING:
        if not is_scalar(value):
            return json.dumps(value, indent=4, default=str)
        if isinstance(value, bool):
            return "1" if value else ""
        return str(value)
    if value_type == BOOLEAN:
        if isinstance(value, str):
            return value not in ("", "0")
        return bool(value) if is_scalar(value) else False
    number = _to_number(value)
    if value_type == INTEGER:
        if isinstance(number, int):
            return number
        return int(number) if math.isfinite(number) else 0
    if value_type == DOUBLE:
        return float(number)
    return value  # pragma: no cover


def _to_number(value: Any) -> int | float:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return float(text)
        except ValueError:
            return 0
    return 0
