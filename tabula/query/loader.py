"""Reading data files into raw rows and tables."""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import pandas as pd
import yaml

from tabula.shared.config import AppConfig
from tabula.shared.exceptions import DataLoadError
from tabula.shared.paths import resolve_path
from tabula.table import Table
from tabula.table.export import frame_to_rows

SUPPORTED_SUFFIXES = (".json", ".yaml", ".yml", ".csv")


def load_rows(path: str | Path, *, config: AppConfig) -> Any:
    """Return the raw rows stored in a JSON, YAML or CSV file."""
    source = resolve_path(path)
    if not source.is_file():
        raise DataLoadError(f"Data file not found: {source}")

    suffix = source.suffix.lower()
    if suffix == ".csv":
        return _load_csv(source, delimiter=config.data.csv_delimiter)
    if suffix == ".json":
        try:
            data = json.loads(source.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise DataLoadError(f"Invalid JSON in {source}: {exc}") from exc
    elif suffix in (".yaml", ".yml"):
        try:
            data = yaml.safe_load(source.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise DataLoadError(f"Invalid YAML in {source}: {exc}") from exc
    else:
        raise DataLoadError(
            f"Unsupported data file type '{source.suffix}'. Expected one of: {', '.join(SUPPORTED_SUFFIXES)}."
        )

    if data is None:
        return []
    if not isinstance(data, (Mapping, list)):
        raise DataLoadError(f"{source} must contain a list of rows or a mapping of keys to rows.")
    return data


def _load_csv(source: Path, *, delimiter: str) -> dict[Any, dict[str, Any]]:
    try:
        # Integer columns with blank cells stay Int64 (blanks read as pd.NA).
        frame = pd.read_csv(source, sep=delimiter, dtype_backend="numpy_nullable")
    except pd.errors.EmptyDataError:
        return {}
    except (pd.errors.ParserError, UnicodeDecodeError) as exc:
        raise DataLoadError(f"Could not parse CSV file {source}: {exc}") from exc
    return frame_to_rows(frame)


def load_table(path: str | Path, *, config: AppConfig, key_column: str | None = None) -> Table:
    """Load a data file into an inferred table, optionally re-keyed by a column."""
    table = Table(load_rows(path, config=config))
    if key_column:
        table.set_key_column(key_column)
    return table
