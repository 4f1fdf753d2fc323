"""Table engine: schemas, inference, criteria, indexes and queries."""

from __future__ import annotations

from .analysis import ColumnSummary, DataAnalysis, analyze
from .criteria import Criteria, Criterion, evaluate
from .export import frame_to_rows
from .index import Index
from .model import CachedModel, TableCache
from .schema import ColumnRule, Schema
from .table import Table, merge_column_rules
from .types import BOOLEAN, DATA_TYPES, DOUBLE, INTEGER, STRING, type_name

__all__ = [
    "BOOLEAN",
    "CachedModel",
    "ColumnRule",
    "ColumnSummary",
    "Criteria",
    "Criterion",
    "DATA_TYPES",
    "DOUBLE",
    "DataAnalysis",
    "INTEGER",
    "Index",
    "STRING",
    "Schema",
    "Table",
    "TableCache",
    "analyze",
    "evaluate",
    "frame_to_rows",
    "merge_column_rules",
    "type_name",
]
