"""In-memory, schema-validated tables with inference, indexing and queries."""

from __future__ import annotations

from tabula.table import Schema, Table, analyze

__all__ = ["Schema", "Table", "analyze"]
