"""Value typing shared by the schema, the analysis pass and the table."""

from __future__ import annotations

from typing import Any, Dict, Union

# Column data types, named after their runtime counterparts.
STRING = "string"
INTEGER = "integer"
DOUBLE = "double"
BOOLEAN = "boolean"

DATA_TYPES = (STRING, INTEGER, DOUBLE, BOOLEAN)
INDEXABLE_TYPES = (STRING, INTEGER)
KEY_TYPES = (INTEGER, STRING)

NULL = "null"

RowKey = Union[int, str]
Row = Dict[str, Any]


def type_name(value: Any) -> str:
    """Return the data type name of a value.

    ``bool`` is checked before ``int`` so that ``True`` is never reported as
    an integer; there is no implicit coercion between the scalar types.
    """
    if value is None:
        return NULL
    if isinstance(value, bool):
        return BOOLEAN
    if isinstance(value, int):
        return INTEGER
    if isinstance(value, float):
        return DOUBLE
    if isinstance(value, str):
        return STRING
    if isinstance(value, (list, tuple, dict)):
        return "array"
    return "object"


def is_scalar(value: Any) -> bool:
    return type_name(value) in DATA_TYPES


def is_valid_key(key: Any) -> bool:
    return type_name(key) in KEY_TYPES
