"""Column definitions and row validation for tables."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from tabula.shared.exceptions import DefinitionError, UsageError

from .types import DATA_TYPES, NULL, type_name


@dataclass(frozen=True, slots=True)
class ColumnRule:
    """Type, nullability and default value of a single column."""

    type: str
    not_null: bool = True
    default: Any = None

    @property
    def has_default(self) -> bool:
        return self.default is not None

    def to_dict(self) -> dict[str, Any]:
        rules: dict[str, Any] = {"type": self.type, "not_null": self.not_null}
        if self.has_default:
            rules["default"] = self.default
        return rules


class Schema:
    """Ordered column definitions with stateless validators.

    ``row_error`` and ``field_error`` return the reason a value is rejected
    (or ``None``) and keep no state. The ``is_valid_*`` variants wrap them
    and remember the reason in ``last_error`` for callers that prefer a
    boolean check.
    """

    def __init__(self, columns: Mapping[str, Any] | None = None) -> None:
        self._columns: dict[str, ColumnRule] = {}
        self.last_error = ""
        for name, rules in (columns or {}).items():
            self.add_column(name, rules)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Schema):
            return NotImplemented
        return list(self._columns.items()) == list(other._columns.items())

    def __repr__(self) -> str:
        return f"Schema({self.to_dict()!r})"

    def __contains__(self, name: object) -> bool:
        return name in self._columns

    def __len__(self) -> int:
        return len(self._columns)

    def copy(self) -> Schema:
        """Return an independent copy with the same columns."""
        schema = Schema()
        schema._columns = dict(self._columns)
        return schema

    __copy__ = copy

    def subset(self, names: Iterable[str]) -> Schema:
        """Return a schema restricted to ``names``, in the given order."""
        schema = Schema()
        for name in names:
            schema._columns[name] = self.column_rules(name)
        return schema

    def to_dict(self) -> dict[str, dict[str, Any]]:
        return {name: rule.to_dict() for name, rule in self._columns.items()}

    @property
    def column_names(self) -> list[str]:
        return list(self._columns)

    @property
    def column_count(self) -> int:
        return len(self._columns)

    def has_column(self, name: str) -> bool:
        return name in self._columns

    def column_rules(self, name: str | None = None) -> Any:
        """Return the rules of a defined column, or of every column by name."""
        if name is None:
            return dict(self._columns)
        try:
            return self._columns[name]
        except KeyError:
            raise UsageError(f'Column "{name}" has not been defined') from None

    @staticmethod
    def is_valid_data_type(data_type: Any) -> bool:
        return isinstance(data_type, str) and data_type in DATA_TYPES

    # ------------------------------------------------------------------
    # Definition

    @classmethod
    def build_rule(cls, name: str, rules: ColumnRule | Mapping[str, Any]) -> ColumnRule:
        """Validate a column definition and return it as a ColumnRule."""
        if isinstance(rules, ColumnRule):
            rules = rules.to_dict()
        if not isinstance(rules, Mapping):
            raise DefinitionError(f'Column rules for "{name}" must be a mapping')

        data_type = rules.get("type")
        if data_type is None or not isinstance(data_type, str):
            raise DefinitionError(f'Undefined data type for column "{name}"')
        if not cls.is_valid_data_type(data_type):
            raise DefinitionError(f'Invalid data type "{data_type}" for column "{name}"')

        not_null = rules.get("not_null")
        if not_null is not None and not isinstance(not_null, bool):
            raise DefinitionError(f'The not-null constraint of column "{name}" should have a boolean value')

        default = rules.get("default")
        if default is not None and type_name(default) != data_type:
            raise DefinitionError(
                f'The default value of column "{name}" does not match the column data type '
                f"({data_type} expected, {type_name(default)} given)"
            )

        return ColumnRule(
            type=data_type,
            not_null=True if not_null is None else not_null,
            default=default,
        )

    def add_column(self, name: str, rules: ColumnRule | Mapping[str, Any]) -> ColumnRule:
        """Define a new column; nothing is stored when the rules are invalid."""
        if not isinstance(name, str) or not name:
            raise DefinitionError("Column names must be non-empty strings")
        if name in self._columns:
            raise DefinitionError(f'A column with name "{name}" already exists')
        rule = self.build_rule(name, rules)
        self._columns[name] = rule
        return rule

    def delete_column(self, name: str) -> None:
        self._columns.pop(name, None)

    # ------------------------------------------------------------------
    # Validation

    def row_error(self, row: Mapping[str, Any]) -> str | None:
        """Return why ``row`` does not fit the schema, or None if it does."""
        if len(row) != len(self._columns):
            return "The number of columns in the record does not match the number of defined columns"
        for name in self._columns:
            if name not in row:
                return f'No value for column "{name}" is given'
            error = self.field_error(name, row[name])
            if error is not None:
                return error
        return None

    def field_error(self, name: str, value: Any) -> str | None:
        """Return why ``value`` is not valid for column ``name``, or None."""
        rule = self.column_rules(name)
        value_type = type_name(value)
        if value_type == NULL:
            if rule.not_null:
                return f'Null value in column "{name}" violates not-null constraint'
        elif value_type != rule.type:
            return f'Data type mismatch for column "{name}" ({rule.type} expected, {value_type} given)'
        return None

    def is_valid_row(self, row: Mapping[str, Any]) -> bool:
        self.last_error = self.row_error(row) or ""
        return not self.last_error

    def is_valid_field_value(self, name: str, value: Any) -> bool:
        self.last_error = self.field_error(name, value) or ""
        return not self.last_error
