"""Schema-validated, indexed, queryable in-memory tables."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from itertools import islice
from typing import TYPE_CHECKING, Any

from tabula.shared.exceptions import DefinitionError, ImmutableTableError, UsageError, ValidationError

from . import export
from .analysis import DataAnalysis, analyze, iter_raw_rows
from .criteria import Criteria, parse_criteria
from .index import Index, IndexMap, build_index_map
from .schema import ColumnRule, Schema
from .types import INDEXABLE_TYPES, INTEGER, NULL, Row, RowKey, is_valid_key, type_name

if TYPE_CHECKING:  # pragma: no cover
    import pandas as pd

OrderSpec = Sequence[Any]


def merge_column_rules(
    defined: Mapping[str, Any] | None,
    analysis: DataAnalysis,
) -> dict[str, dict[str, Any]]:
    """Combine caller-supplied column rules with the rules inferred from data.

    An explicit ``type`` or ``not_null`` wins over the inferred one. Columns
    only the data knows about are appended after the declared ones, and a
    declared column with empty rules takes whatever inference found.
    """
    inferred = analysis.inferred_rules()
    merged: dict[str, dict[str, Any]] = {}
    for name, rules in (defined or {}).items():
        if isinstance(rules, ColumnRule):
            rules = rules.to_dict()
        if not isinstance(rules, Mapping):
            rules = {}
        # A column absent from every row only ever holds nulls.
        guess = inferred.get(name, {"type": None, "not_null": analysis.row_count == 0})
        entry = {
            "type": rules["type"] if rules.get("type") is not None else guess["type"],
            "not_null": rules["not_null"] if rules.get("not_null") is not None else guess["not_null"],
        }
        if rules.get("default") is not None:
            entry["default"] = rules["default"]
        merged[name] = entry
    for name, guess in inferred.items():
        if name not in merged:
            merged[name] = dict(guess)
    return merged


class Table:
    """An ordered mapping of row keys to rows, governed by a Schema.

    Row keys are all integers or all strings. Every row holds one value (or
    ``None``) per schema column and is validated before it is stored.
    Secondary indexes map column values back to row keys and are rebuilt
    after every mutation that touches their column.

    Query operators (``select``, ``project``, ``sort``, ``limit`` and the
    helpers built on them) never modify the table; they return new tables
    with their own rows and a copy of the relevant part of the schema.
    """

    def __init__(
        self,
        data: Any = None,
        columns: Mapping[str, Any] | None = None,
        allow_changes: bool = True,
    ) -> None:
        analysis = analyze(data)
        analysis.raise_for_errors()

        self._schema = Schema(merge_column_rules(columns, analysis))
        self._rows: dict[RowKey, Row] = {}
        self._indexes: dict[str, Index] = {}
        self._key_column = ""
        self._allow_changes = True

        self.import_rows(data)
        self._allow_changes = allow_changes

    @classmethod
    def _view(cls, schema: Schema, rows: Iterable[tuple[RowKey, Row]]) -> Table:
        view = cls()
        view._schema = schema
        view._rows = {key: dict(row) for key, row in rows}
        return view

    @classmethod
    def from_mapping(cls, mapping: Mapping[Any, Any], value_type: str = "string") -> Table:
        """Build a two-column ``property``/``value`` table from a flat mapping."""
        return cls(export.mapping_to_rows(mapping, value_type))

    def copy(self) -> Table:
        """Return an independent copy, including indexes and mutability."""
        table = self._view(self._schema.copy(), self._rows.items())
        table._indexes = {column: index.copy() for column, index in self._indexes.items()}
        table._key_column = self._key_column
        table._allow_changes = self._allow_changes
        return table

    __copy__ = copy

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Table):
            return NotImplemented
        return self._schema == other._schema and list(self._rows.items()) == list(other._rows.items())

    def __repr__(self) -> str:
        return f"Table(columns={self.columns!r}, rows={len(self._rows)})"

    # ------------------------------------------------------------------
    # Schema and state

    @property
    def schema(self) -> Schema:
        """A copy of the table schema."""
        return self._schema.copy()

    @property
    def columns(self) -> list[str]:
        return self._schema.column_names

    @property
    def column_count(self) -> int:
        return self._schema.column_count

    def has_column(self, name: str) -> bool:
        return self._schema.has_column(name)

    def column_rules(self, name: str | None = None) -> ColumnRule | dict[str, ColumnRule]:
        """Return the rules of one column, or of every column by name."""
        return self._schema.column_rules(name)

    @property
    def key_type(self) -> str:
        """``integer`` or ``string``; ``null`` while the table is empty."""
        for key in self._rows:
            return type_name(key)
        return NULL

    @property
    def key_column(self) -> str:
        return self._key_column

    def is_immutable(self) -> bool:
        return not self._allow_changes

    def make_immutable(self) -> Table:
        self._allow_changes = False
        return self

    def is_empty(self) -> bool:
        return not self._rows

    def analyze(self, data: Any = None) -> DataAnalysis:
        """Analyse raw data, or the table's own rows when none is given."""
        return analyze(self._rows if data is None else data)

    def _ensure_mutable(self) -> None:
        if not self._allow_changes:
            raise ImmutableTableError("Changes are not allowed (read-only table)")

    def _require_columns(self, names: Iterable[str]) -> None:
        for name in names:
            if not self._schema.has_column(name):
                raise UsageError(f'Column "{name}" has not been defined')

    # ------------------------------------------------------------------
    # Columns

    def add_column(self, name: str, rules: ColumnRule | Mapping[str, Any]) -> Table:
        """Define a column and fill existing rows with its default (or null)."""
        self._ensure_mutable()
        if self._schema.has_column(name):
            raise DefinitionError(f'A column with name "{name}" already exists')
        rule = Schema.build_rule(name, rules)
        if self._rows and rule.not_null and not rule.has_default:
            raise ValidationError(f'Null value in column "{name}" violates not-null constraint')

        self._schema.add_column(name, rule)
        for row in self._rows.values():
            row[name] = rule.default
        return self

    def delete_column(self, name: str) -> Table:
        self._ensure_mutable()
        if name == self._key_column:
            raise UsageError(f'Column "{name}" is a key column and cannot be deleted')

        self.delete_index(name)
        self._schema.delete_column(name)
        for row in self._rows.values():
            row.pop(name, None)
        return self

    # ------------------------------------------------------------------
    # Rows

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[RowKey]:
        return iter(list(self._rows))

    def __contains__(self, key: object) -> bool:
        return self.has_row(key)

    def __getitem__(self, key: RowKey) -> Row:
        if not self.has_row(key):
            raise KeyError(key)
        return dict(self._rows[key])

    def __setitem__(self, key: RowKey, row: Mapping[str, Any]) -> None:
        self.add_row(key, row, replace_existing=True)

    def __delitem__(self, key: RowKey) -> None:
        self.delete_row(key)

    @property
    def row_count(self) -> int:
        return len(self._rows)

    def has_row(self, key: object) -> bool:
        return is_valid_key(key) and key in self._rows

    def get_row(self, key: RowKey) -> Row:
        """Return a copy of the row stored under ``key`` (empty if absent)."""
        if not self.has_row(key):
            return {}
        return dict(self._rows[key])

    def get(self, key: RowKey, default: Any = None) -> Any:
        if not self.has_row(key):
            return default
        return self.get_row(key)

    def keys(self) -> list[RowKey]:
        return list(self._rows)

    def values(self) -> list[Row]:
        return [dict(row) for row in self._rows.values()]

    def items(self) -> list[tuple[RowKey, Row]]:
        return [(key, dict(row)) for key, row in self._rows.items()]

    def import_rows(self, data: Any) -> Table:
        """Add (or replace) every row of a mapping or sequence of rows."""
        for key, row in iter_raw_rows(data):
            self.add_row(key, row)
        return self

    def add_row(self, key: RowKey, data: Mapping[str, Any], replace_existing: bool = True) -> Table:
        """Validate and store a row under ``key``.

        Columns missing from ``data`` are filled with null before the row is
        checked against the schema.
        """
        self._ensure_mutable()
        if not is_valid_key(key):
            raise UsageError(f"Row keys must be integers or strings ({type_name(key)} given)")
        if key in self._rows and not replace_existing:
            raise UsageError(f'A record with key "{key}" already exists')
        if not isinstance(data, Mapping):
            raise ValidationError(f'The record with key "{key}" is not a mapping of column names to values')

        key_type = self.key_type
        if key_type != NULL and type_name(key) != key_type:
            raise UsageError(
                f"Data type mismatch for the key value ({key_type} expected, {type_name(key)} given)"
            )

        row = dict(data)
        for name in self._schema.column_names:
            row.setdefault(name, None)
        error = self._schema.row_error(row)
        if error is not None:
            raise ValidationError(error)

        row = {name: row[name] for name in self._schema.column_names}
        if self._key_column:
            value = row[self._key_column]
            if type_name(value) != type_name(key) or value != key:
                raise UsageError(
                    f'Key "{key}" does not match the value of key column "{self._key_column}" ({value!r} given)'
                )
        for column, index in self._indexes.items():
            self._check_unique(index, row[column], key)
        self._rows[key] = row
        self.rebuild_indexes()
        return self

    def add(self, key: RowKey, row: Mapping[str, Any]) -> Table:
        """Add a row, refusing to replace an existing one."""
        return self.add_row(key, row, replace_existing=False)

    def set(self, key: RowKey, row: Mapping[str, Any]) -> Table:
        return self.add_row(key, row, replace_existing=True)

    def delete_row(self, key: RowKey) -> Table:
        self._ensure_mutable()
        if self.has_row(key):
            del self._rows[key]
        self.rebuild_indexes()
        return self

    remove = delete_row

    def pull(self, key: RowKey, default: Any = None) -> Any:
        """Remove a row and return it (or ``default`` if it did not exist)."""
        if not self.has_row(key):
            return default
        row = self.get_row(key)
        self.delete_row(key)
        return row

    # ------------------------------------------------------------------
    # Fields

    def update_field(self, row_key: RowKey, column: str, value: Any) -> Table:
        self._ensure_mutable()
        if not self.has_row(row_key):
            raise UsageError(f'A record with key "{row_key}" does not exist')
        if not self._schema.has_column(column):
            raise UsageError(f'Undefined column "{column}"')
        if column == self._key_column and value != self._rows[row_key][column]:
            raise UsageError(f'Column "{column}" is a key column and cannot be updated')

        error = self._schema.field_error(column, value)
        if error is not None:
            raise ValidationError(error)
        if column in self._indexes:
            self._check_unique(self._indexes[column], value, row_key)

        self._rows[row_key][column] = value
        self.rebuild_index(column)
        return self

    def nullify_field(self, row_key: RowKey, column: str) -> Table:
        self._ensure_mutable()
        return self.update_field(row_key, column, None)

    def reset_field(self, row_key: RowKey, column: str) -> Table:
        """Set a field to its column default, or null without one."""
        self._ensure_mutable()
        if not self._schema.has_column(column):
            return self
        return self.update_field(row_key, column, self._schema.column_rules(column).default)

    # ------------------------------------------------------------------
    # Keys

    def reset_keys(self) -> Table:
        """Renumber rows 0..n-1 in their current order."""
        self._ensure_mutable()
        self._rows = dict(enumerate(self._rows.values()))
        self._key_column = ""
        self.rebuild_indexes()
        return self

    def set_key_column(self, column: str) -> Table:
        """Re-key every row by its (unique, not-null) value in ``column``."""
        self._ensure_mutable()
        index_map = self.build_index(column, unique=True)
        if len(index_map) != len(self._rows):
            raise UsageError("The number of index rows does not match the number of table rows")

        self._rows = {new_key: self._rows[old_key] for new_key, old_key in index_map.items()}  # type: ignore[misc]
        self._key_column = column
        self.rebuild_indexes()
        return self

    # ------------------------------------------------------------------
    # Indexes

    @property
    def index_names(self) -> list[str]:
        return list(self._indexes)

    def has_index(self, column: str) -> bool:
        return column in self._indexes

    def get_index(self, column: str) -> Index | None:
        index = self._indexes.get(column)
        return index.copy() if index is not None else None

    def add_index(self, column: str, unique: bool = True) -> Table:
        self._indexes[column] = Index(column, unique, self.build_index(column, unique))
        return self

    def build_index(self, column: str, unique: bool = True) -> IndexMap:
        """Return a value-to-key(s) map for an indexable column."""
        rule = self._schema.column_rules(column)
        if rule.type not in INDEXABLE_TYPES:
            raise UsageError(f'Column "{column}" holds {rule.type} values')
        if not rule.not_null:
            raise UsageError(f'Column "{column}" may contain null values')
        return build_index_map(self._rows, column, unique)

    def rebuild_index(self, column: str) -> Table:
        index = self._indexes.get(column)
        if index is not None:
            # A complete map is built before it replaces the old one.
            self._indexes[column] = Index(column, index.unique, self.build_index(column, index.unique))
        return self

    def rebuild_indexes(self) -> Table:
        for column in self.index_names:
            self.rebuild_index(column)
        return self

    def delete_index(self, column: str) -> Table:
        self._indexes.pop(column, None)
        return self

    def delete_indexes(self) -> Table:
        self._indexes.clear()
        return self

    @staticmethod
    def _check_unique(index: Index, value: Any, key: RowKey) -> None:
        if index.unique and value in index.map and index.map[value] != key:
            raise UsageError(f'Column "{index.column}" contains duplicate values')

    # ------------------------------------------------------------------
    # Query pipeline

    def select(self, criteria: Iterable[Any], preserve_keys: bool = True) -> Table:
        """Return the rows matching every criterion."""
        evaluator = Criteria(criteria)
        self._require_columns(evaluator.fields)
        matches = [(key, row) for key, row in self._rows.items() if evaluator.test(row)]
        if not preserve_keys:
            matches = [(position, row) for position, (_, row) in enumerate(matches)]
        return self._view(self._schema.copy(), matches)

    def project(self, columns: Iterable[str]) -> Table:
        """Return the rows restricted to ``columns``, in that order."""
        columns = list(columns)
        self._require_columns(columns)
        return self._view(
            self._schema.subset(columns),
            ((key, {column: row[column] for column in columns}) for key, row in self._rows.items()),
        )

    def sort(self, order: OrderSpec, preserve_numeric_keys: bool = True) -> Table:
        """Return the rows ordered by one or more columns.

        ``order`` lists column names (ascending) or single-entry mappings
        such as ``{"age": "desc"}``; the first entry is the primary key and
        later ones break ties. Unknown columns are skipped and nulls sort
        before any other value. Integer row keys are renumbered unless
        ``preserve_numeric_keys`` is set; string keys are always kept.
        """
        items = list(self._rows.items())
        for column, descending in reversed(self._sort_keys(order)):
            items.sort(key=lambda item: _sort_value(item[1][column]), reverse=descending)
        if self.key_type == INTEGER and not preserve_numeric_keys:
            items = [(position, row) for position, (_, row) in enumerate(items)]
        return self._view(self._schema.copy(), items)

    def _sort_keys(self, order: OrderSpec) -> list[tuple[str, bool]]:
        keys: list[tuple[str, bool]] = []
        for entry in order or ():
            descending = False
            column = entry
            if isinstance(entry, Mapping):
                if not entry:
                    continue
                column, direction = next(iter(entry.items()))
                descending = str(direction).upper() == "DESC"
            if isinstance(column, str) and self._schema.has_column(column):
                keys.append((column, descending))
        return keys

    def limit(self, count: int = 0, offset: int = 0) -> Table:
        """Return up to ``count`` rows (0 = all) starting at ``offset``, renumbered from 0."""
        count = max(count, 0)
        offset = max(offset, 0)
        stop = offset + count if count else None
        rows = islice(self._rows.values(), offset, stop)
        return self._view(self._schema.copy(), enumerate(rows))

    def query(
        self,
        criteria: Iterable[Any] | None = None,
        columns: Sequence[str] | None = None,
        order: OrderSpec | None = None,
        limit: int = 0,
        offset: int = 0,
    ) -> Table:
        """Select, project, sort and limit in that fixed order."""
        if criteria:
            view = self.select(criteria, preserve_keys=False)
        else:
            view = self._view(self._schema.copy(), self._rows.items())
        return view._shape(columns, order, limit, offset)

    def _shape(
        self,
        columns: Sequence[str] | None,
        order: OrderSpec | None,
        limit: int,
        offset: int,
    ) -> Table:
        view = self
        if columns:
            view = view.project(columns)
        if order:
            view = view.sort(order, preserve_numeric_keys=False)
        if limit or offset:
            view = view.limit(limit, offset)
        return view

    # ------------------------------------------------------------------
    # Lookups

    def record_count(self, criteria: Iterable[Any] | None = None) -> int:
        if not criteria:
            return len(self._rows)
        return len(self.select(criteria))

    def find(self, criteria: Iterable[Any] | None = None, columns: Sequence[str] | None = None) -> Row:
        """Return the first matching row, or an empty dict."""
        lookup = self._equality_lookup(criteria)
        if lookup is None:
            view = self.query(criteria, columns, limit=1)
            return next(iter(view._rows.values()), {})

        if columns:
            self._require_columns(columns)
        row = self.fetch_row(*lookup)
        if row and columns:
            row = {column: row[column] for column in columns}
        return row

    def find_all(
        self,
        criteria: Iterable[Any] | None = None,
        columns: Sequence[str] | None = None,
        order: OrderSpec | None = None,
        limit: int = 0,
        offset: int = 0,
    ) -> Table:
        """Return every matching row, shaped like ``query``."""
        lookup = self._equality_lookup(criteria)
        if lookup is None:
            return self.query(criteria, columns, order, limit, offset)
        view = self._view(self._schema.copy(), enumerate(self.fetch_rows(*lookup)))
        return view._shape(columns, order, limit, offset)

    def get_list(
        self,
        column: str,
        criteria: Iterable[Any] | None = None,
        ascending: bool = True,
        limit: int = 0,
        offset: int = 0,
    ) -> list[Any]:
        """Return the values of one column for the matching rows, sorted."""
        view = self.query(criteria, [column], [{column: "asc" if ascending else "desc"}], limit, offset)
        return [row[column] for row in view._rows.values()]

    def fetch_row(self, column: str, value: Any) -> Row:
        """Return the first row whose ``column`` is identical to ``value``."""
        rows = self._fetch(column, value, first_only=True)
        return rows[0] if rows else {}

    def fetch_rows(self, column: str, value: Any) -> list[Row]:
        """Return every row whose ``column`` is identical to ``value``."""
        return self._fetch(column, value, first_only=False)

    def _fetch(self, column: str, value: Any, *, first_only: bool) -> list[Row]:
        # Key column first, then a declared index, then a full scan.
        rule = self._schema.column_rules(column)
        if column == self._key_column or column in self._indexes:
            if type_name(value) != rule.type:
                return []
            if column == self._key_column:
                keys = [value] if value in self._rows else []
            else:
                keys = self._indexes[column].lookup(value)
            if first_only:
                keys = keys[:1]
            return [dict(self._rows[key]) for key in keys]

        matches = self.select([[column, "===", value]], preserve_keys=False)
        rows = list(matches._rows.values())
        return rows[:1] if first_only else rows

    def _equality_lookup(self, criteria: Iterable[Any] | None) -> tuple[str, Any] | None:
        """Return ``(column, value)`` when criteria is one typed equality test."""
        if not criteria:
            return None
        parsed = parse_criteria(criteria)
        if len(parsed) != 1:
            return None
        criterion = parsed[0]
        if criterion.operator not in ("=", "==", "===") or not self._schema.has_column(criterion.field):
            return None
        if type_name(criterion.value) != self._schema.column_rules(criterion.field).type:
            return None
        return criterion.field, criterion.value

    # ------------------------------------------------------------------
    # Export

    def first(self, n: int = 1) -> dict[RowKey, Row]:
        if n < 1:
            return {}
        return {key: dict(row) for key, row in islice(self._rows.items(), n)}

    def last(self, n: int = 1) -> dict[RowKey, Row]:
        if n < 1:
            return {}
        return {key: dict(row) for key, row in list(self._rows.items())[-n:]}

    def slice(self, offset: int = 0, count: int | None = None) -> dict[RowKey, Row]:
        """Return ``count`` rows (all when None) from ``offset``, keys kept."""
        offset = max(offset, 0)
        stop = None if count is None else offset + max(count, 0)
        return {key: dict(row) for key, row in islice(self._rows.items(), offset, stop)}

    def to_dict(self) -> dict[RowKey, Row]:
        return {key: dict(row) for key, row in self._rows.items()}

    def to_records(self) -> list[Row]:
        return self.values()

    def to_json(self, pretty: bool = False) -> str:
        return export.to_json(self, pretty=pretty)

    def to_csv(self, header: bool = True, delimiter: str = ",") -> str:
        return export.to_csv(self, header=header, delimiter=delimiter)

    def to_dataframe(self) -> "pd.DataFrame":
        return export.to_dataframe(self)


def _sort_value(value: Any) -> tuple[bool, Any]:
    return (value is not None, value)
