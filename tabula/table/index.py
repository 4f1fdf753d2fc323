"""Secondary indexes mapping column values back to row keys."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Union

from tabula.shared.exceptions import UsageError

from .types import Row, RowKey

IndexMap = dict[Any, Union[RowKey, list[RowKey]]]


@dataclass(slots=True)
class Index:
    """Derived ``value -> key`` (unique) or ``value -> [keys]`` map.

    Indexes only ever hold row keys; the rows themselves stay in the table.
    """

    column: str
    unique: bool = True
    map: IndexMap = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.map)

    def __contains__(self, value: object) -> bool:
        return value in self.map

    def lookup(self, value: Any) -> list[RowKey]:
        """Return the keys of rows holding ``value``, in row order."""
        if value not in self.map:
            return []
        keys = self.map[value]
        return list(keys) if isinstance(keys, list) else [keys]

    def copy(self) -> Index:
        if self.unique:
            return Index(self.column, True, dict(self.map))
        return Index(self.column, False, {value: list(keys) for value, keys in self.map.items()})  # type: ignore[union-attr]


def build_index_map(rows: Mapping[RowKey, Row], column: str, unique: bool = True) -> IndexMap:
    """Map every value of ``column`` to the key(s) of the rows holding it."""
    index: IndexMap = {}
    for row_key, row in rows.items():
        value = row[column]
        if unique:
            if value in index:
                raise UsageError(f'Column "{column}" contains duplicate values')
            index[value] = row_key
        else:
            index.setdefault(value, []).append(row_key)  # type: ignore[union-attr]
    return index
