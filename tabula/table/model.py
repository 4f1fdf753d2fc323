"""Read-through caching of record sources as in-memory tables."""

from __future__ import annotations

import re
import time
from collections.abc import Iterable, Sequence
from typing import Any, Callable

from tabula.shared.config import CacheSettings
from tabula.shared.exceptions import UsageError
from tabula.shared.logging import Logger

from .criteria import LIST_OPERATORS, REGEX_MATCH_OPERATORS
from .table import OrderSpec, Table
from .types import Row

CACHE_KEY_PREFIX = "table_data."
CACHE_LIMIT = 1000  # records
CACHE_OFFSET = 0  # records
CACHE_LIFETIME = 7 * 24 * 3600  # seconds

# Operators a cached table can answer the same way the record source would.
TABLE_SELECTION_OPERATORS = (">", "<", ">=", "<=", "=", "!=", "<>")

RecordSource = Callable[[int, int], Table]


class TableCache:
    """Caller-owned store of table snapshots keyed by name.

    Entries may carry a lifetime in seconds; an expired entry behaves as if
    it was never stored.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[Table, float | None]] = {}

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None

    def __len__(self) -> int:
        self._purge()
        return len(self._entries)

    def get(self, key: str) -> Table | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        table, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._entries[key]
            return None
        return table

    def set(self, key: str, table: Table, lifetime: int | None = None) -> None:
        """Store ``table``; a missing or non-positive lifetime never expires."""
        expires_at = self._clock() + lifetime if lifetime and lifetime > 0 else None
        self._entries[key] = (table, expires_at)

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def _purge(self) -> None:
        for key in list(self._entries):
            self.get(key)


def underscorize(name: str) -> str:
    """``UserAccount`` -> ``user_account``."""
    return re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "_", name).lower()


class CachedModel:
    """Answers table queries from a cached snapshot of a record source.

    ``source(limit, offset)`` returns a Table of records (``0`` meaning no
    limit). ``warm_cache`` stores a window of records in the cache; later
    reads whose criteria the table engine can evaluate are answered from
    that snapshot, everything else from a fresh full load.

    Subclasses may set ``cache_key_name`` to pin the cache key and
    ``primary_key`` (a column name or a tuple of names) for ``fetch``.
    """

    cache_key_name: str | None = None
    primary_key: str | Sequence[str] = "id"

    def __init__(
        self,
        source: RecordSource,
        cache: TableCache | None = None,
        logger: Logger | None = None,
        settings: CacheSettings | None = None,
    ) -> None:
        self.source = source
        self.cache = cache if cache is not None else TableCache()
        self.logger = logger
        self.settings = settings or CacheSettings(limit=CACHE_LIMIT, offset=CACHE_OFFSET, lifetime=CACHE_LIFETIME)

    @property
    def cache_key(self) -> str:
        if self.cache_key_name is not None:
            return self.cache_key_name
        return CACHE_KEY_PREFIX + underscorize(type(self).__name__)

    def _debug(self, message: str) -> None:
        if self.logger is not None:
            self.logger.debug(message)

    def warm_cache(self) -> Table:
        """Load the snapshot window into the cache unless it is already there."""
        key = self.cache_key
        table = self.cache.get(key)
        if table is not None and not table.is_empty():
            self._debug(f"Cache hit for {key} ({len(table)} records).")
            return table

        table = self.source(self.settings.limit, self.settings.offset)
        self.cache.set(key, table, self.settings.lifetime)
        self._debug(f"Cached {len(table)} records under {key}.")
        return table

    def has_cached_data(self) -> bool:
        table = self.cache.get(self.cache_key)
        return table is not None and not table.is_empty()

    def cached_data(self) -> Table:
        table = self.cache.get(self.cache_key)
        return table if table is not None else Table()

    @staticmethod
    def is_valid_table_selection(criteria: Iterable[Any] | None) -> bool:
        """Return whether every criterion is a 3-part test a table can evaluate."""
        for criterion in criteria or ():
            if not isinstance(criterion, (list, tuple)) or len(criterion) != 3:
                return False
            operator = criterion[1]
            if (
                operator not in TABLE_SELECTION_OPERATORS
                and operator not in REGEX_MATCH_OPERATORS
                and operator not in LIST_OPERATORS
            ):
                return False
        return True

    def _table_for(self, criteria: Iterable[Any] | None) -> Table:
        if self.has_cached_data() and self.is_valid_table_selection(criteria):
            self._debug(f"Answering from cached {self.cache_key}.")
            return self.cached_data()
        self._debug(f"Loading all records for {self.cache_key}.")
        return self.source(0, 0)

    def record_count(self, criteria: Iterable[Any] | None = None) -> int:
        criteria = list(criteria or [])
        return self._table_for(criteria).record_count(criteria)

    def find(self, criteria: Iterable[Any] | None = None, columns: Sequence[str] | None = None) -> Row:
        criteria = list(criteria or [])
        return self._table_for(criteria).find(criteria, columns)

    def find_all(
        self,
        criteria: Iterable[Any] | None = None,
        columns: Sequence[str] | None = None,
        order: OrderSpec | None = None,
        limit: int = 0,
        offset: int = 0,
    ) -> Table:
        criteria = list(criteria or [])
        return self._table_for(criteria).find_all(criteria, columns, order, limit, offset)

    def get_list(
        self,
        column: str,
        criteria: Iterable[Any] | None = None,
        ascending: bool = True,
        limit: int = 0,
        offset: int = 0,
    ) -> list[Any]:
        criteria = list(criteria or [])
        return self._table_for(criteria).get_list(column, criteria, ascending, limit, offset)

    def fetch(self, key: Any, columns: Sequence[str] | None = None) -> Row:
        """Return the record whose primary key equals ``key``."""
        return self.find(self.primary_key_criteria(key), columns)

    def fetch_all(
        self,
        columns: Sequence[str] | None = None,
        order: OrderSpec | None = None,
        limit: int = 0,
        offset: int = 0,
    ) -> Table:
        return self.find_all([], columns, order, limit, offset)

    def get_all(self, limit: int = 0, offset: int = 0) -> Table:
        return self.find_all([], None, None, limit, offset)

    def primary_key_criteria(self, key: Any) -> list[list[Any]]:
        if isinstance(self.primary_key, str):
            return [[self.primary_key, "=", key]]
        names = list(self.primary_key)
        if not isinstance(key, (list, tuple)) or len(key) != len(names):
            raise UsageError(f"A key of {len(names)} values is required ({', '.join(names)})")
        return [[name, "=", value] for name, value in zip(names, key)]
