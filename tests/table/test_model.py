from __future__ import annotations

import pytest

from tabula.shared.config import CacheSettings
from tabula.shared.exceptions import UsageError
from tabula.table import CachedModel, Table, TableCache

RECORDS = [
    {"id": 1, "name": "Ann", "city": "Oslo"},
    {"id": 2, "name": "Bob", "city": "Rome"},
    {"id": 3, "name": "Cid", "city": "Oslo"},
]


class StubLogger:
    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []

    def debug(self, message: str, *args) -> None:
        self.messages.append(("debug", message % args if args else message))


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


class RecordingSource:
    def __init__(self, records: list[dict] = RECORDS) -> None:
        self.records = records
        self.calls: list[tuple[int, int]] = []

    def __call__(self, limit: int, offset: int) -> Table:
        self.calls.append((limit, offset))
        selected = self.records[offset:]
        if limit:
            selected = selected[:limit]
        return Table(list(selected))


class UserAccount(CachedModel):
    pass


def test_cache_key_is_derived_from_the_class_name() -> None:
    assert UserAccount(RecordingSource()).cache_key == "table_data.user_account"
    assert CachedModel(RecordingSource()).cache_key == "table_data.cached_model"

    class Pinned(CachedModel):
        cache_key_name = "people"

    assert Pinned(RecordingSource()).cache_key == "people"


def test_warm_cache_loads_the_snapshot_window_once() -> None:
    source = RecordingSource()
    logger = StubLogger()
    model = UserAccount(source, logger=logger, settings=CacheSettings(limit=2, offset=1, lifetime=0))

    table = model.warm_cache()
    assert table.get_list("name") == ["Bob", "Cid"]
    assert model.warm_cache() is table
    assert source.calls == [(2, 1)]
    assert model.has_cached_data()
    assert any("Cache hit" in message for _, message in logger.messages)


def test_default_settings() -> None:
    source = RecordingSource()
    UserAccount(source).warm_cache()
    assert source.calls == [(1000, 0)]


def test_reads_are_answered_from_the_cache() -> None:
    source = RecordingSource()
    model = UserAccount(source)
    model.warm_cache()

    assert model.record_count([["city", "=", "Oslo"]]) == 2
    assert model.find([["name", "~", "^B"]]) == {"id": 2, "name": "Bob", "city": "Rome"}
    assert model.find_all([["city", "in", ["Rome", "Oslo"]]], ["name"], [{"name": "desc"}]).values() == [
        {"name": "Cid"},
        {"name": "Bob"},
        {"name": "Ann"},
    ]
    assert model.get_list("id", ascending=False, limit=2) == [3, 2]
    assert model.fetch(3, ["name"]) == {"name": "Cid"}
    assert model.fetch_all(["id"], limit=1).values() == [{"id": 1}]
    assert len(model.get_all()) == 3
    assert source.calls == [(1000, 0)]


def test_selections_the_table_cannot_answer_load_from_the_source() -> None:
    source = RecordingSource()
    model = UserAccount(source)
    model.warm_cache()

    assert model.find([["city", "null"]]) == {}
    assert source.calls == [(1000, 0), (0, 0)]


def test_reads_without_a_warm_cache_load_from_the_source() -> None:
    source = RecordingSource()
    model = UserAccount(source)
    assert not model.has_cached_data()
    assert model.cached_data().is_empty()
    assert model.record_count() == 3
    assert source.calls == [(0, 0)]


@pytest.mark.parametrize(
    "criteria, expected",
    [
        ([], True),
        ([["id", ">=", 1], ["name", "!~*", "x"]], True),
        ([["id", "not_in", [1]]], True),
        ([["id", "null"]], False),
        ([["id", "===", 1]], False),
        ([["id", "between", 1]], False),
        (["id = 1"], False),
    ],
)
def test_is_valid_table_selection(criteria: list, expected: bool) -> None:
    assert CachedModel.is_valid_table_selection(criteria) is expected


def test_caches_are_owned_by_the_caller() -> None:
    shared = TableCache()
    first = UserAccount(RecordingSource(), cache=shared)
    first.warm_cache()
    assert UserAccount(RecordingSource(), cache=shared).has_cached_data()
    assert not UserAccount(RecordingSource()).has_cached_data()


def test_cache_entries_expire() -> None:
    clock = FakeClock()
    cache = TableCache(clock=clock)
    source = RecordingSource()
    model = UserAccount(source, cache=cache, settings=CacheSettings(limit=10, offset=0, lifetime=60))

    model.warm_cache()
    clock.now += 59
    assert model.has_cached_data()
    clock.now += 1
    assert not model.has_cached_data()
    assert len(cache) == 0

    model.warm_cache()
    assert source.calls == [(10, 0), (10, 0)]


def test_table_cache_basics() -> None:
    cache = TableCache()
    table = Table([{"v": 1}])
    cache.set("k", table)
    assert "k" in cache
    assert cache.get("k") is table
    cache.delete("k")
    assert cache.get("k") is None
    cache.set("a", table)
    cache.set("b", table)
    cache.clear()
    assert len(cache) == 0


def test_composite_primary_keys() -> None:
    class CityName(CachedModel):
        primary_key = ("city", "name")

    model = CityName(RecordingSource())
    assert model.fetch(("Oslo", "Cid")) == {"id": 3, "name": "Cid", "city": "Oslo"}
    with pytest.raises(UsageError):
        model.fetch("Oslo")
