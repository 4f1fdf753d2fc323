from __future__ import annotations

import pytest

from tabula.shared.exceptions import UsageError
from tabula.table import Table


def _inventory() -> Table:
    return Table(
        {
            "a1": {"sku": "A1", "bin": 3, "kind": "bolt", "weight": 1.5},
            "b2": {"sku": "B2", "bin": 1, "kind": "nut", "weight": 0.5},
            "c3": {"sku": "C3", "bin": 3, "kind": "bolt", "weight": 2.0},
        }
    )


def test_unique_index_lookup() -> None:
    table = _inventory()
    table.add_index("sku")
    assert table.index_names == ["sku"]
    assert table.has_index("sku")
    assert table.get_index("sku").map == {"A1": "a1", "B2": "b2", "C3": "c3"}
    assert table.fetch_row("sku", "B2") == {"sku": "B2", "bin": 1, "kind": "nut", "weight": 0.5}
    assert table.fetch_row("sku", "Z9") == {}


def test_non_unique_index_keeps_row_order() -> None:
    table = _inventory()
    table.add_index("bin", unique=False)
    assert table.get_index("bin").lookup(3) == ["a1", "c3"]
    assert [row["sku"] for row in table.fetch_rows("bin", 3)] == ["A1", "C3"]
    assert table.fetch_rows("bin", 7) == []


def test_unique_index_over_duplicates_is_refused() -> None:
    table = _inventory()
    with pytest.raises(UsageError, match='Column "kind" contains duplicate values'):
        table.add_index("kind")
    assert not table.has_index("kind")


@pytest.mark.parametrize("column", ["weight", "missing"])
def test_only_string_and_integer_columns_can_be_indexed(column: str) -> None:
    with pytest.raises(UsageError):
        _inventory().add_index(column)


def test_nullable_columns_cannot_be_indexed() -> None:
    table = Table([{"code": "a"}, {"code": None}])
    with pytest.raises(UsageError, match="null"):
        table.add_index("code")


def test_indexes_follow_mutations() -> None:
    table = _inventory()
    table.add_index("sku")
    table.add_index("bin", unique=False)

    table.add_row("d4", {"sku": "D4", "bin": 1, "kind": "washer", "weight": 0.1})
    assert table.fetch_row("sku", "D4")["kind"] == "washer"
    assert [row["sku"] for row in table.fetch_rows("bin", 1)] == ["B2", "D4"]

    table.update_field("a1", "bin", 1)
    assert [row["sku"] for row in table.fetch_rows("bin", 1)] == ["A1", "B2", "D4"]

    table.delete_row("b2")
    assert table.fetch_row("sku", "B2") == {}
    assert [row["sku"] for row in table.fetch_rows("bin", 1)] == ["A1", "D4"]


def test_unique_conflicts_leave_the_table_unchanged() -> None:
    table = _inventory()
    table.add_index("sku")

    with pytest.raises(UsageError):
        table.add_row("z", {"sku": "A1", "bin": 9, "kind": "pin", "weight": 0.2})
    assert "z" not in table

    with pytest.raises(UsageError):
        table.update_field("b2", "sku", "C3")
    assert table.get_row("b2")["sku"] == "B2"
    assert table.fetch_row("sku", "C3")["bin"] == 3

    # Replacing a row with its own indexed value is fine.
    table.set("a1", {"sku": "A1", "bin": 4, "kind": "bolt", "weight": 1.5})
    assert table.fetch_row("sku", "A1")["bin"] == 4


def test_delete_indexes() -> None:
    table = _inventory()
    table.add_index("sku").add_index("bin", unique=False)
    table.delete_index("sku")
    assert table.index_names == ["bin"]
    table.delete_indexes()
    assert table.index_names == []
    # Lookups still work through a scan.
    assert table.fetch_row("sku", "C3")["bin"] == 3


def test_returned_index_is_a_copy() -> None:
    table = _inventory()
    table.add_index("bin", unique=False)
    snapshot = table.get_index("bin")
    snapshot.map[3].append("zz")
    assert table.get_index("bin").lookup(3) == ["a1", "c3"]
    assert table.get_index("kind") is None


@pytest.mark.parametrize("value", ["A1", "B2", "C3", "Z9", ""])
def test_index_and_scan_agree(value: str) -> None:
    indexed = _inventory()
    indexed.add_index("sku")
    scanned = indexed.select([["sku", "=", value]])
    expected = scanned.values()[0] if len(scanned) else {}

    assert indexed.fetch_row("sku", value) == expected
    assert _inventory().fetch_row("sku", value) == expected


def test_key_column_lookup() -> None:
    table = _inventory()
    table.set_key_column("sku")
    assert table.fetch_rows("sku", "B2") == [{"sku": "B2", "bin": 1, "kind": "nut", "weight": 0.5}]
    assert table.fetch_rows("sku", "Q") == []
    assert table.fetch_row("sku", 5) == {}


def test_key_column_rows_must_be_stored_under_their_own_value() -> None:
    table = Table([{"name": "Ann", "age": 30}, {"name": "Bob", "age": 25}])
    table.set_key_column("name")

    with pytest.raises(UsageError, match='key column "name"'):
        table.add_row("Zed", {"name": "Bob", "age": 99})

    assert table.keys() == ["Ann", "Bob"]
    assert table.fetch_rows("name", "Bob") == table.select([["name", "===", "Bob"]]).values()
    assert table.fetch_rows("name", "Zed") == []

    table.add_row("Bob", {"name": "Bob", "age": 26})
    table.add_row("Cid", {"name": "Cid", "age": 41})
    assert table.fetch_row("name", "Bob") == {"name": "Bob", "age": 26}
    assert table.fetch_rows("name", "Cid") == table.select([["name", "=", "Cid"]]).values()


def test_lookup_values_of_another_type_do_not_match() -> None:
    table = Table([{"id": 1, "name": "one"}, {"id": 2, "name": "two"}])
    table.add_index("id")
    assert table.fetch_row("id", True) == {}
    assert table.fetch_row("id", 1.0) == {}
    assert table.fetch_row("id", 2) == {"id": 2, "name": "two"}


def test_fetch_on_undefined_column_is_a_usage_error() -> None:
    with pytest.raises(UsageError):
        _inventory().fetch_row("colour", "red")
