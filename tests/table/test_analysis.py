from __future__ import annotations

import pytest

from tabula.shared.exceptions import StructuralDataError
from tabula.table import Table, analyze


def test_inference_from_complete_rows() -> None:
    analysis = analyze({1: {"name": "Ann", "age": 30}, 2: {"name": "Bob", "age": 25}})

    assert analysis.is_valid
    assert analysis.row_count == 2
    assert analysis.key_type == "integer"
    assert analysis.inferred_rules() == {
        "name": {"type": "string", "not_null": True},
        "age": {"type": "integer", "not_null": True},
    }


def test_nulls_and_missing_values_make_columns_nullable() -> None:
    analysis = analyze(
        [
            {"name": "Ann", "score": 1.5, "note": None},
            {"name": "Bob", "score": None},
            {"name": "Cid"},
        ]
    )

    rules = analysis.inferred_rules()
    assert rules["name"] == {"type": "string", "not_null": True}
    assert rules["score"] == {"type": "double", "not_null": False}
    # A column that only ever held null is typed as string.
    assert rules["note"] == {"type": "string", "not_null": False}
    assert analysis.columns["score"].values == {"all": 2, "double": 1, "null": 1}


def test_inference_is_deterministic() -> None:
    rows = {"a": {"x": 1, "y": "p"}, "b": {"x": 2, "y": None}}
    assert analyze(rows).inferred_rules() == analyze(rows).inferred_rules()


def test_empty_input() -> None:
    analysis = analyze([])
    assert analysis.is_valid
    assert analysis.row_count == 0
    assert analysis.key_type is None
    assert analysis.inferred_rules() == {}


def test_all_defects_are_collected() -> None:
    data = {
        1: {"name": "Ann", "tags": ["a", "b"], 7: "x"},
        "two": "not a row",
        3: {"name": 5},
    }
    analysis = analyze(data)

    assert not analysis.is_valid
    assert analysis.errors["mixed_keys"] is True
    assert analysis.errors["invalid_rows"] == ["two"]
    assert analysis.errors["invalid_column_ids"] == [7]
    assert analysis.errors["nonscalar_values"] == {1: ["tags"]}
    assert analysis.errors["inconsistent_value_types"] == ["name"]


def test_inconsistent_types_are_reported() -> None:
    analysis = analyze([{"v": 1}, {"v": "one"}, {"v": None}])
    assert analysis.errors == {"inconsistent_value_types": ["v"]}
    assert "v" not in analysis.inferred_rules()


def test_bool_keys_are_invalid() -> None:
    analysis = analyze({True: {"v": 1}})
    assert analysis.errors["invalid_keys"] == [True]


def test_error_report_lists_every_problem() -> None:
    analysis = analyze({1: {"v": 1}, "b": {"v": "x"}})
    report = analysis.error_report()
    assert report.startswith("The given data is not a valid table:")
    assert "Mixed row keys" in report
    assert "Inconsistent value types" in report


def test_table_construction_raises_once_with_the_error_bag() -> None:
    with pytest.raises(StructuralDataError) as excinfo:
        Table({1: {"v": [1]}, "b": {"v": 2}})

    assert set(excinfo.value.errors) == {"mixed_keys", "nonscalar_values"}
    assert "Non-scalar values" in str(excinfo.value)


def test_non_container_input_is_structural_error() -> None:
    with pytest.raises(StructuralDataError):
        analyze(42)


def test_table_analyze_defaults_to_own_rows() -> None:
    table = Table([{"v": 1}, {"v": 2}])
    assert table.analyze().inferred_rules() == {"v": {"type": "integer", "not_null": True}}
    assert table.analyze([{"w": "x"}]).inferred_rules() == {"w": {"type": "string", "not_null": True}}
