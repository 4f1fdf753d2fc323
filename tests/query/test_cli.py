from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from tabula.query.main import _parse_order, _parse_where, cli


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TABULA_CONFIG_DIR", str(tmp_path / "config"))
    for name in ("TABULA_CONFIG_PATH", "TABULA_QUERY_DEFAULT_LIMIT", "TABULA_QUERY_OUTPUT_FORMAT"):
        monkeypatch.delenv(name, raising=False)


def test_cli_query_json(people_json: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(
        cli,
        [
            "query",
            str(people_json),
            "-w",
            "team = dev",
            "-c",
            "name",
            "-c",
            "age",
            "-o",
            "age:asc",
            "--format",
            "json",
        ],
    )

    assert result.exit_code == 0, result.output
    assert json.loads(result.output) == [{"name": "Bob", "age": 25}, {"name": "Ann", "age": 30}]


def test_cli_query_parses_typed_values(people_csv: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(
        cli,
        ["query", str(people_csv), "-w", "age >= 30", "-w", "name in [Ann, Cid]", "--format", "csv"],
    )

    assert result.exit_code == 0, result.output
    lines = result.output.strip().splitlines()
    assert lines[0] == "name,age,team"
    assert lines[1:] == ["Ann,30,dev", "Cid,30,"]


def test_cli_query_uses_configured_format(people_json: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TABULA_QUERY_OUTPUT_FORMAT", "tsv")
    runner = CliRunner()
    result = runner.invoke(cli, ["query", str(people_json), "-c", "name", "--limit", "1"])

    assert result.exit_code == 0, result.output
    assert result.output.splitlines()[:2] == ["name", "Dee"]


def test_cli_query_reports_table_errors(people_json: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["query", str(people_json), "-w", "salary > 10"])

    assert result.exit_code != 0
    assert 'Column "salary" has not been defined' in result.output


def test_cli_query_rejects_malformed_options(people_json: Path) -> None:
    runner = CliRunner()
    bad_where = runner.invoke(cli, ["query", str(people_json), "-w", "age"])
    bad_order = runner.invoke(cli, ["query", str(people_json), "-o", "age:sideways"])

    assert bad_where.exit_code != 0
    assert "FIELD OP [VALUE]" in bad_where.output
    assert bad_order.exit_code != 0
    assert "COLUMN[:asc|desc]" in bad_order.output


def test_cli_find(people_json: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(
        cli,
        ["find", str(people_json), "-w", "name = Cid", "--format", "json"],
    )

    assert result.exit_code == 0, result.output
    assert json.loads(result.output) == [{"name": "Cid", "age": 30, "team": None}]


def test_cli_schema_json(people_csv: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["schema", str(people_csv), "--format", "json"])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["row_count"] == 4
    assert [column["type"] for column in payload["columns"]] == ["string", "integer", "string"]


def test_cli_schema_table_with_key_column(people_json: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["schema", str(people_json), "--key-column", "name"])

    assert result.exit_code == 0, result.output
    assert "keyed by name" in result.output


def test_cli_bad_config_file(people_json: Path, tmp_path: Path) -> None:
    cfg_file = tmp_path / "broken.yaml"
    cfg_file.write_text("- not a mapping", encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(cfg_file), "schema", str(people_json)])

    assert result.exit_code != 0
    assert "mapping root object" in result.output


@pytest.mark.parametrize(
    "expression, expected",
    [
        ("age >= 30", ["age", ">=", 30]),
        ("name = Ann Lee", ["name", "=", "Ann Lee"]),
        ("name = '30'", ["name", "=", "30"]),
        ("active = true", ["active", "=", True]),
        ("score < 2.5", ["score", "<", 2.5]),
        ("team in [dev, ops]", ["team", "in", ["dev", "ops"]]),
        ("team null", ["team", "null"]),
        ("day = 2024-01-02", ["day", "=", "2024-01-02"]),
    ],
)
def test_parse_where(expression: str, expected: list) -> None:
    assert _parse_where(expression) == expected


def test_parse_order() -> None:
    assert _parse_order("age") == {"age": "asc"}
    assert _parse_order("age:DESC") == {"age": "desc"}
    with pytest.raises(ValueError):
        _parse_order(":asc")
