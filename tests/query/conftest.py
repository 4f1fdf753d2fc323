from __future__ import annotations

import json
from pathlib import Path

import pytest

from tabula.shared import paths
from tabula.shared.config import AppConfig, load_config

PEOPLE = [
    {"name": "Dee", "age": 41, "team": "ops"},
    {"name": "Ann", "age": 30, "team": "dev"},
    {"name": "Cid", "age": 30, "team": None},
    {"name": "Bob", "age": 25, "team": "dev"},
]


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    return load_config(env={paths.CONFIG_DIR_ENV: str(tmp_path / "config")})


@pytest.fixture
def people_json(tmp_path: Path) -> Path:
    path = tmp_path / "people.json"
    path.write_text(json.dumps(PEOPLE), encoding="utf-8")
    return path


@pytest.fixture
def people_csv(tmp_path: Path) -> Path:
    path = tmp_path / "people.csv"
    path.write_text(
        "name,age,team\nDee,41,ops\nAnn,30,dev\nCid,30,\nBob,25,dev\n",
        encoding="utf-8",
    )
    return path
