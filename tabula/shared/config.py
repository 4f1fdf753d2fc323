"""Configuration loading utilities for tabula."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping, MutableMapping

import yaml

from . import paths
from .exceptions import ConfigurationError

OUTPUT_FORMATS = ("table", "csv", "tsv", "json")


@dataclass(frozen=True, slots=True)
class QuerySettings:
    """Defaults applied by the query command line."""

    default_limit: int
    output_format: str


@dataclass(frozen=True, slots=True)
class CacheSettings:
    """Snapshot window and lifetime for cached models."""

    limit: int
    offset: int
    lifetime: int


@dataclass(frozen=True, slots=True)
class DataSettings:
    """Data file loading options."""

    csv_delimiter: str


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Top-level application configuration."""

    source_path: Path
    query: QuerySettings
    cache: CacheSettings
    data: DataSettings

    def with_default_limit(self, limit: int) -> AppConfig:
        """Return a copy with an updated default row limit."""
        return replace(self, query=replace(self.query, default_limit=limit))


def _default_config() -> dict[str, Any]:
    return {
        "query": {
            "default_limit": 200,
            "output_format": "table",
        },
        "cache": {
            "limit": 1000,
            "offset": 0,
            "lifetime": 7 * 24 * 3600,
        },
        "data": {
            "csv_delimiter": ",",
        },
    }


ENV_OVERRIDE_SPEC: dict[str, tuple[str, type]] = {
    "query.default_limit": ("TABULA_QUERY_DEFAULT_LIMIT", int),
    "query.output_format": ("TABULA_QUERY_OUTPUT_FORMAT", str),
    "cache.limit": ("TABULA_CACHE_LIMIT", int),
    "cache.offset": ("TABULA_CACHE_OFFSET", int),
    "cache.lifetime": ("TABULA_CACHE_LIFETIME", int),
    "data.csv_delimiter": ("TABULA_CSV_DELIMITER", str),
}


def load_config(
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
) -> AppConfig:
    """Load configuration from defaults, YAML file, and env overrides."""
    env = dict(env or os.environ)
    resolved_config_path = _resolve_config_path(config_path, env)
    file_data = _load_yaml(resolved_config_path)
    merged: dict[str, Any] = _deep_merge(_default_config(), file_data)
    merged = _apply_env_overrides(merged, env)
    return _build_config(merged, resolved_config_path)


def _resolve_config_path(config_path: str | Path | None, env: Mapping[str, str]) -> Path:
    if config_path:
        return paths.resolve_path(config_path)
    return paths.default_config_path(env=env)


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        try:
            data = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Config file at {path} is not valid YAML: {exc}") from exc
        if not isinstance(data, MutableMapping):
            raise ConfigurationError(f"Config file at {path} must define a mapping root object.")
        return dict(data)


def _deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], Mapping) and isinstance(value, Mapping):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _apply_env_overrides(config: dict[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
    config_copy = _deep_merge(config, {})
    for dotted_key, (env_key, expected_type) in ENV_OVERRIDE_SPEC.items():
        if env_key not in env:
            continue
        raw_value = env[env_key]
        try:
            value = _coerce_env_value(raw_value, expected_type)
        except ValueError as exc:
            raise ConfigurationError(
                f"Environment override {env_key} has invalid value '{raw_value}': {exc}"
            ) from exc
        _assign_nested(config_copy, dotted_key.split("."), value)
    return config_copy


def _coerce_env_value(raw: str, expected_type: type) -> Any:
    if expected_type is int:
        return int(raw.strip())
    # Delimiters such as a tab must survive untouched.
    return raw


def _assign_nested(target: MutableMapping[str, Any], keys: list[str], value: Any) -> None:
    current = target
    for key in keys[:-1]:
        if key not in current or not isinstance(current[key], MutableMapping):
            current[key] = {}
        current = current[key]  # type: ignore[assignment]
    current[keys[-1]] = value


def _build_config(data: Mapping[str, Any], source_path: Path) -> AppConfig:
    try:
        query_cfg = data["query"]
        query = QuerySettings(
            default_limit=int(query_cfg["default_limit"]),
            output_format=str(query_cfg["output_format"]).lower(),
        )
        cache_cfg = data["cache"]
        cache = CacheSettings(
            limit=int(cache_cfg["limit"]),
            offset=int(cache_cfg["offset"]),
            lifetime=int(cache_cfg["lifetime"]),
        )
        data_settings = DataSettings(csv_delimiter=str(data["data"]["csv_delimiter"]))
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid configuration structure: {exc}") from exc

    if query.output_format not in OUTPUT_FORMATS:
        raise ConfigurationError(
            f"Unsupported output format '{query.output_format}'; expected one of {', '.join(OUTPUT_FORMATS)}."
        )
    if cache.limit < 0 or cache.offset < 0:
        raise ConfigurationError("Cache limit and offset must not be negative.")
    if len(data_settings.csv_delimiter) != 1:
        raise ConfigurationError("The CSV delimiter must be a single character.")

    return AppConfig(
        source_path=source_path,
        query=query,
        cache=cache,
        data=data_settings,
    )
