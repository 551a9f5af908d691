"""Application configuration loaded from a ``Config`` file."""

from __future__ import annotations

import functools
import json
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from proxypool.errors import ConfigError

DEFAULT_CONFIG_NAME = "Config"
_SUFFIXES = (".toml", ".json")


def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key)
    if not isinstance(value, Mapping):
        raise ConfigError(f"missing or invalid section '{key}'")
    return value


def _count(data: Mapping[str, Any], key: str) -> int:
    if key not in data:
        raise ConfigError(f"missing field '{key}'")
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConfigError(f"field '{key}' must be a non-negative integer, got {value!r}")
    return value


def _text(data: Mapping[str, Any], key: str) -> str:
    if key not in data:
        raise ConfigError(f"missing field '{key}'")
    value = data[key]
    if not isinstance(value, str):
        raise ConfigError(f"field '{key}' must be a string, got {value!r}")
    return value


def _texts(data: Mapping[str, Any], key: str) -> list[str]:
    if key not in data:
        raise ConfigError(f"missing field '{key}'")
    value = data[key]
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigError(f"field '{key}' must be a list of strings, got {value!r}")
    return list(value)


@dataclass(frozen=True)
class DbConfig:
    """Database connection settings."""

    driver: str
    connection_string: str
    table_name: str
    max_connections: int

    @classmethod
    def _from_mapping(cls, data: Mapping[str, Any]) -> DbConfig:
        return cls(
            driver=_text(data, "driver"),
            connection_string=_text(data, "connection_string"),
            table_name=_text(data, "table_name"),
            max_connections=_count(data, "max_connections"),
        )


@dataclass(frozen=True)
class VerifyConfig:
    """Proxy verification settings."""

    semaphore: int
    timeout: int
    test_urls: list[str] = field(default_factory=list)
    verify_level: int = 1

    @classmethod
    def _from_mapping(cls, data: Mapping[str, Any]) -> VerifyConfig:
        return cls(
            semaphore=_count(data, "semaphore"),
            timeout=_count(data, "timeout"),
            test_urls=_texts(data, "test_urls"),
            verify_level=_count(data, "verify_level"),
        )


@dataclass(frozen=True)
class LoggingConfig:
    """Logging settings: the level names shown on the console."""

    console_levels: list[str] = field(default_factory=list)

    @classmethod
    def _from_mapping(cls, data: Mapping[str, Any]) -> LoggingConfig:
        return cls(console_levels=_texts(data, "console_levels"))


@dataclass(frozen=True)
class AppConfig:
    """The whole application configuration."""

    verify: VerifyConfig
    db: DbConfig
    log: LoggingConfig

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AppConfig:
        """Validate a parsed document and build the configuration."""
        if not isinstance(data, Mapping):
            raise ConfigError("configuration document must be a table")
        return cls(
            verify=VerifyConfig._from_mapping(_section(data, "verify")),
            db=DbConfig._from_mapping(_section(data, "db")),
            log=LoggingConfig._from_mapping(_section(data, "log")),
        )


def _resolve(path: Path) -> Path:
    if path.suffix:
        if not path.is_file():
            raise ConfigError(f"configuration file not found: {path}")
        return path
    for suffix in _SUFFIXES:
        candidate = path.with_name(path.name + suffix)
        if candidate.is_file():
            return candidate
    raise ConfigError(f"configuration file not found: {path} ({', '.join(_SUFFIXES)})")


def load_config(path: str | Path = DEFAULT_CONFIG_NAME) -> AppConfig:
    """Read and validate a configuration file.

    A path without a suffix is looked up as ``<path>.toml`` then
    ``<path>.json``.
    """
    resolved = _resolve(Path(path))
    try:
        if resolved.suffix == ".toml":
            with resolved.open("rb") as handle:
                data = tomllib.load(handle)
        elif resolved.suffix == ".json":
            data = json.loads(resolved.read_text(encoding="utf-8"))
        else:
            raise ConfigError(f"unsupported configuration format: {resolved.suffix}")
    except (OSError, tomllib.TOMLDecodeError, json.JSONDecodeError) as exc:
        raise ConfigError(f"cannot read configuration {resolved}: {exc}") from exc
    return AppConfig.from_dict(data)


@functools.cache
def get_config() -> AppConfig:
    """The process-wide configuration, loaded from ``Config`` on first use."""
    return load_config(DEFAULT_CONFIG_NAME)