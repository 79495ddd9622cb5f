"""Configuration loaded from a YAML file and merged over defaults.

Example::

    history_path: ~/.cronwrap/history.jsonl
    max_history_records: 1000
    default_timeout: 5m
    alert:
      on_failure: true
      duration_threshold: 10m
      log_level: error

Fields omitted from the file keep their default values.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

import yaml

from cronwrap.durations import parse_duration

_VALID_LEVELS = frozenset({"info", "warn", "error", ""})


class ConfigError(ValueError):
    """The configuration file could not be read or is invalid."""


@dataclass
class AlertConfig:
    on_failure: bool = True
    duration_threshold: timedelta = timedelta(0)
    log_level: str = "error"


@dataclass
class Config:
    history_path: str = ".cronwrap/history.jsonl"
    max_history_records: int = 1000
    default_timeout: timedelta = timedelta(0)
    alert: AlertConfig = field(default_factory=AlertConfig)

    def validate(self) -> None:
        """Raise ConfigError when a value is out of range."""
        if self.max_history_records < 0:
            raise ConfigError("max_history_records must be >= 0")
        if self.alert.log_level not in _VALID_LEVELS:
            raise ConfigError("alert.log_level must be one of: info, warn, error")


def defaults() -> Config:
    """A configuration holding the default values."""
    return Config()


def _string(value: Any, name: str) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{name}: expected a string, got {value!r}")
    return value


def _integer(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name}: expected an integer, got {value!r}")
    return value


def _boolean(value: Any, name: str) -> bool:
    if not isinstance(value, bool):
        raise TypeError(f"{name}: expected a boolean, got {value!r}")
    return value


def _duration(value: Any, name: str) -> timedelta:
    if isinstance(value, str):
        try:
            return parse_duration(value)
        except ValueError as exc:
            raise ValueError(f"{name}: {exc}") from exc
    if isinstance(value, int) and not isinstance(value, bool):
        magnitude = abs(value) // 1_000
        return timedelta(microseconds=magnitude if value >= 0 else -magnitude)
    raise TypeError(f"{name}: expected a duration, got {value!r}")


def _merge(cfg: Config, document: Any) -> None:
    if not isinstance(document, dict):
        raise TypeError("top-level document must be a mapping")
    if (value := document.get("history_path")) is not None:
        cfg.history_path = _string(value, "history_path")
    if (value := document.get("max_history_records")) is not None:
        cfg.max_history_records = _integer(value, "max_history_records")
    if (value := document.get("default_timeout")) is not None:
        cfg.default_timeout = _duration(value, "default_timeout")

    section = document.get("alert")
    if section is None:
        return
    if not isinstance(section, dict):
        raise TypeError("alert: expected a mapping")
    if (value := section.get("on_failure")) is not None:
        cfg.alert.on_failure = _boolean(value, "alert.on_failure")
    if (value := section.get("duration_threshold")) is not None:
        cfg.alert.duration_threshold = _duration(value, "alert.duration_threshold")
    if (value := section.get("log_level")) is not None:
        cfg.alert.log_level = _string(value, "alert.log_level")


def load(path: str | os.PathLike[str] | None = None) -> Config:
    """Load the YAML file at path over the defaults; no path means defaults only."""
    cfg = defaults()
    if not path:
        return cfg

    try:
        with open(path, encoding="utf-8") as fh:
            document = yaml.safe_load(fh)
    except OSError as exc:
        raise ConfigError(f'config: open "{path}": {exc}') from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f'config: decode "{path}": {exc}') from exc

    if document is None:
        raise ConfigError(f'config: decode "{path}": empty document')
    try:
        _merge(cfg, document)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f'config: decode "{path}": {exc}') from exc

    try:
        cfg.validate()
    except ConfigError as exc:
        raise ConfigError(f"config: {exc}") from exc
    return cfg