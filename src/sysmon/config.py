"""
Configuration for the sysmon server.

Values come from the defaults below, then an optional YAML file, then
``SYSMON_*`` environment variables, each layer overriding the previous one.
"""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

from sysmon.errors import ConfigError

ENV_PREFIX = "SYSMON_"


@dataclass(slots=True, frozen=True)
class Config:
    """Server configuration."""

    host: str = "0.0.0.0"
    port: int = 57996
    sampling_interval: float = 5.0  # Seconds between monitoring samples
    log_level: str = "INFO"
    log_file: Path | None = None
    include_loopback: bool = False
    cors_origins: str = "*"


_CONVERTERS = {
    "host": str,
    "port": int,
    "sampling_interval": float,
    "log_level": lambda value: str(value).upper(),
    "log_file": lambda value: Path(value) if value else None,
    "include_loopback": lambda value: (
        value if isinstance(value, bool) else str(value).strip().lower() in ("1", "true", "yes", "on")
    ),
    "cors_origins": str,
}


def load_config(path: Path | str | None = None, env: Mapping[str, str] | None = None) -> Config:
    """
    Load configuration from an optional YAML file and the environment.

    Args:
        path: YAML file with any of the Config field names as keys.
        env: Environment mapping (defaults to os.environ).

    Returns:
        Validated Config instance.

    Raises:
        ConfigError: If the file is unreadable or a value is invalid.
    """
    values: dict[str, Any] = {}

    if path is not None:
        values.update(_read_yaml(Path(path)))

    env = os.environ if env is None else env
    for f in fields(Config):
        key = ENV_PREFIX + f.name.upper()
        if key in env:
            values[f.name] = env[key]

    config = Config()
    try:
        config = replace(config, **{name: _CONVERTERS[name](value) for name, value in values.items()})
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid configuration value: {exc}") from exc

    if config.sampling_interval <= 0:
        raise ConfigError("sampling_interval must be positive")
    if not 0 < config.port < 65536:
        raise ConfigError(f"port out of range: {config.port}")
    if not isinstance(logging.getLevelName(config.log_level), int):
        raise ConfigError(f"Unknown log level: {config.log_level}")
    return config


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")

    known = {f.name for f in fields(Config)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown config keys: {', '.join(map(str, unknown))}")
    return data
