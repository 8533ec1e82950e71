"""Configuration management for the SwitchBot bridge."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .ble.advertisements import METER_SERVICE_UUID
from .ble.bluez import DISCOVERY_FILTER_SIGNATURES
from .discovery import DEFAULT_INTERVAL_SEC
from .statsd_output import DEFAULT_HOST, DEFAULT_PORT, DEFAULT_PREFIX


@dataclass
class BluezConfig:
    """Configuration for the BlueZ adapter and advertisement filter."""

    adapter: str = "hci0"
    service_uuid: str = METER_SERVICE_UUID
    discovery_interval_sec: float = DEFAULT_INTERVAL_SEC
    discovery_filter: Dict[str, Any] = field(default_factory=dict)


@dataclass
class StatsdConfig:
    """Configuration for the statsd metrics sink."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    prefix: str = DEFAULT_PREFIX


@dataclass
class LoggingConfig:
    """Configuration for structured status logging."""

    dir: Optional[str] = None  # no NDJSON log unless set
    file_prefix: str = "switchbot"
    mode: str = "regular"  # regular or verbose
    status_interval_sec: float = 300.0
    print_readings: bool = True


@dataclass
class AppConfig:
    """Main application configuration."""

    bluez: BluezConfig = None
    statsd: StatsdConfig = None
    logging: LoggingConfig = None

    def __post_init__(self) -> None:
        if self.bluez is None:
            self.bluez = BluezConfig()
        if self.statsd is None:
            self.statsd = StatsdConfig()
        if self.logging is None:
            self.logging = LoggingConfig()


def load_config(config_path: Optional[str] = None) -> AppConfig:
    """Load configuration from YAML file with environment variable support.

    Without a path the built-in defaults are used.
    """
    if config_path is None:
        return AppConfig()

    config_file = Path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with config_file.open("r", encoding="utf-8") as f:
        raw_config = yaml.safe_load(f)

    if not raw_config:
        raise ValueError(f"Empty or invalid configuration file: {config_path}")

    _substitute_env_vars(raw_config)

    config = AppConfig()

    # Numbers substituted from the environment arrive as strings
    if "bluez" in raw_config:
        bluez_data = raw_config["bluez"]
        _coerce(bluez_data, "discovery_interval_sec", float)
        config.bluez = BluezConfig(**bluez_data)

    if "statsd" in raw_config:
        statsd_data = raw_config["statsd"]
        _coerce(statsd_data, "port", int)
        config.statsd = StatsdConfig(**statsd_data)

    if "logging" in raw_config:
        logging_data = raw_config["logging"]
        _coerce(logging_data, "status_interval_sec", float)
        config.logging = LoggingConfig(**logging_data)

    return config


def _coerce(data: Dict[str, Any], key: str, kind: type) -> None:
    if key in data:
        try:
            data[key] = kind(data[key])
        except (TypeError, ValueError):
            raise ValueError(f"Invalid value for {key}: {data[key]!r}") from None


def _substitute_env_vars(data: Any) -> None:
    """Recursively substitute environment variables in configuration data."""
    if isinstance(data, dict):
        for key, value in data.items():
            if isinstance(value, str) and value.startswith("${") and value.endswith("}"):
                env_var = value[2:-1]
                data[key] = os.getenv(env_var, value)
            else:
                _substitute_env_vars(value)
    elif isinstance(data, list):
        for index, item in enumerate(data):
            if isinstance(item, str) and item.startswith("${") and item.endswith("}"):
                data[index] = os.getenv(item[2:-1], item)
            else:
                _substitute_env_vars(item)


def validate_config(config: AppConfig) -> List[str]:
    """Validate configuration and return list of validation errors."""
    errors = []

    if not config.bluez.adapter:
        errors.append("BlueZ adapter name is required")
    if not config.bluez.service_uuid:
        errors.append("BlueZ service_uuid is required")
    if config.bluez.discovery_interval_sec <= 0:
        errors.append("BlueZ discovery_interval_sec must be positive")
    for key in config.bluez.discovery_filter:
        if key not in DISCOVERY_FILTER_SIGNATURES:
            errors.append(f"Unknown discovery filter key: {key}")

    if not config.statsd.host:
        errors.append("statsd host is required")
    if not 0 < config.statsd.port < 65536:
        errors.append(f"statsd port out of range: {config.statsd.port}")

    if config.logging.mode not in ("regular", "verbose"):
        errors.append(f"Unknown logging mode: {config.logging.mode}")
    if config.logging.status_interval_sec <= 0:
        errors.append("logging status_interval_sec must be positive")

    if config.logging.dir:
        path = Path(config.logging.dir)
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            errors.append(f"Cannot create directory logging.dir: {config.logging.dir} - {e}")

    return errors
