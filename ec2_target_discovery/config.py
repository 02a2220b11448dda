"""Frozen dataclasses for configuration and YAML loader with env-var interpolation."""

from __future__ import annotations

import os
import re
import types
import typing
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigError

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")


def _interpolate_env(value: str) -> str:
    """Replace ${ENV_VAR} placeholders with environment variable values."""

    def _replace(match: re.Match) -> str:
        env_key = match.group(1)
        env_val = os.environ.get(env_key)
        if env_val is None:
            raise ConfigError(f"Environment variable '{env_key}' is not set")
        return env_val

    return _ENV_PATTERN.sub(_replace, value)


def _walk_and_interpolate(obj: Any) -> Any:
    """Recursively interpolate env vars in strings throughout a nested structure."""
    if isinstance(obj, str):
        return _interpolate_env(obj)
    if isinstance(obj, dict):
        return {k: _walk_and_interpolate(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_walk_and_interpolate(v) for v in obj]
    return obj


@dataclass(frozen=True)
class EC2Config:
    region: str = ""
    endpoint: str = ""  # empty = https://ec2.<region>.amazonaws.com/
    credential_profile: str = ""  # empty = use default boto3 credential chain
    access_key: str = ""
    secret_key: str = ""
    port: int = 80  # scrape port joined with the private IP in __address__
    filters: list[dict[str, Any]] = field(default_factory=list)  # [{"name": ..., "values": [...]}]
    api_version: str = "2016-11-15"
    timeout: int = 10
    verify_ssl: bool = True

    @property
    def effective_endpoint(self) -> str:
        if self.endpoint:
            return self.endpoint
        return f"https://ec2.{self.region}.amazonaws.com/"


@dataclass(frozen=True)
class PollingConfig:
    interval_seconds: int = 60
    jitter_seconds: int = 5
    max_backoff_seconds: int = 300
    backoff_base_seconds: int = 5


@dataclass(frozen=True)
class OutputConfig:
    path: str = "ec2_targets.json"


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    format: str = "json"  # "json" or "text"


@dataclass(frozen=True)
class AppConfig:
    ec2: EC2Config = field(default_factory=EC2Config)
    polling: PollingConfig = field(default_factory=PollingConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _get_dataclass_type(ft: Any) -> type | None:
    """Return the underlying dataclass type from a type annotation (handles Optional/X|None)."""
    if isinstance(ft, type) and hasattr(ft, "__dataclass_fields__"):
        return ft
    # Handle X | None (Python 3.10+ types.UnionType: no __origin__, has __args__)
    if isinstance(ft, types.UnionType):
        args = [a for a in ft.__args__ if a is not type(None)]
        if len(args) == 1 and isinstance(args[0], type) and hasattr(args[0], "__dataclass_fields__"):
            return args[0]
    # Handle typing.Optional[X] → Union[X, None]
    origin = getattr(ft, "__origin__", None)
    if origin is typing.Union:
        args = [a for a in ft.__args__ if a is not type(None)]
        if len(args) == 1 and isinstance(args[0], type) and hasattr(args[0], "__dataclass_fields__"):
            return args[0]
    return None


def _build_nested(cls: type, data: dict[str, Any]) -> Any:
    """Construct a frozen dataclass, recursively building nested dataclass fields."""
    if not isinstance(data, dict):
        return data
    field_types = {f.name: f.type for f in cls.__dataclass_fields__.values()}
    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        if key not in field_types:
            continue
        ft = field_types[key]
        # Resolve string annotations to actual types in the module scope
        if isinstance(ft, str):
            ft = eval(ft, globals(), {cls.__name__: cls})  # noqa: S307
        dc_type = _get_dataclass_type(ft)
        if dc_type is not None and isinstance(value, dict):
            kwargs[key] = _build_nested(dc_type, value)
        else:
            kwargs[key] = value
    return cls(**kwargs)


def load_config(path: str | Path) -> AppConfig:
    """Load and validate configuration from a YAML file."""
    path = Path(path)
    if not path.is_file():
        raise ConfigError(f"Configuration file not found: {path}")

    with open(path) as f:
        raw = yaml.safe_load(f)

    if not isinstance(raw, dict):
        raise ConfigError("Configuration file must be a YAML mapping")

    raw = _walk_and_interpolate(raw)
    config = _build_nested(AppConfig, raw)
    _validate(config)
    return config


def _validate(config: AppConfig) -> None:
    """Validate configuration values."""
    ec2 = config.ec2

    if not isinstance(ec2, EC2Config) or not ec2.region:
        raise ConfigError("No EC2 region configured. Add an 'ec2' section with 'region' to your config file.")

    if not isinstance(ec2.port, int) or isinstance(ec2.port, bool) or not 1 <= ec2.port <= 65535:
        raise ConfigError("ec2.port must be an integer between 1 and 65535")

    if bool(ec2.access_key) != bool(ec2.secret_key):
        raise ConfigError("ec2.access_key and ec2.secret_key must be set together")

    if not isinstance(ec2.filters, list):
        raise ConfigError("ec2.filters must be a list of {name, values} mappings")
    for flt in ec2.filters:
        if not isinstance(flt, dict) or not flt.get("name"):
            raise ConfigError("Each ec2.filters entry must have a 'name'")
        values = flt.get("values")
        if not isinstance(values, list) or not values:
            raise ConfigError(f"ec2.filters entry '{flt['name']}' must have a non-empty 'values' list")

    if not isinstance(ec2.timeout, (int, float)) or ec2.timeout <= 0:
        raise ConfigError("ec2.timeout must be a number > 0")

    if config.polling.interval_seconds < 5:
        raise ConfigError("polling.interval_seconds must be >= 5")

    if not config.output.path:
        raise ConfigError("output.path must not be empty")

    if config.logging.format not in ("json", "text"):
        raise ConfigError("logging.format must be 'json' or 'text'")
