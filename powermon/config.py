"""
powermon Configuration

Configuration is built once at startup and handed to the monitor session.
Sources, lowest precedence first:

    1. Model defaults
    2. YAML file (explicit path, or the first discovered one)
    3. Environment variables (POWERMON_<FIELD> / POWERMON_<SECTION>_<FIELD>)
    4. Command line flags (applied by powermon.main via merge_overrides)

Example YAML:

    action: $HOME/bin/on-power-change
    instance_name: org.powermon.Powermon
    log:
      verbose: true
      file: ~/.local/state/powermon/powermon.log
"""

import os
import re
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, ValidationError, field_validator

from powermon.exceptions import ConfigurationError
from powermon.logging_config import LOG_LEVELS

__all__ = [
    "ENV_PREFIX",
    "LogConfig",
    "PowermonConfig",
    "get_config_paths",
    "load_config",
    "merge_overrides",
]

ENV_PREFIX = "POWERMON_"
DEFAULT_INSTANCE_NAME = "org.powermon.Powermon"

# D-Bus well-known name: two or more dot separated elements, no leading digit
_BUS_NAME_RE = re.compile(r"^[A-Za-z_-][A-Za-z0-9_-]*(\.[A-Za-z_-][A-Za-z0-9_-]*)+$")


class LogConfig(BaseModel):
    """Logging settings."""

    verbose: bool = False
    file: Optional[str] = None
    level: Optional[str] = None

    @field_validator("level")
    @classmethod
    def _check_level(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        upper = value.upper()
        if upper not in LOG_LEVELS:
            raise ValueError(f"unknown log level {value!r}, expected one of {sorted(LOG_LEVELS)}")
        return upper

    @field_validator("file")
    @classmethod
    def _blank_file_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value

    def effective_level(self) -> str:
        """Explicit level if set, else INFO when verbose, else WARNING."""
        if self.level:
            return self.level
        return "INFO" if self.verbose else "WARNING"


class PowermonConfig(BaseModel):
    """Top level monitor configuration."""

    action: str = ""
    instance_name: str = DEFAULT_INSTANCE_NAME
    log: LogConfig = LogConfig()

    @field_validator("action")
    @classmethod
    def _expand_action(cls, value: str) -> str:
        return os.path.expanduser(os.path.expandvars(value.strip()))

    @field_validator("instance_name")
    @classmethod
    def _check_instance_name(cls, value: str) -> str:
        if len(value) > 255 or not _BUS_NAME_RE.match(value):
            raise ValueError(f"{value!r} is not a valid D-Bus well-known name")
        return value


def get_config_paths() -> list[Path]:
    """Candidate config file locations, in search order."""
    return [
        Path("./powermon.yaml"),
        Path.home() / ".config" / "powermon" / "config.yaml",
        Path("/etc/powermon/config.yaml"),
    ]


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML: {e}", config_file=str(path)) from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read config: {e}", config_file=str(path)) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError("Config root must be a mapping", config_file=str(path))
    return data


def _env_overrides(environ: Optional[dict[str, str]] = None) -> dict[str, Any]:
    """Collect POWERMON_* variables matching model fields.

    Values stay strings; pydantic coerces them during validation.
    """
    env = os.environ if environ is None else environ
    overrides: dict[str, Any] = {}

    for name, field in PowermonConfig.model_fields.items():
        annotation = field.annotation
        if isinstance(annotation, type) and issubclass(annotation, BaseModel):
            section: dict[str, Any] = {}
            for sub_name in annotation.model_fields:
                key = f"{ENV_PREFIX}{name}_{sub_name}".upper()
                if key in env:
                    section[sub_name] = env[key]
            if section:
                overrides[name] = section
        else:
            key = f"{ENV_PREFIX}{name}".upper()
            if key in env:
                overrides[name] = env[key]

    return overrides


def _deep_merge(base: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _validate(data: dict[str, Any], config_file: Optional[str] = None) -> PowermonConfig:
    try:
        return PowermonConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(
            f"Configuration validation failed: {e}", config_file=config_file
        ) from e


def load_config(
    path: Optional[str | Path] = None,
    environ: Optional[dict[str, str]] = None,
) -> PowermonConfig:
    """Load configuration from file and environment.

    Args:
        path: Explicit config file. Must exist when given. When omitted the
              first existing file from get_config_paths() is used, if any.
        environ: Environment mapping to read overrides from (os.environ
                 by default)

    Returns:
        Validated PowermonConfig

    Raises:
        ConfigurationError: File missing, YAML invalid, or validation failed
    """
    data: dict[str, Any] = {}
    config_file: Optional[Path] = None

    if path is not None:
        config_file = Path(path).expanduser()
        if not config_file.is_file():
            raise ConfigurationError(
                f"Config file not found: {config_file}", config_file=str(config_file)
            )
    else:
        for candidate in get_config_paths():
            if candidate.is_file():
                config_file = candidate
                break

    if config_file is not None:
        data = _read_yaml(config_file)

    data = _deep_merge(data, _env_overrides(environ))
    return _validate(data, str(config_file) if config_file else None)


def merge_overrides(config: PowermonConfig, overrides: dict[str, Any]) -> PowermonConfig:
    """Return a new config with ``overrides`` applied and re-validated.

    None values are skipped so unset command line flags leave the
    loaded value alone. An action that is not overridden keeps its
    already expanded value; only a new action is expanded.
    """
    def _prune(d: dict[str, Any]) -> dict[str, Any]:
        pruned = {}
        for key, value in d.items():
            if isinstance(value, dict):
                value = _prune(value)
                if not value:
                    continue
            elif value is None:
                continue
            pruned[key] = value
        return pruned

    updates = _prune(overrides)
    base = config.model_dump()
    if "action" in updates:
        return _validate(_deep_merge(base, updates))

    base.pop("action")
    merged = _validate(_deep_merge(base, updates))
    return merged.model_copy(update={"action": config.action})
