"""Run configuration: one immutable object built before any step executes.

Settings are layered, later layers winning:
defaults < YAML config file < environment variables < command-line flags.
"""

import argparse
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import httpx
import yaml

from armcal_common.constants import (
    DEFAULT_HOST,
    DEFAULT_MAX_POLLS,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_POLL_TIMEOUT,
    DEFAULT_PORT,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RETRIES,
    DEFAULT_ROBOT_ID,
    DEFAULT_SAVE_DIR,
    ENV_HOST,
    ENV_POLL_INTERVAL,
    ENV_PORT,
    ENV_ROBOT_ID,
    ENV_SAVE_DIR,
)
from armcal_common.errors import ConfigError
from armcal_common.types.calibration_types import TransportMode

logger = logging.getLogger(__name__)

ENV_KEYS = {
    ENV_HOST: "host",
    ENV_PORT: "port",
    ENV_ROBOT_ID: "robot_id",
    ENV_SAVE_DIR: "save_dir",
    ENV_POLL_INTERVAL: "poll_interval",
}


@dataclass(frozen=True, kw_only=True)
class RunConfig:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    robot_id: int = DEFAULT_ROBOT_ID
    # Directory receiving diagnostic dumps of bad responses
    save_dir: Path = DEFAULT_SAVE_DIR
    poll_interval: float = DEFAULT_POLL_INTERVAL
    # Downgrade poisoned-value failures to warnings
    force: bool = False
    mode: TransportMode = TransportMode.LIVE
    # None disables the bound
    max_polls: int | None = DEFAULT_MAX_POLLS
    poll_timeout: float | None = DEFAULT_POLL_TIMEOUT
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    retries: int = DEFAULT_RETRIES
    # Endpoint path -> canned body or list of bodies, used in simulate mode
    simulate_responses: dict[str, Any] = field(default_factory=dict)
    log_level: str = "INFO"

    def __post_init__(self):
        if not 0 < self.port < 65536:
            raise ConfigError(f"Port out of range: {self.port}")
        self._validate_host()
        if self.robot_id < 0:
            raise ConfigError(f"Robot id must be non-negative: {self.robot_id}")
        if self.poll_interval < 0:
            raise ConfigError(f"Poll interval must be non-negative: {self.poll_interval}")
        if self.max_polls is not None and self.max_polls < 1:
            raise ConfigError(f"max_polls must be at least 1: {self.max_polls}")
        if self.poll_timeout is not None and self.poll_timeout <= 0:
            raise ConfigError(f"poll_timeout must be positive: {self.poll_timeout}")
        if self.request_timeout <= 0:
            raise ConfigError(f"request_timeout must be positive: {self.request_timeout}")
        if self.retries < 0:
            raise ConfigError(f"retries must be non-negative: {self.retries}")
        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR"):
            raise ConfigError(f"Unknown log level: {self.log_level}")

    def _validate_host(self):
        if not self.host or any(c.isspace() or c in "/?#@" for c in self.host):
            raise ConfigError(f"Invalid host: {self.host!r}")
        try:
            url = httpx.URL(self.base_url)
        except httpx.InvalidURL as e:
            raise ConfigError(f"Invalid host: {self.host!r} ({e})") from e
        if not url.host or url.port not in (self.port, None):
            raise ConfigError(f"Invalid host: {self.host!r}")

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def summary(self) -> str:
        return (
            f"HOST={self.host} PORT={self.port} RID={self.robot_id} SAVE_DIR={self.save_dir} "
            f"MODE={self.mode.value} POLL_INTERVAL={self.poll_interval} FORCE={self.force}"
        )


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("1", "true", "yes", "on"):
        return True
    if isinstance(value, str) and value.strip().lower() in ("0", "false", "no", "off", ""):
        return False
    raise ValueError(f"not a boolean: {value!r}")


def _optional(convert):
    def wrapper(value):
        return None if value is None else convert(value)

    return wrapper


def _mapping(value: Any) -> dict:
    if not isinstance(value, Mapping):
        raise TypeError(f"expected a mapping, got {type(value).__name__}")
    return dict(value)


CONVERTERS = {
    "host": str,
    "port": int,
    "robot_id": int,
    "save_dir": Path,
    "poll_interval": float,
    "force": _to_bool,
    "mode": TransportMode,
    "max_polls": _optional(int),
    "poll_timeout": _optional(float),
    "request_timeout": float,
    "retries": int,
    "simulate_responses": _mapping,
    "log_level": str,
}


def load_config_file(config_path: str | Path) -> dict[str, Any]:
    """Load settings from a YAML config file.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Dictionary of settings keyed by RunConfig field name

    Raises:
        ConfigError: If the file cannot be read, parsed or has unknown keys
    """
    try:
        with open(config_path) as f:
            config = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Error loading config file {config_path}: {e}") from e

    if config is None:
        return {}
    if not isinstance(config, Mapping):
        raise ConfigError(f"Config file {config_path} must contain a mapping")

    known = {f.name for f in fields(RunConfig)}
    unknown = sorted(set(config) - known)
    if unknown:
        raise ConfigError(f"Unknown keys in {config_path}: {', '.join(unknown)}")

    logger.info(f"Loaded configuration from {config_path}")
    return dict(config)


def config_from_env(environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Collect settings from environment variables that are set and non-empty."""
    environ = os.environ if environ is None else environ
    return {key: environ[name] for name, key in ENV_KEYS.items() if environ.get(name)}


def config_from_args(args: argparse.Namespace) -> dict[str, Any]:
    """Collect settings from command-line flags that were explicitly given."""
    settings = {
        key: getattr(args, key)
        for key in (
            "host",
            "port",
            "robot_id",
            "save_dir",
            "poll_interval",
            "max_polls",
            "poll_timeout",
            "request_timeout",
            "retries",
            "log_level",
        )
        if getattr(args, key, None) is not None
    }
    if getattr(args, "force", False):
        settings["force"] = True
    # Dry-run takes precedence over simulate when both are requested
    if getattr(args, "dry_run", False):
        settings["mode"] = TransportMode.DRY_RUN
    elif getattr(args, "simulate", False):
        settings["mode"] = TransportMode.SIMULATE
    return settings


def make_run_config(*layers: Mapping[str, Any]) -> RunConfig:
    """Merge setting layers (later wins) and build a validated RunConfig."""
    merged: dict[str, Any] = {}
    for layer in layers:
        merged.update(layer)

    kwargs = {}
    for key, value in merged.items():
        if key not in CONVERTERS:
            raise ConfigError(f"Unknown setting: {key}")
        try:
            kwargs[key] = CONVERTERS[key](value)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid value for {key}: {value!r} ({e})") from e

    return RunConfig(**kwargs)


def build_run_config(
    args: argparse.Namespace | None = None, environ: Mapping[str, str] | None = None
) -> RunConfig:
    """Build the RunConfig for one invocation from file, environment and flags."""
    file_settings = {}
    config_path = getattr(args, "config", None)
    if config_path is not None:
        file_settings = load_config_file(config_path)

    arg_settings = config_from_args(args) if args is not None else {}
    return make_run_config(file_settings, config_from_env(environ), arg_settings)
