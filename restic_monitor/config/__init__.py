"""Configuration layer for the monitor.

Public API
----------
* ``load_config(path) -> LoadedConfig`` / ``parse_config(data)``
* ``RepositoryConfig`` / ``RetentionPolicy`` (pydantic models)
* ``resolve_environment(config)``: file-then-inline environment overlay
* ``read_dry_run(environ)``: process-wide ``DRY_RUN`` flag
* ``parse_duration(value)``: ``1h30m``-style durations in seconds
"""
from __future__ import annotations

from .defaults import (
    DEFAULT_CONFIG_PATH,
    DEFAULT_LISTEN_HOST,
    DEFAULT_LISTEN_PORT,
    DEFAULT_RESTIC_BINARY,
    RESTIC_BINARY_ENV,
)
from .durations import parse_duration
from .env import load_environment_file, read_dry_run, resolve_environment
from .loader import ConfigError, LoadedConfig, load_config, parse_config
from .models import RepositoryConfig, RetentionPolicy

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_LISTEN_HOST",
    "DEFAULT_LISTEN_PORT",
    "DEFAULT_RESTIC_BINARY",
    "RESTIC_BINARY_ENV",
    "parse_duration",
    "load_environment_file",
    "read_dry_run",
    "resolve_environment",
    "ConfigError",
    "LoadedConfig",
    "load_config",
    "parse_config",
    "RepositoryConfig",
    "RetentionPolicy",
]
