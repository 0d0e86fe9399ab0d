"""Load and validate the monitor configuration document.

Structure example::

    repos:
      nas:
        repository: sftp:backup@nas:/srv/restic
        environment_file: /etc/restic-monitor/nas.json
        environment:
          RESTIC_PASSWORD_FILE: /etc/restic-monitor/nas.pass
        retention:
          last_n: 10
          daily: 7
          weekly: 4
          tags: [keep]
        polling_interval: 1h
        maintenance_schedule: "30 3 * * *"

Validation is per repository: a section that fails is reported in
``LoadedConfig.errors`` and left out of ``LoadedConfig.repos`` while the other
repositories load normally. A document that cannot be read or parsed at all
raises ``ConfigError``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Union

import yaml
from pydantic import ValidationError

from .models import RepositoryConfig


class ConfigError(Exception):
    """The configuration document as a whole is unusable."""


@dataclass
class LoadedConfig:
    """Validated repositories plus per-repository validation failures."""

    repos: Dict[str, RepositoryConfig] = field(default_factory=dict)
    errors: Dict[str, str] = field(default_factory=dict)


def parse_config(data: Any) -> LoadedConfig:
    """Validate an already-parsed document (mapping with a ``repos`` key)."""
    if data is None:
        return LoadedConfig()
    if not isinstance(data, dict):
        raise ConfigError("config document must be a mapping")
    repos = data.get("repos") or {}
    if not isinstance(repos, dict):
        raise ConfigError("'repos' must be a mapping of repository name to settings")

    loaded = LoadedConfig()
    for name, section in repos.items():
        name = str(name)
        try:
            loaded.repos[name] = RepositoryConfig.model_validate(section or {})
        except ValidationError as exc:
            loaded.errors[name] = str(exc)
    return loaded


def load_config(path: Union[str, Path]) -> LoadedConfig:
    """Read ``path`` as YAML and validate it with :func:`parse_config`."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"cannot read config file {path}: {exc}") from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"cannot parse config file {path}: {exc}") from exc
    return parse_config(data)


__all__ = ["ConfigError", "LoadedConfig", "parse_config", "load_config"]
