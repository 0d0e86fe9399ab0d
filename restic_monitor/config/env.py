"""restic_monitor.config.env
=========================

Process environment helpers.

Purpose
-------
- Resolve a repository's environment overlay: the optional JSON environment
  file is loaded first, inline ``environment`` entries then override it key
  by key. Values are flat strings; there is no nested merging.
- Read the process-wide dry-run flag once at startup.

Failure Modes
-------------
- ``resolve_environment`` raises ``OSError`` when the file cannot be read and
  ``ValueError`` when it is not a JSON object of string values. Callers treat
  both as a configuration error for that repository only.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Dict, Mapping, Optional

from .defaults import DRY_RUN_ENV
from .models import RepositoryConfig


def load_environment_file(path: str) -> Dict[str, str]:
    """Load a JSON object of string -> string from ``path``."""
    text = Path(path).expanduser().read_text(encoding="utf-8")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"environment file {path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"environment file {path} must contain a JSON object")
    bad = sorted(k for k, v in data.items() if not isinstance(v, str))
    if bad:
        raise ValueError(f"environment file {path} has non-string values for: {', '.join(bad)}")
    return dict(data)


def resolve_environment(config: RepositoryConfig) -> Dict[str, str]:
    """Return the effective environment overlay for one repository.

    Merge order (later wins): environment file -> inline ``environment``.
    """
    env: Dict[str, str] = {}
    if config.environment_file:
        env |= load_environment_file(config.environment_file)
    env |= config.environment
    return env


def read_dry_run(environ: Optional[Mapping[str, str]] = None) -> bool:
    """Return True when ``DRY_RUN`` is set to a non-empty value."""
    source = os.environ if environ is None else environ
    return bool(source.get(DRY_RUN_ENV))


__all__ = [
    "load_environment_file",
    "resolve_environment",
    "read_dry_run",
]
