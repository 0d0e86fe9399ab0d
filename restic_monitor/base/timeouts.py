"""Timeout settings for restic invocations.

This module centralizes the time limits applied around every restic process:
an optional per-command deadline, the grace period between SIGTERM and
SIGKILL when a command is cancelled, and how often a running command checks
its cancellation token.

Key Components
--------------
TimeoutConfig
    Dataclass capturing normalized timeout values.

get_timeout_config()
    Returns a process-cached configuration, parsing environment overrides on
    first use only. Supported environment variables (all optional):
        RESTIC_MONITOR_COMMAND_TIMEOUT_SECONDS
        RESTIC_MONITOR_TERMINATE_GRACE_SECONDS

Design Constraints
------------------
1. No hard-coded ad-hoc timeouts outside this module.
2. Avoid per-call env parsing (cache after first read).
3. No command deadline unless configured: ``restic check`` on a large remote
   repository legitimately runs for hours.
"""
from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class TimeoutConfig:
    """Container for normalized timeout values (seconds).

    Attributes:
        command_timeout_seconds: Wall-clock limit for a single restic process,
            or ``None`` for no limit.
        terminate_grace_seconds: How long a terminated process may take to
            exit after SIGTERM before it is killed.
        poll_interval_seconds: How often a running command re-checks its
            cancellation token and deadline.
    """

    command_timeout_seconds: float | None = None
    terminate_grace_seconds: float = 10.0
    poll_interval_seconds: float = 0.2


_CACHED: TimeoutConfig | None = None


def _parse_env_float(name: str, default: float | None) -> float | None:
    """Parse an environment variable as a positive float with a fallback default.

    Returns the default if the variable is unset, not a valid float, or not
    positive.
    """
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        val = float(raw)
        return val if val > 0 else default
    except ValueError:
        return default


def get_timeout_config() -> TimeoutConfig:
    """Return process-cached `TimeoutConfig` instance."""
    global _CACHED  # noqa: PLW0603 - intentional, documented module cache
    if _CACHED is not None:
        return _CACHED
    command = _parse_env_float("RESTIC_MONITOR_COMMAND_TIMEOUT_SECONDS", None)
    grace = _parse_env_float("RESTIC_MONITOR_TERMINATE_GRACE_SECONDS", 10.0)
    _CACHED = TimeoutConfig(
        command_timeout_seconds=command,
        terminate_grace_seconds=float(grace),
    )
    return _CACHED


def reset_timeout_config() -> None:
    """Drop the cached configuration so the next read re-parses the environment."""
    global _CACHED  # noqa: PLW0603
    _CACHED = None


__all__ = [
    "TimeoutConfig",
    "get_timeout_config",
    "reset_timeout_config",
]
