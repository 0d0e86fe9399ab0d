"""
Normalized restic command error codes (taxonomy).

Defines the `ErrorCode` enumeration produced by failure classification. Values
are lowercase snake_case and double as the ``kind`` label of the command error
counter, so they are a stable public contract for dashboards and alerts.
"""
from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Enumerated normalized error codes representing failure categories."""

    REPO_LOCKED = "repo_locked"
    CONNECTION_FAILED = "connection_failed"
    CHECK_FAILED = "check_failed"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


__all__ = ["ErrorCode"]
