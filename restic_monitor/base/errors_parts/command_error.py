"""
Structured restic command error exception type.

Wraps a failed restic invocation with a normalized `ErrorCode` for consistent
handling, retry logic, and structured logging.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .error_code import ErrorCode


@dataclass
class CommandError(Exception):
    """Represents a classified restic command failure.

    Attributes:
        code: Normalized :class:`ErrorCode` classification for the failure.
        message: Human-readable error message suitable for logging.
        repo: Configured repository name the command ran against.
        operation: restic subcommand (``check``, ``forget``, ...).
        exit_code: Process exit status when the process ran to completion.
        stderr: Captured diagnostic output used for classification.
        raw: Optional original exception (e.g. ``OSError`` on spawn failure).
    """

    code: ErrorCode
    message: str
    repo: str
    operation: Optional[str] = None
    exit_code: Optional[int] = None
    stderr: Optional[str] = None
    raw: Optional[Exception] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        """Return a compact string combining repo, operation, code, and message."""
        return f"{self.repo}:{self.operation or '-'} {self.code.value}: {self.message}"


__all__ = ["CommandError"]
