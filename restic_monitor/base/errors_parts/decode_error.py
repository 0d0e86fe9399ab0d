"""
Decode error raised when restic exits successfully but its JSON is unusable.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class DecodeError(ValueError):
    """Malformed or unexpected JSON on stdout of a successful restic command.

    Kept apart from :class:`CommandError`: the command itself worked, so the
    failure is neither counted as a command error nor retried.
    """

    repo: str
    operation: str
    message: str
    raw: Optional[Exception] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.repo}:{self.operation} decode: {self.message}"


__all__ = ["DecodeError"]
