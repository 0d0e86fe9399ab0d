"""Structured logging context object for repository events.

This module defines :class:`LogContext`, a dataclass carrying the fields that
identify what a log line is about (repository, restic operation, snapshot)
plus free-form metadata. ``to_dict`` merges ``extra`` and prunes ``None``.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, Optional


@dataclass
class LogContext:
    """Structured context for repository logging events."""

    repo: Optional[str] = None
    operation: Optional[str] = None
    snapshot: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def with_operation(self, operation: str) -> "LogContext":
        return replace(self, operation=operation, extra=dict(self.extra))

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        extra = data.pop("extra", {}) or {}
        data.update({k: v for k, v in extra.items() if v is not None})
        return {k: v for k, v in data.items() if v is not None}


__all__ = ["LogContext"]
