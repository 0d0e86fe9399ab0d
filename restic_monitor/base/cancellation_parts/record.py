"""Immutable record of a cancellation request."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class CancellationRecord:
    """Why and when a token was cancelled; written once, never changed."""

    reason: Optional[str] = None
    at: float = field(default_factory=time.monotonic)


__all__ = ["CancellationRecord"]
