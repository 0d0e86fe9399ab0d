"""Cancellation error type.

Defines the public ``CancelledError`` raised when a restic invocation, a retry
backoff or any other wait observes that the shared token was cancelled.
"""

from __future__ import annotations


class CancelledError(RuntimeError):
    """Raised when an operation is cancelled cooperatively.

    Distinct from :class:`restic_monitor.base.errors.CommandError` so callers
    never count a shutdown as a repository failure and never retry it.
    """


__all__ = ["CancelledError"]
