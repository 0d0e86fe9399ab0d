"""Cooperative cancellation token implementation.

``CancellationToken`` is shared by pollers, the maintenance scheduler and the
command runner. Besides the ``cancelled`` flag it offers ``wait(timeout)``,
an interruptible sleep backed by a ``threading.Event``: every suspension
point in the service waits on it, so one shutdown request wakes all of them
at once.
"""

from __future__ import annotations

from threading import Event, Lock
from typing import Optional

from .cancelled_error import CancelledError
from .record import CancellationRecord


class CancellationToken:
    """Thread-safe, one-shot cancellation flag.

    The first reason wins; later ``cancel`` calls are ignored. Tokens are
    independent: a token created for work that must outlive shutdown is
    simply never cancelled.
    """

    def __init__(self) -> None:
        self._record: Optional[CancellationRecord] = None
        self._lock = Lock()
        self._event = Event()

    @property
    def cancelled(self) -> bool:
        return self._record is not None

    @property
    def reason(self) -> Optional[str]:
        record = self._record
        return record.reason if record else None

    @property
    def cancelled_at(self) -> Optional[float]:
        """``time.monotonic()`` value of the cancel call, if any."""
        record = self._record
        return record.at if record else None

    def cancel(self, reason: Optional[str] = None) -> None:
        with self._lock:
            if self._record is not None:
                return
            self._record = CancellationRecord(reason)
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._record is not None:
            raise CancelledError(self._record.reason or "operation cancelled")

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until cancelled or ``timeout`` seconds elapse.

        Returns ``True`` when the token is cancelled, ``False`` on timeout.
        ``None`` blocks until cancellation; a non-positive timeout only
        reports the current state.
        """
        if timeout is not None and timeout <= 0:
            return self.cancelled
        return self._event.wait(timeout)

    def __repr__(self) -> str:  # pragma: no cover - introspection aid
        return f"CancellationToken(cancelled={self.cancelled}, reason={self.reason!r})"


__all__ = ["CancellationToken"]
