"""Per-repository polling loop.

A :class:`Poller` owns the only long-lived thread of its repository. ``run``
waits a random jitter in ``[0, interval)`` so repositories sharing an
interval do not hit their storage at the same moment, polls once, then polls
on a fixed period until the token is cancelled. ``poll`` is also the
on-demand refresh used after a maintenance pass and may run concurrently
with the loop; the repository lock in the command runner serializes the
underlying restic calls.

Failure handling in ``poll`` is per step: a failed check, snapshot listing
or restore-size lookup is logged and the remaining steps still run. The
raw-stats step is last, so its failure just ends the cycle. Cancellation
ends the poll at once.
"""
from __future__ import annotations

import enum
import logging
import random
import threading
import time
from typing import Callable, Optional

from ..base.cancellation import CancellationToken, CancelledError
from ..base.errors import CommandError, DecodeError
from ..base.logging import LogContext, get_logger, log_event
from ..base.metrics import MonitorMetrics, group_path_label
from ..restic.client import RepositoryClient
from ..restic.models import GroupedSnapshots

_POLL_ERRORS = (CommandError, DecodeError)


class PollerState(str, enum.Enum):
    IDLE = "idle"
    JITTER_WAIT = "jitter_wait"
    ACTIVE = "active"
    STOPPED = "stopped"


class Poller:
    """Scheduling loop and metrics refresh for one repository."""

    def __init__(
        self,
        client: RepositoryClient,
        interval: float,
        *,
        metrics: MonitorMetrics,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.monotonic,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("polling interval must be greater than zero")
        self._client = client
        self._interval = float(interval)
        self._metrics = metrics
        self._rng = rng or random.Random()
        self._clock = clock
        self._logger = logger or get_logger("restic_monitor.poller")
        self._ctx = LogContext(repo=client.name)
        self._state = PollerState.IDLE
        self._state_lock = threading.Lock()

    @property
    def name(self) -> str:
        return self._client.name

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def state(self) -> PollerState:
        return self._state

    def _set_state(self, state: PollerState) -> None:
        with self._state_lock:
            self._state = state

    # ------------------------------------------------------------------ loop
    def initial_delay(self) -> float:
        """Draw the one-time jitter, uniform in ``[0, interval)``."""
        return self._rng.random() * self._interval

    def run(self, token: CancellationToken) -> None:
        """Jitter, poll, then poll every ``interval`` seconds until cancelled."""
        self._set_state(PollerState.JITTER_WAIT)
        delay = self.initial_delay()
        log_event(self._logger, "poller.start", self._ctx, interval_s=self._interval, jitter_s=round(delay, 3))
        try:
            if token.wait(delay):
                return
            self._set_state(PollerState.ACTIVE)
            next_tick = self._clock() + self._interval
            self.poll(token)
            while True:
                if token.wait(max(0.0, next_tick - self._clock())):
                    return
                self.poll(token)
                next_tick += self._interval
                now = self._clock()
                if next_tick <= now:
                    # A poll overran one or more ticks: drop them, keep the phase.
                    missed = int((now - next_tick) // self._interval) + 1
                    next_tick += missed * self._interval
        finally:
            self._set_state(PollerState.STOPPED)
            log_event(self._logger, "poller.stopped", self._ctx, reason=token.reason)

    # ------------------------------------------------------------------ poll
    def poll(self, token: CancellationToken) -> None:
        """Refresh every repository metric once."""
        log_event(self._logger, "poll.start", self._ctx)
        try:
            self._poll(token)
        except CancelledError:
            log_event(self._logger, "poll.cancelled", self._ctx, level=logging.DEBUG)

    def _poll(self, token: CancellationToken) -> None:
        repo = self._client.name
        try:
            self._client.check(token)
            self._metrics.set_repo_status(repo, True)
        except _POLL_ERRORS as exc:
            self._metrics.set_repo_status(repo, False)
            self._log_failure("poll.check_failed", exc)

        try:
            groups = self._client.get_snapshots(token)
        except _POLL_ERRORS as exc:
            self._log_failure("poll.snapshots_failed", exc)
            groups = []

        for group in groups:
            self._poll_group(group, token)

        try:
            stats = self._client.get_raw_stats(token)
        except _POLL_ERRORS as exc:
            self._log_failure("poll.raw_stats_failed", exc)
            return

        self._metrics.set_raw_stats(
            repo,
            total_size=stats.total_size,
            total_uncompressed_size=stats.total_uncompressed_size,
            compression_ratio=stats.compression_ratio,
            blob_count=stats.total_blob_count,
        )
        log_event(self._logger, "poll.complete", self._ctx, groups=len(groups))

    def _poll_group(self, group: GroupedSnapshots, token: CancellationToken) -> None:
        repo = self._client.name
        host = group.group_key.hostname
        path = group_path_label(group.group_key.paths)
        latest = group.latest()
        if latest is None:
            self._metrics.set_snapshot_group(repo, host, path, 0, None)
            return
        self._metrics.set_snapshot_group(repo, host, path, len(group.snapshots), int(latest.time.timestamp()))

        try:
            stats = self._client.get_restore_stats(latest.id, token)
        except _POLL_ERRORS as exc:
            self._log_failure("poll.restore_stats_failed", exc, snapshot=latest.short_id or latest.id)
            return
        self._metrics.set_restore_stats(repo, host, path, stats.total_size, stats.total_file_count)

    def _log_failure(self, event: str, exc: Exception, snapshot: Optional[str] = None) -> None:
        code = exc.code.value if isinstance(exc, CommandError) else "decode"
        ctx = self._ctx if snapshot is None else LogContext(repo=self._client.name, snapshot=snapshot)
        log_event(self._logger, event, ctx, level=logging.ERROR, error_code=code, error=str(exc))


__all__ = ["Poller", "PollerState"]
