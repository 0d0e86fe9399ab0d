"""Scheduled maintenance: apply retention, then refresh metrics."""
from __future__ import annotations

import logging
from typing import Optional

from ..base.cancellation import CancellationToken, CancelledError
from ..base.errors import CommandError, DecodeError
from ..base.logging import LogContext, get_logger, log_event
from ..base.metrics import MonitorMetrics, group_path_label
from ..restic.client import RepositoryClient
from .poller import Poller


class MaintenanceJob:
    """One repository's ``forget`` pass, run by the scheduler.

    ``forget`` gets a fresh token of its own so that a pass already in
    progress finishes when the process shuts down; restic holds an exclusive
    lock while forgetting. The refresh poll that follows uses the shared
    process token and stops early on shutdown.
    """

    def __init__(
        self,
        client: RepositoryClient,
        poller: Poller,
        metrics: MonitorMetrics,
        token: CancellationToken,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._client = client
        self._poller = poller
        self._metrics = metrics
        self._token = token
        self._logger = logger or get_logger("restic_monitor.maintenance")
        self._ctx = LogContext(repo=client.name, operation="forget")

    @property
    def name(self) -> str:
        return f"maintenance-{self._client.name}"

    def __call__(self) -> None:
        self.run()

    def run(self) -> None:
        log_event(self._logger, "maintenance.start", self._ctx, dry_run=self._client.dry_run)
        try:
            groups = self._client.forget(CancellationToken())
        except (CommandError, DecodeError, CancelledError) as exc:
            log_event(self._logger, "maintenance.forget_failed", self._ctx, level=logging.ERROR, error=str(exc))
        else:
            repo = self._client.name
            total = 0
            for group in groups:
                removed = len(group.remove)
                self._metrics.add_forgotten(repo, group.host, group_path_label(group.paths), removed)
                total += removed
            log_event(
                self._logger,
                "maintenance.forget_complete",
                self._ctx,
                groups=len(groups),
                forgotten=total,
                dry_run=self._client.dry_run,
            )
        self._poller.poll(self._token)


__all__ = ["MaintenanceJob"]
