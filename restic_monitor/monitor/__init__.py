"""Monitoring loop: per-repository poller, maintenance job and scheduler."""

from .maintenance import MaintenanceJob
from .poller import Poller, PollerState
from .scheduler import DEFAULT_WRAPPERS, Schedule, Scheduler, parse_schedule, recover, skip_if_still_running

__all__ = [
    "MaintenanceJob",
    "Poller",
    "PollerState",
    "DEFAULT_WRAPPERS",
    "Schedule",
    "Scheduler",
    "parse_schedule",
    "recover",
    "skip_if_still_running",
]
