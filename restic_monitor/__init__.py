"""restic_monitor package

Prometheus exporter for restic repositories.

Purpose:
    Periodically check each configured repository, list its snapshots and
    collect size statistics, expose the results as Prometheus metrics, and
    run the repository's retention policy on a cron schedule.

Public API (re-exported):
    - Version: ``__version__``
    - Errors: :class:`CommandError`, :class:`DecodeError`, :class:`ErrorCode`
    - Cancellation: :class:`CancellationToken`, :class:`CancelledError`
    - Metrics: :class:`MonitorMetrics`

Notes:
    - The HTTP surface and process entry point live in
      ``restic_monitor.service`` and are imported lazily by ``__main__``.
"""

from .base.cancellation import CancellationToken, CancelledError
from .base.errors import CommandError, DecodeError, ErrorCode
from .base.metrics import MonitorMetrics

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "CancellationToken",
    "CancelledError",
    "CommandError",
    "DecodeError",
    "ErrorCode",
    "MonitorMetrics",
]
