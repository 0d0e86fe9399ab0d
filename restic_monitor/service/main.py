"""Process entry point: load config, start pollers, scheduler and HTTP server.

Shutdown is driven by one root :class:`CancellationToken`, cancelled from the
SIGTERM/SIGINT handlers. The pollers stop at their next wait (or their
in-flight restic command is terminated), the scheduler stops dispatching and
waits for running maintenance jobs, and the HTTP server is stopped last so
metrics stay scrapeable until the end.
"""
from __future__ import annotations

import argparse
import logging
import os
import signal
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..base.cancellation import CancellationToken
from ..base.logging import LogContext, configure_logger, get_logger, log_event
from ..base.metrics import MonitorMetrics
from ..base.tasks import TaskSet
from ..base.timeouts import TimeoutConfig
from ..config import (
    DEFAULT_CONFIG_PATH,
    DEFAULT_LISTEN_HOST,
    DEFAULT_LISTEN_PORT,
    DEFAULT_RESTIC_BINARY,
    RESTIC_BINARY_ENV,
    ConfigError,
    RepositoryConfig,
    load_config,
    read_dry_run,
    resolve_environment,
)
from ..monitor import MaintenanceJob, Poller, Schedule, Scheduler, parse_schedule
from ..restic import CommandRunner, RepositoryClient
from .app import create_app
from .server import MetricsServer

logger = get_logger("restic_monitor.main")


@dataclass
class MonitoredRepository:
    """Everything wired up for one configured repository."""

    name: str
    client: RepositoryClient
    poller: Poller
    schedule: Schedule
    job: MaintenanceJob


def build_repository(
    name: str,
    config: RepositoryConfig,
    *,
    metrics: MonitorMetrics,
    token: CancellationToken,
    executable: str = DEFAULT_RESTIC_BINARY,
    dry_run: bool = False,
    timeouts: Optional[TimeoutConfig] = None,
) -> MonitoredRepository:
    """Wire runner, client, poller and maintenance job for ``name``.

    Raises ``OSError`` or ``ValueError`` when the environment file or the
    maintenance schedule is unusable.
    """
    environment = resolve_environment(config)
    schedule = parse_schedule(config.maintenance_schedule)
    runner = CommandRunner(
        name,
        config.repository,
        environment,
        metrics=metrics,
        executable=executable,
        timeouts=timeouts,
    )
    client = RepositoryClient(runner, config.retention, dry_run=dry_run)
    poller = Poller(client, config.polling_interval, metrics=metrics)
    job = MaintenanceJob(client, poller, metrics, token)
    return MonitoredRepository(name, client, poller, schedule, job)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="restic-monitor",
        description="Export restic repository health and snapshot metrics for Prometheus.",
    )
    parser.add_argument("config", nargs="?", default=DEFAULT_CONFIG_PATH, help="path to the YAML config file")
    parser.add_argument("--listen", default=DEFAULT_LISTEN_HOST, help="address for the metrics endpoint")
    parser.add_argument("--port", type=int, default=DEFAULT_LISTEN_PORT, help="port for the metrics endpoint")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING or ERROR")
    parser.add_argument("--log-file", default=None, help="also write logs to this rotating file")
    parser.add_argument(
        "--restic-binary",
        default=os.environ.get(RESTIC_BINARY_ENV, DEFAULT_RESTIC_BINARY),
        help="restic executable name or path",
    )
    return parser


def install_signal_handlers(token: CancellationToken) -> None:
    def _handle(signum, _frame) -> None:
        name = signal.Signals(signum).name
        log_event(logger, "main.signal", signal=name)
        token.cancel(f"received {name}")

    signal.signal(signal.SIGTERM, _handle)
    signal.signal(signal.SIGINT, _handle)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)
    configure_logger(level=args.log_level, file_path=args.log_file)

    try:
        loaded = load_config(args.config)
    except ConfigError as exc:
        log_event(logger, "main.config_failed", level=logging.ERROR, path=args.config, error=str(exc))
        return 1
    for name, error in loaded.errors.items():
        log_event(logger, "main.repo_skipped", LogContext(repo=name), level=logging.WARNING, error=error)

    token = CancellationToken()
    install_signal_handlers(token)

    metrics = MonitorMetrics()
    dry_run = read_dry_run()
    if dry_run:
        log_event(logger, "main.dry_run", message="running in dry run mode")

    repos: List[MonitoredRepository] = []
    for name, repo_config in loaded.repos.items():
        try:
            repos.append(
                build_repository(
                    name,
                    repo_config,
                    metrics=metrics,
                    token=token,
                    executable=args.restic_binary,
                    dry_run=dry_run,
                )
            )
        except (OSError, ValueError) as exc:
            log_event(logger, "main.repo_skipped", LogContext(repo=name), level=logging.WARNING, error=str(exc))
    if not repos:
        log_event(logger, "main.no_repositories", level=logging.WARNING, path=args.config)

    server = MetricsServer(create_app(metrics, [r.poller for r in repos]), args.listen, args.port)
    server.start()

    scheduler = Scheduler()
    pollers = TaskSet("pollers")
    for repo in repos:
        scheduler.add_job(repo.schedule, repo.job, repo.job.name)
        pollers.spawn(repo.poller.run, token, name=repo.name)
        log_event(
            logger,
            "main.repo_started",
            LogContext(repo=repo.name),
            polling_interval_s=repo.poller.interval,
            maintenance_schedule=repo.schedule.expression,
        )
    scheduler.start()

    token.wait()
    log_event(logger, "main.shutdown", reason=token.reason)
    pollers.join()
    log_event(logger, "main.waiting_for_maintenance", jobs=scheduler.jobs())
    scheduler.stop()
    server.stop()
    log_event(logger, "main.stopped", shutdown_s=round(time.monotonic() - token.cancelled_at, 3))
    return 0


__all__ = ["MonitoredRepository", "build_arg_parser", "build_repository", "install_signal_handlers", "main"]
