"""Metrics handle shared by every monitor component.

Purpose
-------
One ``MonitorMetrics`` object is created at startup and passed explicitly to
the command runners, pollers and maintenance jobs. It owns a private
``prometheus_client.CollectorRegistry`` so tests (and a second instance in the
same interpreter) never collide on the process-global default registry.

Concurrency
-----------
``prometheus_client`` instruments are thread-safe; counters only grow and
gauges are keyed per label set, so no extra locking is needed here.
"""
from __future__ import annotations

from typing import Optional, Sequence

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest
from prometheus_client.exposition import CONTENT_TYPE_LATEST

from ..errors import ErrorCode

_REPO = ("repo",)
_GROUP = ("repo", "host", "path")
_COMMAND = ("repo", "cmd")

# restic commands range from sub-second listings to multi-hour checks.
_DURATION_BUCKETS = (0.5, 1.0, 5.0, 15.0, 60.0, 300.0, 900.0, 3600.0, 4 * 3600.0, float("inf"))


def group_path_label(paths: Sequence[str]) -> str:
    """Render a snapshot group's path set as the ``path`` label value."""
    return ",".join(paths)


class MonitorMetrics:
    """Named, labeled gauges and counters for repositories and restic commands."""

    content_type = CONTENT_TYPE_LATEST

    def __init__(self, registry: Optional[CollectorRegistry] = None, namespace: str = "restic") -> None:
        self.registry = registry if registry is not None else CollectorRegistry()
        self.namespace = namespace

        def gauge(name: str, doc: str, labels: Sequence[str], subsystem: str = "") -> Gauge:
            return Gauge(name, doc, labels, namespace=namespace, subsystem=subsystem, registry=self.registry)

        def counter(name: str, doc: str, labels: Sequence[str], subsystem: str = "") -> Counter:
            return Counter(name, doc, labels, namespace=namespace, subsystem=subsystem, registry=self.registry)

        self.repo_status = gauge("repo_status", "status of integrity checks on the repo", _REPO)
        self.snapshot_count = gauge("snapshot_count", "number of snapshots stored in the repo", _GROUP)
        self.last_snapshot = gauge("last_snapshot", "unix timestamp of last snapshot", _GROUP)
        self.repo_size = gauge("repo_size_bytes", "raw size of the repo", _REPO)
        self.repo_uncompressed_size = gauge(
            "repo_uncompressed_size_bytes", "raw uncompressed size of the repo", _REPO
        )
        self.repo_compression_ratio = gauge("repo_compression_ratio", "compression ratio of the repo", _REPO)
        self.repo_blob_count = gauge("repo_blob_count", "number of blobs in the repo", _REPO)
        self.snapshot_size = gauge("snapshot_size", "restored size of latest snapshot", _GROUP)
        self.snapshot_file_count = gauge("snapshot_file_count", "number of files in latest snapshot", _GROUP)
        self.snapshots_forgotten = counter(
            "snapshots_forgotten", "number of snapshots forgotten during maintenance", _GROUP
        )

        self.command_invocations = counter("invocations", "number of restic commands run", _COMMAND, subsystem="command")
        self.command_errors = counter(
            "errors", "number of errors when running restic commands", _COMMAND + ("kind",), subsystem="command"
        )
        self.command_retries = counter(
            "retries", "number of restic command retries after transient failures", _COMMAND, subsystem="command"
        )
        self.command_repo_locked = gauge(
            "repo_locked", "1 while the last command against the repo found it locked", _REPO, subsystem="command"
        )
        self.command_duration = Histogram(
            "duration_seconds",
            "wall-clock duration of restic commands",
            _COMMAND,
            namespace=namespace,
            subsystem="command",
            buckets=_DURATION_BUCKETS,
            registry=self.registry,
        )

    # -------------------------- Repository state -------------------------- #
    def set_repo_status(self, repo: str, healthy: bool) -> None:
        self.repo_status.labels(repo).set(1 if healthy else 0)

    def set_snapshot_group(self, repo: str, host: str, path: str, count: int, last_time: Optional[int]) -> None:
        """Record a snapshot group's size and, when known, its newest snapshot time in whole unix seconds."""
        self.snapshot_count.labels(repo, host, path).set(count)
        if last_time is not None:
            self.last_snapshot.labels(repo, host, path).set(last_time)

    def set_restore_stats(self, repo: str, host: str, path: str, total_size: int, file_count: int) -> None:
        self.snapshot_size.labels(repo, host, path).set(total_size)
        self.snapshot_file_count.labels(repo, host, path).set(file_count)

    def set_raw_stats(
        self,
        repo: str,
        *,
        total_size: int,
        total_uncompressed_size: int,
        compression_ratio: float,
        blob_count: int,
    ) -> None:
        self.repo_size.labels(repo).set(total_size)
        self.repo_uncompressed_size.labels(repo).set(total_uncompressed_size)
        self.repo_compression_ratio.labels(repo).set(compression_ratio)
        self.repo_blob_count.labels(repo).set(blob_count)

    def add_forgotten(self, repo: str, host: str, path: str, count: int) -> None:
        self.snapshots_forgotten.labels(repo, host, path).inc(count)

    # -------------------------- Command lifecycle -------------------------- #
    def record_command(self, repo: str, cmd: str) -> None:
        self.command_invocations.labels(repo, cmd).inc()

    def record_command_error(self, repo: str, cmd: str, code: ErrorCode) -> None:
        self.command_errors.labels(repo, cmd, code.value).inc()

    def record_retry(self, repo: str, cmd: str) -> None:
        self.command_retries.labels(repo, cmd).inc()

    def set_repo_locked(self, repo: str, locked: bool) -> None:
        self.command_repo_locked.labels(repo).set(1 if locked else 0)

    def observe_command_duration(self, repo: str, cmd: str, seconds: float) -> None:
        self.command_duration.labels(repo, cmd).observe(seconds)

    # -------------------------- Exposition -------------------------- #
    def render(self) -> bytes:
        """Return the registry in the Prometheus text exposition format."""
        return generate_latest(self.registry)

    def sample(self, name: str, **labels: str) -> Optional[float]:
        """Read back one sample by its exposed name (namespace prefix optional)."""
        full = name if name.startswith(f"{self.namespace}_") else f"{self.namespace}_{name}"
        return self.registry.get_sample_value(full, labels)


__all__ = ["MonitorMetrics", "group_path_label"]
