"""Per-repository restic command runner.

Purpose:
- Run exactly one restic process at a time per repository. restic refuses
  concurrent exclusive access to a repository, and the monitor's pollers and
  maintenance jobs would otherwise race each other into "already locked".
- Classify failures into the normalized :class:`ErrorCode` taxonomy and
  record them on the metrics handle.
- Retry transient connection failures (the ``do`` path) with a cancellable
  exponential backoff.

Process handling:
- stdout is returned on success; stderr is captured for classification.
- The environment is the process environment, plus ``RESTIC_REPOSITORY``,
  plus the repository overlay (overlay wins).
- While the process runs, the runner wakes every
  ``TimeoutConfig.poll_interval_seconds`` to check the cancellation token and
  the optional command deadline. Either one sends SIGTERM, waits up to
  ``terminate_grace_seconds`` and then kills the process.
"""
from __future__ import annotations

import logging
import os
import subprocess  # nosec B404 - fixed restic argument vectors, shell=False
import threading
import time
from typing import Callable, Dict, Mapping, Optional, Tuple

from ..base.cancellation import CancellationToken, CancelledError
from ..base.errors import CommandError, ErrorCode, classify_failure
from ..base.logging import LogContext, get_logger, log_event
from ..base.metrics import MonitorMetrics
from ..base.resilience import DEFAULT_RETRY_CONFIG, RetryConfig, retry_call
from ..base.timeouts import TimeoutConfig, get_timeout_config
from ..config.defaults import DEFAULT_RESTIC_BINARY, REPOSITORY_ENV
from .cli import build_restic_cmd, resolve_restic_executable

PopenFactory = Callable[..., subprocess.Popen]


class _Deadline(Exception):
    """Internal signal: the command deadline elapsed."""


class CommandRunner:
    """Serialized, classified restic invocations for one repository."""

    def __init__(
        self,
        repo: str,
        repository: str,
        environment: Optional[Mapping[str, str]] = None,
        *,
        metrics: MonitorMetrics,
        executable: str = DEFAULT_RESTIC_BINARY,
        timeouts: Optional[TimeoutConfig] = None,
        retry_config: RetryConfig = DEFAULT_RETRY_CONFIG,
        popen: PopenFactory = subprocess.Popen,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.repo = repo
        self._repository = repository
        self._environment: Dict[str, str] = dict(environment or {})
        self._metrics = metrics
        self._executable = executable
        self._timeouts = timeouts or get_timeout_config()
        self._retry_config = retry_config
        self._popen = popen
        self._lock = threading.Lock()
        self._logger = logger or get_logger("restic_monitor.restic")
        self._ctx = LogContext(repo=repo)

    # ------------------------------------------------------------------ env
    def build_env(self) -> Dict[str, str]:
        """Process environment + repository locator + repository overlay."""
        env = dict(os.environ)
        env[REPOSITORY_ENV] = self._repository
        env.update(self._environment)
        return env

    # ------------------------------------------------------------------ run
    def run(self, operation: str, *args: str, token: CancellationToken) -> bytes:
        """Invoke ``restic <operation> <args> --json`` once and return stdout.

        Holds the repository lock for the whole invocation.

        Raises:
            CommandError: classified failure (exit status / stderr / spawn).
            CancelledError: ``token`` was cancelled before or during the run.
        """
        ctx = self._ctx.with_operation(operation)
        with self._lock:
            token.raise_if_cancelled()
            try:
                exe = resolve_restic_executable(self._executable)
            except OSError as exc:
                raise self._failure(ctx, operation, ErrorCode.UNKNOWN, str(exc), raw=exc) from exc

            argv = build_restic_cmd(exe, operation, args)
            log_event(self._logger, "command.start", ctx, level=logging.DEBUG, argv=argv)
            self._metrics.record_command(self.repo, operation)
            started = time.monotonic()
            try:
                proc = self._popen(  # nosec B603 - validated executable, no shell
                    argv,
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    env=self.build_env(),
                )
            except OSError as exc:
                raise self._failure(ctx, operation, ErrorCode.UNKNOWN, f"cannot start restic: {exc}", raw=exc) from exc

            try:
                stdout, stderr = self._communicate(proc, token)
            except _Deadline:
                raise self._failure(
                    ctx,
                    operation,
                    ErrorCode.TIMEOUT,
                    f"restic did not finish within {self._timeouts.command_timeout_seconds}s",
                ) from None
            finally:
                self._metrics.observe_command_duration(self.repo, operation, time.monotonic() - started)

            if proc.returncode == 0:
                self._metrics.set_repo_locked(self.repo, False)
                log_event(
                    self._logger,
                    "command.ok",
                    ctx,
                    level=logging.DEBUG,
                    duration_s=round(time.monotonic() - started, 3),
                )
                return stdout

            stderr_text = stderr.decode("utf-8", errors="replace")
            code = classify_failure(stderr_text, proc.returncode)
            raise self._failure(
                ctx,
                operation,
                code,
                _first_line(stderr_text) or f"restic exited with status {proc.returncode}",
                exit_code=proc.returncode,
                stderr=stderr_text,
            )

    def do(self, operation: str, *args: str, token: CancellationToken) -> bytes:
        """:meth:`run` with retries for transient connection failures."""
        ctx = self._ctx.with_operation(operation)

        def _attempt_logger(*, attempt: int, max_attempts: int, delay, error: CommandError | None) -> None:
            if error is None or delay is None or error.code not in self._retry_config.retryable_codes:
                return
            self._metrics.record_retry(self.repo, operation)
            log_event(
                self._logger,
                "command.retry",
                ctx,
                level=logging.INFO,
                attempt=attempt + 1,
                max_attempts=max_attempts,
                delay_s=delay,
                error_code=error.code.value,
            )

        config = RetryConfig(
            max_attempts=self._retry_config.max_attempts,
            initial_delay=self._retry_config.initial_delay,
            multiplier=self._retry_config.multiplier,
            retryable_codes=self._retry_config.retryable_codes,
            attempt_logger=_attempt_logger,
        )
        return retry_call(lambda: self.run(operation, *args, token=token), config=config, token=token)

    # -------------------------------------------------------------- helpers
    def _communicate(self, proc: subprocess.Popen, token: CancellationToken) -> Tuple[bytes, bytes]:
        """Wait for ``proc`` while honouring cancellation and the deadline."""
        limit = self._timeouts.command_timeout_seconds
        deadline = None if limit is None else time.monotonic() + limit
        while True:
            try:
                return proc.communicate(timeout=self._timeouts.poll_interval_seconds)
            except subprocess.TimeoutExpired:
                if token.cancelled:
                    self._terminate(proc)
                    raise CancelledError(token.reason or "restic command cancelled") from None
                if deadline is not None and time.monotonic() >= deadline:
                    self._terminate(proc)
                    raise _Deadline() from None

    def _terminate(self, proc: subprocess.Popen) -> None:
        """SIGTERM, then SIGKILL after the grace period; always reaps."""
        proc.terminate()
        try:
            proc.communicate(timeout=self._timeouts.terminate_grace_seconds)
        except subprocess.TimeoutExpired:
            log_event(
                self._logger,
                "command.kill",
                self._ctx,
                level=logging.WARNING,
                pid=proc.pid,
                grace_s=self._timeouts.terminate_grace_seconds,
            )
            proc.kill()
            proc.communicate()

    def _failure(
        self,
        ctx: LogContext,
        operation: str,
        code: ErrorCode,
        message: str,
        *,
        exit_code: Optional[int] = None,
        stderr: Optional[str] = None,
        raw: Optional[Exception] = None,
    ) -> CommandError:
        """Record metrics and logs for a classified failure and build the error."""
        self._metrics.record_command_error(self.repo, operation, code)
        self._metrics.set_repo_locked(self.repo, code is ErrorCode.REPO_LOCKED)
        if code is ErrorCode.REPO_LOCKED:
            log_event(self._logger, "command.repo_locked", ctx, level=logging.WARNING, message=message)
        elif code is ErrorCode.CONNECTION_FAILED:
            log_event(
                self._logger,
                "command.connection_failed",
                ctx,
                level=logging.WARNING,
                stderr=stderr,
            )
        elif code is ErrorCode.CHECK_FAILED:
            log_event(self._logger, "command.check_failed", ctx, level=logging.WARNING, stderr=stderr)
        else:
            log_event(
                self._logger,
                "command.failed",
                ctx,
                level=logging.ERROR,
                error_code=code.value,
                message=message,
                exit_code=exit_code,
                stderr=stderr,
            )
        return CommandError(
            code=code,
            message=message,
            repo=self.repo,
            operation=operation,
            exit_code=exit_code,
            stderr=stderr,
            raw=raw,
        )


def _first_line(text: str) -> str:
    for line in text.splitlines():
        if line.strip():
            return line.strip()
    return ""


__all__ = ["CommandRunner"]
