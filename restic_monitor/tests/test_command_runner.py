"""Process-level tests for CommandRunner against a fake restic executable."""
from __future__ import annotations

import json
import threading
import time
from pathlib import Path

import pytest

from restic_monitor.base.cancellation import CancellationToken, CancelledError
from restic_monitor.base.errors import CommandError, ErrorCode
from restic_monitor.base.resilience import RetryConfig
from restic_monitor.base.timeouts import TimeoutConfig
from restic_monitor.restic.runner import CommandRunner


def _runner(fake_restic, metrics, timeouts, env=None, **kwargs) -> CommandRunner:
    return CommandRunner(
        "nas",
        "sftp:backup@nas:/srv/restic",
        env or {},
        metrics=metrics,
        executable=fake_restic,
        timeouts=timeouts,
        **kwargs,
    )


def _read_log(path: Path):
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


def test_success_returns_stdout_and_injects_environment(fake_restic, metrics, fast_timeouts, tmp_path):
    log = tmp_path / "calls.jsonl"
    runner = _runner(
        fake_restic,
        metrics,
        fast_timeouts,
        {"FAKE_RESTIC_STDOUT": '{"total_size": 1}', "FAKE_RESTIC_LOG": str(log), "RESTIC_PASSWORD": "s3cret"},
    )

    out = runner.run("stats", "--mode", "raw-data", token=CancellationToken())

    assert out == b'{"total_size": 1}'
    (call,) = _read_log(log)
    assert call["argv"] == ["stats", "--mode", "raw-data", "--json"]
    assert call["repository"] == "sftp:backup@nas:/srv/restic"
    assert call["password"] == "s3cret"
    assert metrics.sample("command_invocations_total", repo="nas", cmd="stats") == 1.0


def test_overlay_overrides_repository_variable(fake_restic, metrics, fast_timeouts):
    runner = _runner(fake_restic, metrics, fast_timeouts, {"RESTIC_REPOSITORY": "/override"})
    assert runner.build_env()["RESTIC_REPOSITORY"] == "/override"


def test_locked_repository_sets_gauge_until_next_success(fake_restic, metrics, fast_timeouts):
    env = {
        "FAKE_RESTIC_STDERR": "unable to create lock in backend: repository is already locked by PID 7\n",
        "FAKE_RESTIC_EXIT": "1",
    }
    runner = _runner(fake_restic, metrics, fast_timeouts, env)

    with pytest.raises(CommandError) as ei:
        runner.run("check", token=CancellationToken())

    assert ei.value.code is ErrorCode.REPO_LOCKED
    assert ei.value.exit_code == 1
    assert metrics.sample("command_repo_locked", repo="nas") == 1.0
    assert metrics.sample("command_errors_total", repo="nas", cmd="check", kind="repo_locked") == 1.0

    ok = _runner(fake_restic, metrics, fast_timeouts, {"FAKE_RESTIC_STDOUT": "[]"})
    ok.run("snapshots", token=CancellationToken())
    assert metrics.sample("command_repo_locked", repo="nas") == 0.0


def test_connection_failure_is_retried_then_raised(fake_restic, metrics, fast_timeouts, tmp_path):
    log = tmp_path / "calls.jsonl"
    env = {
        "FAKE_RESTIC_STDERR": "Fatal: unable to open config file: dial tcp 10.0.0.2:22: connect: no route to host\n",
        "FAKE_RESTIC_EXIT": "1",
        "FAKE_RESTIC_LOG": str(log),
    }
    runner = _runner(
        fake_restic,
        metrics,
        fast_timeouts,
        env,
        retry_config=RetryConfig(initial_delay=0.01, multiplier=2.0),
    )

    with pytest.raises(CommandError) as ei:
        runner.do("snapshots", token=CancellationToken())

    assert ei.value.code is ErrorCode.CONNECTION_FAILED
    assert len(_read_log(log)) == 3
    assert metrics.sample("command_retries_total", repo="nas", cmd="snapshots") == 2.0
    assert metrics.sample("command_errors_total", repo="nas", cmd="snapshots", kind="connection_failed") == 3.0


def test_check_failure_is_not_retried(fake_restic, metrics, fast_timeouts, tmp_path):
    log = tmp_path / "calls.jsonl"
    env = {"FAKE_RESTIC_STDERR": "Fatal: repository contains errors\n", "FAKE_RESTIC_EXIT": "1", "FAKE_RESTIC_LOG": str(log)}
    runner = _runner(fake_restic, metrics, fast_timeouts, env)

    with pytest.raises(CommandError) as ei:
        runner.do("check", token=CancellationToken())

    assert ei.value.code is ErrorCode.CHECK_FAILED
    assert len(_read_log(log)) == 1


def test_missing_executable_is_unknown_failure(metrics, fast_timeouts, tmp_path):
    runner = _runner(str(tmp_path / "no-such-restic"), metrics, fast_timeouts)
    with pytest.raises(CommandError) as ei:
        runner.run("check", token=CancellationToken())
    assert ei.value.code is ErrorCode.UNKNOWN
    assert isinstance(ei.value.raw, OSError)


def test_cancelled_token_never_starts_a_process(fake_restic, metrics, fast_timeouts, tmp_path):
    log = tmp_path / "calls.jsonl"
    runner = _runner(fake_restic, metrics, fast_timeouts, {"FAKE_RESTIC_LOG": str(log)})
    token = CancellationToken()
    token.cancel("shutdown")
    with pytest.raises(CancelledError):
        runner.run("check", token=token)
    assert not log.exists()


def test_cancellation_terminates_running_process(fake_restic, metrics, fast_timeouts):
    runner = _runner(fake_restic, metrics, fast_timeouts, {"FAKE_RESTIC_SLEEP": "30"})
    token = CancellationToken()
    threading.Timer(0.2, token.cancel, args=("shutdown",)).start()

    started = time.monotonic()
    with pytest.raises(CancelledError):
        runner.run("check", token=token)
    assert time.monotonic() - started < 10


def test_command_deadline_raises_timeout(fake_restic, metrics):
    timeouts = TimeoutConfig(command_timeout_seconds=0.2, terminate_grace_seconds=2.0, poll_interval_seconds=0.02)
    runner = _runner(fake_restic, metrics, timeouts, {"FAKE_RESTIC_SLEEP": "30"})
    with pytest.raises(CommandError) as ei:
        runner.run("check", token=CancellationToken())
    assert ei.value.code is ErrorCode.TIMEOUT


def test_commands_for_one_repository_never_overlap(fake_restic, metrics, fast_timeouts, tmp_path):
    log = tmp_path / "calls.jsonl"
    runner = _runner(fake_restic, metrics, fast_timeouts, {"FAKE_RESTIC_SLEEP": "0.2", "FAKE_RESTIC_LOG": str(log)})
    token = CancellationToken()
    threads = [threading.Thread(target=runner.run, args=("check",), kwargs={"token": token}) for _ in range(3)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(30)

    calls = sorted(_read_log(log), key=lambda c: c["start"])
    assert len(calls) == 3
    for earlier, later in zip(calls, calls[1:]):
        assert earlier["end"] <= later["start"]
