"""Unit coverage for structured logging utilities."""

from __future__ import annotations

import json
import logging

from restic_monitor.base.logging import LogContext, configure_logger, get_logger, log_event
from restic_monitor.base.log_support import JsonFormatter


def _last_line(capsys):
    return json.loads(capsys.readouterr().err.strip().splitlines()[-1])


def test_get_logger_nests_under_base_logger():
    assert get_logger("poller").name == "restic_monitor.poller"
    assert get_logger("restic_monitor.poller").name == "restic_monitor.poller"


def test_log_event_hoists_context_and_drops_none(capsys):
    configure_logger(level="INFO")
    logger = get_logger("tests.events")
    log_event(
        logger,
        "command.failed",
        LogContext(repo="nas", operation="check"),
        level=logging.ERROR,
        exit_code=1,
        stderr=None,
    )
    data = _last_line(capsys)
    assert data["event"] == "command.failed"
    assert data["repo"] == "nas" and data["operation"] == "check"
    assert data["level"] == "ERROR" and data["exit_code"] == 1
    assert "stderr" not in data and "msg" not in data


def test_log_event_respects_level(capsys):
    configure_logger(level="WARNING")
    try:
        log_event(get_logger("tests.quiet"), "poll.start", LogContext(repo="nas"))
        assert capsys.readouterr().err == ""
    finally:
        configure_logger(level="INFO")


def test_json_formatter_keeps_plain_messages() -> None:
    record = logging.LogRecord(
        name="restic_monitor.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=0,
        msg="plain %s",
        args=("text",),
        exc_info=None,
    )
    payload = json.loads(JsonFormatter().format(record))
    assert payload["msg"] == "plain text"
    assert payload["logger"] == "restic_monitor.test"


def test_log_context_with_operation_copies():
    ctx = LogContext(repo="nas", extra={"k": "v"})
    child = ctx.with_operation("forget")
    assert ctx.operation is None and child.operation == "forget"
    assert child.to_dict() == {"repo": "nas", "operation": "forget", "k": "v"}


def test_file_handler_writes_json(tmp_path, capsys):
    path = tmp_path / "logs" / "monitor.log"
    configure_logger(level="INFO", file_path=str(path))
    try:
        log_event(get_logger("tests.file"), "main.stopped")
    finally:
        configure_logger(level="INFO")
    line = path.read_text(encoding="utf-8").strip().splitlines()[-1]
    assert json.loads(line)["event"] == "main.stopped"
