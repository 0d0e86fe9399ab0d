from __future__ import annotations

import pytest

from restic_monitor.base.errors import (
    ClassificationRule,
    CommandError,
    ErrorCode,
    classify_failure,
)


@pytest.mark.parametrize(
    "stderr,code",
    [
        ("Fatal: unable to create lock in backend: repository is already locked by PID 4242", ErrorCode.REPO_LOCKED),
        ("Fatal: unable to open config file: Stat: dial tcp: i/o timeout", ErrorCode.CONNECTION_FAILED),
        ("Fatal: repository contains errors", ErrorCode.CHECK_FAILED),
        ("Fatal: wrong password or no key found", ErrorCode.UNKNOWN),
        ("", ErrorCode.UNKNOWN),
    ],
)
def test_stderr_substring_rules(stderr, code):
    assert classify_failure(stderr) is code


def test_first_matching_rule_wins():
    stderr = "repository is already locked\nunable to open config file"
    assert classify_failure(stderr) is ErrorCode.REPO_LOCKED


def test_exit_code_fallback_when_stderr_is_unhelpful():
    assert classify_failure("Fatal: something odd", exit_code=11) is ErrorCode.REPO_LOCKED
    assert classify_failure("Fatal: something odd", exit_code=10) is ErrorCode.CONNECTION_FAILED
    assert classify_failure("Fatal: something odd", exit_code=1) is ErrorCode.UNKNOWN


def test_stderr_takes_precedence_over_exit_code():
    assert classify_failure("repository contains errors", exit_code=11) is ErrorCode.CHECK_FAILED


def test_custom_rules():
    rules = (ClassificationRule("quota exceeded", ErrorCode.CONNECTION_FAILED),)
    assert classify_failure("B2: quota exceeded", rules=rules) is ErrorCode.CONNECTION_FAILED


def test_command_error_carries_context():
    err = CommandError(
        code=ErrorCode.CONNECTION_FAILED,
        message="unable to open config file",
        repo="nas",
        operation="snapshots",
        exit_code=1,
    )
    assert "nas" in str(err) and "snapshots" in str(err)
