"""
Failure classification mapping restic diagnostics to normalized ErrorCode values.

restic does not expose machine-readable error kinds for every failure, so the
primary signal is a substring match on stderr. The rules are an explicit,
ordered table evaluated top to bottom; the first hit wins. Exit status is a
secondary signal for restic releases that document dedicated codes.

The wording of restic's messages is not a stable interface. If a restic
upgrade changes it, affected failures degrade to ``UNKNOWN`` (still counted
and logged with the full stderr) rather than being misclassified.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Sequence

from .error_code import ErrorCode


@dataclass(frozen=True)
class ClassificationRule:
    """Map a stderr substring to an error code."""

    pattern: str
    code: ErrorCode

    def matches(self, stderr: str) -> bool:
        return self.pattern in stderr


STDERR_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule("repository is already locked", ErrorCode.REPO_LOCKED),
    ClassificationRule("unable to open config file", ErrorCode.CONNECTION_FAILED),
    ClassificationRule("repository contains errors", ErrorCode.CHECK_FAILED),
)

# restic >= 0.17 exit codes: 10 repository does not exist, 11 failed to lock.
_EXIT_CODE_MAP: Dict[int, ErrorCode] = {
    10: ErrorCode.CONNECTION_FAILED,
    11: ErrorCode.REPO_LOCKED,
}


def classify_failure(
    stderr: str,
    exit_code: Optional[int] = None,
    rules: Sequence[ClassificationRule] = STDERR_RULES,
) -> ErrorCode:
    """Classify a failed restic invocation into a normalized :class:`ErrorCode`.

    Precedence:
        1. stderr substring rules, in table order.
        2. Documented exit statuses.
        3. ``UNKNOWN`` fallback.
    """
    for rule in rules:
        if rule.matches(stderr):
            return rule.code
    if exit_code is not None and exit_code in _EXIT_CODE_MAP:
        return _EXIT_CODE_MAP[exit_code]
    return ErrorCode.UNKNOWN


__all__ = [
    "ClassificationRule",
    "STDERR_RULES",
    "classify_failure",
]
