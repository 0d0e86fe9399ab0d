"""Errors parts package public surface.

Re-exports individual error taxonomy components for optional direct imports.
Prefer importing from `restic_monitor.base.errors` for the stable surface.
"""

from .error_code import ErrorCode
from .command_error import CommandError
from .decode_error import DecodeError
from .classification import ClassificationRule, STDERR_RULES, classify_failure

__all__ = [
    "ErrorCode",
    "CommandError",
    "DecodeError",
    "ClassificationRule",
    "STDERR_RULES",
    "classify_failure",
]
