"""Unified restic command error taxonomy public surface.

This module re-exports the one-class-per-file implementations under
``restic_monitor.base.errors_parts`` to keep a stable import path.
"""

from .errors_parts.error_code import ErrorCode
from .errors_parts.command_error import CommandError
from .errors_parts.decode_error import DecodeError
from .errors_parts.classification import (
    ClassificationRule,
    STDERR_RULES,
    classify_failure,
)

__all__ = [
    "ErrorCode",
    "CommandError",
    "DecodeError",
    "ClassificationRule",
    "STDERR_RULES",
    "classify_failure",
]
