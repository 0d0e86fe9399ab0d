"""restic CLI helpers.

Purpose
    Resolve and validate the trusted ``restic`` executable and build the
    argument vectors handed to :mod:`subprocess`.

External Dependencies
    * Local ``restic`` binary executed via :mod:`subprocess` (``shell=False``).

Fallback Semantics
    Errors are propagated to the command runner, which classifies a binary
    that cannot be resolved or started as an ``UNKNOWN`` command failure.
"""

from __future__ import annotations

import os
import shutil
import stat
from typing import List, Sequence

JSON_FLAG = "--json"


def _validate_executable(path: str) -> None:
    """Validate the resolved ``restic`` executable path.

    Raises
    ------
    PermissionError
        If the file is not a regular executable file, or is writable by group
        or other users.
    """

    try:
        stat_result = os.stat(path)
    except OSError as exc:
        raise FileNotFoundError(f"cannot stat restic executable {path}: {exc}") from exc

    if not stat.S_ISREG(stat_result.st_mode):
        raise PermissionError(f"restic executable is not a regular file: {path}")

    if not os.access(path, os.X_OK):
        raise PermissionError(f"restic executable not user-executable: {path}")

    if stat_result.st_mode & 0o022:
        raise PermissionError(
            f"restic executable has insecure write permissions (group/other writable): {path}"
        )


def resolve_restic_executable(name: str = "restic") -> str:
    """Return the absolute path to the validated restic executable.

    ``name`` may be a bare command name looked up on ``PATH`` or a path.

    Raises
    ------
    FileNotFoundError
        If the executable cannot be located.
    PermissionError
        If validation fails (wrong file type or permissions).
    """

    exe_path = shutil.which(name)
    if not exe_path:
        raise FileNotFoundError(f"{name!r} executable not found on PATH")

    abs_path = os.path.abspath(exe_path)
    _validate_executable(abs_path)
    return abs_path


def build_restic_cmd(exe_path: str, operation: str, args: Sequence[str] = ()) -> List[str]:
    """Construct a ``restic <operation> <args...> --json`` command vector."""

    return [exe_path, operation, *args, JSON_FLAG]


__all__ = [
    "JSON_FLAG",
    "resolve_restic_executable",
    "build_restic_cmd",
]
