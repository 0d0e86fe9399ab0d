"""Repository client: restic operations decoded into typed records.

Every operation goes through :meth:`CommandRunner.do`, so it inherits the
per-repository lock, failure classification and connection retries. Output
that restic produced successfully but that does not decode raises
:class:`DecodeError`.
"""
from __future__ import annotations

import json
import logging
from typing import Any, List, Optional, TypeVar

from pydantic import TypeAdapter, ValidationError

from ..base.cancellation import CancellationToken
from ..base.errors import DecodeError
from ..base.logging import LogContext, get_logger, log_event
from ..config.models import RetentionPolicy
from .models import ForgetGroup, GroupedSnapshots, RawDataStats, RestoreSizeStats
from .runner import CommandRunner

T = TypeVar("T")

DRY_RUN_FLAG = "-n"
GROUP_BY = "host,path"

_FORGET_GROUPS = TypeAdapter(List[ForgetGroup])
_GROUPED_SNAPSHOTS = TypeAdapter(List[GroupedSnapshots])
_RAW_STATS = TypeAdapter(RawDataStats)
_RESTORE_STATS = TypeAdapter(RestoreSizeStats)


class RepositoryClient:
    """Domain operations against one restic repository."""

    def __init__(
        self,
        runner: CommandRunner,
        retention: Optional[RetentionPolicy] = None,
        *,
        dry_run: bool = False,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._runner = runner
        self._retention = retention or RetentionPolicy()
        self._dry_run = dry_run
        self._logger = logger or get_logger("restic_monitor.restic")

    @property
    def name(self) -> str:
        return self._runner.repo

    @property
    def dry_run(self) -> bool:
        return self._dry_run

    def check(self, token: CancellationToken) -> None:
        """Run ``restic check``; raises on any failure (``CHECK_FAILED`` for corruption)."""
        self._runner.do("check", token=token)

    def forget(self, token: CancellationToken) -> List[ForgetGroup]:
        """Apply the retention policy and return per-group keep/remove decisions."""
        args = self._retention.to_args()
        if self._dry_run:
            args = [DRY_RUN_FLAG, *args]
        out = self._runner.do("forget", *args, token=token)
        return self._decode("forget", out, _FORGET_GROUPS, null_as=[])

    def get_snapshots(self, token: CancellationToken) -> List[GroupedSnapshots]:
        out = self._runner.do("snapshots", "--group-by", GROUP_BY, token=token)
        return self._decode("snapshots", out, _GROUPED_SNAPSHOTS, null_as=[])

    def get_raw_stats(self, token: CancellationToken) -> RawDataStats:
        out = self._runner.do("stats", "--mode", "raw-data", token=token)
        return self._decode("stats", out, _RAW_STATS)

    def get_restore_stats(self, snapshot_id: str, token: CancellationToken) -> RestoreSizeStats:
        out = self._runner.do("stats", "--mode", "restore-size", snapshot_id, token=token)
        return self._decode("stats", out, _RESTORE_STATS)

    def _decode(self, operation: str, raw: bytes, adapter: TypeAdapter[T], null_as: Any = None) -> T:
        """Parse ``raw`` as JSON and validate it; ``null`` maps to ``null_as``."""
        try:
            data = json.loads(raw or b"null")
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise self._decode_error(operation, f"invalid JSON: {exc}", exc) from exc
        if data is None and null_as is not None:
            return null_as
        try:
            return adapter.validate_python(data)
        except ValidationError as exc:
            raise self._decode_error(operation, f"unexpected JSON shape: {exc}", exc) from exc

    def _decode_error(self, operation: str, message: str, exc: Exception) -> DecodeError:
        log_event(
            self._logger,
            "command.decode_failed",
            LogContext(repo=self.name, operation=operation),
            level=logging.ERROR,
            message=message,
        )
        return DecodeError(repo=self.name, operation=operation, message=message, raw=exc)


__all__ = ["RepositoryClient", "DRY_RUN_FLAG"]
