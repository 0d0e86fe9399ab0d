"""
Pydantic records for restic's ``--json`` output.

Purpose
-------
Decode the stdout of ``snapshots``, ``forget`` and ``stats`` into typed
records. restic's JSON is trusted: unknown keys are ignored, missing numeric
fields default to zero, and ``null`` lists decode as empty lists.

Timestamps
----------
restic prints RFC 3339 times with nanosecond precision
(``2024-05-01T03:00:01.123456789+02:00``); fractions are truncated to
microseconds before parsing.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

_FRACTION = re.compile(r"(\.\d{6})\d+")


class _ResticRecord(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


def _list_or_empty(value):
    return [] if value is None else value


class Snapshot(_ResticRecord):
    """A single snapshot as listed by restic."""

    id: str
    short_id: str = ""
    time: datetime
    paths: List[str] = Field(default_factory=list)
    hostname: str = ""
    username: str = ""
    tags: List[str] = Field(default_factory=list)
    parent: Optional[str] = None
    tree: Optional[str] = None

    @field_validator("time", mode="before")
    @classmethod
    def _truncate_nanoseconds(cls, value):
        if isinstance(value, str):
            return _FRACTION.sub(r"\1", value)
        return value

    @field_validator("paths", "tags", mode="before")
    @classmethod
    def _null_list(cls, value):
        return _list_or_empty(value)


class GroupKey(_ResticRecord):
    """The (hostname, paths) key restic groups snapshots under."""

    hostname: str = ""
    paths: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)

    @field_validator("paths", "tags", mode="before")
    @classmethod
    def _null_list(cls, value):
        return _list_or_empty(value)


class GroupedSnapshots(_ResticRecord):
    """Output element of ``restic snapshots --group-by host,path``."""

    group_key: GroupKey
    snapshots: List[Snapshot] = Field(default_factory=list)

    @field_validator("snapshots", mode="before")
    @classmethod
    def _null_list(cls, value):
        return _list_or_empty(value)

    def latest(self) -> Optional[Snapshot]:
        """Return the most recent snapshot by timestamp, or None when empty."""
        if not self.snapshots:
            return None
        return max(self.snapshots, key=lambda s: s.time)


class RetentionReason(_ResticRecord):
    snapshot: Snapshot
    matches: List[str] = Field(default_factory=list)

    @field_validator("matches", mode="before")
    @classmethod
    def _null_list(cls, value):
        return _list_or_empty(value)


class ForgetGroup(_ResticRecord):
    """Per (host, paths) outcome of ``restic forget``."""

    host: str = ""
    paths: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    keep: List[Snapshot] = Field(default_factory=list)
    remove: List[Snapshot] = Field(default_factory=list)
    reasons: List[RetentionReason] = Field(default_factory=list)

    @field_validator("paths", "tags", "keep", "remove", "reasons", mode="before")
    @classmethod
    def _null_list(cls, value):
        return _list_or_empty(value)


class RawDataStats(_ResticRecord):
    """``restic stats --mode raw-data``."""

    total_size: int = 0
    total_uncompressed_size: int = 0
    compression_ratio: float = 0.0
    compression_progress: float = 0.0
    compression_space_saving: float = 0.0
    total_blob_count: int = 0
    snapshots_count: int = 0


class RestoreSizeStats(_ResticRecord):
    """``restic stats --mode restore-size <snapshot>``."""

    total_size: int = 0
    total_file_count: int = 0
    snapshots_count: int = 0


__all__ = [
    "Snapshot",
    "GroupKey",
    "GroupedSnapshots",
    "RetentionReason",
    "ForgetGroup",
    "RawDataStats",
    "RestoreSizeStats",
]
