"""restic integration: command runner, repository client and output records."""

from .client import DRY_RUN_FLAG, RepositoryClient
from .models import (
    ForgetGroup,
    GroupKey,
    GroupedSnapshots,
    RawDataStats,
    RestoreSizeStats,
    RetentionReason,
    Snapshot,
)
from .runner import CommandRunner

__all__ = [
    "CommandRunner",
    "RepositoryClient",
    "DRY_RUN_FLAG",
    "ForgetGroup",
    "GroupKey",
    "GroupedSnapshots",
    "RawDataStats",
    "RestoreSizeStats",
    "RetentionReason",
    "Snapshot",
]
