"""
Pydantic models for the monitor configuration document.

Purpose
-------
Validate each repository section of the YAML config before any runner,
poller or job is built from it, so a bad section fails loudly at startup and
only takes its own repository down.

Design
------
- ``RetentionPolicy`` renders itself as ``restic forget`` arguments.
- ``RepositoryConfig.polling_interval`` is stored in seconds; ``1h30m``-style
  duration strings are accepted as well.
- Unknown keys are rejected: a misspelt ``retention`` key silently turning
  into "keep nothing" would be destructive.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .durations import parse_duration


class RetentionPolicy(BaseModel):
    """Keep-counts and keep-tags handed to ``restic forget``.

    A count of zero (the default) means "not set" and emits no argument.
    """

    model_config = ConfigDict(extra="forbid")

    # Older configs spell it "lastn".
    last_n: int = Field(default=0, ge=0, validation_alias=AliasChoices("last_n", "lastn"))
    hourly: int = Field(default=0, ge=0)
    daily: int = Field(default=0, ge=0)
    weekly: int = Field(default=0, ge=0)
    monthly: int = Field(default=0, ge=0)
    yearly: int = Field(default=0, ge=0)
    tags: List[str] = Field(default_factory=list)

    def to_args(self) -> List[str]:
        """Return the ordered ``--keep-*`` argument list."""
        args: List[str] = []
        for flag, value in (
            ("--keep-last", self.last_n),
            ("--keep-hourly", self.hourly),
            ("--keep-daily", self.daily),
            ("--keep-weekly", self.weekly),
            ("--keep-monthly", self.monthly),
            ("--keep-yearly", self.yearly),
        ):
            if value > 0:
                args += [flag, str(value)]
        for tag in self.tags:
            args += ["--keep-tag", tag]
        return args


class RepositoryConfig(BaseModel):
    """One monitored repository.

    Attributes:
        repository: restic repository locator (exported as ``RESTIC_REPOSITORY``).
        environment: Inline environment overlay (credentials, password file...).
        environment_file: Optional JSON object file merged under ``environment``.
        retention: Policy used by the maintenance ``forget`` pass.
        polling_interval: Seconds between polls; must be > 0.
        maintenance_schedule: Cron expression, descriptor or ``@every <d>``.
    """

    model_config = ConfigDict(extra="forbid", coerce_numbers_to_str=True)

    repository: str = Field(min_length=1)
    environment: Dict[str, str] = Field(default_factory=dict)
    environment_file: Optional[str] = None
    retention: RetentionPolicy = Field(default_factory=RetentionPolicy)
    polling_interval: float
    maintenance_schedule: str = Field(min_length=1)

    @field_validator("environment", "retention", mode="before")
    @classmethod
    def _empty_section(cls, value):
        return {} if value is None else value

    @field_validator("polling_interval", mode="before")
    @classmethod
    def _parse_interval(cls, value):
        seconds = parse_duration(value)
        if seconds <= 0:
            raise ValueError("polling_interval must be greater than zero")
        return seconds


__all__ = ["RetentionPolicy", "RepositoryConfig"]
