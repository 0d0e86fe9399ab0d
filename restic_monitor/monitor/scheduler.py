"""Cron-style maintenance scheduler.

Schedules are parsed into APScheduler triggers, which only do the
next-fire-time arithmetic. Dispatch is a single loop thread that sleeps on a
condition until the earliest due job, then starts each due job on its own
thread through a :class:`TaskSet`. Missed firings are not replayed: after a
dispatch the next run is computed from the current time.

Jobs are wrapped in a chain (outermost first). The default chain is
``skip_if_still_running`` then ``recover``: an overlapping firing of the same
job is dropped, and an exception escaping a job is logged instead of killing
its thread.
"""
from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo
from functools import wraps
from typing import Callable, List, Optional, Sequence

from apscheduler.triggers.base import BaseTrigger
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from ..base.logging import get_logger, log_event
from ..base.tasks import TaskSet
from ..config.durations import parse_duration

Job = Callable[[], None]
JobWrapper = Callable[..., Job]

DESCRIPTORS = {
    "@yearly": "0 0 1 1 *",
    "@annually": "0 0 1 1 *",
    "@monthly": "0 0 1 * *",
    "@weekly": "0 0 * * 0",
    "@daily": "0 0 * * *",
    "@midnight": "0 0 * * *",
    "@hourly": "0 * * * *",
}
EVERY_PREFIX = "@every "

# crontab counts weekdays from Sunday (0 or 7); APScheduler numbers them from Monday,
# so numeric weekday fields are expanded to day names.
_WEEKDAYS = ("sun", "mon", "tue", "wed", "thu", "fri", "sat", "sun")
_NUMERIC_SPAN = re.compile(r"\d+(?:-\d+)?")
_TICK = timedelta(microseconds=1)


@dataclass(frozen=True)
class Schedule:
    """A parsed schedule expression."""

    expression: str
    trigger: BaseTrigger

    def next_after(self, moment: datetime) -> Optional[datetime]:
        """First fire time strictly after ``moment`` (timezone-aware), or None."""
        return self.trigger.get_next_fire_time(None, moment + _TICK)


def _weekday_names(field: str) -> str:
    """Rewrite a crontab day-of-week field as APScheduler day names."""
    names: List[str] = []
    for part in field.split(","):
        span, _, step = part.partition("/")
        if (span == "*" and not step) or (span != "*" and not _NUMERIC_SPAN.fullmatch(span)):
            names.append(part)
            continue
        if span == "*":
            low, high = 0, 6
        else:
            first, _, last = span.partition("-")
            low = int(first)
            high = int(last) if last else (6 if step else low)
        stride = int(step) if step else 1
        if high > 7 or low > high or stride < 1:
            raise ValueError(f"invalid day of week: {part!r}")
        names.extend(_WEEKDAYS[day] for day in range(low, high + 1, stride))
    return ",".join(dict.fromkeys(names))


def _crontab_trigger(expr: str, timezone: Optional[tzinfo]) -> CronTrigger:
    fields = expr.split()
    if len(fields) != 5:
        raise ValueError(f"expected 5 crontab fields, got {len(fields)}: {expr!r}")
    minute, hour, day, month, day_of_week = fields
    return CronTrigger(
        minute=minute,
        hour=hour,
        day=day,
        month=month,
        day_of_week=_weekday_names(day_of_week),
        timezone=timezone,
    )


def parse_schedule(expr: str, *, timezone: Optional[tzinfo] = None) -> Schedule:
    """Parse a crontab line, a ``@descriptor`` or ``@every <duration>``.

    ``timezone`` defaults to the local zone. Raises ``ValueError`` for any
    expression that cannot be scheduled.
    """
    text = (expr or "").strip()
    if not text:
        raise ValueError("empty schedule")
    if text.startswith(EVERY_PREFIX):
        seconds = parse_duration(text[len(EVERY_PREFIX):].strip())
        if seconds <= 0:
            raise ValueError(f"@every interval must be positive: {expr!r}")
        return Schedule(text, IntervalTrigger(seconds=seconds, timezone=timezone))
    if text.startswith("@"):
        try:
            text_expr = DESCRIPTORS[text]
        except KeyError:
            raise ValueError(f"unknown schedule descriptor: {text!r}") from None
        return Schedule(text, _crontab_trigger(text_expr, timezone))
    try:
        return Schedule(text, _crontab_trigger(text, timezone))
    except (TypeError, KeyError) as exc:
        raise ValueError(f"invalid crontab expression {text!r}: {exc}") from exc


# ---------------------------------------------------------------- wrappers
def skip_if_still_running(job: Job, *, name: str, logger: logging.Logger) -> Job:
    """Drop a firing while the previous run of ``job`` is still active."""
    running = threading.Lock()

    @wraps(job)
    def _wrapped() -> None:
        if not running.acquire(blocking=False):
            log_event(logger, "scheduler.skip", level=logging.INFO, job=name, reason="still running")
            return
        try:
            job()
        finally:
            running.release()

    return _wrapped


def recover(job: Job, *, name: str, logger: logging.Logger) -> Job:
    """Log and contain any exception raised by ``job``."""

    @wraps(job)
    def _wrapped() -> None:
        try:
            job()
        except Exception as exc:  # noqa: BLE001 - a job failure must not end the scheduler
            log_event(
                logger,
                "scheduler.job_panic",
                level=logging.ERROR,
                exc_info=True,
                job=name,
                error=str(exc),
            )

    return _wrapped


DEFAULT_WRAPPERS: Sequence[JobWrapper] = (skip_if_still_running, recover)


@dataclass
class _Entry:
    name: str
    schedule: Schedule
    job: Job
    next_run: Optional[datetime]


class Scheduler:
    """Fires registered jobs on their schedules until stopped."""

    def __init__(
        self,
        *,
        wrappers: Sequence[JobWrapper] = DEFAULT_WRAPPERS,
        clock: Optional[Callable[[], datetime]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._wrappers = tuple(wrappers)
        self._clock = clock or (lambda: datetime.now().astimezone())
        self._logger = logger or get_logger("restic_monitor.scheduler")
        self._entries: List[_Entry] = []
        self._cond = threading.Condition()
        self._tasks = TaskSet("maintenance", logger=self._logger)
        self._thread: Optional[threading.Thread] = None
        self._stopping = False

    def add_job(self, schedule: Schedule, job: Job, name: str) -> None:
        """Register ``job``; it is wrapped with the scheduler's chain."""
        for wrapper in reversed(self._wrappers):
            job = wrapper(job, name=name, logger=self._logger)
        with self._cond:
            entry = _Entry(name, schedule, job, schedule.next_after(self._clock()))
            self._entries.append(entry)
            self._cond.notify_all()
        log_event(
            self._logger,
            "scheduler.job_added",
            job=name,
            schedule=schedule.expression,
            next_run=entry.next_run.isoformat() if entry.next_run else None,
        )

    def jobs(self) -> List[str]:
        with self._cond:
            return [entry.name for entry in self._entries]

    def start(self) -> None:
        with self._cond:
            if self._thread is not None:
                return
            self._stopping = False
            self._thread = threading.Thread(target=self._loop, name="scheduler", daemon=True)
            self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> bool:
        """Stop dispatching, then wait for in-flight jobs.

        Returns ``True`` when every running job finished within ``timeout``.
        """
        with self._cond:
            self._stopping = True
            self._cond.notify_all()
            thread = self._thread
        if thread is not None:
            thread.join()
        drained = self._tasks.join(timeout)
        log_event(self._logger, "scheduler.stopped", drained=drained)
        return drained

    def _loop(self) -> None:
        with self._cond:
            while not self._stopping:
                now = self._clock()
                for entry in self._entries:
                    if entry.next_run is not None and entry.next_run <= now:
                        log_event(self._logger, "scheduler.fire", level=logging.DEBUG, job=entry.name)
                        self._tasks.spawn(entry.job, name=entry.name)
                        entry.next_run = entry.schedule.next_after(now)
                pending = [e.next_run for e in self._entries if e.next_run is not None]
                timeout = None if not pending else max(0.0, (min(pending) - now).total_seconds())
                self._cond.wait(timeout)


__all__ = [
    "DESCRIPTORS",
    "DEFAULT_WRAPPERS",
    "Schedule",
    "Scheduler",
    "parse_schedule",
    "recover",
    "skip_if_still_running",
]
