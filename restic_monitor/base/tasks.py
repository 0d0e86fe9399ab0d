"""Named background thread set with scoped join.

``TaskSet`` replaces an ad-hoc list of threads plus manual joins: spawn tasks,
keep their handles, and join all of them when the ``with`` block exits, on
every exit path. Finished threads are pruned on each spawn so long-lived sets
(one thread per maintenance firing) do not grow without bound.
"""
from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, List, Optional

from .logging import get_logger, log_event


class TaskSet:
    """A set of threads spawned together and joined together."""

    def __init__(self, name: str = "tasks", *, logger: Optional[logging.Logger] = None) -> None:
        self._name = name
        self._lock = threading.Lock()
        self._threads: List[threading.Thread] = []
        self._logger = logger or get_logger(f"restic_monitor.tasks.{name}")

    def spawn(self, target: Callable[..., Any], *args: Any, name: Optional[str] = None) -> threading.Thread:
        """Start ``target(*args)`` on a new daemon thread and track it."""
        thread = threading.Thread(
            target=target,
            args=args,
            name=f"{self._name}-{name}" if name else None,
            daemon=True,
        )
        with self._lock:
            self._threads = [t for t in self._threads if t.is_alive()]
            self._threads.append(thread)
        thread.start()
        return thread

    def active(self) -> int:
        """Number of tracked threads still running."""
        with self._lock:
            return sum(1 for t in self._threads if t.is_alive())

    def join(self, timeout: Optional[float] = None) -> bool:
        """Join every tracked thread.

        ``timeout`` bounds the whole join, not each thread. Returns ``True``
        when all threads finished.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._lock:
            threads = list(self._threads)
        for thread in threads:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            thread.join(remaining)
        still_running = [t.name for t in threads if t.is_alive()]
        if still_running:
            log_event(
                self._logger,
                "tasks.join_timeout",
                level=logging.WARNING,
                task_set=self._name,
                running=still_running,
            )
            return False
        return True

    def __enter__(self) -> "TaskSet":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.join()


__all__ = ["TaskSet"]
