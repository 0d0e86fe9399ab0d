"""Background uvicorn server for the metrics app."""
from __future__ import annotations

import logging
import threading
import time
from typing import Optional

import uvicorn
from fastapi import FastAPI

from ..base.logging import get_logger, log_event


class MetricsServer:
    """Run a uvicorn server on a daemon thread.

    uvicorn only installs signal handlers on the main thread, so the
    process's own SIGTERM/SIGINT handling stays in charge of shutdown.
    """

    def __init__(
        self,
        app: FastAPI,
        host: str,
        port: int,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.host = host
        self.port = port
        self._logger = logger or get_logger("restic_monitor.http")
        self._server = uvicorn.Server(
            uvicorn.Config(app, host=host, port=port, log_config=None, access_log=False, lifespan="off")
        )
        self._thread: Optional[threading.Thread] = None

    @property
    def started(self) -> bool:
        return bool(self._server.started)

    def start(self, wait: float = 5.0) -> bool:
        """Start serving; returns ``True`` once the socket is bound within ``wait`` seconds."""
        self._thread = threading.Thread(target=self._server.run, name="metrics-http", daemon=True)
        self._thread.start()
        deadline = time.monotonic() + wait
        while not self._server.started and self._thread.is_alive() and time.monotonic() < deadline:
            time.sleep(0.05)
        if self._server.started:
            log_event(self._logger, "http.listening", host=self.host, port=self.port)
        else:
            log_event(self._logger, "http.not_started", level=logging.ERROR, host=self.host, port=self.port)
        return self.started

    def stop(self, timeout: float = 5.0) -> None:
        if self._thread is None:
            return
        self._server.should_exit = True
        self._thread.join(timeout)
        log_event(self._logger, "http.stopped", clean=not self._thread.is_alive())


__all__ = ["MetricsServer"]
