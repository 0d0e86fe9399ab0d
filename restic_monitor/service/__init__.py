"""Process wiring: HTTP exposition and the ``restic-monitor`` entry point."""

from .app import create_app
from .main import MonitoredRepository, build_repository, main
from .server import MetricsServer

__all__ = ["create_app", "MetricsServer", "MonitoredRepository", "build_repository", "main"]
