"""Centralized defaults for the monitor process."""

DEFAULT_CONFIG_PATH = "/etc/restic-monitor/config.yaml"
DEFAULT_LISTEN_HOST = "0.0.0.0"  # nosec B104 - metrics endpoint is meant to be scraped
DEFAULT_LISTEN_PORT = 9090
DEFAULT_RESTIC_BINARY = "restic"

DRY_RUN_ENV = "DRY_RUN"
RESTIC_BINARY_ENV = "RESTIC_MONITOR_RESTIC_BINARY"
REPOSITORY_ENV = "RESTIC_REPOSITORY"

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_LISTEN_HOST",
    "DEFAULT_LISTEN_PORT",
    "DEFAULT_RESTIC_BINARY",
    "DRY_RUN_ENV",
    "RESTIC_BINARY_ENV",
    "REPOSITORY_ENV",
]
