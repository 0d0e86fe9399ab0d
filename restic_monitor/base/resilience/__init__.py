"""Resilience helpers (retry policy) for restic invocations."""

from .retry import DEFAULT_RETRY_CONFIG, RetryConfig, retry_call

__all__ = ["DEFAULT_RETRY_CONFIG", "RetryConfig", "retry_call"]
