from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Protocol, TypeVar

from ..cancellation import CancellationToken, CancelledError
from ..errors import CommandError, ErrorCode

T = TypeVar("T")


class AttemptLogger(Protocol):  # pragma: no cover - structural protocol
    def __call__(
        self,
        *,
        attempt: int,
        max_attempts: int,
        delay: float | None,
        error: CommandError | None,
    ) -> None: ...


@dataclass(frozen=True)
class RetryConfig:
    max_attempts: int = 3
    initial_delay: float = 1.0
    multiplier: float = 4.0  # delay grows initial_delay * multiplier**n
    retryable_codes: tuple[ErrorCode, ...] = (ErrorCode.CONNECTION_FAILED,)
    attempt_logger: AttemptLogger | None = None

    def delays(self) -> Iterable[float]:
        delay = self.initial_delay
        for _ in range(self.max_attempts - 1):
            yield delay
            delay *= self.multiplier


DEFAULT_RETRY_CONFIG = RetryConfig()


def retry_call(
    func: Callable[[], T],
    *,
    config: RetryConfig = DEFAULT_RETRY_CONFIG,
    token: CancellationToken,
    wait: Optional[Callable[[float], bool]] = None,
) -> T:
    """Call ``func`` applying the standardized retry policy.

    - Retries only on configured retryable error codes
    - Exponential backoff ``initial_delay * multiplier**n``
    - Backoff waits go through ``wait`` (default ``token.wait``); a wait that
      reports cancellation raises ``CancelledError`` immediately
    - Non-retryable errors and ``CancelledError`` propagate on first sight
    """
    waiter = wait or token.wait
    last_exc: CommandError | None = None
    for attempt, delay in enumerate(
        list(config.delays()) + [None]
    ):  # final attempt has delay None
        try:
            result = func()
            if config.attempt_logger:
                config.attempt_logger(
                    attempt=attempt,
                    max_attempts=config.max_attempts,
                    delay=None,
                    error=None,
                )
            return result
        except CommandError as e:
            last_exc = e
            if config.attempt_logger:
                config.attempt_logger(
                    attempt=attempt,
                    max_attempts=config.max_attempts,
                    delay=delay,
                    error=e,
                )
            if (e.code in config.retryable_codes) and (delay is not None):
                if waiter(delay):
                    raise CancelledError(token.reason or "retry backoff cancelled") from e
                continue
            raise
    if last_exc is None:  # pragma: no cover - every attempt returns or raises
        raise RuntimeError("retry: reached terminal state without captured exception")
    raise last_exc


__all__ = [
    "AttemptLogger",
    "RetryConfig",
    "DEFAULT_RETRY_CONFIG",
    "retry_call",
]
