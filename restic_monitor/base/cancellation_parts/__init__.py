"""One-class-per-file parts for cooperative cancellation."""

from .cancelled_error import CancelledError
from .cancellation_token import CancellationToken
from .record import CancellationRecord

__all__ = ["CancelledError", "CancellationToken", "CancellationRecord"]
