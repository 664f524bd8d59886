"""Transport-independent dispatch machinery shared by webhooks and SMS."""

from .batch import fan_out
from .retry import RetryController, SendAttempt
from .stats import error_key, summarize

__all__ = [
    "RetryController",
    "SendAttempt",
    "error_key",
    "fan_out",
    "summarize",
]
