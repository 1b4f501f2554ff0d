"""Error classification and recovery module."""

from .classifier import ErrorClassifier
from .normalize import normalize_provider_error, from_http_error
from .strategies import RetryStrategy, ExponentialBackoff
from .recovery import (
    BackoffRetrier,
    RecoveryActionDispatcher,
    ScheduledRetry,
    retry_with_backoff,
)

__all__ = [
    "ErrorClassifier",
    "normalize_provider_error",
    "from_http_error",
    "RetryStrategy",
    "ExponentialBackoff",
    "BackoffRetrier",
    "RecoveryActionDispatcher",
    "ScheduledRetry",
    "retry_with_backoff",
]
