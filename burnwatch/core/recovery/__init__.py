"""
Error Recovery Module

Provides error classification and retry strategies for resilient
upstream calls in the burn pipeline.
"""

from .errors import (
    RecoverableError,
    UnrecoverableError,
    RateLimitError,
    RpcError,
    UnknownTokenError,
    ChainMismatchError,
    AggregationFailedError,
    CacheUnavailableError,
    RefreshInProgressError,
    classify_error,
    is_rate_limit_message,
)
from .strategies import (
    RetryConfig,
    RetryStrategy,
    ExponentialBackoffStrategy,
)

__all__ = [
    # Errors
    "RecoverableError",
    "UnrecoverableError",
    "RateLimitError",
    "RpcError",
    "UnknownTokenError",
    "ChainMismatchError",
    "AggregationFailedError",
    "CacheUnavailableError",
    "RefreshInProgressError",
    "classify_error",
    "is_rate_limit_message",
    # Strategies
    "RetryConfig",
    "RetryStrategy",
    "ExponentialBackoffStrategy",
]
