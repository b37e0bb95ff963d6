"""
Error Classification

Defines error types for the burn pipeline.
Errors are classified as recoverable (can retry) or unrecoverable (fail fast).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(str, Enum):
    """Categories of errors for recovery decisions."""

    RATE_LIMIT = "rate_limit"     # Provider throttling
    TIMEOUT = "timeout"           # Request timed out
    PROVIDER = "provider"         # RPC / upstream API error
    VALIDATION = "validation"     # Bad token identifier or chain
    AGGREGATION = "aggregation"   # Burn computation failed
    CACHE = "cache"               # Cache store unreachable
    UNKNOWN = "unknown"           # Unclassified error


@dataclass
class ErrorContext:
    """Additional context about an error."""

    category: ErrorCategory = ErrorCategory.UNKNOWN
    recoverable: bool = True
    retry_after_seconds: Optional[float] = None
    provider: Optional[str] = None
    token: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)


class RecoverableError(Exception):
    """
    Base class for errors that can be retried.

    These errors are typically transient:
    - Rate limits
    - Timeouts
    - Cache store outages
    """

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        retry_after: Optional[float] = None,
        context: Optional[ErrorContext] = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.retry_after = retry_after
        self.context = context or ErrorContext(category=category, recoverable=True)


class UnrecoverableError(Exception):
    """
    Base class for errors that cannot be retried.

    Retrying would produce the same outcome:
    - Unknown token identifiers
    - Chain mismatches
    - Malformed provider responses
    """

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        context: Optional[ErrorContext] = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.context = context or ErrorContext(category=category, recoverable=False)


class RateLimitError(RecoverableError):
    """Upstream provider throttled the request."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: Optional[float] = None,
        provider: Optional[str] = None,
    ):
        super().__init__(
            message,
            category=ErrorCategory.RATE_LIMIT,
            retry_after=retry_after,
            context=ErrorContext(
                category=ErrorCategory.RATE_LIMIT,
                recoverable=True,
                retry_after_seconds=retry_after,
                provider=provider,
            ),
        )


class CacheUnavailableError(RecoverableError):
    """The cache store could not be reached."""

    def __init__(self, message: str = "Cache store unavailable"):
        super().__init__(
            message,
            category=ErrorCategory.CACHE,
            context=ErrorContext(category=ErrorCategory.CACHE, recoverable=True),
        )


class RpcError(UnrecoverableError):
    """JSON-RPC or upstream HTTP error that is not throttling."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        code: Optional[int] = None,
    ):
        super().__init__(
            message,
            category=ErrorCategory.PROVIDER,
            context=ErrorContext(
                category=ErrorCategory.PROVIDER,
                recoverable=False,
                provider=provider,
                details={"code": code} if code is not None else {},
            ),
        )
        self.code = code


class UnknownTokenError(UnrecoverableError):
    """Identifier does not resolve through the token registry."""

    def __init__(self, identifier: str):
        super().__init__(
            f"Token '{identifier}' is not supported",
            category=ErrorCategory.VALIDATION,
            context=ErrorContext(
                category=ErrorCategory.VALIDATION,
                recoverable=False,
                token=identifier,
            ),
        )
        self.identifier = identifier


class ChainMismatchError(UnrecoverableError):
    """Token resolved, but it lives on a different chain than requested."""

    def __init__(self, identifier: str, requested: str, actual: str):
        super().__init__(
            f"Token '{identifier}' is on {actual}, not {requested}",
            category=ErrorCategory.VALIDATION,
            context=ErrorContext(
                category=ErrorCategory.VALIDATION,
                recoverable=False,
                token=identifier,
                details={"requested": requested, "actual": actual},
            ),
        )
        self.identifier = identifier
        self.requested = requested
        self.actual = actual


class AggregationFailedError(UnrecoverableError):
    """Burn aggregation for a token could not complete."""

    def __init__(self, token: str, cause: Exception):
        super().__init__(
            f"Burn aggregation failed for {token}: {cause}",
            category=ErrorCategory.AGGREGATION,
            context=ErrorContext(
                category=ErrorCategory.AGGREGATION,
                recoverable=False,
                token=token,
                details={"cause": type(cause).__name__},
            ),
        )
        self.token = token
        self.cause = cause


_RATE_LIMIT_PATTERNS = (
    "rate limit",
    "too many requests",
    "limit exceeded",
    "429",
    "throttl",
)

# JSON-RPC codes providers use for throttling
_RATE_LIMIT_CODES = {-32005, -32029, 429}


def is_rate_limit_message(message: str, code: Optional[int] = None) -> bool:
    """Return ``True`` when a provider error looks like throttling."""
    if code is not None and code in _RATE_LIMIT_CODES:
        return True
    lowered = (message or "").lower()
    return any(p in lowered for p in _RATE_LIMIT_PATTERNS)


def classify_error(error: Exception) -> ErrorContext:
    """
    Classify an exception and return its error context.

    Already-classified errors keep their context; anything else is
    inspected by message.
    """
    if isinstance(error, (RecoverableError, UnrecoverableError)):
        return error.context

    message = str(error)
    if is_rate_limit_message(message):
        return ErrorContext(category=ErrorCategory.RATE_LIMIT, recoverable=True)

    if "timeout" in message.lower() or "timed out" in message.lower():
        return ErrorContext(category=ErrorCategory.TIMEOUT, recoverable=True)

    return ErrorContext(category=ErrorCategory.UNKNOWN, recoverable=False)


class RefreshInProgressError(RecoverableError):
    """Another recomputation for the same token holds the guard."""

    def __init__(self, token: str):
        super().__init__(
            f"Burn recomputation already running for {token}",
            category=ErrorCategory.AGGREGATION,
            context=ErrorContext(category=ErrorCategory.AGGREGATION, recoverable=True, token=token),
        )
        self.token = token
