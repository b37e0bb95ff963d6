"""
Recovery Strategies

Retry policies used around individual upstream calls.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Coroutine, Optional, Tuple, Type, TypeVar

from .errors import RateLimitError, RecoverableError, UnrecoverableError

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_attempts: int = 3
    initial_delay_seconds: float = 1.0
    max_delay_seconds: float = 30.0
    exponential_base: float = 2.0
    jitter: bool = False
    jitter_factor: float = 0.1

    def get_delay(self, attempt: int) -> float:
        """Calculate delay for a given attempt number (0-based)."""
        delay = min(
            self.initial_delay_seconds * (self.exponential_base ** attempt),
            self.max_delay_seconds,
        )
        if self.jitter:
            jitter_range = delay * self.jitter_factor
            delay += random.uniform(-jitter_range, jitter_range)
        return max(delay, 0)


class RetryStrategy:
    """
    Retry an operation when it raises one of ``retry_on``.

    Anything else propagates on the first failure. When attempts run out the
    last error is re-raised unchanged.
    """

    def __init__(
        self,
        config: Optional[RetryConfig] = None,
        retry_on: Tuple[Type[Exception], ...] = (RecoverableError,),
        logger: Optional[logging.Logger] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.config = config or RetryConfig()
        self.retry_on = retry_on
        self.logger = logger or logging.getLogger(__name__)
        self._sleep = sleep

    async def execute(self, operation: Callable[[], Coroutine[Any, Any, T]]) -> T:
        for attempt in range(self.config.max_attempts):
            try:
                return await operation()
            except Exception as e:
                if not self.should_retry(e, attempt):
                    raise

                delay = self.config.get_delay(attempt)
                self.logger.warning(
                    f"Attempt {attempt + 1}/{self.config.max_attempts} failed: {e}. "
                    f"Retrying in {delay:.1f}s"
                )
                await self._sleep(delay)

        # max_attempts < 1 never enters the loop
        raise RuntimeError("All retry attempts exhausted")

    def should_retry(self, error: Exception, attempt: int) -> bool:
        if attempt >= self.config.max_attempts - 1:
            return False

        if isinstance(error, UnrecoverableError):
            return False

        return isinstance(error, self.retry_on)


class ExponentialBackoffStrategy(RetryStrategy):
    """
    Retry rate-limited calls with exponential backoff.

    Defaults: 3 attempts, 1s base delay, doubling.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        initial_delay: float = 1.0,
        max_delay: float = 30.0,
        exponential_base: float = 2.0,
        logger: Optional[logging.Logger] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        config = RetryConfig(
            max_attempts=max_attempts,
            initial_delay_seconds=initial_delay,
            max_delay_seconds=max_delay,
            exponential_base=exponential_base,
        )
        super().__init__(config, retry_on=(RateLimitError,), logger=logger, sleep=sleep)
