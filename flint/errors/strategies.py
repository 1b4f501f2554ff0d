"""Retry strategies for rate-limited provider calls."""

import asyncio
import random
from abc import ABC, abstractmethod
from typing import Awaitable, Callable
import logging

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class RetryStrategy(ABC):
    """Base class for retry strategies."""

    def __init__(self, max_attempts: int = 3, sleep: Sleep = asyncio.sleep):
        """Initialize retry strategy.

        Args:
            max_attempts: Total number of attempts, including the first call
            sleep: Coroutine used to wait, in seconds (injectable for tests)
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.sleep = sleep

    @abstractmethod
    def delay_ms(self, attempt: int) -> float:
        """Delay before the retry that follows a failed attempt.

        Args:
            attempt: Failed attempt number (1-indexed)
        """

    async def wait(self, attempt: int) -> float:
        """Wait before the next attempt.

        Args:
            attempt: Failed attempt number (1-indexed)

        Returns:
            The delay waited, in milliseconds
        """
        delay = self.delay_ms(attempt)
        await self.sleep(delay / 1000)
        return delay

    def should_retry(self, attempt: int) -> bool:
        """Check if we should retry.

        Args:
            attempt: Current attempt number (1-indexed)

        Returns:
            True if we should retry
        """
        return attempt < self.max_attempts


class ExponentialBackoff(RetryStrategy):
    """Exponential backoff with additive jitter.

    The wait after failed attempt ``n`` is
    ``base_delay_ms * 2 ** (n - 1) + U(0, max_jitter_ms)``.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay_ms: float = 1000,
        max_jitter_ms: float = 1000,
        sleep: Sleep = asyncio.sleep,
        rng: Callable[[], float] = random.random,
    ):
        """Initialize exponential backoff strategy.

        Args:
            max_attempts: Total number of attempts, including the first call
            base_delay_ms: Base delay in milliseconds
            max_jitter_ms: Upper bound of the random jitter in milliseconds
            sleep: Coroutine used to wait, in seconds
            rng: Source of uniform values in [0, 1)
        """
        super().__init__(max_attempts, sleep)
        self.base_delay_ms = base_delay_ms
        self.max_jitter_ms = max_jitter_ms
        self.rng = rng

    def delay_ms(self, attempt: int) -> float:
        delay = self.base_delay_ms * (2 ** (attempt - 1))
        delay += self.rng() * self.max_jitter_ms
        logger.debug(f"Exponential backoff: {delay:.0f}ms after attempt {attempt}")
        return delay
