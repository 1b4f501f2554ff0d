"""Recovery orchestration: rate-limit retries and directive dispatch."""

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Optional, TypeVar

from flint.analytics.tracker import EventTracker
from flint.models.config import FlintConfig, RecoveryConfig
from flint.models.connection import ConnectionRecord
from flint.models.directive import RecoveryDirective
from flint.models.error import PortalUrlError
from .classifier import ErrorClassifier
from .strategies import ExponentialBackoff, RetryStrategy, Sleep

logger = logging.getLogger(__name__)

T = TypeVar("T")

RetryCallback = Callable[[], Any]
Presenter = Callable[[str, tuple[int, int]], Any]

DEFAULT_VIEWPORT = (800, 600)


class BackoffRetrier:
    """Retries an async operation, but only while it is rate limited.

    Any other failure is re-raised on the spot. When attempts run out, the last
    rate-limit error is re-raised unchanged.
    """

    def __init__(self, strategy: Optional[RetryStrategy] = None):
        """Initialize the retrier.

        Args:
            strategy: Backoff strategy (default: 3 attempts, 1s base, 1s jitter)
        """
        self.strategy = strategy or ExponentialBackoff()
        self.classifier = ErrorClassifier()

    @classmethod
    def from_config(
        cls,
        config: RecoveryConfig,
        sleep: Sleep = asyncio.sleep,
        rng: Callable[[], float] = random.random,
    ) -> "BackoffRetrier":
        return cls(
            ExponentialBackoff(
                max_attempts=config.max_attempts,
                base_delay_ms=config.base_delay_ms,
                max_jitter_ms=config.max_jitter_ms,
                sleep=sleep,
                rng=rng,
            )
        )

    async def retry(
        self,
        operation: Callable[..., Awaitable[T]],
        *args: Any,
        operation_name: str = "operation",
        **kwargs: Any,
    ) -> T:
        """Execute an operation, retrying on rate limiting.

        Only pass idempotent operations.

        Args:
            operation: Async function to execute
            *args: Positional arguments for operation
            operation_name: Name of operation for logging
            **kwargs: Keyword arguments for operation

        Returns:
            Result from operation

        Raises:
            Exception: The first non-rate-limit failure, or the last rate-limit
                failure once attempts are exhausted
        """
        attempt = 0

        while True:
            attempt += 1

            try:
                logger.debug(f"Executing {operation_name} (attempt {attempt})")
                result = await operation(*args, **kwargs)

                if attempt > 1:
                    logger.info(f"{operation_name} succeeded after {attempt} attempts")

                return result

            except Exception as e:
                if not self.classifier.is_rate_limited(e):
                    logger.debug(f"{operation_name} failed with a non-retryable error: {e}")
                    raise

                if not self.strategy.should_retry(attempt):
                    logger.warning(
                        f"{operation_name} still rate limited after {attempt} attempts"
                    )
                    raise

                logger.info(
                    f"{operation_name} rate limited, retrying "
                    f"(attempt {attempt + 1}/{self.strategy.max_attempts})"
                )
                await self.strategy.wait(attempt)


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay_ms: float = 1000,
    *,
    sleep: Sleep = asyncio.sleep,
    rng: Callable[[], float] = random.random,
) -> T:
    """Convenience function for retrying a rate-limited operation.

    Args:
        operation: Zero-argument async function
        max_attempts: Total number of attempts
        base_delay_ms: Base backoff delay in milliseconds
        sleep: Coroutine used to wait, in seconds
        rng: Jitter source

    Returns:
        Result from operation
    """
    strategy = ExponentialBackoff(
        max_attempts=max_attempts,
        base_delay_ms=base_delay_ms,
        sleep=sleep,
        rng=rng,
    )
    return await BackoffRetrier(strategy).retry(operation)


class ScheduledRetry:
    """Owned handle for a delayed retry.

    The callback runs once after the delay unless ``cancel()`` is called first.
    """

    def __init__(
        self,
        callback: RetryCallback,
        delay_ms: int,
        on_settled: Optional[Callable[["ScheduledRetry"], None]] = None,
    ):
        loop = asyncio.get_running_loop()
        self.delay_ms = delay_ms
        self.fired = False
        self.cancelled = False
        self._callback = callback
        self._on_settled = on_settled
        self._done: asyncio.Future = loop.create_future()
        self._timer: Optional[asyncio.TimerHandle] = loop.call_later(delay_ms / 1000, self._fire)

    @property
    def pending(self) -> bool:
        return not (self.fired or self.cancelled)

    def cancel(self) -> bool:
        """Cancel the retry.

        Returns:
            True if the retry was still pending and will now never run
        """
        if not self.pending:
            return False

        self.cancelled = True
        if self._timer:
            self._timer.cancel()
            self._timer = None
        if not self._done.done():
            self._done.set_result(False)
        self._settle()
        logger.debug(f"Cancelled retry scheduled in {self.delay_ms}ms")
        return True

    async def wait(self) -> bool:
        """Wait until the retry has run or been cancelled.

        Returns:
            True if the callback ran, False if it was cancelled

        Raises:
            Exception: Whatever the retry callback raised
        """
        return await asyncio.shield(self._done)

    def _fire(self) -> None:
        self._timer = None
        if self.cancelled:
            return
        self.fired = True
        self._settle()

        try:
            result = self._callback()
        except Exception as e:
            logger.error(f"Scheduled retry callback failed: {e}")
            self._done.set_exception(e)
            return

        if asyncio.iscoroutine(result):
            task = asyncio.ensure_future(result)
            task.add_done_callback(self._finish)
        else:
            self._done.set_result(True)

    def _finish(self, task: asyncio.Future) -> None:
        if task.cancelled():
            self._done.cancel()
        elif task.exception() is not None:
            logger.error(f"Scheduled retry callback failed: {task.exception()}")
            self._done.set_exception(task.exception())
        else:
            self._done.set_result(True)

    def _settle(self) -> None:
        if self._on_settled:
            self._on_settled(self)
            self._on_settled = None


class RecoveryActionDispatcher:
    """Carries out recovery directives.

    Register and reconnect directives open the provider portal. Retry
    directives call the caller's retry callback, immediately or after the
    directive's delay. Delayed retries are returned as ``ScheduledRetry``
    handles and are all cancelled by ``close()``.
    """

    def __init__(
        self,
        portal: Any,
        presenter: Presenter,
        tracker: Optional[EventTracker] = None,
        viewport: tuple[int, int] = DEFAULT_VIEWPORT,
        provider: str = "snaptrade",
    ):
        """Initialize the dispatcher.

        Args:
            portal: Object with ``async get_portal_url(reconnect)``
            presenter: Opens a URL in a new browser context, ``(url, (width, height))``
            tracker: Connection health event tracker
            viewport: Fixed portal window size
            provider: Provider name reported to analytics
        """
        self.portal = portal
        self.presenter = presenter
        self.tracker = tracker or EventTracker()
        self.viewport = viewport
        self.provider = provider
        self.closed = False
        self._portal_requests: dict[Optional[str], asyncio.Task] = {}
        self._scheduled: set[ScheduledRetry] = set()

    @classmethod
    def from_config(
        cls,
        config: FlintConfig,
        presenter: Presenter,
        tracker: Optional[EventTracker] = None,
        portal: Any = None,
    ) -> "RecoveryActionDispatcher":
        from flint.portal.client import PortalClient

        return cls(
            portal=portal or PortalClient(config.portal),
            presenter=presenter,
            tracker=tracker,
            viewport=(config.portal.window_width, config.portal.window_height),
        )

    async def __aenter__(self) -> "RecoveryActionDispatcher":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()

    def is_pending(self, account_id: Optional[str] = None) -> bool:
        """Whether a portal request for this target is in flight."""
        return account_id in self._portal_requests

    @property
    def scheduled_retries(self) -> list[ScheduledRetry]:
        return list(self._scheduled)

    async def dispatch(
        self,
        directive: RecoveryDirective,
        on_retry: Optional[RetryCallback] = None,
        account_id: Optional[str] = None,
    ) -> Optional[ScheduledRetry]:
        """Act on a directive.

        Args:
            directive: Directive from the classifier
            on_retry: Retry callback (sync or async), required for retry directives
            account_id: Connection to reconnect, if any

        Returns:
            Handle for a delayed retry, otherwise None

        Raises:
            PortalUrlError: If no portal URL could be obtained
            ValueError: If a retry directive arrives without a callback
        """
        if self.closed:
            raise RuntimeError("Dispatcher is closed")

        if directive.needs_portal:
            await self.open_portal(account_id)
            return None

        if on_retry is None:
            raise ValueError(f"{directive.action.value} directive needs a retry callback")

        if not directive.retry_delay_ms:
            logger.debug("Retrying immediately")
            result = on_retry()
            if asyncio.iscoroutine(result):
                await result
            return None

        return self.schedule_retry(on_retry, directive.retry_delay_ms)

    def schedule_retry(self, callback: RetryCallback, delay_ms: int) -> ScheduledRetry:
        """Schedule a single delayed retry on the running loop."""
        if self.closed:
            raise RuntimeError("Dispatcher is closed")

        handle = ScheduledRetry(callback, delay_ms, on_settled=self._scheduled.discard)
        self._scheduled.add(handle)
        logger.debug(f"Retry scheduled in {delay_ms}ms")
        return handle

    async def reconnect(self, connection: ConnectionRecord) -> str:
        """Open the reconnect portal for a connection."""
        return await self.open_portal(connection.id)

    async def open_portal(self, account_id: Optional[str] = None) -> str:
        """Fetch a portal URL and present it.

        Concurrent calls for the same target share a single request, and the
        portal is presented once.

        Args:
            account_id: Connection to reconnect, or None for registration

        Returns:
            The portal URL

        Raises:
            PortalUrlError: If no portal URL could be obtained
        """
        await self.tracker.track_reconnect_clicked(account_id, self.provider)

        task = self._portal_requests.get(account_id)
        if task is None:
            task = asyncio.ensure_future(self._fetch_and_present(account_id))
            self._portal_requests[account_id] = task
            task.add_done_callback(lambda _: self._portal_requests.pop(account_id, None))
        else:
            logger.debug(f"Joining in-flight portal request (reconnect={account_id})")

        return await asyncio.shield(task)

    async def _fetch_and_present(self, account_id: Optional[str]) -> str:
        try:
            url = await self.portal.get_portal_url(account_id)
        except Exception as e:
            logger.error(f"Failed to get portal URL (reconnect={account_id}): {e}")
            await self.tracker.track_reconnect_failed(account_id, self.provider, str(e))
            if isinstance(e, PortalUrlError):
                raise
            raise PortalUrlError(f"Could not get portal URL: {e}", account_id) from e

        try:
            result = self.presenter(url, self.viewport)
            if asyncio.iscoroutine(result):
                await result
        except Exception as e:
            logger.error(f"Failed to open portal (reconnect={account_id}): {e}")
            await self.tracker.track_reconnect_failed(account_id, self.provider, str(e))
            raise PortalUrlError(f"Could not open portal: {e}", account_id) from e

        await self.tracker.track_reconnect_success(account_id, self.provider)
        return url

    def close(self) -> None:
        """Cancel every pending retry and portal request."""
        self.closed = True
        for handle in list(self._scheduled):
            handle.cancel()
        for task in list(self._portal_requests.values()):
            task.cancel()
        self._portal_requests.clear()
