"""Tests for rate-limit backoff and retries."""

import asyncio

import pytest

from flint.errors.recovery import BackoffRetrier, retry_with_backoff
from flint.errors.strategies import ExponentialBackoff
from flint.models.config import RecoveryConfig
from flint.models.error import ErrorCode, ProviderAPIError


class FakeSleep:
    """Records requested waits instead of sleeping."""

    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class FlakyOperation:
    """Fails with the given errors in order, then returns a value."""

    def __init__(self, errors, value="ok"):
        self.errors = list(errors)
        self.value = value
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.value


def rate_limited(message="slow down") -> ProviderAPIError:
    return ProviderAPIError.from_code(ErrorCode.RATE_LIMITED, message, http_status=429)


def test_exponential_delays_without_jitter():
    strategy = ExponentialBackoff(max_attempts=5, base_delay_ms=1000, rng=lambda: 0.0)

    assert [strategy.delay_ms(n) for n in (1, 2, 3, 4)] == [1000, 2000, 4000, 8000]


def test_jitter_is_bounded():
    low = ExponentialBackoff(base_delay_ms=1000, max_jitter_ms=1000, rng=lambda: 0.0)
    high = ExponentialBackoff(base_delay_ms=1000, max_jitter_ms=1000, rng=lambda: 0.999)

    assert low.delay_ms(2) == 2000
    assert 2000 <= high.delay_ms(2) < 3000


def test_should_retry_counts_total_attempts():
    strategy = ExponentialBackoff(max_attempts=3)

    assert strategy.should_retry(1)
    assert strategy.should_retry(2)
    assert not strategy.should_retry(3)


def test_max_attempts_must_be_positive():
    with pytest.raises(ValueError):
        ExponentialBackoff(max_attempts=0)


def test_success_returns_without_waiting():
    sleep = FakeSleep()
    operation = FlakyOperation([])
    retrier = BackoffRetrier(ExponentialBackoff(sleep=sleep))

    assert asyncio.run(retrier.retry(operation)) == "ok"
    assert operation.calls == 1
    assert sleep.calls == []


def test_two_rate_limits_then_success():
    sleep = FakeSleep()
    operation = FlakyOperation([rate_limited(), rate_limited()], value=42)
    retrier = BackoffRetrier(ExponentialBackoff(max_attempts=3, base_delay_ms=1000, sleep=sleep, rng=lambda: 0.5))

    assert asyncio.run(retrier.retry(operation, operation_name="holdings")) == 42
    assert operation.calls == 3
    assert sleep.calls == [1.5, 2.5]


def test_non_rate_limit_error_is_not_retried():
    sleep = FakeSleep()
    error = ProviderAPIError.from_code(ErrorCode.SIGNATURE_INVALID, "expired")
    operation = FlakyOperation([error])
    retrier = BackoffRetrier(ExponentialBackoff(sleep=sleep))

    with pytest.raises(ProviderAPIError) as exc_info:
        asyncio.run(retrier.retry(operation))

    assert exc_info.value is error
    assert operation.calls == 1
    assert sleep.calls == []


def test_transport_error_is_not_retried():
    sleep = FakeSleep()
    operation = FlakyOperation([ConnectionError("reset")])

    with pytest.raises(ConnectionError):
        asyncio.run(BackoffRetrier(ExponentialBackoff(sleep=sleep)).retry(operation))

    assert operation.calls == 1


def test_exhausted_attempts_raise_last_rate_limit_error():
    sleep = FakeSleep()
    errors = [rate_limited("first"), rate_limited("second"), rate_limited("third")]
    last = errors[-1]
    operation = FlakyOperation(errors)
    retrier = BackoffRetrier(ExponentialBackoff(max_attempts=3, sleep=sleep, rng=lambda: 0.0))

    with pytest.raises(ProviderAPIError) as exc_info:
        asyncio.run(retrier.retry(operation))

    assert exc_info.value is last
    assert operation.calls == 3
    assert sleep.calls == [1.0, 2.0]


def test_arguments_are_forwarded():
    async def fetch(account_id, *, limit):
        return f"{account_id}:{limit}"

    retrier = BackoffRetrier(ExponentialBackoff(sleep=FakeSleep()))

    assert asyncio.run(retrier.retry(fetch, "acc-1", limit=10)) == "acc-1:10"


def test_from_config():
    sleep = FakeSleep()
    retrier = BackoffRetrier.from_config(
        RecoveryConfig(max_attempts=2, base_delay_ms=100, max_jitter_ms=0), sleep=sleep
    )
    operation = FlakyOperation([rate_limited(), rate_limited()])

    with pytest.raises(ProviderAPIError):
        asyncio.run(retrier.retry(operation))

    assert operation.calls == 2
    assert sleep.calls == [0.1]


def test_retry_with_backoff_helper():
    sleep = FakeSleep()
    operation = FlakyOperation([rate_limited()], value="done")

    result = asyncio.run(
        retry_with_backoff(operation, max_attempts=3, base_delay_ms=1000, sleep=sleep, rng=lambda: 0.0)
    )

    assert result == "done"
    assert sleep.calls == [1.0]
