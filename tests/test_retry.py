"""Tests for the bounded retry combinator and backoff helpers."""

import asyncio

import pytest

from src.overuse.exceptions import RetryExhaustedError
from src.overuse.utils.retry_utils import BackoffStrategy, compute_backoff_delay, is_rate_limit_error, with_retry


def test_succeeds_on_second_attempt(recording_sleep):
    seen = []

    async def task(attempt):
        seen.append(attempt)
        if attempt == 1:
            raise RuntimeError("flaky")
        return "ok"

    result = asyncio.run(with_retry(task, attempts=3, backoff=0.8, sleep=recording_sleep))
    assert result == "ok"
    assert seen == [1, 2]
    assert recording_sleep.delays == [0.8]


def test_linear_delays_grow_then_exhaust(recording_sleep):
    async def task(attempt):
        raise RuntimeError(f"fail {attempt}")

    with pytest.raises(RetryExhaustedError) as info:
        asyncio.run(with_retry(task, attempts=3, backoff=1.0, label="login", sleep=recording_sleep))
    assert recording_sleep.delays == [1.0, 2.0]
    assert info.value.label == "login"
    assert info.value.attempts == 3
    assert str(info.value.last_error) == "fail 3"
    assert isinstance(info.value.__cause__, RuntimeError)


def test_non_retryable_error_is_raised_immediately(recording_sleep):
    calls = []

    async def task(attempt):
        calls.append(attempt)
        raise KeyError("fatal")

    with pytest.raises(KeyError):
        asyncio.run(
            with_retry(task, attempts=5, is_retryable=lambda e: not isinstance(e, KeyError), sleep=recording_sleep)
        )
    assert calls == [1]
    assert recording_sleep.delays == []


def test_rate_limit_waits_at_least_a_minute(recording_sleep):
    async def task(attempt):
        if attempt == 1:
            raise RuntimeError("429 Too Many Requests")
        return attempt

    assert asyncio.run(with_retry(task, attempts=2, backoff=0.5, sleep=recording_sleep)) == 2
    assert recording_sleep.delays == [60.0]


@pytest.mark.parametrize(
    "strategy,attempt,expected",
    [
        (BackoffStrategy.FIXED, 3, 1.0),
        (BackoffStrategy.LINEAR, 0, 1.0),
        (BackoffStrategy.LINEAR, 2, 3.0),
        (BackoffStrategy.EXPONENTIAL, 3, 8.0),
        (BackoffStrategy.EXPONENTIAL, 10, 60.0),
    ],
)
def test_compute_backoff_delay(strategy, attempt, expected):
    assert compute_backoff_delay(attempt, initial_delay=1.0, strategy=strategy) == expected


def test_is_rate_limit_error():
    assert is_rate_limit_error(Exception("Rate limit reached"))
    assert not is_rate_limit_error(Exception("timeout"))
