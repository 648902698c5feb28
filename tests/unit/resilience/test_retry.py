"""Unit tests for retry logic"""
import pytest
import httpx
from unittest.mock import patch

from trajectory.resilience.retry import (
    MAX_DELAY,
    calculate_backoff,
    is_retryable_error,
    retry_with_backoff,
    with_retry,
)


@pytest.fixture(autouse=True)
def no_backoff():
    """Retry immediately"""
    with patch("trajectory.resilience.retry.calculate_backoff", return_value=0.0):
        yield


def _status_error(code):
    request = httpx.Request("POST", "https://api.groq.com/openai/v1/chat/completions")
    return httpx.HTTPStatusError("Error", request=request, response=httpx.Response(code, request=request))


class RateLimitError(Exception):
    """Same name as the OpenAI SDK class"""


def test_is_retryable_error_timeout():
    assert is_retryable_error(httpx.TimeoutException("Timeout")) is True
    assert is_retryable_error(httpx.ReadTimeout("Read timeout")) is True


@pytest.mark.parametrize("code,expected", [
    (429, True), (500, True), (502, True), (503, True), (504, True),
    (400, False), (401, False), (404, False), (422, False),
])
def test_is_retryable_error_http_status(code, expected):
    assert is_retryable_error(_status_error(code)) is expected


def test_is_retryable_error_sdk_names():
    assert is_retryable_error(RateLimitError("slow down")) is True


def test_is_retryable_error_non_retryable():
    assert is_retryable_error(ValueError("Bad value")) is False
    assert is_retryable_error(httpx.ConnectError("refused")) is False


def test_calculate_backoff_growth():
    """1s, 2s, 4s, 8s without jitter"""
    with patch("trajectory.resilience.retry.random.uniform", return_value=0.0):
        delays = [calculate_backoff(n) for n in range(4)]

    assert delays == [1.0, 2.0, 4.0, 8.0]


def test_calculate_backoff_jitter_bounds():
    delay = calculate_backoff(1)

    assert 1.8 <= delay <= 2.2


def test_calculate_backoff_max_delay():
    assert calculate_backoff(20) <= MAX_DELAY * 1.1


@pytest.mark.asyncio
async def test_retry_success_first_try():
    calls = 0

    async def succeed():
        nonlocal calls
        calls += 1
        return "ok"

    assert await retry_with_backoff(succeed, max_retries=3) == "ok"
    assert calls == 1


@pytest.mark.asyncio
async def test_retry_success_after_transient_failures():
    attempt = 0

    async def flaky():
        nonlocal attempt
        attempt += 1
        if attempt < 3:
            raise httpx.TimeoutException("Simulated timeout")
        return "ok"

    assert await retry_with_backoff(flaky, max_retries=3) == "ok"
    assert attempt == 3


@pytest.mark.asyncio
async def test_retry_exhausted():
    attempt = 0

    async def always_fails():
        nonlocal attempt
        attempt += 1
        raise _status_error(503)

    with pytest.raises(httpx.HTTPStatusError):
        await retry_with_backoff(always_fails, max_retries=2)

    assert attempt == 3


@pytest.mark.asyncio
async def test_non_retryable_not_retried():
    attempt = 0

    async def bad_request():
        nonlocal attempt
        attempt += 1
        raise ValueError("Non-retryable")

    with pytest.raises(ValueError):
        await retry_with_backoff(bad_request, max_retries=3)

    assert attempt == 1


@pytest.mark.asyncio
async def test_with_retry_decorator():
    attempt = 0

    @with_retry(max_retries=2)
    async def flaky():
        nonlocal attempt
        attempt += 1
        if attempt < 2:
            raise RateLimitError("slow down")
        return "ok"

    assert await flaky() == "ok"
    assert attempt == 2
