"""Retry logic with exponential backoff and jitter

Only transient errors (timeouts, rate limits, 5xx) are retried; everything
else propagates on the first failure.
"""

import asyncio
import random
import logging
from typing import Callable, Any, TypeVar
from functools import wraps
import httpx

from trajectory.resilience.metrics import record_retry

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Retry configuration
MAX_RETRIES = 2
BASE_DELAY = 1.0  # seconds
MAX_DELAY = 10.0  # seconds
JITTER = 0.1  # 10% random jitter

# OpenAI SDK error classes worth retrying (matched by name so callers need not import the SDK)
RETRYABLE_SDK_ERRORS = {"RateLimitError", "APITimeoutError", "APIConnectionError", "InternalServerError"}


def is_retryable_error(exc: Exception) -> bool:
    """
    Determine if error is transient and should be retried.

    Retryable:
    - Network timeouts
    - HTTP 429 and 500/502/503/504
    - OpenAI SDK rate limit, timeout, connection and server errors

    Args:
        exc: The exception to check

    Returns:
        True if error should be retried, False otherwise
    """
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in (429, 500, 502, 503, 504)

    if isinstance(exc, httpx.TimeoutException):
        return True

    return exc.__class__.__name__ in RETRYABLE_SDK_ERRORS


def calculate_backoff(attempt: int) -> float:
    """
    Exponential backoff delay with +/-10% jitter.

    Attempt 0: ~1s, attempt 1: ~2s, attempt 2: ~4s, capped at MAX_DELAY.
    """
    delay = min(BASE_DELAY * (2 ** attempt), MAX_DELAY)
    jitter_amount = random.uniform(-JITTER * delay, JITTER * delay)
    return max(delay + jitter_amount, 0.0)


async def retry_with_backoff(
    func: Callable[..., T],
    *args: Any,
    max_retries: int = MAX_RETRIES,
    **kwargs: Any
) -> T:
    """
    Retry async function with exponential backoff.

    Args:
        func: Async function to retry
        max_retries: Maximum number of retry attempts
        *args, **kwargs: Arguments to pass to func

    Returns:
        Result from func

    Raises:
        Last exception if all retries exhausted or non-retryable error

    Example:
        result = await retry_with_backoff(client.chat.completions.create, **params)
    """
    name = getattr(func, "__name__", repr(func))

    for attempt in range(max_retries + 1):
        try:
            return await func(*args, **kwargs)

        except Exception as e:
            if attempt == max_retries:
                logger.error(f"[RETRY] All {max_retries} retries exhausted for {name}")
                raise

            if not is_retryable_error(e):
                logger.warning(f"[RETRY] Non-retryable error for {name}: {type(e).__name__}: {e}")
                raise

            backoff = calculate_backoff(attempt)
            record_retry(name)

            logger.info(
                f"[RETRY] Attempt {attempt + 1}/{max_retries} for {name} "
                f"after {backoff:.2f}s (error: {type(e).__name__})"
            )
            await asyncio.sleep(backoff)


def with_retry(max_retries: int = MAX_RETRIES) -> Callable:
    """
    Decorator to add retry logic to async functions.

    Example:
        @with_retry(max_retries=2)
        async def call_api():
            ...
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            return await retry_with_backoff(func, *args, max_retries=max_retries, **kwargs)
        return wrapper
    return decorator
