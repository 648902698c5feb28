"""Resilience patterns for external API calls

Retry with exponential backoff and Prometheus metrics for the coach LLM.
"""

from trajectory.resilience.retry import retry_with_backoff, with_retry, is_retryable_error
from trajectory.resilience.metrics import (
    record_api_call,
    record_api_failure,
    record_retry,
)

__all__ = [
    # Retry
    "retry_with_backoff",
    "with_retry",
    "is_retryable_error",
    # Metrics
    "record_api_call",
    "record_api_failure",
    "record_retry",
]
