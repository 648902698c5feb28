"""Prometheus metrics for the coach LLM, its retries and gamification events

Exposed on /metrics for scraping by Prometheus.
"""

import logging
from prometheus_client import Counter, Gauge, Histogram

logger = logging.getLogger(__name__)


# Labels: api, status (success/failure)
api_calls_total = Counter(
    'trajectory_api_calls_total',
    'Total number of external API calls',
    ['api', 'status']
)

api_call_duration = Histogram(
    'trajectory_api_call_duration_seconds',
    'Duration of external API calls in seconds',
    ['api'],
    buckets=(0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, float('inf'))
)

# Labels: api, error_type (APITimeoutError/RateLimitError/etc)
api_failures_total = Counter(
    'trajectory_api_failures_total',
    'Total number of external API failures',
    ['api', 'error_type']
)

api_retries_total = Counter(
    'trajectory_api_retries_total',
    'Total number of retry attempts',
    ['api']
)


def record_api_call(api: str, success: bool, duration: float) -> None:
    """
    Record API call metrics.

    Args:
        api: API name (groq_coach)
        success: Whether the call succeeded
        duration: Call duration in seconds
    """
    api_calls_total.labels(api=api, status="success" if success else "failure").inc()
    api_call_duration.labels(api=api).observe(duration)


def record_api_failure(api: str, error_type: str) -> None:
    api_failures_total.labels(api=api, error_type=error_type).inc()


def record_retry(api: str) -> None:
    api_retries_total.labels(api=api).inc()


# Gamification events
habit_completions_total = Counter(
    'trajectory_habit_completions_total',
    'Habit completions recorded',
    ['pillar']
)

achievements_unlocked_total = Counter(
    'trajectory_achievements_unlocked_total',
    'Achievements unlocked',
    ['achievement']
)

# Labels: outcome (replied/rate_limited/unavailable)
coach_messages_total = Counter(
    'trajectory_coach_messages_total',
    'Coach chat turns by outcome',
    ['outcome']
)

# Refreshed on each scrape from the connection pool
db_pool_connections = Gauge(
    'trajectory_db_pool_connections',
    'Database pool connections',
    ['state']
)


def record_habit_completion(pillar: str) -> None:
    habit_completions_total.labels(pillar=pillar).inc()


def record_achievement_unlock(achievement_key: str) -> None:
    achievements_unlocked_total.labels(achievement=achievement_key).inc()


def record_coach_message(outcome: str) -> None:
    coach_messages_total.labels(outcome=outcome).inc()


def update_pool_gauges(stats: dict) -> None:
    """
    Copy psycopg_pool statistics into the pool gauge.

    Args:
        stats: AsyncConnectionPool.get_stats() output (empty when the pool is closed)
    """
    db_pool_connections.labels(state="size").set(stats.get("pool_size", 0))
    db_pool_connections.labels(state="available").set(stats.get("pool_available", 0))
    db_pool_connections.labels(state="waiting").set(stats.get("requests_waiting", 0))
