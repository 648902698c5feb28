"""Habit and completion database queries"""
import logging
from datetime import date, datetime
from typing import Optional

from psycopg import errors

from trajectory.db.connection import db
from trajectory.exceptions import AlreadyCompletedError

logger = logging.getLogger(__name__)


# ==========================================
# Habits
# ==========================================

async def get_habit(user_id: str, habit_id: str) -> Optional[dict]:
    """Get a habit owned by the user, or None"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT id::text AS id, user_id, pillar, name, description, frequency,
                       target_days, xp_reward, archived
                FROM habits
                WHERE id = %s AND user_id = %s
                """,
                (habit_id, user_id)
            )
            row = await cur.fetchone()
            return dict(row) if row else None


async def get_active_habits(user_id: str) -> list[dict]:
    """Get all non-archived habits of a user"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT id::text AS id, user_id, pillar, name, description, frequency,
                       target_days, xp_reward, archived
                FROM habits
                WHERE user_id = %s AND NOT archived
                ORDER BY created_at
                """,
                (user_id,)
            )
            return [dict(row) for row in await cur.fetchall()]


async def get_recent_habit_names(user_id: str, limit: int = 5) -> list[str]:
    """Names of the user's most recently created active habits"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT name
                FROM habits
                WHERE user_id = %s AND NOT archived
                ORDER BY created_at DESC
                LIMIT %s
                """,
                (user_id, limit)
            )
            return [row["name"] for row in await cur.fetchall()]


# ==========================================
# Completions
# ==========================================

async def get_completion_on_day(habit_id: str, user_id: str, day: date) -> Optional[dict]:
    """Get the completion of a habit on a calendar day, if any"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT id::text AS id, habit_id::text AS habit_id, user_id, completed_at, notes
                FROM habit_completions
                WHERE habit_id = %s AND user_id = %s AND completed_on = %s
                """,
                (habit_id, user_id, day)
            )
            row = await cur.fetchone()
            return dict(row) if row else None


async def insert_completion(
    habit_id: str,
    user_id: str,
    completed_at: datetime,
    completed_on: date,
    notes: Optional[str] = None
) -> dict:
    """
    Insert a habit completion

    Raises:
        AlreadyCompletedError: a completion for (habit, user, day) already exists
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            try:
                await cur.execute(
                    """
                    INSERT INTO habit_completions
                    (habit_id, user_id, completed_at, completed_on, notes)
                    VALUES (%s, %s, %s, %s, %s)
                    RETURNING id::text AS id, habit_id::text AS habit_id, user_id, completed_at, notes
                    """,
                    (habit_id, user_id, completed_at, completed_on, notes)
                )
            except errors.UniqueViolation as e:
                await conn.rollback()
                raise AlreadyCompletedError(
                    habit_id=str(habit_id),
                    day=completed_on.isoformat(),
                    user_id=user_id,
                    operation="insert_completion",
                    cause=e,
                ) from e
            row = await cur.fetchone()
            await conn.commit()

            logger.info(f"Recorded completion of habit {habit_id} for user {user_id} on {completed_on}")
            return dict(row)


async def count_completions_on_day(user_id: str, day: date) -> int:
    """Number of completions (any habit) the user has on a calendar day"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT COUNT(*) AS count
                FROM habit_completions
                WHERE user_id = %s AND completed_on = %s
                """,
                (user_id, day)
            )
            row = await cur.fetchone()
            return row["count"] if row else 0


async def get_completion_days(user_id: str, since: date) -> list[date]:
    """Distinct calendar days on or after `since` with at least one completion"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT DISTINCT completed_on
                FROM habit_completions
                WHERE user_id = %s AND completed_on >= %s
                ORDER BY completed_on DESC
                """,
                (user_id, since)
            )
            return [row["completed_on"] for row in await cur.fetchall()]


async def get_completions_since(user_id: str, since: datetime) -> list[dict]:
    """
    Completions of the user's active habits since a UTC instant

    Returns:
        [{'habit_id', 'pillar', 'completed_at'}, ...]
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT c.habit_id::text AS habit_id, h.pillar, c.completed_at
                FROM habit_completions c
                JOIN habits h ON h.id = c.habit_id
                WHERE c.user_id = %s AND NOT h.archived AND c.completed_at >= %s
                ORDER BY c.completed_at
                """,
                (user_id, since)
            )
            return [dict(row) for row in await cur.fetchall()]


async def get_completion_times_since(user_id: str, since: datetime) -> list[datetime]:
    """Instants of every completion since a UTC instant, archived habits included"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT completed_at
                FROM habit_completions
                WHERE user_id = %s AND completed_at >= %s
                ORDER BY completed_at
                """,
                (user_id, since)
            )
            return [row["completed_at"] for row in await cur.fetchall()]


async def count_completions_by_pillar(user_id: str) -> dict[str, int]:
    """Lifetime completion counts per pillar, archived habits included"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT h.pillar, COUNT(*) AS count
                FROM habit_completions c
                JOIN habits h ON h.id = c.habit_id
                WHERE c.user_id = %s
                GROUP BY h.pillar
                """,
                (user_id,)
            )
            return {row["pillar"]: row["count"] for row in await cur.fetchall()}


async def get_pillars_completed_on_day(user_id: str, day: date) -> list[str]:
    """Pillars with at least one completion on a calendar day"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT DISTINCT h.pillar
                FROM habit_completions c
                JOIN habits h ON h.id = c.habit_id
                WHERE c.user_id = %s AND c.completed_on = %s
                """,
                (user_id, day)
            )
            return [row["pillar"] for row in await cur.fetchall()]


async def count_completed_readings(user_id: str) -> int:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT COUNT(*) AS count
                FROM reading_progress
                WHERE user_id = %s AND completed
                """,
                (user_id,)
            )
            row = await cur.fetchone()
            return row["count"] if row else 0
