"""Achievement unlock database queries"""
import logging
from typing import Optional

from trajectory.db.connection import db

logger = logging.getLogger(__name__)


async def get_user_achievement_unlocks(user_id: str) -> list[dict]:
    """
    All unlocked achievements of a user

    Returns:
        [{'achievement_key': str, 'unlocked_at': datetime}, ...] oldest first
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT achievement_key, unlocked_at
                FROM user_achievements
                WHERE user_id = %s
                ORDER BY unlocked_at
                """,
                (user_id,)
            )
            return [dict(row) for row in await cur.fetchall()]


async def add_user_achievement(user_id: str, achievement_key: str) -> Optional[dict]:
    """
    Record an unlock

    Returns:
        The inserted row, or None when the user already had it
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                INSERT INTO user_achievements (user_id, achievement_key)
                VALUES (%s, %s)
                ON CONFLICT (user_id, achievement_key) DO NOTHING
                RETURNING achievement_key, unlocked_at
                """,
                (user_id, achievement_key)
            )
            row = await cur.fetchone()
            await conn.commit()

            if row:
                logger.info(f"User {user_id} unlocked achievement {achievement_key}")
            return dict(row) if row else None
