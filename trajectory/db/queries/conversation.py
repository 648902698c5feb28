"""Coach conversation database queries"""
import logging
from datetime import datetime

from trajectory.db.connection import db

logger = logging.getLogger(__name__)


async def save_coach_messages(user_id: str, messages: list[dict]) -> None:
    """
    Append messages to the coach log in one transaction

    Args:
        user_id: User ID
        messages: [{'role': 'user' | 'assistant', 'content': str, 'timestamp': datetime}, ...]
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.executemany(
                """
                INSERT INTO coach_messages (user_id, role, content, created_at)
                VALUES (%s, %s, %s, %s)
                """,
                [(user_id, m["role"], m["content"], m["timestamp"]) for m in messages]
            )
            await conn.commit()
    logger.debug(f"Saved {len(messages)} coach messages for user {user_id}")


async def count_user_messages_between(user_id: str, start: datetime, end: datetime) -> int:
    """Number of user-authored messages in [start, end)"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT COUNT(*) AS count
                FROM coach_messages
                WHERE user_id = %s AND role = 'user'
                  AND created_at >= %s AND created_at < %s
                """,
                (user_id, start, end)
            )
            row = await cur.fetchone()
            return row["count"] if row else 0


async def get_recent_coach_messages(user_id: str, limit: int = 10) -> list[dict]:
    """
    Most recent coach turns, returned oldest first

    Returns:
        [{'role': str, 'content': str, 'timestamp': datetime}, ...]
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT role, content, created_at AS timestamp
                FROM coach_messages
                WHERE user_id = %s
                ORDER BY created_at DESC, id DESC
                LIMIT %s
                """,
                (user_id, limit)
            )
            rows = [dict(row) for row in await cur.fetchall()]
            return list(reversed(rows))
