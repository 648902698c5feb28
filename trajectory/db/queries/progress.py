"""User progress (XP, level, streak) database queries"""
import logging
from typing import Optional

from trajectory.db.connection import db

logger = logging.getLogger(__name__)

_PROGRESS_COLUMNS = "user_id, xp_points AS total_xp, level, current_streak, longest_streak, tier"


async def get_user_progress(user_id: str) -> dict:
    """
    Get user gamification state (creates the profile if it doesn't exist)

    Returns:
        {
            'user_id': str,
            'total_xp': int,
            'level': int,
            'current_streak': int,
            'longest_streak': int,
            'tier': str
        }
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"SELECT {_PROGRESS_COLUMNS} FROM user_profiles WHERE user_id = %s",
                (user_id,)
            )
            row = await cur.fetchone()

            if not row:
                await cur.execute(
                    f"""
                    INSERT INTO user_profiles (user_id)
                    VALUES (%s)
                    ON CONFLICT (user_id) DO UPDATE SET user_id = EXCLUDED.user_id
                    RETURNING {_PROGRESS_COLUMNS}
                    """,
                    (user_id,)
                )
                row = await cur.fetchone()
                await conn.commit()
                logger.info(f"Created progress record for user {user_id}")

            return dict(row)


async def update_user_streak(user_id: str, current_streak: int, longest_streak: int) -> None:
    """Persist the recalculated streak fields"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                UPDATE user_profiles
                SET current_streak = %s,
                    longest_streak = %s,
                    updated_at = CURRENT_TIMESTAMP
                WHERE user_id = %s
                """,
                (current_streak, longest_streak, user_id)
            )
            await conn.commit()


async def add_user_xp(user_id: str, amount: int) -> int:
    """
    Add XP atomically

    Returns:
        New total XP
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                UPDATE user_profiles
                SET xp_points = xp_points + %s,
                    updated_at = CURRENT_TIMESTAMP
                WHERE user_id = %s
                RETURNING xp_points
                """,
                (amount, user_id)
            )
            row = await cur.fetchone()
            await conn.commit()
            return row["xp_points"]


async def update_user_level(user_id: str, level: int) -> None:
    """Write back the cached level derived from total XP"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                "UPDATE user_profiles SET level = %s WHERE user_id = %s",
                (level, user_id)
            )
            await conn.commit()


async def add_xp_transaction(
    user_id: str,
    amount: int,
    source_type: str,
    source_id: Optional[str] = None,
    reason: Optional[str] = None
) -> None:
    """Append an entry to the XP ledger"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                INSERT INTO xp_transactions (user_id, amount, source_type, source_id, reason)
                VALUES (%s, %s, %s, %s, %s)
                """,
                (user_id, amount, source_type, source_id, reason)
            )
            await conn.commit()


async def get_onboarding_data(user_id: str) -> Optional[dict]:
    """Raw onboarding answers as stored by the web client"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                "SELECT onboarding_data FROM user_profiles WHERE user_id = %s",
                (user_id,)
            )
            row = await cur.fetchone()
            return row["onboarding_data"] if row else None
