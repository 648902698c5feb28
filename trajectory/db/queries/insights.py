"""Curated insight data and XP multiplier queries"""
import logging
from typing import Optional

from trajectory.db.connection import db
from trajectory.models.pillar import ALL_PILLARS

logger = logging.getLogger(__name__)

_MULTIPLIER_COLUMNS = [f"{p.value}_multiplier" for p in ALL_PILLARS]


async def get_pillar_correlations(featured_only: bool = True) -> list[dict]:
    """Curated pillar correlations, strongest first"""
    query = """
        SELECT pillar_a, pillar_b, correlation_strength, insight_text
        FROM pillar_correlations
    """
    if featured_only:
        query += " WHERE is_featured"
    query += " ORDER BY correlation_strength DESC"

    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(query)
            return [dict(row) for row in await cur.fetchall()]


async def get_habit_stack_patterns(limit: int = 5) -> list[dict]:
    """Curated habit stacks, best recommendation score first"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT habit_type_a, habit_type_b, pillar_a, pillar_b,
                       combined_completion_rate, suggestion_text, recommendation_score
                FROM habit_stack_patterns
                ORDER BY recommendation_score DESC
                LIMIT %s
                """,
                (limit,)
            )
            return [dict(row) for row in await cur.fetchall()]


async def get_xp_multipliers(user_id: str) -> Optional[dict[str, float]]:
    """
    Stored multiplier overrides

    Returns:
        {'physical': 1.2, ...} or None when the user has no overrides
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"SELECT {', '.join(_MULTIPLIER_COLUMNS)} FROM user_xp_multipliers WHERE user_id = %s",
                (user_id,)
            )
            row = await cur.fetchone()
            if not row:
                return None
            return {p.value: float(row[f"{p.value}_multiplier"]) for p in ALL_PILLARS}


async def upsert_xp_multipliers(user_id: str, multipliers: dict[str, float]) -> None:
    """Store multiplier overrides; pillars not given keep their stored value"""
    columns = [f"{pillar}_multiplier" for pillar in multipliers]
    values = list(multipliers.values())
    updates = ", ".join(f"{c} = EXCLUDED.{c}" for c in columns)

    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                INSERT INTO user_xp_multipliers (user_id, {', '.join(columns)})
                VALUES (%s, {', '.join(['%s'] * len(columns))})
                ON CONFLICT (user_id) DO UPDATE
                SET {updates}, updated_at = CURRENT_TIMESTAMP
                """,
                (user_id, *values)
            )
            await conn.commit()
    logger.info(f"Stored XP multiplier overrides for user {user_id}: {multipliers}")
