"""
XP and Leveling System

Manages XP awards and level calculations.

Leveling Curve:
- Finishing level N costs floor(100 * 1.5^(N-1)) XP
- Level 1 -> 2: 100 XP, 2 -> 3: 150 XP, 3 -> 4: 225 XP, 4 -> 5: 337 XP, ...
- Level is always derived from total XP; the stored level is a cache

XP Award Rules:
- Habit completion: habit's xp_reward (10 by default)
- First completion of the day: +5 daily login bonus
- Streak milestones: 25-1500 XP
- Achievement unlocks: 25-1000 XP
"""

from typing import Dict, Optional
import logging

from trajectory.db import queries

logger = logging.getLogger(__name__)

BASE_LEVEL_XP = 100
LEVEL_GROWTH = 1.5
MAX_LEVEL = 1000


def xp_required_for_level(level: int) -> int:
    """XP needed to advance from `level` to `level + 1`"""
    if level < 1:
        raise ValueError(f"Level must be >= 1, got {level}")
    return int(BASE_LEVEL_XP * LEVEL_GROWTH ** (level - 1))


def calculate_level_from_xp(total_xp: int) -> Dict[str, any]:
    """
    Calculate level from total XP

    Returns:
        {
            'current_level': int,
            'xp_in_current_level': int,
            'xp_required_for_next_level': int,
            'xp_to_next_level': int,
            'progress_percent': float
        }

    Raises:
        ValueError: total_xp is negative
    """
    if total_xp < 0:
        raise ValueError(f"Total XP must be non-negative, got {total_xp}")

    level = 1
    accumulated = 0
    required = xp_required_for_level(level)

    while level < MAX_LEVEL and accumulated + required <= total_xp:
        accumulated += required
        level += 1
        required = xp_required_for_level(level)

    xp_in_level = total_xp - accumulated

    return {
        "current_level": level,
        "xp_in_current_level": xp_in_level,
        "xp_required_for_next_level": required,
        "xp_to_next_level": max(0, required - xp_in_level),
        "progress_percent": round(min(100.0, xp_in_level / required * 100), 1),
    }


async def award_xp(
    user_id: str,
    amount: int,
    source_type: str,
    source_id: Optional[str] = None,
    reason: str = "Habit completed"
) -> Dict[str, any]:
    """
    Award XP to user and check for level up

    The increment is applied in storage (xp = xp + amount) so concurrent
    awards never lose an update; the level is then derived from the new total.

    Args:
        user_id: User ID
        amount: Amount of XP to award (non-negative)
        source_type: Type of activity (habit, streak_milestone, daily_login, achievement)
        source_id: ID of the source activity (optional)
        reason: Human-readable description

    Returns:
        {
            'xp_awarded': int,
            'old_total_xp': int,
            'new_total_xp': int,
            'old_level': int,
            'new_level': int,
            'leveled_up': bool
        }
    """
    if amount < 0:
        raise ValueError(f"XP amount must be non-negative, got {amount}")

    progress = await queries.get_user_progress(user_id)
    old_level = progress["level"]

    new_total_xp = await queries.add_user_xp(user_id, amount)
    old_total_xp = new_total_xp - amount

    level_info = calculate_level_from_xp(new_total_xp)
    new_level = level_info["current_level"]
    leveled_up = new_level > old_level

    if new_level != old_level:
        await queries.update_user_level(user_id, new_level)

    await queries.add_xp_transaction(
        user_id=user_id,
        amount=amount,
        source_type=source_type,
        source_id=source_id,
        reason=reason
    )

    logger.info(
        f"Awarded {amount} XP to user {user_id} ({source_type}). "
        f"Total: {new_total_xp}, Level: {new_level}"
        + (f" (LEVEL UP from {old_level}!)" if leveled_up else "")
    )

    return {
        "xp_awarded": amount,
        "old_total_xp": old_total_xp,
        "new_total_xp": new_total_xp,
        "old_level": old_level,
        "new_level": new_level,
        "leveled_up": leveled_up,
    }


async def get_user_xp(user_id: str) -> Dict[str, any]:
    """
    Get user's current XP and level info

    Returns:
        {
            'user_id': str,
            'total_xp': int,
            'current_level': int,
            'xp_in_current_level': int,
            'xp_required_for_next_level': int,
            'xp_to_next_level': int,
            'progress_percent': float,
            'current_streak': int,
            'longest_streak': int
        }
    """
    progress = await queries.get_user_progress(user_id)
    level_info = calculate_level_from_xp(progress["total_xp"])

    return {
        "user_id": user_id,
        "total_xp": progress["total_xp"],
        **level_info,
        "current_streak": progress["current_streak"],
        "longest_streak": progress["longest_streak"],
    }
