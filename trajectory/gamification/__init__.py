"""
Gamification system for Trajectory

XP and leveling, daily streaks with milestone bonuses, and the achievement
catalog. The habit completion orchestrator in trajectory.services ties them
together.
"""

from trajectory.gamification.xp_system import (
    award_xp,
    get_user_xp,
    calculate_level_from_xp,
    xp_required_for_level,
)
from trajectory.gamification.streak_system import (
    calculate_current_streak,
    get_streak_bonus_xp,
    update_streak,
    is_first_completion_today,
)
from trajectory.gamification.achievement_system import (
    ACHIEVEMENTS,
    evaluate_achievements,
    newly_unlocked,
    check_and_award_achievements,
    get_user_achievements,
)

__all__ = [
    "award_xp",
    "get_user_xp",
    "calculate_level_from_xp",
    "xp_required_for_level",
    "calculate_current_streak",
    "get_streak_bonus_xp",
    "update_streak",
    "is_first_completion_today",
    "ACHIEVEMENTS",
    "evaluate_achievements",
    "newly_unlocked",
    "check_and_award_achievements",
    "get_user_achievements",
]
