"""
ProgressService - progress snapshot for dashboards

Combines the XP/level snapshot, streak summary and today's habit stats
with a motivational line.
"""

import logging
from typing import Any, Dict

from trajectory.db import queries
from trajectory.gamification.daily_progress import calculate_daily_stats, get_motivational_message
from trajectory.gamification.streak_system import format_streak_display
from trajectory.gamification.xp_system import get_user_xp
from trajectory.utils.datetime_helpers import day_bounds_utc, today_local

logger = logging.getLogger(__name__)


class ProgressService:
    """Service for read-only progress views."""

    def __init__(self, db_connection):
        self.db = db_connection
        logger.debug("ProgressService initialized")

    async def get_progress(self, user_id: str) -> Dict[str, Any]:
        """
        Current progress for a user.

        Returns:
            get_user_xp() fields plus 'streak_summary', 'today' and
            'motivational_message'
        """
        snapshot = await get_user_xp(user_id)

        today = today_local()
        start, _ = day_bounds_utc(today)
        habits = await queries.get_active_habits(user_id)
        completions = await queries.get_completions_since(user_id, start)
        today_stats = calculate_daily_stats(habits, completions, today)

        return {
            **snapshot,
            "streak_summary": format_streak_display(snapshot["current_streak"], snapshot["longest_streak"]),
            "today": today_stats,
            "motivational_message": get_motivational_message(
                snapshot["current_streak"], today_stats["completion_rate"]
            ),
        }
