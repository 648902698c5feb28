"""
HabitCompletionService - Habit Completion Orchestration

Turns a "habit done" event into persisted state and an XP summary.

Flow:
    Validating -> Checking-Duplicate -> Persisting -> Recalculating-Streak
    -> Awarding-XP -> Done
Rejections (no state change) happen only in the first two steps.

Writes happen in the order completion, streak, XP. A failure after the
completion insert can leave the user under-credited, never double-credited;
the streak can be repaired with recalculate_streak().
"""

import logging
from datetime import datetime
from typing import Optional

from trajectory import config
from trajectory.db import queries
from trajectory.exceptions import AlreadyCompletedError, HabitNotFoundError
from trajectory.gamification.achievement_system import check_and_award_achievements
from trajectory.gamification.streak_system import (
    get_streak_bonus_xp,
    is_first_completion_today,
    update_streak,
)
from trajectory.gamification.xp_system import award_xp
from trajectory.models.habit import HabitCompletion
from trajectory.models.progress import CompletionResult, StreakUpdate
from trajectory.resilience.metrics import record_habit_completion
from trajectory.utils.datetime_helpers import ensure_aware, local_date, now_utc

logger = logging.getLogger(__name__)


class HabitCompletionService:
    """
    Service for habit completions.

    Responsibilities:
    - Ownership and archive checks
    - One completion per habit per calendar day
    - Streak recalculation and milestone bonus
    - Daily login bonus on the first completion of the day
    - XP award and achievement unlocks
    """

    def __init__(self, db_connection):
        """
        Initialize HabitCompletionService.

        Args:
            db_connection: Database connection instance
        """
        self.db = db_connection
        logger.debug("HabitCompletionService initialized")

    async def complete_habit(
        self,
        user_id: str,
        habit_id: str,
        completed_at: Optional[datetime] = None
    ) -> CompletionResult:
        """
        Mark a habit done for the current calendar day.

        Args:
            user_id: User ID
            habit_id: Habit UUID
            completed_at: Completion instant (defaults to server time)

        Returns:
            CompletionResult

        Raises:
            HabitNotFoundError: habit missing, archived, or owned by someone else
            AlreadyCompletedError: habit already completed on this calendar day
        """
        completed_at = ensure_aware(completed_at) if completed_at else now_utc()
        day = local_date(completed_at)

        # Validating
        habit = await queries.get_habit(user_id, habit_id)
        if not habit or habit.get("archived"):
            raise HabitNotFoundError(habit_id=str(habit_id), user_id=user_id, operation="complete_habit")

        # Checking-Duplicate
        existing = await queries.get_completion_on_day(habit_id, user_id, day)
        if existing:
            raise AlreadyCompletedError(
                habit_id=str(habit_id),
                day=day.isoformat(),
                user_id=user_id,
                operation="complete_habit"
            )

        # Persisting (unique index catches concurrent duplicates)
        row = await queries.insert_completion(habit_id, user_id, completed_at, day)
        completion = HabitCompletion(**row)
        record_habit_completion(habit["pillar"])

        # Recalculating-Streak
        streak = await update_streak(user_id, reference_date=day)
        bonus = get_streak_bonus_xp(streak.previous, streak.current)

        # Awarding-XP
        base_xp = habit["xp_reward"]
        daily_bonus = config.DAILY_LOGIN_XP if await is_first_completion_today(user_id, day) else 0
        bonus_xp = bonus.xp + daily_bonus
        total_xp = base_xp + bonus_xp

        xp_result = await award_xp(
            user_id=user_id,
            amount=total_xp,
            source_type="habit",
            source_id=str(habit_id),
            reason=f"Completed habit: {habit['name']}"
            + (f" ({bonus.milestone})" if bonus.milestone else "")
        )

        achievements = await check_and_award_achievements(
            user_id,
            progress={"current_streak": streak.current, "level": xp_result["new_level"]},
            reference_date=day
        )
        achievement_xp = sum(a.xp_reward for a in achievements)

        new_total_xp = xp_result["new_total_xp"]
        level = xp_result["new_level"]
        if achievement_xp:
            # Achievement awards may have moved the level further
            snapshot = await queries.get_user_progress(user_id)
            new_total_xp = snapshot["total_xp"]
            level = snapshot["level"]

        logger.info(
            f"User {user_id} completed habit {habit_id}: +{total_xp} XP "
            f"(base {base_xp}, bonus {bonus_xp}), streak {streak.current}"
            + (f", {len(achievements)} achievements" if achievements else "")
        )

        return CompletionResult(
            completion=completion,
            base_xp=base_xp,
            bonus_xp=bonus_xp,
            total_xp=total_xp,
            milestone_label=bonus.milestone,
            streak=streak,
            new_total_xp=new_total_xp,
            level=level,
            leveled_up=level > xp_result["old_level"],
            achievements_unlocked=achievements,
            achievement_xp=achievement_xp,
        )

    async def recalculate_streak(self, user_id: str) -> StreakUpdate:
        """
        Recompute and persist the streak from the completion log.

        Maintenance operation; idempotent.
        """
        logger.info(f"Recalculating streak for user {user_id}")
        return await update_streak(user_id)
