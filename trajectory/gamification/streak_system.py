"""
Daily Streak System

A streak is the number of consecutive calendar days (in APP_TIMEZONE) with
at least one habit completion, counted back from a reference day.

Rules:
- Today without a completion does not break the streak (the day isn't over)
- Any earlier day without a completion ends it
- Lookback is capped at 365 days
- The streak is always recomputed from the completion log, never incremented

Milestones award bonus XP once, on the completion that crosses them.
"""

from typing import Iterable, Optional
from datetime import date, timedelta
import logging

from trajectory.db import queries
from trajectory.models.progress import StreakBonus, StreakUpdate
from trajectory.utils.datetime_helpers import today_local

logger = logging.getLogger(__name__)

STREAK_LOOKBACK_DAYS = 365

# (threshold days, bonus XP, label)
STREAK_MILESTONES = [
    (3, 25, "3-day streak!"),
    (7, 50, "1 week streak!"),
    (14, 75, "2 week streak!"),
    (30, 200, "1 month streak!"),
    (60, 300, "2 month streak!"),
    (90, 500, "3 month streak!"),
    (180, 750, "6 month streak!"),
    (365, 1500, "1 year streak!"),
]


def calculate_current_streak(completion_dates: Iterable[date], reference_date: date) -> int:
    """
    Count consecutive completion days ending at reference_date

    Args:
        completion_dates: Calendar days with at least one completion (duplicates ok)
        reference_date: "Today"

    Returns:
        Streak length in days
    """
    days = set(completion_dates)
    if not days:
        return 0

    streak = 0
    for offset in range(STREAK_LOOKBACK_DAYS):
        day = reference_date - timedelta(days=offset)
        if day in days:
            streak += 1
        elif offset == 0:
            continue
        else:
            break

    return streak


def get_streak_bonus_xp(old_streak: int, new_streak: int) -> StreakBonus:
    """
    Bonus for crossing a milestone

    Fires for the first milestone with old_streak < threshold <= new_streak.
    Recomputing the same streak (old == new) never pays again.
    """
    for threshold, xp, label in STREAK_MILESTONES:
        if old_streak < threshold <= new_streak:
            return StreakBonus(xp=xp, milestone=label)
    return StreakBonus()


async def update_streak(user_id: str, reference_date: Optional[date] = None) -> StreakUpdate:
    """
    Recompute the user's streak from the completion log and persist it

    This is the only writer of current_streak / longest_streak. Running it
    again without new completions is a no-op, so it doubles as the repair
    tool for drifted stored values.

    Args:
        user_id: User ID
        reference_date: Calendar day to count back from (defaults to today)

    Returns:
        StreakUpdate(current, longest, is_new_record, previous)
    """
    if reference_date is None:
        reference_date = today_local()

    progress = await queries.get_user_progress(user_id)
    previous = progress["current_streak"]
    stored_longest = progress["longest_streak"]

    since = reference_date - timedelta(days=STREAK_LOOKBACK_DAYS)
    completion_days = await queries.get_completion_days(user_id, since)

    current = calculate_current_streak(completion_days, reference_date)
    longest = max(current, stored_longest)
    is_new_record = current > stored_longest

    await queries.update_user_streak(user_id, current, longest)

    logger.info(
        f"Updated streak for user {user_id}: {previous} -> {current} "
        f"(longest {longest}{', new record' if is_new_record else ''})"
    )

    return StreakUpdate(
        current=current,
        longest=longest,
        is_new_record=is_new_record,
        previous=previous,
    )


async def is_first_completion_today(user_id: str, reference_date: Optional[date] = None) -> bool:
    """True when the user's only completion on the day is the one just recorded"""
    if reference_date is None:
        reference_date = today_local()
    count = await queries.count_completions_on_day(user_id, reference_date)
    return count == 1


def format_streak_display(current: int, longest: int) -> str:
    """Short text summary of a streak for notifications and coach replies"""
    if current == 0:
        return "No active streak yet. Complete a habit today to start one."

    text = f"{current}-day streak"
    if current >= longest:
        text += " (personal best!)"
    else:
        text += f" (best: {longest} days)"

    next_milestone = next((t for t, _, _ in STREAK_MILESTONES if t > current), None)
    if next_milestone:
        remaining = next_milestone - current
        text += f". {remaining} more day{'s' if remaining != 1 else ''} to the next milestone."
    return text
