"""Daily progress summary and motivational copy"""
from datetime import date, datetime
from typing import Dict, List, Optional

from trajectory import config
from trajectory.gamification.streak_system import STREAK_MILESTONES
from trajectory.utils.datetime_helpers import local_date

_MILESTONE_XP = {days: xp for days, xp, _ in STREAK_MILESTONES}

# Default XP per action type
XP_VALUES = {
    "HABIT_COMPLETE": 10,
    "READING_COMPLETE": 20,
    "STREAK_BONUS_7": _MILESTONE_XP[7],
    "STREAK_BONUS_30": _MILESTONE_XP[30],
    "DAILY_LOGIN": config.DAILY_LOGIN_XP,
    "ACHIEVEMENT_UNLOCK": 25,
    "JOURNAL_ENTRY": 15,
}


def calculate_daily_stats(habits: List[Dict], completions: List[Dict], day: date) -> Dict[str, any]:
    """
    Summarize one calendar day

    Every non-archived habit is treated as due daily.

    Args:
        habits: Habit dicts (id, xp_reward, archived)
        completions: Completion dicts (habit_id, completed_at)
        day: Calendar day in the app timezone

    Returns:
        {
            'date': date,
            'habits_completed': int,
            'habits_total': int,
            'xp_earned': int,
            'completion_rate': float (0-100)
        }
    """
    due = [h for h in habits if not h.get("archived")]
    done_ids = {
        str(c["habit_id"]) for c in completions
        if local_date(c["completed_at"]) == day
    }
    completed = [h for h in due if str(h["id"]) in done_ids]

    return {
        "date": day,
        "habits_completed": len(completed),
        "habits_total": len(due),
        "xp_earned": sum(h.get("xp_reward", XP_VALUES["HABIT_COMPLETE"]) for h in completed),
        "completion_rate": (len(completed) / len(due) * 100) if due else 0.0,
    }


def get_motivational_message(streak: int, today_progress: float) -> str:
    """
    Pick an encouragement line from streak length and today's completion rate

    Args:
        streak: Current streak in days
        today_progress: Today's completion rate, 0-100
    """
    if streak == 0:
        return "Every journey begins with a single step. Start today!"

    if today_progress >= 100:
        if streak >= 30:
            return "Legendary! You're unstoppable. Keep this momentum!"
        if streak >= 7:
            return "Perfect day! You're building amazing habits."
        return "All done for today! Great work staying consistent."

    if today_progress >= 50:
        return "You're over halfway there! Finish strong."

    if streak >= 7:
        return f"{streak}-day streak! Don't break the chain today."

    return "Make today count. Your future self will thank you."
