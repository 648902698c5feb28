"""Unit tests for the daily streak system"""
import pytest
from datetime import date, datetime, timedelta, timezone

from trajectory.gamification.streak_system import (
    STREAK_MILESTONES,
    calculate_current_streak,
    format_streak_display,
    get_streak_bonus_xp,
    is_first_completion_today,
    update_streak,
)

TODAY = date(2025, 3, 10)


def _days(*offsets):
    return [TODAY - timedelta(days=n) for n in offsets]


# ============================================================================
# Streak calculation
# ============================================================================

def test_streak_empty():
    assert calculate_current_streak([], TODAY) == 0


def test_streak_consecutive_days_including_today():
    assert calculate_current_streak(_days(0, 1, 2), TODAY) == 3


def test_streak_today_missing_does_not_break():
    """The day isn't over yet, so yesterday's run still counts"""
    assert calculate_current_streak(_days(1, 2, 3), TODAY) == 3


def test_streak_gap_ends_run():
    assert calculate_current_streak(_days(0, 1, 3, 4, 5), TODAY) == 2


def test_streak_yesterday_missing_is_zero():
    assert calculate_current_streak(_days(2, 3), TODAY) == 0


def test_streak_duplicates_ignored():
    assert calculate_current_streak(_days(0, 0, 1, 1), TODAY) == 2


def test_streak_future_days_ignored():
    assert calculate_current_streak([TODAY + timedelta(days=1), TODAY], TODAY) == 1


def test_streak_capped_at_lookback():
    days = [TODAY - timedelta(days=n) for n in range(400)]
    assert calculate_current_streak(days, TODAY) == 365


# ============================================================================
# Milestone bonus
# ============================================================================

@pytest.mark.parametrize("old,new,xp,label", [
    (2, 3, 25, "3-day streak!"),
    (6, 7, 50, "1 week streak!"),
    (6, 8, 50, "1 week streak!"),
    (13, 14, 75, "2 week streak!"),
    (29, 30, 200, "1 month streak!"),
    (364, 365, 1500, "1 year streak!"),
])
def test_streak_bonus_on_crossing(old, new, xp, label):
    bonus = get_streak_bonus_xp(old, new)

    assert bonus.xp == xp
    assert bonus.milestone == label


def test_streak_bonus_not_repeated():
    """Recomputing an unchanged streak never pays again"""
    bonus = get_streak_bonus_xp(3, 3)

    assert bonus.xp == 0
    assert bonus.milestone is None


@pytest.mark.parametrize("old,new", [(4, 5), (3, 4)])
def test_streak_bonus_between_milestones(old, new):
    bonus = get_streak_bonus_xp(old, new)

    assert bonus.xp == 0
    assert bonus.milestone is None


def test_milestones_sorted():
    thresholds = [t for t, _, _ in STREAK_MILESTONES]
    assert thresholds == sorted(thresholds)


# ============================================================================
# Persisted streak
# ============================================================================

def _seed_completions(store, user_id, offsets):
    habit = store.add_habit(user_id)
    for n in offsets:
        day = TODAY - timedelta(days=n)
        store.add_completion(habit["id"], datetime(day.year, day.month, day.day, 9, 0, tzinfo=timezone.utc))
    return habit


@pytest.mark.asyncio
async def test_update_streak_new_record(store, test_user_id):
    _seed_completions(store, test_user_id, [0, 1, 2])

    result = await update_streak(test_user_id, reference_date=TODAY)

    assert result.current == 3
    assert result.longest == 3
    assert result.is_new_record is True
    assert result.previous == 0
    assert store.profiles[test_user_id]["current_streak"] == 3


@pytest.mark.asyncio
async def test_update_streak_keeps_longest(store, test_user_id):
    store.add_user(test_user_id, current_streak=1, longest_streak=12)
    _seed_completions(store, test_user_id, [0, 1])

    result = await update_streak(test_user_id, reference_date=TODAY)

    assert result.current == 2
    assert result.longest == 12
    assert result.is_new_record is False
    assert result.previous == 1


@pytest.mark.asyncio
async def test_update_streak_repairs_drift(store, test_user_id):
    """A stored streak that disagrees with the log is overwritten"""
    store.add_user(test_user_id, current_streak=40, longest_streak=40)
    _seed_completions(store, test_user_id, [0])

    result = await update_streak(test_user_id, reference_date=TODAY)
    again = await update_streak(test_user_id, reference_date=TODAY)

    assert result.current == 1
    assert again.current == 1
    assert again.longest == 40


@pytest.mark.asyncio
async def test_is_first_completion_today(store, test_user_id):
    habit = _seed_completions(store, test_user_id, [0])
    assert await is_first_completion_today(test_user_id, TODAY) is True

    other = store.add_habit(test_user_id, pillar="mental", name="Meditate")
    store.add_completion(other["id"], datetime(2025, 3, 10, 11, 0, tzinfo=timezone.utc))
    assert habit["id"] != other["id"]
    assert await is_first_completion_today(test_user_id, TODAY) is False


# ============================================================================
# Display
# ============================================================================

def test_format_streak_display_no_streak():
    assert format_streak_display(0, 5).startswith("No active streak")


def test_format_streak_display_personal_best():
    text = format_streak_display(5, 5)

    assert "5-day streak (personal best!)" in text
    assert "2 more days to the next milestone" in text


def test_format_streak_display_one_day_left():
    text = format_streak_display(6, 10)

    assert "(best: 10 days)" in text
    assert "1 more day to the next milestone" in text
