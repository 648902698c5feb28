"""Unit tests for HabitCompletionService"""
import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

from trajectory import config
from trajectory.db import queries
from trajectory.exceptions import AlreadyCompletedError, HabitNotFoundError
from trajectory.services.completion_service import HabitCompletionService


@pytest.fixture
def service():
    return HabitCompletionService(db_connection=None)


@pytest.fixture
def walk(store, test_user_id):
    store.add_user(test_user_id)
    return store.add_habit(test_user_id, pillar="physical", name="Morning walk", xp_reward=10)


# ============================================================================
# Happy path across three days
# ============================================================================

@pytest.mark.asyncio
async def test_first_completion_of_first_day(service, store, walk, test_user_id, day_one):
    result = await service.complete_habit(test_user_id, walk["id"], completed_at=day_one)

    assert result.base_xp == 10
    assert result.bonus_xp == config.DAILY_LOGIN_XP
    assert result.total_xp == 15
    assert result.milestone_label is None
    assert result.streak.current == 1
    assert result.streak.longest == 1
    assert result.streak.is_new_record is True
    assert [a.key for a in result.achievements_unlocked] == ["physical_first"]
    assert result.achievement_xp == 25
    assert result.new_total_xp == 40
    assert result.level == 1
    assert result.leveled_up is False
    assert result.completion.habit_id == walk["id"]


@pytest.mark.asyncio
async def test_same_day_repeat_rejected(service, store, walk, test_user_id, day_one):
    await service.complete_habit(test_user_id, walk["id"], completed_at=day_one)

    with pytest.raises(AlreadyCompletedError) as exc_info:
        await service.complete_habit(test_user_id, walk["id"], completed_at=day_one + timedelta(hours=5))

    assert exc_info.value.reason == "AlreadyCompleted"
    assert len(store.completions) == 1
    assert store.profiles[test_user_id]["total_xp"] == 40


@pytest.mark.asyncio
async def test_third_day_pays_streak_milestone(service, store, walk, test_user_id, day_one):
    await service.complete_habit(test_user_id, walk["id"], completed_at=day_one)
    second = await service.complete_habit(test_user_id, walk["id"], completed_at=day_one + timedelta(days=1))
    third = await service.complete_habit(test_user_id, walk["id"], completed_at=day_one + timedelta(days=2))

    assert second.streak.current == 2
    assert second.bonus_xp == 5
    assert second.new_total_xp == 55

    assert third.streak.current == 3
    assert third.streak.previous == 2
    assert third.milestone_label == "3-day streak!"
    assert third.bonus_xp == 30
    assert third.total_xp == 40
    assert [a.key for a in third.achievements_unlocked] == ["streak_3"]
    assert third.new_total_xp == 145
    assert third.level == 2
    assert third.leveled_up is True
    assert store.profiles[test_user_id]["current_streak"] == 3


@pytest.mark.asyncio
async def test_second_habit_same_day_no_daily_bonus(service, store, walk, test_user_id, day_one):
    meditate = store.add_habit(test_user_id, pillar="mental", name="Meditate", xp_reward=10)

    await service.complete_habit(test_user_id, walk["id"], completed_at=day_one)
    result = await service.complete_habit(test_user_id, meditate["id"], completed_at=day_one + timedelta(hours=1))

    assert result.bonus_xp == 0
    assert result.total_xp == 10
    assert result.streak.current == 1
    assert [a.key for a in result.achievements_unlocked] == ["mental_first"]


@pytest.mark.asyncio
async def test_three_pillars_same_day_unlocks_balanced(service, store, walk, test_user_id, day_one):
    meditate = store.add_habit(test_user_id, pillar="mental", name="Meditate")
    budget = store.add_habit(test_user_id, pillar="fiscal", name="Log expenses")

    await service.complete_habit(test_user_id, walk["id"], completed_at=day_one)
    await service.complete_habit(test_user_id, meditate["id"], completed_at=day_one)
    result = await service.complete_habit(test_user_id, budget["id"], completed_at=day_one)

    keys = [a.key for a in result.achievements_unlocked]
    assert "fiscal_first" in keys
    assert "balanced" in keys


# ============================================================================
# Rejections
# ============================================================================

@pytest.mark.asyncio
async def test_unknown_habit(service, store, test_user_id, day_one):
    with pytest.raises(HabitNotFoundError) as exc_info:
        await service.complete_habit(test_user_id, "missing", completed_at=day_one)

    assert exc_info.value.reason == "NotFound"
    assert store.completions == []


@pytest.mark.asyncio
async def test_archived_habit(service, store, test_user_id, day_one):
    habit = store.add_habit(test_user_id, archived=True)

    with pytest.raises(HabitNotFoundError):
        await service.complete_habit(test_user_id, habit["id"], completed_at=day_one)

    assert store.completions == []


@pytest.mark.asyncio
async def test_habit_of_another_user(service, store, walk, day_one):
    with pytest.raises(HabitNotFoundError):
        await service.complete_habit("someone-else", walk["id"], completed_at=day_one)


@pytest.mark.asyncio
async def test_concurrent_duplicate_caught_by_insert(service, store, walk, test_user_id, day_one, monkeypatch):
    """A duplicate that slips past the pre-check is stopped by the unique index"""
    store.add_completion(walk["id"], day_one)
    monkeypatch.setattr(queries, "get_completion_on_day", AsyncMock(return_value=None))

    with pytest.raises(AlreadyCompletedError):
        await service.complete_habit(test_user_id, walk["id"], completed_at=day_one)

    assert store.xp_transactions == []
    assert len(store.completions) == 1


# ============================================================================
# Calendar day handling
# ============================================================================

@pytest.mark.asyncio
async def test_day_is_taken_in_app_timezone(service, store, walk, test_user_id, monkeypatch):
    """22:00 and 23:30 in New York are the same day even though UTC has rolled over"""
    monkeypatch.setattr(config, "APP_TIMEZONE", "America/New_York")
    evening = datetime(2025, 3, 11, 2, 0, tzinfo=timezone.utc)

    await service.complete_habit(test_user_id, walk["id"], completed_at=evening)

    with pytest.raises(AlreadyCompletedError):
        await service.complete_habit(test_user_id, walk["id"], completed_at=evening + timedelta(minutes=90))


@pytest.mark.asyncio
async def test_naive_timestamp_treated_as_utc(service, store, walk, test_user_id):
    result = await service.complete_habit(test_user_id, walk["id"], completed_at=datetime(2025, 3, 10, 10, 0))

    assert result.completion.completed_at.tzinfo is not None


# ============================================================================
# Streak repair
# ============================================================================

@pytest.mark.asyncio
async def test_recalculate_streak(service, store, walk, test_user_id):
    now = datetime.now(timezone.utc)
    for n in range(4):
        store.add_completion(walk["id"], now - timedelta(days=n))
    store.profiles[test_user_id]["current_streak"] = 99

    result = await service.recalculate_streak(test_user_id)

    assert result.current == 4
    assert result.longest == 4
    assert store.profiles[test_user_id]["current_streak"] == 4
