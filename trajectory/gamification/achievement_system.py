"""
Achievement System

Awards achievements from a static catalog across categories:
- Consistency (streak thresholds)
- Milestones (level thresholds)
- Pillar-specific (lifetime completions per pillar)
- Learning (completed required readings)
- Balance (physical, mental and fiscal habits on the same day)

Each catalog entry carries a declarative condition. A single dispatcher
evaluates conditions against an AchievementState snapshot; the unlock
ledger in storage guarantees an achievement (and its XP) is granted once.
"""

from typing import Dict, Iterable, List, Optional, Tuple
from datetime import date
import logging

from trajectory.db import queries
from trajectory.gamification.xp_system import award_xp
from trajectory.models.achievement import (
    AchievementDefinition,
    AchievementState,
    LevelCondition,
    PillarCompletionCondition,
    ReadingCompletionCondition,
    SameDayPillarsCondition,
    StreakCondition,
)
from trajectory.models.pillar import ORIGINAL_PILLARS, Pillar
from trajectory.models.progress import UnlockedAchievement
from trajectory.resilience.metrics import record_achievement_unlock
from trajectory.utils.datetime_helpers import today_local

logger = logging.getLogger(__name__)


def _streak(key: str, days: int, name: str, xp: int, icon: str = "flame") -> AchievementDefinition:
    return AchievementDefinition(
        key=key,
        name=name,
        description=f"Complete a {days}-day streak",
        icon=icon,
        xp_reward=xp,
        condition=StreakCondition(min_streak=days),
    )


def _pillar(key: str, pillar: Pillar, count: int, name: str, description: str, xp: int, icon: str) -> AchievementDefinition:
    return AchievementDefinition(
        key=key,
        name=name,
        description=description,
        icon=icon,
        xp_reward=xp,
        pillar=pillar,
        condition=PillarCompletionCondition(pillar=pillar, min_count=count),
    )


def _level(key: str, level: int, name: str, xp: int, icon: str) -> AchievementDefinition:
    return AchievementDefinition(
        key=key,
        name=name,
        description=f"Reach Level {level}",
        icon=icon,
        xp_reward=xp,
        condition=LevelCondition(min_level=level),
    )


ACHIEVEMENTS: List[AchievementDefinition] = [
    # Streaks
    _streak("streak_3", 3, "Getting Started", 50),
    _streak("streak_7", 7, "Week Warrior", 100),
    _streak("streak_30", 30, "Monthly Master", 300),
    _streak("streak_100", 100, "Century Champion", 1000, icon="crown"),

    # Physical
    _pillar("physical_first", Pillar.PHYSICAL, 1, "First Steps",
            "Complete your first physical habit", 25, "target"),
    _pillar("physical_10", Pillar.PHYSICAL, 10, "Fitness Enthusiast",
            "Complete 10 physical habits", 100, "target"),
    _pillar("physical_50", Pillar.PHYSICAL, 50, "Fitness Devotee",
            "Complete 50 physical habits", 250, "medal"),

    # Mental
    _pillar("mental_first", Pillar.MENTAL, 1, "Mind Opener",
            "Complete your first mental wellness habit", 25, "brain"),
    _pillar("mental_10", Pillar.MENTAL, 10, "Mindfulness Practitioner",
            "Complete 10 mental wellness habits", 100, "brain"),
    _pillar("mental_50", Pillar.MENTAL, 50, "Inner Peace Seeker",
            "Complete 50 mental wellness habits", 250, "medal"),

    # Fiscal
    _pillar("fiscal_first", Pillar.FISCAL, 1, "Financial Awareness",
            "Complete your first financial habit", 25, "wallet"),
    _pillar("fiscal_10", Pillar.FISCAL, 10, "Money Manager",
            "Complete 10 financial habits", 100, "wallet"),
    _pillar("fiscal_50", Pillar.FISCAL, 50, "Financial Freedom Fighter",
            "Complete 50 financial habits", 250, "medal"),

    # Reading
    AchievementDefinition(
        key="reader_first",
        name="Knowledge Seeker",
        description="Complete your first required reading",
        icon="book",
        xp_reward=30,
        condition=ReadingCompletionCondition(min_count=1),
    ),
    AchievementDefinition(
        key="reader_5",
        name="Avid Reader",
        description="Complete 5 required readings",
        icon="book",
        xp_reward=100,
        condition=ReadingCompletionCondition(min_count=5),
    ),

    # Levels
    _level("level_5", 5, "Rising Star", 100, "star"),
    _level("level_10", 10, "Shining Bright", 200, "star"),
    _level("level_25", 25, "Excellence Achieved", 500, "award"),

    # Balance: only the three original pillars count
    AchievementDefinition(
        key="balanced",
        name="Perfectly Balanced",
        description="Complete habits from all 3 pillars in one day",
        icon="zap",
        xp_reward=75,
        condition=SameDayPillarsCondition(pillars=ORIGINAL_PILLARS),
    ),
]

ACHIEVEMENTS_BY_KEY: Dict[str, AchievementDefinition] = {a.key: a for a in ACHIEVEMENTS}


def condition_progress(achievement: AchievementDefinition, state: AchievementState) -> Tuple[int, int]:
    """
    Measure state against an achievement's condition

    Returns:
        (current, required); the condition holds when current >= required
    """
    condition = achievement.condition

    if isinstance(condition, StreakCondition):
        return state.current_streak, condition.min_streak
    if isinstance(condition, LevelCondition):
        return state.level, condition.min_level
    if isinstance(condition, PillarCompletionCondition):
        return state.pillar_completions.get(condition.pillar, 0), condition.min_count
    if isinstance(condition, ReadingCompletionCondition):
        return state.reading_completions, condition.min_count
    if isinstance(condition, SameDayPillarsCondition):
        done = sum(1 for p in condition.pillars if p in state.pillars_completed_today)
        return done, len(condition.pillars)

    raise ValueError(f"Unknown achievement condition: {condition!r}")


def evaluate_achievements(
    state: AchievementState,
    catalog: Iterable[AchievementDefinition] = ACHIEVEMENTS
) -> List[str]:
    """
    Keys of every achievement whose condition holds for `state`

    Pure: the same state always yields the same keys in catalog order.
    Use newly_unlocked() to drop keys the user already has.
    """
    qualifying = []
    for achievement in catalog:
        current, required = condition_progress(achievement, state)
        if current >= required:
            qualifying.append(achievement.key)
    return qualifying


def newly_unlocked(qualifying: Iterable[str], already_unlocked: Iterable[str]) -> List[str]:
    """Qualifying keys not yet recorded for the user, order preserved"""
    unlocked = set(already_unlocked)
    return [key for key in qualifying if key not in unlocked]


async def build_achievement_state(
    user_id: str,
    progress: Optional[Dict] = None,
    reference_date: Optional[date] = None
) -> AchievementState:
    """
    Gather everything the catalog is evaluated against

    Args:
        user_id: User ID
        progress: Fresh progress dict (current_streak, level); read from storage if omitted
        reference_date: Calendar day for same-day conditions (defaults to today)
    """
    if reference_date is None:
        reference_date = today_local()
    if progress is None:
        progress = await queries.get_user_progress(user_id)

    pillar_counts = await queries.count_completions_by_pillar(user_id)
    readings = await queries.count_completed_readings(user_id)
    pillars_today = await queries.get_pillars_completed_on_day(user_id, reference_date)

    return AchievementState(
        current_streak=progress["current_streak"],
        level=progress["level"],
        pillar_completions={Pillar(p): n for p, n in pillar_counts.items()},
        reading_completions=readings,
        pillars_completed_today=frozenset(Pillar(p) for p in pillars_today),
    )


async def check_and_award_achievements(
    user_id: str,
    progress: Optional[Dict] = None,
    reference_date: Optional[date] = None
) -> List[UnlockedAchievement]:
    """
    Unlock every newly-qualifying achievement and award its XP

    XP is awarded only for unlock rows actually inserted, so concurrent or
    repeated calls never pay an achievement twice. When achievement XP
    raises the level, the catalog is evaluated again so level achievements
    reached that way unlock in the same call.

    Returns:
        Newly unlocked achievements, in unlock order
    """
    if progress is None:
        progress = await queries.get_user_progress(user_id)
    progress = dict(progress)

    unlocked = []
    while True:
        state = await build_achievement_state(user_id, progress, reference_date)
        qualifying = evaluate_achievements(state)

        existing = await queries.get_user_achievement_unlocks(user_id)
        candidates = newly_unlocked(qualifying, (row["achievement_key"] for row in existing))

        new_level = progress["level"]
        for key in candidates:
            achievement = ACHIEVEMENTS_BY_KEY[key]
            row = await queries.add_user_achievement(user_id, key)
            if row is None:
                # Recorded concurrently by another request
                continue

            if achievement.xp_reward > 0:
                xp_result = await award_xp(
                    user_id=user_id,
                    amount=achievement.xp_reward,
                    source_type="achievement",
                    source_id=key,
                    reason=f"Unlocked achievement: {achievement.name}"
                )
                new_level = max(new_level, xp_result["new_level"])

            unlocked.append(UnlockedAchievement(
                key=key,
                name=achievement.name,
                xp_reward=achievement.xp_reward,
                unlocked_at=row["unlocked_at"],
            ))
            record_achievement_unlock(key)

            logger.info(
                f"User {user_id} unlocked achievement: {key} "
                f"({achievement.name}) +{achievement.xp_reward} XP"
            )

        if new_level <= progress["level"]:
            return unlocked
        progress["level"] = new_level


async def get_user_achievements(user_id: str) -> Dict[str, any]:
    """
    Get user's achievements with progress toward locked ones

    Returns:
        {
            'unlocked': [achievements, most recent first],
            'locked': [achievements with progress, closest first],
            'total_unlocked': int,
            'total_achievements': int,
            'total_xp_from_achievements': int
        }
    """
    rows = await queries.get_user_achievement_unlocks(user_id)
    unlocked_at = {row["achievement_key"]: row["unlocked_at"] for row in rows}

    state = await build_achievement_state(user_id)

    unlocked = []
    locked = []
    total_xp = 0

    for achievement in ACHIEVEMENTS:
        entry = {
            "achievement_key": achievement.key,
            "name": achievement.name,
            "description": achievement.description,
            "icon": achievement.icon,
            "pillar": achievement.pillar.value if achievement.pillar else None,
            "xp_reward": achievement.xp_reward,
        }

        if achievement.key in unlocked_at:
            entry["unlocked_at"] = unlocked_at[achievement.key]
            unlocked.append(entry)
            total_xp += achievement.xp_reward
        else:
            current, required = condition_progress(achievement, state)
            current = min(current, required)
            entry["progress"] = {
                "current": current,
                "required": required,
                "percentage": int(current / required * 100),
            }
            locked.append(entry)

    unlocked.sort(key=lambda x: x["unlocked_at"], reverse=True)
    locked.sort(key=lambda x: x["progress"]["percentage"], reverse=True)

    return {
        "unlocked": unlocked,
        "locked": locked,
        "total_unlocked": len(unlocked),
        "total_achievements": len(ACHIEVEMENTS),
        "total_xp_from_achievements": total_xp,
    }
