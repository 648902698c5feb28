"""
Wellness Insights Engine

Turns a user's recent habit history into:
- Per-pillar wellness scores (0-100)
- Time-of-day completion shares
- Streak statistics
- Curated pillar correlations and habit stacks
- A ranked, deterministic list of recommendations
- Adaptive per-pillar XP multipliers

The scoring functions are pure; the async wrappers fetch their inputs
through the query layer. Only set_xp_multipliers() writes.
"""

import asyncio
import logging
import math
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional

from trajectory import config
from trajectory.db import queries
from trajectory.exceptions import ValidationError
from trajectory.models.insights import (
    Correlation,
    HabitStack,
    PillarScore,
    Recommendation,
    StreakStats,
    TimeOfDay,
    TimeOfDayAnalysis,
    UserInsights,
)
from trajectory.models.pillar import ALL_PILLARS, Pillar
from trajectory.utils.datetime_helpers import get_app_timezone, to_local, window_start_utc

logger = logging.getLogger(__name__)

# Local hour ranges: morning [5, 12), afternoon [12, 17), evening otherwise
MORNING_START = 5
AFTERNOON_START = 12
EVENING_START = 17

# Shares must clear this to be reported as the best time of day
BEST_TIME_MIN_SHARE = 40

WEAK_PILLAR_SCORE = 50

MAX_XP_MULTIPLIER = 10.0


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (2.5 -> 3, not 2)"""
    return int(math.floor(value + 0.5))


def _capitalize(text: str) -> str:
    return text[:1].upper() + text[1:]


# ==========================================
# Pillar scores
# ==========================================

def score_pillars(
    habits: Iterable[Mapping],
    completions: Iterable[Mapping],
    window_days: int = 30
) -> List[PillarScore]:
    """
    Score every pillar from active habits and their completions in the window.

    Every habit is expected once per day. A pillar with habits starts at a
    floor of 20 and earns up to 80 more from its completion rate; a pillar
    without habits scores 0.

    Args:
        habits: Active habit dicts (id, pillar)
        completions: Completion dicts (habit_id) within the window
        window_days: Window length in days

    Returns:
        One PillarScore per pillar, in fixed pillar order
    """
    habit_pillar = {str(h["id"]): Pillar(h["pillar"]) for h in habits}

    habit_counts: Dict[Pillar, int] = {p: 0 for p in ALL_PILLARS}
    for pillar in habit_pillar.values():
        habit_counts[pillar] += 1

    completion_counts: Dict[Pillar, int] = {p: 0 for p in ALL_PILLARS}
    for c in completions:
        pillar = habit_pillar.get(str(c["habit_id"]))
        if pillar is not None:
            completion_counts[pillar] += 1

    scores = []
    for pillar in ALL_PILLARS:
        habit_count = habit_counts[pillar]
        expected = habit_count * window_days
        rate = completion_counts[pillar] / expected * 100 if expected > 0 else 0.0
        score = min(100, round_half_up(rate * 0.8 + 20)) if habit_count > 0 else 0

        scores.append(PillarScore(
            pillar=pillar,
            score=score,
            habit_count=habit_count,
            completion_rate=round_half_up(rate),
        ))

    return scores


async def calculate_pillar_scores(user_id: str, window_days: Optional[int] = None) -> List[PillarScore]:
    """Pillar scores over the last `window_days` days (INSIGHTS_WINDOW_DAYS by default)"""
    window_days = window_days or config.INSIGHTS_WINDOW_DAYS

    habits = await queries.get_active_habits(user_id)
    if not habits:
        return score_pillars([], [], window_days)

    completions = await queries.get_completions_since(user_id, window_start_utc(window_days))
    return score_pillars(habits, completions, window_days)


# ==========================================
# Time of day
# ==========================================

def bucket_time_of_day(timestamps: Iterable[datetime], tz=None) -> TimeOfDayAnalysis:
    """
    Share of completions per part of the day, by local hour.

    With no completions the shares default to 33/33/34.
    """
    tz = tz or get_app_timezone()
    counts = {"morning": 0, "afternoon": 0, "evening": 0}

    for ts in timestamps:
        hour = to_local(ts, tz).hour
        if MORNING_START <= hour < AFTERNOON_START:
            counts["morning"] += 1
        elif AFTERNOON_START <= hour < EVENING_START:
            counts["afternoon"] += 1
        else:
            counts["evening"] += 1

    total = sum(counts.values())
    if total == 0:
        return TimeOfDayAnalysis(morning=33, afternoon=33, evening=34)

    return TimeOfDayAnalysis(
        morning=round_half_up(counts["morning"] / total * 100),
        afternoon=round_half_up(counts["afternoon"] / total * 100),
        evening=round_half_up(counts["evening"] / total * 100),
    )


async def analyze_best_time_of_day(user_id: str, window_days: Optional[int] = None) -> TimeOfDayAnalysis:
    """Time-of-day shares over the window, counting completions of archived habits too"""
    window_days = window_days or config.INSIGHTS_WINDOW_DAYS
    timestamps = await queries.get_completion_times_since(user_id, window_start_utc(window_days))
    return bucket_time_of_day(timestamps)


def peak_time_of_day(analysis: TimeOfDayAnalysis) -> tuple[TimeOfDay, int]:
    """Bucket with the largest share; on a tie the later bucket wins"""
    best = None
    for name, share in analysis.as_pairs():
        if best is None or share >= best[1]:
            best = (name, share)
    return best


# ==========================================
# Streaks
# ==========================================

def summarize_streaks(current: int, longest: int) -> StreakStats:
    """Average of current and longest streak, and how much of the best run is recovered"""
    return StreakStats(
        average_length=round_half_up((current + longest) / 2),
        recovery_rate=min(100, round_half_up(current / longest * 100)) if longest > 0 else 0,
    )


async def analyze_streak_patterns(user_id: str) -> StreakStats:
    progress = await queries.get_user_progress(user_id)
    return summarize_streaks(progress["current_streak"], progress["longest_streak"])


# ==========================================
# Curated reference data
# ==========================================

async def get_correlations(featured_only: bool = True) -> List[Correlation]:
    """Pillar correlations, strongest first"""
    rows = await queries.get_pillar_correlations(featured_only)
    correlations = [
        Correlation(
            pillar_a=row["pillar_a"],
            pillar_b=row["pillar_b"],
            strength=row["correlation_strength"],
            insight_text=row["insight_text"],
        )
        for row in rows
    ]
    return sorted(correlations, key=lambda c: c.strength, reverse=True)


async def get_habit_stacks(limit: int = 5) -> List[HabitStack]:
    """Habit stacks, best recommendation score first"""
    rows = await queries.get_habit_stack_patterns(limit)
    stacks = [
        HabitStack(
            habit_type_a=row["habit_type_a"],
            habit_type_b=row["habit_type_b"],
            pillar_a=row["pillar_a"],
            pillar_b=row["pillar_b"],
            completion_rate=row["combined_completion_rate"],
            suggestion_text=row["suggestion_text"],
            score=row["recommendation_score"],
        )
        for row in rows
    ]
    return sorted(stacks, key=lambda s: s.score, reverse=True)[:limit]


# ==========================================
# Recommendations
# ==========================================

def generate_recommendations(
    pillar_scores: List[PillarScore],
    time_analysis: TimeOfDayAnalysis,
    correlations: List[Correlation],
    habit_stacks: List[HabitStack]
) -> List[Recommendation]:
    """
    Ranked suggestions, highest priority first.

    - pillar_focus (100): weakest pillar scores below 50
    - habit_stack (90): a correlation links the strongest and weakest pillar
    - habit_stack (80): the top curated habit stack
    - time_optimization (70): always, for the peak part of the day

    Deterministic: ties keep pillar order, and the sort is stable.
    """
    recommendations = []

    ranked = sorted(pillar_scores, key=lambda s: s.score)
    weakest = ranked[0] if ranked else None
    strongest = ranked[-1] if ranked else None

    if weakest and weakest.score < WEAK_PILLAR_SCORE:
        name = weakest.pillar.value
        recommendations.append(Recommendation(
            type="pillar_focus",
            title=f"Boost Your {_capitalize(name)} Wellness",
            description=f"Your {name} pillar needs attention. Start with just one small habit to build momentum.",
            primary_pillar=weakest.pillar,
            confidence=0.85,
            priority=100,
        ))

    if strongest and weakest:
        pair = {strongest.pillar, weakest.pillar}
        match = next((c for c in correlations if {c.pillar_a, c.pillar_b} == pair), None)
        if match:
            recommendations.append(Recommendation(
                type="habit_stack",
                title=f"Connect {_capitalize(strongest.pillar.value)} to {_capitalize(weakest.pillar.value)}",
                description=match.insight_text,
                primary_pillar=strongest.pillar,
                secondary_pillar=weakest.pillar,
                confidence=match.strength,
                priority=90,
            ))

    best_time, share = peak_time_of_day(time_analysis)
    recommendations.append(Recommendation(
        type="time_optimization",
        title=f"Optimize Your {_capitalize(best_time)} Routine",
        description=f"You complete {share}% of habits in the {best_time}. Schedule important habits during this peak time.",
        confidence=0.75,
        priority=70,
    ))

    if habit_stacks:
        top = habit_stacks[0]
        recommendations.append(Recommendation(
            type="habit_stack",
            title="Try This Habit Stack",
            description=top.suggestion_text,
            primary_pillar=top.pillar_a,
            secondary_pillar=top.pillar_b,
            confidence=top.completion_rate / 100,
            priority=80,
        ))

    return sorted(recommendations, key=lambda r: r.priority, reverse=True)


# ==========================================
# XP multipliers
# ==========================================

def multiplier_for_score(score: int) -> float:
    """Weaker pillars earn more to encourage balance"""
    if score < 30:
        return 1.5
    if score < 60:
        return 1.2
    return 1.0


async def get_xp_multipliers(user_id: str) -> Dict[str, float]:
    """
    Per-pillar XP multipliers

    Stored overrides are returned verbatim; otherwise they are derived from
    the current pillar scores.
    """
    overrides = await queries.get_xp_multipliers(user_id)
    if overrides:
        return overrides

    scores = await calculate_pillar_scores(user_id)
    return {s.pillar.value: multiplier_for_score(s.score) for s in scores}


async def set_xp_multipliers(user_id: str, overrides: Mapping[Pillar, float]) -> Dict[str, float]:
    """
    Store explicit per-pillar multipliers and return the effective set

    Raises:
        ValidationError: unknown pillar or a multiplier outside (0, 10]
    """
    if not overrides:
        raise ValidationError("At least one multiplier is required", field="multipliers", user_id=user_id)

    cleaned: Dict[str, float] = {}
    for pillar, value in overrides.items():
        try:
            key = Pillar(pillar).value
        except ValueError as e:
            raise ValidationError(f"Unknown pillar '{pillar}'", field="multipliers", value=pillar, user_id=user_id) from e
        if not 0 < value <= MAX_XP_MULTIPLIER:
            raise ValidationError(
                f"Multiplier for {key} must be in (0, {MAX_XP_MULTIPLIER:g}]",
                field="multipliers",
                value=value,
                user_id=user_id
            )
        cleaned[key] = float(value)

    # Overrides reference the profile row, which is created on first read
    await queries.get_user_progress(user_id)
    await queries.upsert_xp_multipliers(user_id, cleaned)
    logger.info(f"Stored XP multipliers for user {user_id}: {cleaned}")
    return await get_xp_multipliers(user_id)


# ==========================================
# Full insights
# ==========================================

async def get_user_insights(user_id: str) -> UserInsights:
    """
    Complete insights payload

    The five inputs are fetched concurrently.
    """
    pillar_scores, time_analysis, streak_stats, correlations, habit_stacks = await asyncio.gather(
        calculate_pillar_scores(user_id),
        analyze_best_time_of_day(user_id),
        analyze_streak_patterns(user_id),
        get_correlations(featured_only=True),
        get_habit_stacks(5),
    )

    overall_score = round_half_up(sum(s.score for s in pillar_scores) / len(pillar_scores))

    ranked = sorted(pillar_scores, key=lambda s: s.score, reverse=True)
    strongest = ranked[0].pillar if ranked[0].score > 0 else None
    weakest = ranked[-1].pillar if ranked[-1].habit_count > 0 else None

    best_time, share = peak_time_of_day(time_analysis)
    best_time_of_day = best_time if share > BEST_TIME_MIN_SHARE else None

    recommendations = generate_recommendations(pillar_scores, time_analysis, correlations, habit_stacks)

    logger.debug(
        f"Insights for user {user_id}: overall {overall_score}, "
        f"strongest {strongest}, weakest {weakest}, {len(recommendations)} recommendations"
    )

    return UserInsights(
        overall_score=overall_score,
        pillar_scores=pillar_scores,
        strongest_pillar=strongest,
        weakest_pillar=weakest,
        best_time_of_day=best_time_of_day,
        best_day_of_week=None,
        streak_stats=streak_stats,
        recommendations=recommendations,
    )
