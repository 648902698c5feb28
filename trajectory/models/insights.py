"""Wellness insights models"""
from typing import Literal, Optional
from pydantic import BaseModel, Field

from trajectory.models.pillar import Pillar

TimeOfDay = Literal["morning", "afternoon", "evening"]
RecommendationType = Literal["habit", "habit_stack", "pillar_focus", "time_optimization", "streak_recovery"]


class PillarScore(BaseModel):
    """Derived per-pillar wellness score over a rolling window"""
    pillar: Pillar
    score: int = Field(ge=0, le=100)
    habit_count: int = Field(ge=0)
    completion_rate: int = Field(ge=0)


class TimeOfDayAnalysis(BaseModel):
    """Share of completions per part of the day, in percent"""
    morning: int
    afternoon: int
    evening: int

    def as_pairs(self) -> list[tuple[TimeOfDay, int]]:
        """Buckets in fixed morning, afternoon, evening order"""
        return [("morning", self.morning), ("afternoon", self.afternoon), ("evening", self.evening)]


class StreakStats(BaseModel):
    average_length: int
    recovery_rate: int


class Correlation(BaseModel):
    """Curated relationship between two pillars"""
    pillar_a: Pillar
    pillar_b: Pillar
    strength: float
    insight_text: str


class HabitStack(BaseModel):
    """Curated pairing of two habit types"""
    habit_type_a: str
    habit_type_b: str
    pillar_a: Pillar
    pillar_b: Pillar
    completion_rate: float
    suggestion_text: str
    score: float


class Recommendation(BaseModel):
    type: RecommendationType
    title: str
    description: str
    primary_pillar: Optional[Pillar] = None
    secondary_pillar: Optional[Pillar] = None
    confidence: float  # 0-1
    priority: int


class UserInsights(BaseModel):
    """Complete analytics payload for the insights dashboard and coach"""
    overall_score: int
    pillar_scores: list[PillarScore]
    strongest_pillar: Optional[Pillar] = None
    weakest_pillar: Optional[Pillar] = None
    best_time_of_day: Optional[TimeOfDay] = None
    best_day_of_week: Optional[int] = None
    streak_stats: StreakStats
    recommendations: list[Recommendation]
