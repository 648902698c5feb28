"""Pydantic models for API request/response validation"""
from datetime import date, datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator

from trajectory.models.pillar import Pillar
from trajectory.models.progress import StreakUpdate


class CoachMessageRequest(BaseModel):
    """Request model for a coach chat turn"""
    message: str = Field(..., min_length=1, max_length=4000, description="User message text")

    @field_validator("message")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("message must not be blank")
        return value


class XPMultipliersRequest(BaseModel):
    """Explicit per-pillar multiplier overrides"""
    multipliers: Dict[Pillar, float] = Field(..., min_length=1, description="Pillar -> multiplier")

    @field_validator("multipliers")
    @classmethod
    def _positive(cls, value: Dict[Pillar, float]) -> Dict[Pillar, float]:
        for pillar, multiplier in value.items():
            if multiplier <= 0 or multiplier > 10:
                raise ValueError(f"multiplier for {pillar.value} must be in (0, 10]")
        return value


class XPMultipliersResponse(BaseModel):
    user_id: str
    multipliers: Dict[str, float]


class StreakResponse(BaseModel):
    """Response after recalculating a streak"""
    user_id: str
    streak: StreakUpdate


class DailyStats(BaseModel):
    date: date
    habits_completed: int
    habits_total: int
    xp_earned: int
    completion_rate: float


class ProgressResponse(BaseModel):
    """XP, level and streak snapshot"""
    user_id: str
    total_xp: int
    current_level: int
    xp_in_current_level: int
    xp_required_for_next_level: int
    xp_to_next_level: int
    progress_percent: float
    current_streak: int
    longest_streak: int
    streak_summary: str
    today: DailyStats
    motivational_message: str


class AchievementResponse(BaseModel):
    """Unlocked and locked achievements"""
    unlocked: List[Dict[str, Any]]
    locked: List[Dict[str, Any]]
    total_unlocked: int
    total_achievements: int
    total_xp_from_achievements: int


class HealthCheckResponse(BaseModel):
    """Health check response"""
    status: str = Field(..., description="Service status")
    database: str = Field(..., description="Database connection status")
    timestamp: datetime = Field(..., description="Check timestamp")


class ErrorResponse(BaseModel):
    """Error response model"""
    error: str = Field(..., description="Error class")
    reason: str = Field(..., description="Stable reason code")
    message: str = Field(..., description="Error message")
    user_message: Optional[str] = Field(None, description="Message safe to show end users")
    request_id: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.now)
