"""XP, level, streak and completion result models"""
from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field

from trajectory.models.habit import HabitCompletion


class UserProgress(BaseModel):
    """Gamification state stored on the user profile"""
    user_id: str
    total_xp: int = Field(default=0, ge=0)
    level: int = Field(default=1, ge=1)  # cached, always derivable from total_xp
    current_streak: int = Field(default=0, ge=0)
    longest_streak: int = Field(default=0, ge=0)
    tier: Literal["free", "premium"] = "free"


class StreakUpdate(BaseModel):
    """Outcome of recalculating a user's streak from the completion log"""
    current: int
    longest: int
    is_new_record: bool
    previous: int = 0


class StreakBonus(BaseModel):
    """Milestone bonus granted when a streak crosses a threshold"""
    xp: int = 0
    milestone: Optional[str] = None


class UnlockedAchievement(BaseModel):
    """Achievement granted during a completion"""
    key: str
    name: str
    xp_reward: int
    unlocked_at: datetime


class CompletionResult(BaseModel):
    """Summary returned after a habit is marked done"""
    completion: HabitCompletion
    base_xp: int
    bonus_xp: int
    total_xp: int
    milestone_label: Optional[str] = None
    streak: StreakUpdate
    new_total_xp: int
    level: int
    leveled_up: bool = False
    achievements_unlocked: list[UnlockedAchievement] = Field(default_factory=list)
    achievement_xp: int = 0
