"""Habit and completion models"""
from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

from trajectory.models.pillar import Pillar


class HabitFrequency(str, Enum):
    """How often a habit is meant to be done (scoring treats all as daily)"""
    DAILY = "daily"
    WEEKLY = "weekly"
    CUSTOM = "custom"


class Habit(BaseModel):
    """A user-defined habit within one pillar"""
    id: str
    user_id: str
    pillar: Pillar
    name: str
    description: Optional[str] = None
    frequency: HabitFrequency = HabitFrequency.DAILY
    target_days: Optional[list[int]] = None
    xp_reward: int = Field(default=10, gt=0)
    archived: bool = False


class HabitCompletion(BaseModel):
    """Append-only record of a habit done on a given day"""
    id: str
    habit_id: str
    user_id: str
    completed_at: datetime
    notes: Optional[str] = None
