"""Achievement models for gamification"""
from datetime import datetime
from typing import Annotated, Literal, Optional, Union
from pydantic import BaseModel, Field

from trajectory.models.pillar import Pillar


class StreakCondition(BaseModel):
    """Current streak has reached at least `min_streak` days"""
    kind: Literal["streak"] = "streak"
    min_streak: int = Field(gt=0)


class LevelCondition(BaseModel):
    """User level has reached at least `min_level`"""
    kind: Literal["level"] = "level"
    min_level: int = Field(gt=0)


class PillarCompletionCondition(BaseModel):
    """Lifetime completions of habits in `pillar` reached `min_count`"""
    kind: Literal["pillar_completions"] = "pillar_completions"
    pillar: Pillar
    min_count: int = Field(gt=0)


class ReadingCompletionCondition(BaseModel):
    """Completed readings reached `min_count`"""
    kind: Literal["reading_completions"] = "reading_completions"
    min_count: int = Field(gt=0)


class SameDayPillarsCondition(BaseModel):
    """At least one completion in every listed pillar on the current day"""
    kind: Literal["same_day_pillars"] = "same_day_pillars"
    pillars: tuple[Pillar, ...]


AchievementCondition = Annotated[
    Union[
        StreakCondition,
        LevelCondition,
        PillarCompletionCondition,
        ReadingCompletionCondition,
        SameDayPillarsCondition,
    ],
    Field(discriminator="kind"),
]


class AchievementDefinition(BaseModel):
    """Static catalog entry"""
    key: str
    name: str
    description: str
    icon: str
    xp_reward: int = Field(ge=0)
    pillar: Optional[Pillar] = None
    condition: AchievementCondition


class AchievementState(BaseModel):
    """Snapshot of user state the catalog is evaluated against"""
    current_streak: int = 0
    level: int = 1
    pillar_completions: dict[Pillar, int] = Field(default_factory=dict)
    reading_completions: int = 0
    pillars_completed_today: frozenset[Pillar] = frozenset()


class AchievementUnlock(BaseModel):
    """A user's unlocked achievement"""
    user_id: str
    achievement_key: str
    unlocked_at: datetime
