"""Coach context and onboarding profile models"""
from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class OnboardingProfile(BaseModel):
    """
    Answers collected during onboarding

    Validated once when read from storage. Accepts the camelCase keys the
    web client writes; unknown keys are ignored so older payloads keep
    loading. Bump `version` when a field changes meaning.
    """
    version: int = 1

    # Physical
    fitness_level: Optional[Literal["beginner", "intermediate", "advanced"]] = None
    exercise_goals: list[str] = Field(default_factory=list)
    sleep_hours: Optional[float] = None
    nutrition_focus: list[str] = Field(default_factory=list)

    # Mental
    stress_level: Optional[int] = Field(default=None, ge=0, le=10)
    mental_goals: list[str] = Field(default_factory=list)
    meditation_experience: Optional[bool] = None

    # Fiscal
    financial_goals: list[str] = Field(default_factory=list)
    budgeting_experience: Optional[Literal["none", "some", "experienced"]] = None
    savings_goal: Optional[float] = None

    # Social
    social_goals: list[str] = Field(default_factory=list)
    relationship_focus: list[str] = Field(default_factory=list)

    # Spiritual
    spiritual_practices: list[str] = Field(default_factory=list)
    values_focus: list[str] = Field(default_factory=list)

    # Intellectual
    learning_goals: list[str] = Field(default_factory=list)
    intellectual_interests: list[str] = Field(default_factory=list)

    # Occupational
    career_goals: list[str] = Field(default_factory=list)
    work_life_balance: Optional[int] = None

    # Environmental
    environmental_goals: list[str] = Field(default_factory=list)
    sustainability_level: Optional[Literal["beginner", "intermediate", "advanced"]] = None

    # General
    available_time: Optional[int] = None  # minutes per day
    motivation: Optional[str] = None
    challenges: list[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True)

    @field_validator("challenges", mode="before")
    @classmethod
    def _drop_blank_challenges(cls, value):
        if value is None:
            return []
        return [c for c in value if isinstance(c, str) and c.strip()]


class CoachContext(BaseModel):
    """Structured user context injected into the coach system prompt"""
    level: int = 1
    streak: int = 0
    recent_habit_names: list[str] = Field(default_factory=list)
    stated_challenges: list[str] = Field(default_factory=list)
    pillar_scores: Optional[list[str]] = None
    strongest_pillar: Optional[str] = None
    weakest_pillar: Optional[str] = None
    top_correlation_text: Optional[str] = None
    suggested_habit_stack_text: Optional[str] = None


class CoachMessage(BaseModel):
    """One turn of the stored coach conversation"""
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime


class CoachReply(BaseModel):
    message: str
    remaining_messages: Optional[int] = None
