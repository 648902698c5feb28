"""Global test fixtures and utilities for trajectory tests"""
import pytest
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from psycopg import errors

from trajectory import config
from trajectory.db import queries
from trajectory.exceptions import AlreadyCompletedError
from trajectory.utils.datetime_helpers import ensure_aware, local_date


# ============================================================================
# In-memory store
# ============================================================================

class FakeStore:
    """
    In-memory stand-in for the query layer

    Each public coroutine mirrors the function of the same name in
    trajectory.db.queries, including the unique (habit, user, day)
    constraint on completions and the unlock-once ledger.
    """

    def __init__(self):
        self.profiles: dict[str, dict] = {}
        self.habits: dict[str, dict] = {}
        self.completions: list[dict] = []
        self.xp_transactions: list[dict] = []
        self.unlocks: dict[tuple[str, str], datetime] = {}
        self.readings: dict[str, int] = {}
        self.correlations: list[dict] = []
        self.stacks: list[dict] = []
        self.multipliers: dict[str, dict[str, float]] = {}
        self.messages: list[dict] = []

    # -- seeding helpers ---------------------------------------------------

    def add_user(self, user_id: str, **fields) -> dict:
        profile = {
            "user_id": user_id,
            "total_xp": 0,
            "level": 1,
            "current_streak": 0,
            "longest_streak": 0,
            "tier": "free",
            "onboarding_data": None,
        }
        profile.update(fields)
        self.profiles[user_id] = profile
        return profile

    def add_habit(
        self,
        user_id: str,
        pillar: str = "physical",
        name: str = "Morning walk",
        xp_reward: int = 10,
        archived: bool = False,
        habit_id: Optional[str] = None
    ) -> dict:
        habit = {
            "id": habit_id or str(uuid4()),
            "user_id": user_id,
            "pillar": pillar,
            "name": name,
            "description": None,
            "frequency": "daily",
            "target_days": None,
            "xp_reward": xp_reward,
            "archived": archived,
            "created_at": len(self.habits),
        }
        self.habits[habit["id"]] = habit
        return habit

    def add_completion(self, habit_id: str, completed_at: datetime) -> dict:
        habit = self.habits[habit_id]
        row = {
            "id": str(uuid4()),
            "habit_id": habit_id,
            "user_id": habit["user_id"],
            "completed_at": ensure_aware(completed_at),
            "completed_on": local_date(completed_at),
            "notes": None,
        }
        self.completions.append(row)
        return row

    def _profile(self, user_id: str) -> dict:
        if user_id not in self.profiles:
            self.add_user(user_id)
        return self.profiles[user_id]

    @staticmethod
    def _habit_row(habit: dict) -> dict:
        return {k: v for k, v in habit.items() if k != "created_at"}

    @staticmethod
    def _completion_row(row: dict) -> dict:
        return {k: row[k] for k in ("id", "habit_id", "user_id", "completed_at", "notes")}

    # -- habits ------------------------------------------------------------

    async def get_habit(self, user_id, habit_id):
        habit = self.habits.get(str(habit_id))
        if habit is None or habit["user_id"] != user_id:
            return None
        return self._habit_row(habit)

    async def get_active_habits(self, user_id):
        return [
            self._habit_row(h) for h in sorted(self.habits.values(), key=lambda h: h["created_at"])
            if h["user_id"] == user_id and not h["archived"]
        ]

    async def get_recent_habit_names(self, user_id, limit=5):
        active = [h for h in self.habits.values() if h["user_id"] == user_id and not h["archived"]]
        active.sort(key=lambda h: h["created_at"], reverse=True)
        return [h["name"] for h in active[:limit]]

    # -- completions -------------------------------------------------------

    async def get_completion_on_day(self, habit_id, user_id, day):
        for row in self.completions:
            if row["habit_id"] == str(habit_id) and row["user_id"] == user_id and row["completed_on"] == day:
                return self._completion_row(row)
        return None

    async def insert_completion(self, habit_id, user_id, completed_at, completed_on, notes=None):
        for row in self.completions:
            if row["habit_id"] == str(habit_id) and row["user_id"] == user_id and row["completed_on"] == completed_on:
                raise AlreadyCompletedError(habit_id=str(habit_id), day=completed_on.isoformat(), user_id=user_id)
        row = {
            "id": str(uuid4()),
            "habit_id": str(habit_id),
            "user_id": user_id,
            "completed_at": completed_at,
            "completed_on": completed_on,
            "notes": notes,
        }
        self.completions.append(row)
        return self._completion_row(row)

    async def count_completions_on_day(self, user_id, day):
        return sum(1 for c in self.completions if c["user_id"] == user_id and c["completed_on"] == day)

    async def get_completion_days(self, user_id, since):
        days = {c["completed_on"] for c in self.completions if c["user_id"] == user_id and c["completed_on"] >= since}
        return sorted(days, reverse=True)

    async def get_completions_since(self, user_id, since):
        rows = []
        for c in sorted(self.completions, key=lambda c: c["completed_at"]):
            habit = self.habits[c["habit_id"]]
            if c["user_id"] == user_id and not habit["archived"] and c["completed_at"] >= since:
                rows.append({"habit_id": c["habit_id"], "pillar": habit["pillar"], "completed_at": c["completed_at"]})
        return rows

    async def get_completion_times_since(self, user_id, since):
        return sorted(
            c["completed_at"] for c in self.completions
            if c["user_id"] == user_id and c["completed_at"] >= since
        )

    async def count_completions_by_pillar(self, user_id):
        counts: dict[str, int] = {}
        for c in self.completions:
            if c["user_id"] == user_id:
                pillar = self.habits[c["habit_id"]]["pillar"]
                counts[pillar] = counts.get(pillar, 0) + 1
        return counts

    async def get_pillars_completed_on_day(self, user_id, day):
        return list({
            self.habits[c["habit_id"]]["pillar"] for c in self.completions
            if c["user_id"] == user_id and c["completed_on"] == day
        })

    async def count_completed_readings(self, user_id):
        return self.readings.get(user_id, 0)

    # -- progress ----------------------------------------------------------

    async def get_user_progress(self, user_id):
        profile = self._profile(user_id)
        return {k: profile[k] for k in ("user_id", "total_xp", "level", "current_streak", "longest_streak", "tier")}

    async def update_user_streak(self, user_id, current_streak, longest_streak):
        profile = self._profile(user_id)
        profile["current_streak"] = current_streak
        profile["longest_streak"] = longest_streak

    async def add_user_xp(self, user_id, amount):
        profile = self._profile(user_id)
        profile["total_xp"] += amount
        return profile["total_xp"]

    async def update_user_level(self, user_id, level):
        self._profile(user_id)["level"] = level

    async def add_xp_transaction(self, user_id, amount, source_type, source_id=None, reason=None):
        self.xp_transactions.append({
            "user_id": user_id,
            "amount": amount,
            "source_type": source_type,
            "source_id": source_id,
            "reason": reason,
        })

    async def get_onboarding_data(self, user_id):
        profile = self.profiles.get(user_id)
        return profile["onboarding_data"] if profile else None

    # -- achievements ------------------------------------------------------

    async def get_user_achievement_unlocks(self, user_id):
        return [
            {"achievement_key": key, "unlocked_at": at}
            for (uid, key), at in self.unlocks.items() if uid == user_id
        ]

    async def add_user_achievement(self, user_id, achievement_key):
        if (user_id, achievement_key) in self.unlocks:
            return None
        unlocked_at = datetime.now(timezone.utc)
        self.unlocks[(user_id, achievement_key)] = unlocked_at
        return {"achievement_key": achievement_key, "unlocked_at": unlocked_at}

    # -- insights ----------------------------------------------------------

    async def get_pillar_correlations(self, featured_only=True):
        return [c for c in self.correlations if c.get("featured", True) or not featured_only]

    async def get_habit_stack_patterns(self, limit=5):
        ranked = sorted(self.stacks, key=lambda s: s["recommendation_score"], reverse=True)
        return ranked[:limit]

    async def get_xp_multipliers(self, user_id):
        stored = self.multipliers.get(user_id)
        return dict(stored) if stored else None

    async def upsert_xp_multipliers(self, user_id, multipliers):
        if user_id not in self.profiles:
            raise errors.ForeignKeyViolation(f"user_profiles has no row for {user_id}")
        self.multipliers.setdefault(user_id, {}).update(multipliers)

    # -- coach conversation ------------------------------------------------

    async def save_coach_messages(self, user_id, messages):
        for m in messages:
            self.messages.append({"user_id": user_id, **m})

    async def count_user_messages_between(self, user_id, start, end):
        return sum(
            1 for m in self.messages
            if m["user_id"] == user_id and m["role"] == "user" and start <= m["timestamp"] < end
        )

    async def get_recent_coach_messages(self, user_id, limit=10):
        mine = [m for m in self.messages if m["user_id"] == user_id]
        mine.sort(key=lambda m: m["timestamp"])
        return [{"role": m["role"], "content": m["content"], "timestamp": m["timestamp"]} for m in mine[-limit:]]


QUERY_NAMES = [
    "get_habit",
    "get_active_habits",
    "get_recent_habit_names",
    "get_completion_on_day",
    "insert_completion",
    "count_completions_on_day",
    "get_completion_days",
    "get_completions_since",
    "get_completion_times_since",
    "count_completions_by_pillar",
    "get_pillars_completed_on_day",
    "count_completed_readings",
    "get_user_progress",
    "update_user_streak",
    "add_user_xp",
    "update_user_level",
    "add_xp_transaction",
    "get_onboarding_data",
    "get_user_achievement_unlocks",
    "add_user_achievement",
    "get_pillar_correlations",
    "get_habit_stack_patterns",
    "get_xp_multipliers",
    "upsert_xp_multipliers",
    "save_coach_messages",
    "count_user_messages_between",
    "get_recent_coach_messages",
]


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture(autouse=True)
def utc_app_timezone(monkeypatch):
    """Run every test with calendar days taken in UTC"""
    monkeypatch.setattr(config, "APP_TIMEZONE", "UTC")


@pytest.fixture
def store(monkeypatch):
    """FakeStore wired in place of every query function"""
    fake = FakeStore()
    for name in QUERY_NAMES:
        monkeypatch.setattr(queries, name, getattr(fake, name))
    return fake


@pytest.fixture
def test_user_id():
    """Standard test user ID"""
    return "user-123"


@pytest.fixture
def day_one():
    """A fixed completion instant (10:00 UTC)"""
    return datetime(2025, 3, 10, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_correlations():
    return [
        {
            "pillar_a": "physical",
            "pillar_b": "mental",
            "correlation_strength": 0.78,
            "insight_text": "Exercise lifts mood for hours afterwards.",
            "featured": True,
        },
        {
            "pillar_a": "fiscal",
            "pillar_b": "mental",
            "correlation_strength": 0.65,
            "insight_text": "Tracking spending lowers money anxiety.",
            "featured": True,
        },
        {
            "pillar_a": "social",
            "pillar_b": "spiritual",
            "correlation_strength": 0.41,
            "insight_text": "Shared rituals deepen a sense of purpose.",
            "featured": False,
        },
    ]


@pytest.fixture
def sample_stacks():
    return [
        {
            "habit_type_a": "meditation",
            "habit_type_b": "journaling",
            "pillar_a": "mental",
            "pillar_b": "spiritual",
            "combined_completion_rate": 82.0,
            "suggestion_text": "Journal for two minutes right after you meditate.",
            "recommendation_score": 0.9,
        },
        {
            "habit_type_a": "walk",
            "habit_type_b": "budget_check",
            "pillar_a": "physical",
            "pillar_b": "fiscal",
            "combined_completion_rate": 64.0,
            "suggestion_text": "Review yesterday's spending on your morning walk.",
            "recommendation_score": 0.7,
        },
    ]


