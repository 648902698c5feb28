"""
CoachService - AI Coaching Business Logic

Assembles the user context the coach sees, enforces the free tier's daily
message allowance, and runs one chat turn against the coach model.
"""

import logging
from datetime import datetime
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from trajectory import config
from trajectory.analytics.insights import get_correlations, get_habit_stacks, get_user_insights
from trajectory.coach.client import CoachClient
from trajectory.db import queries
from trajectory.exceptions import CoachUnavailableError, RateLimitExceededError
from trajectory.models.coach import CoachContext, CoachReply, OnboardingProfile
from trajectory.resilience.metrics import record_coach_message
from trajectory.utils.datetime_helpers import day_bounds_utc, local_date, now_utc

logger = logging.getLogger(__name__)

HISTORY_TURNS = 10


class CoachService:
    """
    Service for the AI coach.

    Responsibilities:
    - Coach context (progress, habits, challenges, insights)
    - Free tier rate limit, counted from the stored message log
    - Chat turns and starter plans
    """

    def __init__(self, db_connection, client: Optional[CoachClient] = None):
        """
        Initialize CoachService.

        Args:
            db_connection: Database connection instance
            client: Coach LLM client (created on first use if omitted)
        """
        self.db = db_connection
        self.client = client or CoachClient()
        logger.debug("CoachService initialized")

    async def get_onboarding_profile(self, user_id: str) -> OnboardingProfile:
        """Stored onboarding answers, validated; an unreadable record yields an empty profile"""
        data = await queries.get_onboarding_data(user_id)
        if not data:
            return OnboardingProfile()
        try:
            return OnboardingProfile.model_validate(data)
        except PydanticValidationError as e:
            logger.warning(f"Ignoring invalid onboarding data for user {user_id}: {e.error_count()} errors")
            return OnboardingProfile()

    async def build_coach_context(self, user_id: str, include_insights: bool = True) -> CoachContext:
        """
        Everything the coach should know about the user.

        Args:
            user_id: User ID
            include_insights: Add pillar scores, correlation and habit stack

        Returns:
            CoachContext
        """
        progress = await queries.get_user_progress(user_id)
        habit_names = await queries.get_recent_habit_names(user_id, limit=5)
        profile = await self.get_onboarding_profile(user_id)

        context = CoachContext(
            level=progress["level"],
            streak=progress["current_streak"],
            recent_habit_names=habit_names,
            stated_challenges=profile.challenges,
        )

        if not include_insights:
            return context

        insights = await get_user_insights(user_id)
        context.pillar_scores = [f"{s.pillar.value}: {s.score}" for s in insights.pillar_scores]
        context.strongest_pillar = insights.strongest_pillar.value if insights.strongest_pillar else None
        context.weakest_pillar = insights.weakest_pillar.value if insights.weakest_pillar else None

        correlations = await get_correlations(featured_only=True)
        if correlations:
            context.top_correlation_text = correlations[0].insight_text

        stacks = await get_habit_stacks(limit=1)
        if stacks:
            context.suggested_habit_stack_text = stacks[0].suggestion_text

        return context

    async def check_rate_limit(
        self,
        user_id: str,
        tier: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Optional[int]:
        """
        Admit or reject one more user message today.

        Free tier (and unknown tier) users get FREE_TIER_DAILY_LIMIT user
        messages per calendar day. The message being sent counts.

        Returns:
            Messages left today after this one, or None for unlimited tiers

        Raises:
            RateLimitExceededError: the new message would exceed the allowance
        """
        if tier == "premium":
            return None

        now = now or now_utc()
        start, end = day_bounds_utc(local_date(now))
        sent_today = await queries.count_user_messages_between(user_id, start, end)
        limit = config.FREE_TIER_DAILY_LIMIT

        total = sent_today + 1
        if total > limit:
            logger.warning(f"User {user_id} hit the daily coach limit ({limit})")
            raise RateLimitExceededError(limit=limit, user_id=user_id, operation="send_coach_message")

        return limit - total

    async def send_coach_message(self, user_id: str, message: str) -> CoachReply:
        """
        Run one chat turn.

        The exchange is appended to the log only after the model replies, so
        a failed generation leaves the log (and the day's allowance) untouched.

        Raises:
            RateLimitExceededError: free tier allowance used up
            CoachUnavailableError: the model could not produce a reply
        """
        now = now_utc()
        progress = await queries.get_user_progress(user_id)
        try:
            remaining = await self.check_rate_limit(user_id, progress.get("tier"), now)
        except RateLimitExceededError:
            record_coach_message("rate_limited")
            raise

        context = await self.build_coach_context(user_id)
        history = await queries.get_recent_coach_messages(user_id, limit=HISTORY_TURNS)
        turns = [{"role": m["role"], "content": m["content"]} for m in history]
        turns.append({"role": "user", "content": message})

        try:
            reply = await self.client.generate_response(turns, context)
        except CoachUnavailableError:
            record_coach_message("unavailable")
            raise

        await queries.save_coach_messages(user_id, [
            {"role": "user", "content": message, "timestamp": now},
            {"role": "assistant", "content": reply, "timestamp": now_utc()},
        ])

        record_coach_message("replied")
        logger.info(f"Coach replied to user {user_id} ({len(reply)} chars)")
        return CoachReply(message=reply, remaining_messages=remaining)

    async def generate_starter_plan(self, user_id: str) -> dict:
        """Personalized first-week habit plan from the user's onboarding answers"""
        profile = await self.get_onboarding_profile(user_id)
        plan = await self.client.generate_starter_plan(profile)
        logger.info(f"Generated starter plan for user {user_id}")
        return plan
