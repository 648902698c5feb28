"""
AI wellness coach client

Talks to Groq through its OpenAI-compatible endpoint with the OpenAI SDK.
Transient failures are retried with backoff; anything still failing is
raised as CoachUnavailableError.
"""

import json
import logging
import time
from typing import Optional

import httpx
import openai
from openai import AsyncOpenAI

from trajectory import config
from trajectory.exceptions import CoachUnavailableError
from trajectory.models.coach import CoachContext, OnboardingProfile
from trajectory.models.pillar import ALL_PILLARS
from trajectory.resilience.metrics import record_api_call, record_api_failure
from trajectory.resilience.retry import retry_with_backoff

logger = logging.getLogger(__name__)

COACH_API_NAME = "groq_coach"

FALLBACK_REPLY = "I'm here to help. What would you like to work on today?"

SYSTEM_PROMPT = """You are the wellness coach inside Trajectory, an app that helps people grow across eight dimensions of wellness.

The pillars:
- Physical: movement, food, sleep, recovery
- Mental: stress, emotions, mindfulness
- Fiscal: budgeting, saving, money confidence
- Social: friendships, family, community
- Spiritual: purpose, values, reflection
- Intellectual: learning, curiosity, creative work
- Occupational: career, focus, work-life balance
- Environmental: tidy spaces, nature, sustainable choices

How you coach:
- Warm and steady, never over the top
- Practical advice grounded in evidence
- Point at the user's own progress data when it helps
- Notice small wins and say so
- When someone is stuck, ask what is really in the way
- Show how pillars feed each other (better sleep, sharper focus at work)
- Suggest pairing habits from different pillars
- Stay under 200 words unless asked for more"""

PLAN_SYSTEM_PROMPT = (
    "You design personalized starter habit plans for a wellness app. "
    "Reply with a single JSON object and nothing else."
)

DEFAULT_STARTER_PLAN = {
    "physical": [{"name": "30-minute walk", "description": "Start with gentle movement", "xp": 15}],
    "mental": [{"name": "5-minute meditation", "description": "Build a mindfulness habit", "xp": 10}],
    "fiscal": [{"name": "Track one expense", "description": "Build awareness", "xp": 10}],
    "social": [{"name": "Reach out to a friend", "description": "Nurture connections", "xp": 10}],
    "spiritual": [{"name": "Gratitude journaling", "description": "Cultivate appreciation", "xp": 10}],
    "intellectual": [{"name": "Read for 15 minutes", "description": "Expand your knowledge", "xp": 10}],
    "occupational": [{"name": "Plan tomorrow's priorities", "description": "Work smarter", "xp": 10}],
    "environmental": [{"name": "Declutter one space", "description": "Clear space, clear mind", "xp": 10}],
    "daily_tip": "Welcome to your journey! Start small and stay consistent.",
    "habit_stack": "Pair your morning walk with a minute of gratitude.",
}


def render_context_message(context: Optional[CoachContext]) -> str:
    """
    Render the user context appended to the system prompt

    Empty optional sections are left out entirely.
    """
    if context is None:
        return ""

    lines = [
        "",
        "",
        "User context:",
        f"- Level: {context.level or 1}",
        f"- Current streak: {context.streak or 0} days",
    ]
    if context.recent_habit_names:
        lines.append(f"- Recent habits: {', '.join(context.recent_habit_names)}")
    if context.stated_challenges:
        lines.append(f"- Challenges they mentioned: {', '.join(context.stated_challenges)}")

    insights = []
    if context.pillar_scores:
        insights.append(f"- Pillar wellness scores: {', '.join(context.pillar_scores)}")
    if context.strongest_pillar:
        insights.append(f"- Their strongest area: {context.strongest_pillar}")
    if context.weakest_pillar:
        insights.append(f"- Area needing most attention: {context.weakest_pillar}")
    if context.top_correlation_text:
        insights.append(f'- Relevant research insight: "{context.top_correlation_text}"')
    if context.suggested_habit_stack_text:
        insights.append(f'- Suggested habit stack: "{context.suggested_habit_stack_text}"')

    if insights:
        lines += ["", "Personalized Insights (use these to give better advice):"] + insights

    return "\n".join(lines)


def _render_plan_prompt(profile: OnboardingProfile) -> str:
    def join(values):
        return ", ".join(values) if values else "not specified"

    pillars = ", ".join(p.value for p in ALL_PILLARS)
    return f"""Create a personalized 7-day starter plan for this user.

Fitness level: {profile.fitness_level or "not specified"}
Exercise goals: {join(profile.exercise_goals)}
Sleep: {profile.sleep_hours if profile.sleep_hours is not None else "unknown"} hours on average
Stress level: {profile.stress_level if profile.stress_level is not None else "unknown"}/10
Mental goals: {join(profile.mental_goals)}
Meditation experience: {"yes" if profile.meditation_experience else "no"}
Financial goals: {join(profile.financial_goals)}
Budgeting experience: {profile.budgeting_experience or "not specified"}
Available time: {profile.available_time if profile.available_time is not None else "unknown"} minutes/day
Challenges: {join(profile.challenges)}
Motivation: {profile.motivation or "not specified"}

Balance the plan across the pillars ({pillars}). Start easy, fit the available
time, address the stated goals and challenges, and show how habits from
different pillars support each other.

Use exactly this JSON shape:
{{
  "<pillar>": [{{"name": "habit name", "description": "brief why", "xp": 10}}],
  "daily_tip": "motivational message for day 1",
  "habit_stack": "suggestion for combining 2-3 habits"
}}"""


class CoachClient:
    """
    Chat completions against the coach model

    Created lazily so the service starts without GROQ_API_KEY; the first
    coach request then fails with CoachUnavailableError.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None
    ) -> None:
        self.api_key = api_key if api_key is not None else config.GROQ_API_KEY
        self.base_url = base_url or config.COACH_BASE_URL
        self.model = model or config.COACH_MODEL
        self._client: Optional[AsyncOpenAI] = None

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self.api_key:
                raise CoachUnavailableError(
                    "GROQ_API_KEY is not set",
                    operation="coach_client_init",
                    context={"config_key": "GROQ_API_KEY"}
                )
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=httpx.Timeout(30.0, connect=10.0)
            )
        return self._client

    async def _complete(
        self,
        messages: list[dict],
        max_tokens: int,
        operation: str
    ) -> Optional[str]:
        started = time.monotonic()
        try:
            completion = await retry_with_backoff(
                self.client.chat.completions.create,
                model=self.model,
                messages=messages,
                temperature=config.COACH_TEMPERATURE,
                max_tokens=max_tokens,
            )
        except (openai.APIError, httpx.HTTPError) as e:
            record_api_call(COACH_API_NAME, success=False, duration=time.monotonic() - started)
            record_api_failure(COACH_API_NAME, type(e).__name__)
            raise CoachUnavailableError(
                f"Coach completion failed: {e}",
                operation=operation,
                cause=e
            ) from e

        record_api_call(COACH_API_NAME, success=True, duration=time.monotonic() - started)

        if not completion.choices:
            return None
        return completion.choices[0].message.content

    async def generate_response(
        self,
        messages: list[dict],
        context: Optional[CoachContext] = None
    ) -> str:
        """
        Generate the coach's next reply

        Args:
            messages: Conversation turns [{'role': 'user' | 'assistant', 'content': str}]
            context: User context rendered into the system prompt

        Returns:
            Reply text (a fixed friendly line if the model returns nothing)

        Raises:
            CoachUnavailableError: the model could not be reached
        """
        payload = [{"role": "system", "content": SYSTEM_PROMPT + render_context_message(context)}]
        payload += [{"role": m["role"], "content": m["content"]} for m in messages]

        content = await self._complete(payload, config.COACH_MAX_TOKENS, "generate_response")
        if not content:
            logger.warning("Coach model returned an empty reply, using fallback")
            return FALLBACK_REPLY
        return content

    async def generate_starter_plan(self, profile: OnboardingProfile) -> dict:
        """
        Suggest a first week of habits from onboarding answers

        Falls back to a fixed balanced plan when the model's reply isn't a JSON object.
        """
        payload = [
            {"role": "system", "content": PLAN_SYSTEM_PROMPT},
            {"role": "user", "content": _render_plan_prompt(profile)},
        ]
        content = await self._complete(payload, 1000, "generate_starter_plan")

        try:
            plan = json.loads(content or "")
        except json.JSONDecodeError:
            logger.warning("Starter plan reply was not valid JSON, using default plan")
            return dict(DEFAULT_STARTER_PLAN)

        if not isinstance(plan, dict):
            logger.warning("Starter plan reply was not a JSON object, using default plan")
            return dict(DEFAULT_STARTER_PLAN)
        return plan
