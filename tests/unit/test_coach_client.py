"""Unit tests for the coach LLM client"""
import json
import pytest
import httpx
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from trajectory.coach.client import (
    DEFAULT_STARTER_PLAN,
    FALLBACK_REPLY,
    CoachClient,
    render_context_message,
)
from trajectory.exceptions import CoachUnavailableError
from trajectory.models.coach import CoachContext, OnboardingProfile


def _completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


@pytest.fixture
def client():
    coach = CoachClient(api_key="test-key", base_url="http://coach.test/v1", model="test-model")
    coach._client = MagicMock()
    coach._client.chat.completions.create = AsyncMock(return_value=_completion("Keep going!"))
    return coach


# ============================================================================
# Context rendering
# ============================================================================

def test_render_no_context():
    assert render_context_message(None) == ""


def test_render_basic_context():
    text = render_context_message(CoachContext(level=2, streak=5, recent_habit_names=["Walk", "Read"]))

    assert "User context:" in text
    assert "- Level: 2" in text
    assert "- Current streak: 5 days" in text
    assert "- Recent habits: Walk, Read" in text
    assert "Challenges" not in text
    assert "Personalized Insights" not in text


def test_render_full_context():
    context = CoachContext(
        level=4,
        streak=12,
        stated_challenges=["time", "energy"],
        pillar_scores=["physical: 80", "mental: 20"],
        strongest_pillar="physical",
        weakest_pillar="mental",
        top_correlation_text="Exercise lifts mood.",
        suggested_habit_stack_text="Stretch after brushing your teeth.",
    )

    text = render_context_message(context)

    assert "- Challenges they mentioned: time, energy" in text
    assert "Personalized Insights (use these to give better advice):" in text
    assert "- Pillar wellness scores: physical: 80, mental: 20" in text
    assert "- Their strongest area: physical" in text
    assert "- Area needing most attention: mental" in text
    assert '- Relevant research insight: "Exercise lifts mood."' in text
    assert '- Suggested habit stack: "Stretch after brushing your teeth."' in text


# ============================================================================
# Chat completions
# ============================================================================

def test_missing_api_key():
    coach = CoachClient(api_key="")

    with pytest.raises(CoachUnavailableError):
        coach.client


@pytest.mark.asyncio
async def test_generate_response(client):
    reply = await client.generate_response(
        [{"role": "user", "content": "Hi"}],
        CoachContext(level=3)
    )

    assert reply == "Keep going!"
    kwargs = client._client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "test-model"
    assert kwargs["messages"][0]["role"] == "system"
    assert "- Level: 3" in kwargs["messages"][0]["content"]
    assert kwargs["messages"][1] == {"role": "user", "content": "Hi"}


@pytest.mark.asyncio
async def test_empty_reply_falls_back(client):
    client._client.chat.completions.create.return_value = _completion("")

    assert await client.generate_response([{"role": "user", "content": "Hi"}]) == FALLBACK_REPLY


@pytest.mark.asyncio
async def test_transport_failure_is_coach_unavailable(client):
    client._client.chat.completions.create.side_effect = httpx.ConnectError("refused")

    with pytest.raises(CoachUnavailableError) as exc_info:
        await client.generate_response([{"role": "user", "content": "Hi"}])

    assert exc_info.value.reason == "CoachUnavailable"


# ============================================================================
# Starter plan
# ============================================================================

@pytest.mark.asyncio
async def test_starter_plan_parsed(client):
    plan = {"physical": [{"name": "Stretch", "description": "Loosen up", "xp": 10}], "daily_tip": "Go!"}
    client._client.chat.completions.create.return_value = _completion(json.dumps(plan))

    assert await client.generate_starter_plan(OnboardingProfile()) == plan


@pytest.mark.asyncio
async def test_starter_plan_invalid_json_uses_default(client):
    client._client.chat.completions.create.return_value = _completion("Here is your plan: walk more")

    assert await client.generate_starter_plan(OnboardingProfile()) == DEFAULT_STARTER_PLAN


@pytest.mark.asyncio
async def test_starter_plan_non_object_uses_default(client):
    client._client.chat.completions.create.return_value = _completion("[1, 2, 3]")

    assert await client.generate_starter_plan(OnboardingProfile()) == DEFAULT_STARTER_PLAN
