"""API routes for the Trajectory wellness core"""
import logging
from datetime import datetime, timezone
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status

from trajectory.analytics import insights
from trajectory.api.auth import verify_api_key
from trajectory.api.middleware import limiter
from trajectory.api.models import (
    AchievementResponse,
    CoachMessageRequest,
    ErrorResponse,
    HealthCheckResponse,
    ProgressResponse,
    StreakResponse,
    XPMultipliersRequest,
    XPMultipliersResponse,
)
from trajectory.db.connection import db
from trajectory.gamification.achievement_system import get_user_achievements
from trajectory.models.coach import CoachContext, CoachReply
from trajectory.models.insights import Correlation, HabitStack, UserInsights
from trajectory.models.progress import CompletionResult
from trajectory.services.container import ServiceContainer, get_container

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1")


def get_services() -> ServiceContainer:
    return get_container()


# ==========================================
# Habit completion and progress
# ==========================================

@router.post(
    "/users/{user_id}/habits/{habit_id}/complete",
    response_model=CompletionResult,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
@limiter.limit("60/minute")
async def complete_habit(
    request: Request,
    user_id: str,
    habit_id: UUID,
    api_key: str = Depends(verify_api_key),
    services: ServiceContainer = Depends(get_services)
):
    """
    Mark a habit done for today

    404 when the habit is missing or archived, 409 when it is already done today,
    422 when the habit id is not a UUID.
    """
    return await services.completion_service.complete_habit(user_id, str(habit_id))


@router.post("/users/{user_id}/streak/recalculate", response_model=StreakResponse)
@limiter.limit("10/minute")
async def recalculate_streak(
    request: Request,
    user_id: str,
    api_key: str = Depends(verify_api_key),
    services: ServiceContainer = Depends(get_services)
):
    """Recompute the stored streak from the completion log"""
    streak = await services.completion_service.recalculate_streak(user_id)
    return StreakResponse(user_id=user_id, streak=streak)


@router.get("/users/{user_id}/progress", response_model=ProgressResponse)
@limiter.limit("60/minute")
async def get_progress(
    request: Request,
    user_id: str,
    api_key: str = Depends(verify_api_key),
    services: ServiceContainer = Depends(get_services)
):
    return await services.progress_service.get_progress(user_id)


@router.get("/users/{user_id}/achievements", response_model=AchievementResponse)
@limiter.limit("30/minute")
async def list_achievements(
    request: Request,
    user_id: str,
    api_key: str = Depends(verify_api_key)
):
    """Unlocked achievements and progress toward the rest"""
    return await get_user_achievements(user_id)


# ==========================================
# Insights
# ==========================================

@router.get("/users/{user_id}/insights", response_model=UserInsights)
@limiter.limit("30/minute")
async def get_insights(
    request: Request,
    user_id: str,
    api_key: str = Depends(verify_api_key)
):
    return await insights.get_user_insights(user_id)


@router.get("/insights/correlations", response_model=List[Correlation])
@limiter.limit("30/minute")
async def list_correlations(
    request: Request,
    featured_only: bool = Query(True),
    api_key: str = Depends(verify_api_key)
):
    return await insights.get_correlations(featured_only=featured_only)


@router.get("/insights/habit-stacks", response_model=List[HabitStack])
@limiter.limit("30/minute")
async def list_habit_stacks(
    request: Request,
    limit: int = Query(5, ge=1, le=50),
    api_key: str = Depends(verify_api_key)
):
    return await insights.get_habit_stacks(limit=limit)


@router.get("/users/{user_id}/xp-multipliers", response_model=XPMultipliersResponse)
@limiter.limit("30/minute")
async def get_xp_multipliers(
    request: Request,
    user_id: str,
    api_key: str = Depends(verify_api_key)
):
    multipliers = await insights.get_xp_multipliers(user_id)
    return XPMultipliersResponse(user_id=user_id, multipliers=multipliers)


@router.put("/users/{user_id}/xp-multipliers", response_model=XPMultipliersResponse)
@limiter.limit("10/minute")
async def set_xp_multipliers(
    request: Request,
    user_id: str,
    body: XPMultipliersRequest,
    api_key: str = Depends(verify_api_key)
):
    """Store explicit per-pillar multipliers"""
    multipliers = await insights.set_xp_multipliers(user_id, body.multipliers)
    return XPMultipliersResponse(user_id=user_id, multipliers=multipliers)


# ==========================================
# Coach
# ==========================================

@router.get("/users/{user_id}/coach/context", response_model=CoachContext)
@limiter.limit("30/minute")
async def get_coach_context(
    request: Request,
    user_id: str,
    include_insights: bool = Query(True),
    api_key: str = Depends(verify_api_key),
    services: ServiceContainer = Depends(get_services)
):
    return await services.coach_service.build_coach_context(user_id, include_insights=include_insights)


@router.post(
    "/users/{user_id}/coach/messages",
    response_model=CoachReply,
    responses={429: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
@limiter.limit("10/minute")
async def send_coach_message(
    request: Request,
    user_id: str,
    body: CoachMessageRequest,
    api_key: str = Depends(verify_api_key),
    services: ServiceContainer = Depends(get_services)
):
    """
    One chat turn with the AI coach

    429 once a free tier user has sent the day's allowance, 503 when the
    coach model is unavailable.
    """
    return await services.coach_service.send_coach_message(user_id, body.message)


@router.post("/users/{user_id}/coach/plan", responses={503: {"model": ErrorResponse}})
@limiter.limit("5/minute")
async def generate_starter_plan(
    request: Request,
    user_id: str,
    api_key: str = Depends(verify_api_key),
    services: ServiceContainer = Depends(get_services)
):
    """Personalized first-week habit plan from onboarding answers"""
    return await services.coach_service.generate_starter_plan(user_id)


# ==========================================
# Health
# ==========================================

@router.get("/health", response_model=HealthCheckResponse)
@limiter.limit("60/minute")
async def health_check(request: Request):
    """Health check endpoint (no auth, for monitoring systems)"""
    db_status = "connected" if await db.ping() else "disconnected"

    return HealthCheckResponse(
        status="healthy" if db_status == "connected" else "degraded",
        database=db_status,
        timestamp=datetime.now(timezone.utc)
    )
