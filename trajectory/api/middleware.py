"""API middleware for rate limiting, CORS and error mapping"""
import logging
import psycopg
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from trajectory import config
from trajectory.exceptions import TrajectoryError, wrap_external_exception

logger = logging.getLogger(__name__)

# Initialize rate limiter
limiter = Limiter(key_func=get_remote_address)

# Stable reason code -> HTTP status
REASON_STATUS = {
    "ValidationFailed": status.HTTP_400_BAD_REQUEST,
    "NotFound": status.HTTP_404_NOT_FOUND,
    "AlreadyCompleted": status.HTTP_409_CONFLICT,
    "RateLimited": status.HTTP_429_TOO_MANY_REQUESTS,
    "UpstreamFailure": status.HTTP_502_BAD_GATEWAY,
    "CoachUnavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
    "StorageFailure": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def setup_cors(app):
    """Configure CORS middleware"""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    logger.info(f"CORS configured for origins: {config.CORS_ORIGINS}")


def setup_rate_limiting(app):
    """Configure rate limiting"""
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    logger.info("Rate limiting configured")


async def trajectory_error_handler(request: Request, exc: TrajectoryError) -> JSONResponse:
    """Map domain errors to HTTP responses carrying a stable `reason`"""
    status_code = REASON_STATUS.get(exc.reason, status.HTTP_500_INTERNAL_SERVER_ERROR)
    content = exc.to_dict()
    if exc.reason == "RateLimited":
        content["remaining_messages"] = 0
    return JSONResponse(status_code=status_code, content=content)


async def database_error_handler(request: Request, exc: psycopg.Error) -> JSONResponse:
    """Storage failures that escaped the query layer"""
    error = wrap_external_exception(exc, operation=f"{request.method} {request.url.path}")
    return await trajectory_error_handler(request, error)


def setup_error_handlers(app):
    """Register domain, storage and catch-all 500 handlers"""
    app.add_exception_handler(TrajectoryError, trajectory_error_handler)
    app.add_exception_handler(psycopg.Error, database_error_handler)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error", "reason": "InternalError"}
        )
