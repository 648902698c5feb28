"""API authentication using API keys"""
import logging
from fastapi import HTTPException, Request, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from trajectory import config

logger = logging.getLogger(__name__)

security = HTTPBearer()


def _describe_caller(request: Request) -> str:
    """'user <id> on <path>' for user-scoped routes, else just the path"""
    user_id = request.path_params.get("user_id")
    path = request.url.path
    return f"user {user_id} on {path}" if user_id else path


async def verify_api_key(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Security(security)
) -> str:
    """
    Verify the API key from the Authorization header

    Every route except health and metrics depends on this. Rejections are
    logged with the user and path they targeted; the key itself never is.

    Returns:
        The verified API key

    Raises:
        HTTPException: 401 for an unknown key, 503 when no keys are configured
    """
    api_key = credentials.credentials
    valid_keys = config.API_KEYS

    if not valid_keys:
        logger.error(f"No API keys configured - rejecting request for {_describe_caller(request)}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="API authentication not configured"
        )

    if api_key not in valid_keys:
        logger.warning(f"Invalid API key for {_describe_caller(request)}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key"
        )

    logger.debug(f"API key accepted for {_describe_caller(request)}")
    return api_key
