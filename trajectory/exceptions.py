"""
Standardized exception hierarchy for trajectory
Provides rich context, consistent logging, and user-friendly error messages
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any
from uuid import uuid4
import logging

logger = logging.getLogger(__name__)


def _merge_context(kwargs: Dict[str, Any], extra: Dict[str, Any]) -> Dict[str, Any]:
    """Pop caller-supplied context out of kwargs and merge subclass fields into it"""
    merged = dict(kwargs.pop("context", None) or {})
    merged.update(extra)
    return merged


class TrajectoryError(Exception):
    """
    Base exception for all trajectory errors

    Provides:
    - Automatic timestamping
    - Request ID for tracing
    - User-friendly messages
    - Structured context
    - Automatic logging

    Example:
        raise TrajectoryError(
            message="Failed to save completion",
            user_id="user-123",
            operation="complete_habit",
            context={"habit_id": "abc-123"}
        )
    """

    # Stable reason code surfaced to API callers
    reason: str = "InternalError"
    log_level: int = logging.ERROR

    def __init__(
        self,
        message: str,
        user_id: Optional[str] = None,
        request_id: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        user_message: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.user_id = user_id
        self.request_id = request_id or str(uuid4())
        self.operation = operation
        self.context = context or {}
        self.cause = cause
        self.user_message = user_message or "An error occurred. Please try again."
        self.timestamp = datetime.now(timezone.utc)

        # Auto-log on creation
        self._log_error()

    def _log_error(self) -> None:
        """Log error with full context"""
        log_data = {
            "error_type": self.__class__.__name__,
            "error_message": self.message,  # Avoid conflict with logging's 'message' field
            "request_id": self.request_id,
            "user_id": self.user_id,
            "operation": self.operation,
            "error_context": self.context,  # Avoid conflict with logging's 'context'
            "timestamp": self.timestamp.isoformat()
        }

        if self.cause:
            log_data["cause"] = str(self.cause)
            logger.log(self.log_level, f"{self.__class__.__name__}: {self.message}", extra=log_data, exc_info=self.cause)
        else:
            logger.log(self.log_level, f"{self.__class__.__name__}: {self.message}", extra=log_data)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for API responses"""
        return {
            "error": self.__class__.__name__,
            "reason": self.reason,
            "message": self.message,
            "user_message": self.user_message,
            "request_id": self.request_id,
            "timestamp": self.timestamp.isoformat()
        }


# ==========================================
# Validation Errors (User Input)
# ==========================================

class ValidationError(TrajectoryError):
    """
    Raised when input fails validation

    Examples:
    - Negative XP amount
    - Malformed identifiers
    - Unknown pillar in multiplier overrides
    """

    reason = "ValidationFailed"
    log_level = logging.WARNING

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs
    ):
        self.field = field
        self.value = value
        super().__init__(
            message=message,
            user_message=f"Invalid {field}: {message}" if field else message,
            context=_merge_context(kwargs, {"field": field, "value": value}),
            **kwargs
        )


# ==========================================
# Habit Completion Rejections
# ==========================================

class HabitNotFoundError(TrajectoryError):
    """Habit does not exist, is archived, or belongs to another user"""

    reason = "NotFound"
    log_level = logging.WARNING

    def __init__(self, habit_id: str, **kwargs):
        self.habit_id = habit_id
        super().__init__(
            message=f"Habit {habit_id} not found",
            user_message="Habit not found.",
            context=_merge_context(kwargs, {"habit_id": habit_id}),
            **kwargs
        )


class AlreadyCompletedError(TrajectoryError):
    """
    Habit was already completed on this calendar day

    Not a failure from the domain's perspective: callers show an
    "already done today" state and must not retry.
    """

    reason = "AlreadyCompleted"
    log_level = logging.INFO

    def __init__(self, habit_id: str, day: Optional[str] = None, **kwargs):
        self.habit_id = habit_id
        self.day = day
        super().__init__(
            message=f"Habit {habit_id} already completed on {day or 'this day'}",
            user_message="Already done today. Nice work!",
            context=_merge_context(kwargs, {"habit_id": habit_id, "day": day}),
            **kwargs
        )


class RateLimitExceededError(TrajectoryError):
    """Free tier coach message allowance used up for the day"""

    reason = "RateLimited"
    log_level = logging.WARNING

    def __init__(self, limit: int, **kwargs):
        self.limit = limit
        super().__init__(
            message=f"Daily message limit ({limit}) reached",
            user_message=f"Daily message limit ({limit}) reached. Upgrade to Premium for unlimited messages.",
            context=_merge_context(kwargs, {"limit": limit}),
            **kwargs
        )


# ==========================================
# Database Errors
# ==========================================

class DatabaseError(TrajectoryError):
    """
    Base class for database-related errors
    """

    reason = "StorageFailure"


class ConnectionError(DatabaseError):
    """Database connection failed"""

    def __init__(self, message: str = "Database connection failed", **kwargs):
        super().__init__(
            message=message,
            user_message="We're having trouble connecting to the database. Please try again in a moment.",
            **kwargs
        )


class QueryError(DatabaseError):
    """Database query execution failed"""

    def __init__(
        self,
        message: str,
        query: Optional[str] = None,
        **kwargs
    ):
        self.query = query
        super().__init__(
            message=message,
            user_message="We encountered an issue saving your data. Please try again.",
            context=_merge_context(kwargs, {"query": query}),
            **kwargs
        )


# ==========================================
# External API Errors
# ==========================================

class ExternalAPIError(TrajectoryError):
    """
    Base class for external API failures
    """

    reason = "UpstreamFailure"

    def __init__(
        self,
        message: str,
        service: Optional[str] = None,
        status_code: Optional[int] = None,
        user_message: Optional[str] = None,
        **kwargs
    ):
        self.service = service
        self.status_code = status_code
        super().__init__(
            message=message,
            user_message=user_message or f"We're having trouble connecting to {service or 'an external service'}. Please try again later.",
            context=_merge_context(kwargs, {"service": service, "status_code": status_code}),
            **kwargs
        )


class CoachUnavailableError(ExternalAPIError):
    """LLM completion failed or is not configured"""

    reason = "CoachUnavailable"

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message=message,
            service="AI Coach",
            user_message="Your coach is unavailable right now. Please try again in a few minutes.",
            **kwargs
        )


# ==========================================
# Configuration Errors
# ==========================================

class ConfigurationError(TrajectoryError):
    """System configuration is invalid or missing"""

    reason = "Misconfigured"

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs
    ):
        self.config_key = config_key
        super().__init__(
            message=message,
            user_message="The system is not properly configured. Please contact support.",
            context=_merge_context(kwargs, {"config_key": config_key}),
            **kwargs
        )


# ==========================================
# Helper Functions
# ==========================================

def wrap_external_exception(
    error: Exception,
    operation: str,
    user_id: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None
) -> TrajectoryError:
    """
    Wrap external exceptions (psycopg, httpx, openai) into our exception hierarchy

    Args:
        error: Original exception
        operation: What operation was being performed
        user_id: User ID if applicable
        context: Additional context

    Returns:
        Appropriate TrajectoryError subclass

    Example:
        try:
            await cur.execute(query)
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="insert_completion", user_id=user_id)
    """
    # Import here to avoid circular dependencies
    import httpx
    import openai
    import psycopg

    if isinstance(error, TrajectoryError):
        return error

    # Database errors
    if isinstance(error, psycopg.OperationalError):
        return ConnectionError(
            message=f"Database connection failed: {str(error)}",
            user_id=user_id,
            operation=operation,
            context=context,
            cause=error
        )
    elif isinstance(error, psycopg.Error):
        return QueryError(
            message=f"Database query failed: {str(error)}",
            user_id=user_id,
            operation=operation,
            context=context,
            cause=error
        )

    # LLM errors
    elif isinstance(error, openai.APIError):
        return CoachUnavailableError(
            message=f"Coach completion failed: {str(error)}",
            user_id=user_id,
            operation=operation,
            context=context,
            cause=error
        )

    # HTTP errors
    elif isinstance(error, httpx.TimeoutException):
        return ExternalAPIError(
            message=f"API request timed out: {str(error)}",
            user_id=user_id,
            operation=operation,
            context=context,
            cause=error
        )
    elif isinstance(error, httpx.HTTPStatusError):
        return ExternalAPIError(
            message=f"API returned error: {error.response.status_code}",
            status_code=error.response.status_code,
            user_id=user_id,
            operation=operation,
            context=context,
            cause=error
        )

    # Generic fallback
    else:
        return TrajectoryError(
            message=f"{operation} failed: {str(error)}",
            user_id=user_id,
            operation=operation,
            context=context,
            cause=error
        )
