"""
Exception hierarchy for the achievement engine

Every error carries a request id, a UTC timestamp and structured context, and
logs itself when created so failures inside fire-and-forget evaluation passes
are never silent.
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any
from uuid import uuid4
import logging

import psycopg

logger = logging.getLogger(__name__)


class AchievementEngineError(Exception):
    """
    Base exception for all achievement engine errors

    Subclasses set `default_user_message`; callers may override it per raise.

    Example:
        raise AchievementEngineError(
            message="Failed to award achievement",
            user_id="user-123",
            operation="award_achievement",
            context={"achievement_id": "first_session"}
        )
    """

    default_user_message = "An error occurred. Please try again."

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
        self.user_message = user_message or self.default_user_message
        self.timestamp = datetime.now(timezone.utc)

        self._log_error()

    def _log_error(self) -> None:
        # 'message' is a reserved LogRecord attribute, hence error_message
        extra = {
            "error_type": self.__class__.__name__,
            "error_message": self.message,
            "request_id": self.request_id,
            "user_id": self.user_id,
            "operation": self.operation,
            "error_context": self.context,
            "timestamp": self.timestamp.isoformat()
        }
        if self.cause:
            extra["cause"] = str(self.cause)
        logger.error(
            f"{self.__class__.__name__}: {self.message}",
            extra=extra,
            exc_info=self.cause
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serializable summary for callers that report errors upstream"""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "user_message": self.user_message,
            "request_id": self.request_id,
            "timestamp": self.timestamp.isoformat()
        }


# ==========================================
# Input / Catalog Errors
# ==========================================

class ValidationError(AchievementEngineError):
    """An input value was rejected"""

    def __init__(self, message: str, field: Optional[str] = None, value: Optional[Any] = None, **kwargs):
        self.field = field
        self.value = value
        kwargs.setdefault("user_message", f"Invalid {field}: {message}" if field else message)
        super().__init__(message, context={"field": field, "value": value}, **kwargs)


class CatalogError(AchievementEngineError):
    """Achievement catalog definition is invalid"""

    default_user_message = "The achievement catalog is misconfigured."

    def __init__(self, message: str, achievement_id: Optional[str] = None, **kwargs):
        self.achievement_id = achievement_id
        kwargs.setdefault("context", {"achievement_id": achievement_id})
        super().__init__(message, **kwargs)


class UnknownConditionError(CatalogError):
    """A special_condition requirement names a condition nobody registered"""

    def __init__(
        self,
        message: str,
        condition: Optional[str] = None,
        achievement_id: Optional[str] = None,
        **kwargs
    ):
        self.condition = condition
        super().__init__(
            message,
            achievement_id=achievement_id,
            context={"achievement_id": achievement_id, "condition": condition},
            **kwargs
        )


class EvaluationError(AchievementEngineError):
    """An evaluation pass failed for a reason outside the engine's own errors"""

    default_user_message = "Achievements could not be checked right now."

    def __init__(self, message: str, event_type: Optional[str] = None, **kwargs):
        self.event_type = event_type
        kwargs.setdefault("context", {"event_type": event_type})
        super().__init__(message, **kwargs)


# ==========================================
# Storage Errors
# ==========================================

class DatabaseError(AchievementEngineError):
    """Base class for storage-related errors"""

    default_user_message = "We encountered an issue saving your data. Please try again."


class ConnectionError(DatabaseError):
    """Database connection failed"""

    default_user_message = "We're having trouble connecting to the database. Please try again in a moment."

    def __init__(self, message: str = "Database connection failed", **kwargs):
        super().__init__(message, **kwargs)


class QueryError(DatabaseError):
    """Database query execution failed"""

    def __init__(self, message: str, query: Optional[str] = None, **kwargs):
        self.query = query
        kwargs.setdefault("context", {"query": query})
        super().__init__(message, **kwargs)


class RecordNotFoundError(DatabaseError):
    """Requested record does not exist"""

    def __init__(
        self,
        message: str,
        record_type: Optional[str] = None,
        record_id: Optional[str] = None,
        **kwargs
    ):
        self.record_type = record_type
        self.record_id = record_id
        super().__init__(
            message,
            user_message=f"{record_type or 'Record'} not found.",
            context={"record_type": record_type, "record_id": record_id},
            **kwargs
        )


# ==========================================
# Configuration Errors
# ==========================================

class ConfigurationError(AchievementEngineError):
    """System configuration is invalid or missing"""

    default_user_message = "The system is not properly configured. Please contact support."

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        self.config_key = config_key
        super().__init__(message, context={"config_key": config_key}, **kwargs)


# ==========================================
# Helper Functions
# ==========================================

def wrap_database_exception(
    error: Exception,
    operation: str,
    user_id: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None
) -> AchievementEngineError:
    """
    Map a driver exception onto the hierarchy

    psycopg.OperationalError -> ConnectionError, any other psycopg.Error ->
    QueryError, anything else -> AchievementEngineError.

    Example:
        try:
            await cur.execute(query)
        except psycopg.Error as e:
            raise wrap_database_exception(e, operation="award_achievement") from e
    """
    if isinstance(error, psycopg.OperationalError):
        error_class, prefix = ConnectionError, "Database connection failed"
    elif isinstance(error, psycopg.Error):
        error_class, prefix = QueryError, "Database query failed"
    else:
        error_class, prefix = AchievementEngineError, f"{operation} failed"

    return error_class(
        f"{prefix}: {error}",
        user_id=user_id,
        operation=operation,
        context=context,
        cause=error
    )
