"""
FeedPress Exceptions
====================

Error hierarchy shared by ingestion, storage and wiki publishing. Each
error carries a categorized ``ErrorCode``, a context dict for structured
logs and an operator-facing message returned by the action service.
"""

from typing import Optional, Dict, Any
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for categorizing exceptions."""

    # Configuration (C)
    CONFIG_INVALID = "C001"
    CONFIG_MISSING = "C002"
    CONFIG_PARSE_ERROR = "C003"

    # Key-value store (D)
    STORAGE_CONNECTION = "D001"
    STORAGE_READ = "D002"
    STORAGE_WRITE = "D003"
    STORAGE_CORRUPTION = "D004"

    # Feed ingestion (F)
    FEED_FETCH_TIMEOUT = "F002"
    FEED_PARSE_ERROR = "F003"
    FEED_NETWORK_ERROR = "F004"
    FEED_HTTP_ERROR = "F005"
    FEED_TOO_MANY_REDIRECTS = "F006"

    # Wiki (W)
    PUBLISH_FAILED = "W001"
    PUBLISH_REJECTED = "W002"
    PUBLISH_TIMEOUT = "W003"
    PUBLISH_AUTHENTICATION = "W004"
    LOOKUP_FAILED = "W005"

    # Operator input (V)
    VALIDATION_INVALID_FORMAT = "V002"
    VALIDATION_UNKNOWN_ACTION = "V004"

    # System (S)
    SYSTEM_PERMISSION_DENIED = "S001"
    SYSTEM_MEMORY_ERROR = "S002"


class FeedPressError(Exception):
    """Base exception for all FeedPress errors.

    Subclasses set the class-level defaults; constructor arguments
    override them per raise.
    """

    default_code: Optional[ErrorCode] = None
    default_user_message: Optional[str] = None
    default_recoverable = False

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        context: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        recoverable: Optional[bool] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        self.context = dict(context or {})
        self.user_message = user_message or self.default_user_message or message
        self.recoverable = self.default_recoverable if recoverable is None else recoverable

    def _add_context(self, **values: Any) -> None:
        self.context.update({key: value for key, value in values.items() if value is not None})

    def to_dict(self) -> Dict[str, Any]:
        """Serializable form for structured log records."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code.value if self.error_code else None,
            "error_message": str(self),
            "user_message": self.user_message,
            "context": self.context,
            "recoverable": self.recoverable,
        }

    def __str__(self) -> str:
        if self.error_code:
            return f"[{self.error_code.value}] {self.message}"
        return self.message


class ConfigurationError(FeedPressError):
    """Invalid or missing process settings."""

    default_code = ErrorCode.CONFIG_INVALID

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        kwargs.setdefault("user_message", f"Configuration error: {message}")
        super().__init__(message, **kwargs)
        self._add_context(config_key=config_key)


class StorageError(FeedPressError):
    """Key-value store read or write failure."""

    default_code = ErrorCode.STORAGE_WRITE
    default_user_message = "Storage operation failed"
    default_recoverable = True

    def __init__(self, message: str, key: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self._add_context(key=key)


class FeedError(FeedPressError):
    """A feed document that cannot be turned into items."""

    default_code = ErrorCode.FEED_PARSE_ERROR
    default_recoverable = True

    def __init__(self, message: str, feed_url: Optional[str] = None, **kwargs):
        kwargs.setdefault("user_message", f"Feed processing failed: {message}")
        super().__init__(message, **kwargs)
        self._add_context(feed_url=feed_url)


class FeedFetchError(FeedError):
    """Transport failure while downloading a feed."""

    default_code = ErrorCode.FEED_NETWORK_ERROR


class PublishError(FeedPressError):
    """Wiki lookup or create failure, including non-2xx responses."""

    default_code = ErrorCode.PUBLISH_FAILED
    default_user_message = "Wiki publishing failed"
    default_recoverable = True

    def __init__(
        self,
        message: str,
        space_key: Optional[str] = None,
        status: Optional[int] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.status = status
        self._add_context(space_key=space_key, status=status)


class ValidationError(FeedPressError):
    """Rejected operator input (action envelopes, configuration documents)."""

    default_code = ErrorCode.VALIDATION_INVALID_FORMAT

    def __init__(self, message: str, field_name: Optional[str] = None, **kwargs):
        kwargs.setdefault("user_message", f"Invalid {field_name or 'input'}: {message}")
        super().__init__(message, **kwargs)
        self._add_context(field_name=field_name)


_GENERIC_ERRORS = (
    # (exception types, error code, operator message, recoverable)
    ((ConnectionError, TimeoutError), ErrorCode.FEED_NETWORK_ERROR, "Network connection failed", True),
    ((PermissionError,), ErrorCode.SYSTEM_PERMISSION_DENIED, "Access denied", False),
    ((MemoryError,), ErrorCode.SYSTEM_MEMORY_ERROR, "System resources exhausted", True),
)


def handle_exception(
    exception: Exception,
    logger,
    operation: str,
    context: Optional[Dict[str, Any]] = None,
) -> FeedPressError:
    """Log ``exception`` as a FeedPress error and return it.

    FeedPress errors are returned unchanged; anything else is wrapped with
    a code chosen by exception type.
    """
    if isinstance(exception, FeedPressError):
        logger.error(f"Operation '{operation}' failed: {exception}", extra=exception.to_dict())
        return exception

    context = {
        **(context or {}),
        "operation": operation,
        "original_exception_type": type(exception).__name__,
    }

    if isinstance(exception, FileNotFoundError):
        error: FeedPressError = ConfigurationError(
            f"Required file not found during {operation}: {exception}",
            error_code=ErrorCode.CONFIG_MISSING,
            context=context,
            user_message="Configuration file missing",
        )
    else:
        for types, code, user_message, recoverable in _GENERIC_ERRORS:
            if isinstance(exception, types):
                error = FeedPressError(
                    f"Error during {operation}: {exception}",
                    error_code=code,
                    context=context,
                    user_message=user_message,
                    recoverable=recoverable,
                )
                break
        else:
            error = FeedPressError(
                f"Unexpected error during {operation}: {exception}",
                context=context,
                user_message="An unexpected error occurred",
                recoverable=True,
            )

    logger.error(f"Operation '{operation}' failed: {error.message}", exc_info=exception, extra=error.to_dict())
    return error


def get_user_friendly_message(exception: Exception) -> str:
    """Operator-facing message for any exception."""
    if isinstance(exception, FeedPressError):
        return exception.user_message
    return str(exception) or type(exception).__name__
