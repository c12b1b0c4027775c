"""
Custom exceptions for session sync.

Caller-misuse errors (missing configuration, malformed hook events) are
raised immediately. Remote failures are reported through result objects
and only use ApiRequestError internally between an HTTP attempt and the
retry loop.
"""


class SessionSyncError(Exception):
    """Base exception for all session sync errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(SessionSyncError):
    """Raised when required configuration is missing or invalid."""

    def __init__(self, field: str, reason: str):
        super().__init__(
            f"Invalid configuration for {field}: {reason}",
            {"field": field, "reason": reason},
        )
        self.field = field
        self.reason = reason


class InvalidHookEventError(SessionSyncError):
    """Raised when a hook event is missing a required field."""

    def __init__(self, field: str, event_name: str | None = None):
        details = {"field": field}
        if event_name:
            details["event_name"] = event_name
        super().__init__(f"Missing required field: {field}", details)
        self.field = field
        self.event_name = event_name


class SessionValidationError(SessionSyncError):
    """Raised when session validation fails (e.g., invalid session_id)."""

    def __init__(self, message: str, field: str | None = None):
        details = {}
        if field:
            details["field"] = field
        super().__init__(message, details)
        self.field = field


class StorageIOError(SessionSyncError):
    """Raised when a storage I/O operation fails."""

    def __init__(self, operation: str, path: str | None = None, cause: Exception | None = None):
        details = {"operation": operation}
        if path:
            details["path"] = path
        if cause:
            details["cause"] = str(cause)
        message = f"Storage I/O error during {operation}"
        if path:
            message += f": {path}"
        super().__init__(message, details)
        self.operation = operation
        self.path = path
        self.cause = cause


class ApiRequestError(SessionSyncError):
    """Raised by a single HTTP attempt; consumed by the retry loop."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        retryable: bool = True,
    ):
        details: dict = {"retryable": retryable}
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, details)
        self.status_code = status_code
        self.retryable = retryable
