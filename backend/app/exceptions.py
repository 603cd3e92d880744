"""
Custom exception classes for the application.

These exceptions are caught by global exception handlers in exception_handlers.py,
providing consistent error responses across all API endpoints.

Errors raised inside a background sync job never reach a handler; the
orchestrator records them on the job instead (see services/sync/orchestrator.py).

Usage:
    from app.exceptions import NotFoundError, ValidationError

    # In route handlers - just raise, no try-except needed
    raise JobNotFoundError("1b9d...")     # 404: "Sync job not found"
    raise ValidationError("Invalid data") # 400: "Invalid data"
"""

from typing import Any, Dict, Optional


class AppException(Exception):
    """
    Base exception class for application-level errors.

    All custom exceptions should inherit from this class.
    The global exception handler will catch these and return
    appropriate HTTP responses.

    Attributes:
        message: Human-readable error message
        status_code: HTTP status code to return
        error_code: Machine-readable error code for client handling
        extra: Additional fields merged into the JSON error body
    """

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str | None = None,
        extra: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code or f"ERR_{status_code}"
        self.extra = extra or {}
        super().__init__(message)


class NotFoundError(AppException):
    """
    Resource not found (404).

    Usage:
        raise NotFoundError("Repository")  # "Repository not found"
    """

    def __init__(self, resource: str = "Resource"):
        super().__init__(
            message=f"{resource} not found",
            status_code=404,
            error_code="NOT_FOUND",
        )


class JobNotFoundError(NotFoundError):
    """Polling an unknown sync job id (404)."""

    def __init__(self, job_id: str):
        super().__init__("Sync job")
        self.job_id = job_id


class ConflictError(AppException):
    """
    Resource state conflict (409).

    Usage:
        raise ConflictError("Sync already in progress", error_code="SYNC_IN_PROGRESS")
    """

    def __init__(
        self,
        message: str,
        error_code: str = "CONFLICT",
        extra: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=409,
            error_code=error_code,
            extra=extra,
        )


class SyncInProgressError(ConflictError):
    """
    A sync job for the user is still pending or running (409).

    Carries the id of the unfinished job so the caller can keep polling it.
    """

    def __init__(self, job_id: str):
        super().__init__(
            message="Repository sync already in progress",
            error_code="SYNC_IN_PROGRESS",
            extra={"job_id": job_id},
        )
        self.job_id = job_id


class ValidationError(AppException):
    """
    Validation error (400).

    Usage:
        raise ValidationError("Invalid config type")
        raise ValidationError("Missing required field")
    """

    def __init__(self, message: str):
        super().__init__(
            message=message,
            status_code=400,
            error_code="VALIDATION_ERROR",
        )


class InvalidPagingParameterError(ValidationError):
    """
    Page size or page number below 1 (400).

    Usage:
        raise InvalidPagingParameterError("pageSize")
    """

    def __init__(self, field: str):
        super().__init__(f"{field} field need to be greater than or equal to 1")
        self.field = field


class ConfigurationError(AppException):
    """
    Configuration missing or invalid (400).

    Usage:
        raise ConfigurationError("GitHub", "token")  # "Please configure GitHub token first"
    """

    def __init__(self, config_name: str, config_type: str = "configuration"):
        super().__init__(
            message=f"Please configure {config_name} {config_type} first",
            status_code=400,
            error_code="CONFIGURATION_MISSING",
        )


class MissingTokenError(AppException):
    """
    The user has no stored GitHub access token.

    Only raised inside a sync job, where it fails the job; never surfaced
    to an HTTP caller.
    """

    MESSAGE = "No user access token found, this is possibly due to user being deleted"

    def __init__(self, user_id: str | None = None):
        super().__init__(
            message=self.MESSAGE,
            status_code=400,
            error_code="MISSING_TOKEN",
        )
        self.user_id = user_id


class ExternalServiceError(AppException):
    """
    External service error (502).

    Usage:
        raise ExternalServiceError("GitHub API", "rate limit exceeded")
        raise ExternalServiceError("GitHub API", "timeout")
    """

    def __init__(self, service: str, reason: str | None = None):
        message = f"{service} error"
        if reason:
            message = f"{service} error: {reason}"
        super().__init__(
            message=message,
            status_code=502,
            error_code="EXTERNAL_SERVICE_ERROR",
        )


class RemoteFetchError(ExternalServiceError):
    """
    Fetching starred repositories from GitHub failed (502).

    The original cause is chained via `raise ... from e` and its text is
    kept in `reason`.
    """

    def __init__(self, service: str = "GitHub API", reason: str | None = None):
        super().__init__(service, reason)
        self.service = service
        self.reason = reason


class AuthenticationError(RemoteFetchError):
    """
    External credential rejected.

    Usage:
        raise AuthenticationError("GitHub token")  # "GitHub API error: invalid GitHub token"
    """

    def __init__(self, credential: str = "GitHub token"):
        super().__init__("GitHub API", f"invalid {credential}")
        self.error_code = "AUTHENTICATION_FAILED"


class RateLimitError(RemoteFetchError):
    """
    External rate limit exceeded.

    Usage:
        raise RateLimitError("GitHub API")  # "GitHub API error: rate limit exceeded"
    """

    def __init__(self, service: str = "GitHub API"):
        super().__init__(service, "rate limit exceeded")
        self.error_code = "RATE_LIMITED"


class PersistenceError(AppException):
    """
    Local database write failed (500).

    Usage:
        raise PersistenceError("insert repository owner/name", str(e))
    """

    def __init__(self, operation: str, reason: str | None = None):
        message = f"Failed to {operation}"
        if reason:
            message = f"Failed to {operation}: {reason}"
        super().__init__(
            message=message,
            status_code=500,
            error_code="PERSISTENCE_ERROR",
        )
