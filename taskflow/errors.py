"""Error taxonomy shared by services and the HTTP layer."""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    # Auth
    UNAUTHORIZED = "UNAUTHORIZED"
    USER_NOT_FOUND = "USER_NOT_FOUND"

    # Validation
    INVALID_INPUT = "INVALID_INPUT"
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"
    FIELD_TOO_LONG = "FIELD_TOO_LONG"
    INVALID_FORMAT = "INVALID_FORMAT"
    INVALID_MODE = "INVALID_MODE"

    # Resources
    TASK_NOT_FOUND = "TASK_NOT_FOUND"
    PROJECT_NOT_FOUND = "PROJECT_NOT_FOUND"
    TAG_NOT_FOUND = "TAG_NOT_FOUND"
    DUPLICATE_RESOURCE = "DUPLICATE_RESOURCE"
    RESOURCE_LIMIT_EXCEEDED = "RESOURCE_LIMIT_EXCEEDED"
    PROJECT_LIMIT_EXCEEDED = "PROJECT_LIMIT_EXCEEDED"
    CANNOT_RENAME_DEFAULT = "CANNOT_RENAME_DEFAULT"
    CANNOT_DELETE_DEFAULT = "CANNOT_DELETE_DEFAULT"
    CONFIRMATION_REQUIRED = "CONFIRMATION_REQUIRED"

    # System
    DATABASE_ERROR = "DATABASE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"

    # Sync
    SYNC_CONFLICT = "SYNC_CONFLICT"
    OFFLINE_MODE = "OFFLINE_MODE"


class TaskFlowError(Exception):
    """Base class for every failure a service reports to its caller."""

    status_code = 400

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        *,
        errors: list[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.errors = list(errors or [])


class ValidationFailed(TaskFlowError):
    """Raised before any write when input fails field checks."""

    status_code = 400

    def __init__(
        self,
        errors: list[str],
        code: ErrorCode = ErrorCode.INVALID_INPUT,
    ) -> None:
        message = "; ".join(errors) if errors else "Invalid input"
        super().__init__(message, code, errors=errors)


class NotFound(TaskFlowError):
    status_code = 404


class Conflict(TaskFlowError):
    """The request is valid but clashes with current resource state."""

    status_code = 409


class Unauthorized(TaskFlowError):
    status_code = 401

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message, ErrorCode.UNAUTHORIZED)


class DatabaseError(TaskFlowError):
    status_code = 500

    def __init__(self, message: str = "Database operation failed") -> None:
        super().__init__(message, ErrorCode.DATABASE_ERROR)
