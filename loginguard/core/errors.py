"""
Error handling module for loginguard.

This module defines error codes, exception classes, and response models.
Error bodies keep the flat shape the login form consumes.

Error Response Format:
{
    "success": false,
    "code": "INVALID_CREDENTIALS",
    "message": "Invalid email or password. 2 attempts remaining before account lock.",
    "remainingAttempts": 2
}

Usage:
    from loginguard.core.errors import InvalidCredentialsError, AccountLockedError

    raise InvalidCredentialsError(remaining_attempts=2)
    raise AccountLockedError(lock_until=deadline, remaining_time=300)
"""

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ErrorCode(str, Enum):
    """Error codes returned in the ``code`` field."""

    INVALID_REQUEST = "INVALID_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    FORBIDDEN = "FORBIDDEN"
    ACCOUNT_LOCKED = "ACCOUNT_LOCKED"
    LOCKOUT_UNAVAILABLE = "LOCKOUT_UNAVAILABLE"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorResponse(BaseModel):
    """Base error response format."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = False
    code: str
    message: str


class AttemptsRemainingResponse(ErrorResponse):
    """401 body carrying the remaining attempt counter."""

    remaining_attempts: int | None = None


class LockedResponse(ErrorResponse):
    """429 body describing an active lock."""

    locked: Literal[True] = True
    lock_until: datetime
    remaining_time: int


class LoginGuardError(Exception):
    """Base exception for loginguard.

    All loginguard specific exceptions should inherit from this class.
    This enables centralized exception handling in FastAPI.

    Attributes:
        code: The error code from ErrorCode enum
        message: Human-readable error message
        status_code: HTTP status code to return
    """

    def __init__(self, code: ErrorCode, message: str, status_code: int) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert exception to ErrorResponse model."""
        return ErrorResponse(code=self.code.value, message=self.message)

    def to_body(self) -> dict:
        """JSON-ready body with camelCase keys."""
        return self.to_response().model_dump(mode="json", by_alias=True, exclude_none=True)


class InvalidRequestError(LoginGuardError):
    """400 Bad Request - Invalid request parameters."""

    def __init__(self, message: str = "Invalid request") -> None:
        super().__init__(ErrorCode.INVALID_REQUEST, message, 400)


class UnauthorizedError(LoginGuardError):
    """401 Unauthorized - Authentication required."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(ErrorCode.UNAUTHORIZED, message, 401)


class InvalidCredentialsError(LoginGuardError):
    """401 Unauthorized - Wrong email or password, account not yet locked."""

    def __init__(
        self,
        remaining_attempts: int | None = None,
        message: str | None = None,
    ) -> None:
        self.remaining_attempts = remaining_attempts
        if message is None:
            message = "Invalid email or password"
            if remaining_attempts:
                plural = "s" if remaining_attempts != 1 else ""
                message = (
                    f"{message}. {remaining_attempts} attempt{plural} "
                    "remaining before account lock."
                )
        super().__init__(ErrorCode.INVALID_CREDENTIALS, message, 401)

    def to_response(self) -> AttemptsRemainingResponse:
        return AttemptsRemainingResponse(
            code=self.code.value,
            message=self.message,
            remaining_attempts=self.remaining_attempts,
        )


class ForbiddenError(LoginGuardError):
    """403 Forbidden - Permission denied."""

    def __init__(self, message: str = "Permission denied") -> None:
        super().__init__(ErrorCode.FORBIDDEN, message, 403)


class AccountLockedError(LoginGuardError):
    """429 Too Many Requests - Identity is locked after repeated failures."""

    def __init__(
        self,
        lock_until: datetime,
        remaining_time: int,
        message: str = "Too many failed login attempts",
    ) -> None:
        self.lock_until = lock_until
        self.remaining_time = remaining_time
        super().__init__(ErrorCode.ACCOUNT_LOCKED, message, 429)

    @property
    def retry_after(self) -> int:
        return self.remaining_time

    def to_response(self) -> LockedResponse:
        return LockedResponse(
            code=self.code.value,
            message=self.message,
            lock_until=self.lock_until,
            remaining_time=self.remaining_time,
        )


class LockoutUnavailableError(LoginGuardError):
    """503 Service Unavailable - Lockout ledger could not be read or written.

    Login is refused while the ledger is unreachable.
    """

    def __init__(
        self, message: str = "Login is temporarily unavailable. Please try again later."
    ) -> None:
        super().__init__(ErrorCode.LOCKOUT_UNAVAILABLE, message, 503)


class InternalError(LoginGuardError):
    """500 Internal Server Error - Unexpected error."""

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(ErrorCode.INTERNAL_ERROR, message, 500)
