"""
Domain errors for the coordination services.

Every error is an ``HTTPException`` so services can raise them directly and
FastAPI renders them; the ``code`` lets callers and tests tell the kinds apart
without matching on messages.

Usage:
    from groupplan.core.errors import NotActiveError

    raise NotActiveError("Survey is not active")
"""

from enum import Enum
from typing import Optional

from fastapi import HTTPException, status


class ErrorCode(str, Enum):
    UNAUTHORIZED = "UNAUTHORIZED"
    NOT_FOUND = "NOT_FOUND"
    ALREADY_EXISTS = "ALREADY_EXISTS"
    NOT_ACTIVE = "NOT_ACTIVE"
    EXPIRED = "EXPIRED"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    RATE_LIMITED = "RATE_LIMITED"


class CoordinationError(HTTPException):
    """Base class for errors raised by the coordination services."""

    code: ErrorCode = ErrorCode.VALIDATION_ERROR
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        super().__init__(status_code=status_code or type(self).status_code, detail=message)

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code.value}


class UnauthorizedError(CoordinationError):
    """Actor lacks the role the operation needs."""

    code = ErrorCode.UNAUTHORIZED
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(CoordinationError):
    code = ErrorCode.NOT_FOUND
    status_code = status.HTTP_404_NOT_FOUND


class AlreadyExistsError(CoordinationError):
    code = ErrorCode.ALREADY_EXISTS
    status_code = status.HTTP_409_CONFLICT


class NotActiveError(CoordinationError):
    """Survey, session or invitation is no longer open."""

    code = ErrorCode.NOT_ACTIVE
    status_code = status.HTTP_400_BAD_REQUEST


class ExpiredError(CoordinationError):
    """Deadline passed; discovered when the record was accessed."""

    code = ErrorCode.EXPIRED
    status_code = status.HTTP_410_GONE


class ValidationError(CoordinationError):
    code = ErrorCode.VALIDATION_ERROR
    status_code = 422


class RateLimitedError(CoordinationError):
    code = ErrorCode.RATE_LIMITED
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
