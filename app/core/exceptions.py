"""Custom exceptions and error handling for the Survey Dashboard API."""

from enum import Enum

from fastapi import HTTPException, status


class ErrorCode(str, Enum):
    """Machine-readable error kinds returned alongside every error response."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    TOKEN_ALREADY_USED = "TOKEN_ALREADY_USED"
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_TOKEN = "INVALID_TOKEN"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    MALFORMED_TOKEN = "MALFORMED_TOKEN"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class DashboardException(HTTPException):
    """Base exception for the Survey Dashboard API."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: ErrorCode,
        headers: dict | None = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code


# Validation Errors (400)
class ValidationError(DashboardException):
    """Raised when input validation fails."""

    def __init__(self, detail: str = "Invalid input", error_code: ErrorCode = ErrorCode.VALIDATION_ERROR):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            error_code=error_code,
        )


class AlreadyUsedError(ValidationError):
    """Raised when a single-use token has already been consumed."""

    def __init__(self, detail: str = "Reset token already used"):
        super().__init__(detail=detail, error_code=ErrorCode.TOKEN_ALREADY_USED)


# Authentication Errors (401)
class UnauthorizedError(DashboardException):
    """Raised for bad credentials or an invalid, expired or revoked token."""

    def __init__(
        self,
        detail: str = "Authentication required",
        error_code: ErrorCode = ErrorCode.UNAUTHORIZED,
    ):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code=error_code,
            headers={"WWW-Authenticate": "Bearer"},
        )


class InvalidTokenError(UnauthorizedError):
    """Raised when a token is unknown, revoked or otherwise unusable."""

    def __init__(self, detail: str = "Invalid token"):
        super().__init__(detail=detail, error_code=ErrorCode.INVALID_TOKEN)


class ExpiredError(UnauthorizedError):
    """Raised when a token is past its expiry."""

    def __init__(self, detail: str = "Token has expired"):
        super().__init__(detail=detail, error_code=ErrorCode.TOKEN_EXPIRED)


class MalformedError(UnauthorizedError):
    """Raised when a signed token has a bad signature or structure."""

    def __init__(self, detail: str = "Malformed token"):
        super().__init__(detail=detail, error_code=ErrorCode.MALFORMED_TOKEN)


# Permission Errors (403)
class ForbiddenError(DashboardException):
    """Raised when an account is deactivated or lacks permission."""

    def __init__(self, detail: str = "You do not have permission to perform this action"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            error_code=ErrorCode.FORBIDDEN,
        )


# Resource Errors (404, 409)
class NotFoundError(DashboardException):
    """Raised when a resource is not found."""

    def __init__(self, resource: str = "Resource", detail: str | None = None):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail or f"{resource} not found",
            error_code=ErrorCode.NOT_FOUND,
        )


class ConflictError(DashboardException):
    """Raised when a unique value (e.g. an email) is already taken."""

    def __init__(self, detail: str = "Resource already exists"):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            error_code=ErrorCode.CONFLICT,
        )


# Rate Limiting (429)
class RateLimitExceededError(DashboardException):
    """Raised when rate limit is exceeded."""

    def __init__(self, detail: str = "Too many requests, please try again later"):
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=detail,
            error_code=ErrorCode.RATE_LIMIT_EXCEEDED,
        )
