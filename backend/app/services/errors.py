"""Service-layer exceptions mapped to HTTP responses.

Every error carries an HTTP ``status_code``, a snake_case ``kind`` and a
stable upper-case ``code`` that clients can branch on. ``TOKEN_EXPIRED`` in
particular tells a client to attempt a silent refresh instead of forcing
a new login.
"""
from typing import Any, Dict, Optional


class ServiceError(Exception):
    """Base class for auth service errors."""

    status_code: int = 400
    kind: str = "validation_error"
    code: str = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.details = details


class ValidationError(ServiceError):
    """Malformed input (400)."""
    status_code = 400
    kind = "validation_error"
    code = "VALIDATION_ERROR"


class AuthenticationError(ServiceError):
    """Bad credentials or an unusable token (401)."""
    status_code = 401
    kind = "authentication_error"
    code = "UNAUTHORIZED"


class NotFoundError(ServiceError):
    """Resource absent or not owned by the caller (404)."""
    status_code = 404
    kind = "not_found"
    code = "NOT_FOUND"


class ConflictError(ServiceError):
    """Duplicate resource (409)."""
    status_code = 409
    kind = "conflict"
    code = "CONFLICT"


class RateLimitedError(ServiceError):
    """Too many attempts (429)."""
    status_code = 429
    kind = "rate_limited"
    code = "RATE_LIMITED"


class InternalError(ServiceError):
    """Unexpected store failure (500)."""
    status_code = 500
    kind = "internal_error"
    code = "INTERNAL_ERROR"


# ---------------------------------------------------------------------------
# Access tokens
# ---------------------------------------------------------------------------

class MissingTokenError(AuthenticationError):
    code = "NO_TOKEN"

    def __init__(self, message: str = "No token provided") -> None:
        super().__init__(message)


class TokenExpiredError(AuthenticationError):
    code = "TOKEN_EXPIRED"

    def __init__(self, message: str = "Token expired") -> None:
        super().__init__(message)


class InvalidTokenError(AuthenticationError):
    """Bad signature or malformed token."""
    code = "INVALID_TOKEN"

    def __init__(self, message: str = "Invalid token") -> None:
        super().__init__(message)


class WrongTokenTypeError(AuthenticationError):
    code = "INVALID_TOKEN_TYPE"

    def __init__(self, message: str = "Invalid token type") -> None:
        super().__init__(message)


class TokenRevokedError(AuthenticationError):
    code = "TOKEN_REVOKED"

    def __init__(self, message: str = "Token has been revoked") -> None:
        super().__init__(message)


class InvalidCredentialsError(AuthenticationError):
    code = "INVALID_CREDENTIALS"

    def __init__(self, message: str = "Invalid credentials") -> None:
        super().__init__(message)


# ---------------------------------------------------------------------------
# Sessions (refresh tokens)
# ---------------------------------------------------------------------------

class RefreshTokenNotFoundError(AuthenticationError):
    code = "INVALID_REFRESH_TOKEN"

    def __init__(self, message: str = "Invalid refresh token") -> None:
        super().__init__(message)


class RefreshTokenExpiredError(AuthenticationError):
    code = "REFRESH_TOKEN_EXPIRED"

    def __init__(self, message: str = "Refresh token expired") -> None:
        super().__init__(message)


class SessionNotFoundError(NotFoundError):
    code = "SESSION_NOT_FOUND"

    def __init__(self, message: str = "Session not found") -> None:
        super().__init__(message)


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------

class ResetTokenNotFoundError(ValidationError):
    code = "INVALID_RESET_TOKEN"

    def __init__(self, message: str = "Invalid or expired reset token") -> None:
        super().__init__(message)


class ResetTokenUsedError(ValidationError):
    code = "RESET_TOKEN_USED"

    def __init__(self, message: str = "Reset token already used") -> None:
        super().__init__(message)


class ResetTokenExpiredError(ValidationError):
    code = "RESET_TOKEN_EXPIRED"

    def __init__(self, message: str = "Reset token expired") -> None:
        super().__init__(message)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

class EmailAlreadyRegisteredError(ConflictError):
    code = "EMAIL_TAKEN"

    def __init__(self, message: str = "Email already registered") -> None:
        super().__init__(message)


class UserNotFoundError(NotFoundError):
    code = "USER_NOT_FOUND"

    def __init__(self, message: str = "User not found") -> None:
        super().__init__(message)
