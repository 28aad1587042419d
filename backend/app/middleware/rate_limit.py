"""Rate limiting for credential endpoints"""
from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.config import settings


def get_identifier(request: Request) -> str:
    """
    Identify the caller for rate limiting.

    Uses the first X-Forwarded-For hop when TRUST_PROXY_HEADERS is set,
    otherwise the socket peer address.
    """
    if settings.TRUST_PROXY_HEADERS:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return get_remote_address(request)


# Sliding window per caller
limiter = Limiter(
    key_func=get_identifier,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="moving-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)


# signup, login and reset-password draw from one shared budget per caller
auth_limit = limiter.shared_limit(settings.RATE_LIMIT_AUTH, scope="auth")


RATE_LIMITS = {
    "forgot_password": settings.RATE_LIMIT_PASSWORD_RESET_REQUEST,
}


def get_rate_limit(endpoint: str) -> str:
    """Get rate limit for specific endpoint"""
    return RATE_LIMITS[endpoint]
