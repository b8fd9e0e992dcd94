"""Rate limiting configuration using slowapi."""

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.config import settings


def get_ip_address(request: Request) -> str:
    """Get IP address for rate limiting public routes."""
    return get_remote_address(request)


# Auth routes are public, so everything is keyed by client IP
limiter = Limiter(
    key_func=get_ip_address,
    default_limits=["100/minute"],
    enabled=settings.RATE_LIMIT_ENABLED,
)

# Limits for the individual auth flows
AUTH_LIMIT = "5/15minute"           # signup, login
REFRESH_LIMIT = "30/minute"
PASSWORD_RESET_LIMIT = "3/hour"     # request-password-reset, reset-password
