"""
Per-client HTTP rate limiting (slowapi).

This is the transport-level limit on every public endpoint. The
once-a-minute gate on full refreshes is a separate, application-level
limit (see ``services.core.rate_limiter``).
"""
from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from tournoi.core.config import settings

DEFAULT_LIMIT = "60/minute"
HEALTH_LIMIT = "120/minute"


def get_rate_limit_key(request: Request) -> str:
    """
    Get the rate limit key for a request.

    Uses IP address, with fallback to X-Forwarded-For for proxied requests.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


limiter = Limiter(
    key_func=get_rate_limit_key,
    default_limits=[DEFAULT_LIMIT],
    storage_uri=settings.REDIS_URL if settings.RATE_LIMIT_STORAGE == "redis" else "memory://",
    enabled=settings.RATE_LIMIT_ENABLED,
)
