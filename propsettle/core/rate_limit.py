"""
Rate limiting configuration.

Trigger endpoints (anything that starts a sweep or writes) are limited to
10/minute per client; everything else falls back to 60/minute.
"""
from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from propsettle.core.config import settings

TRIGGER_LIMIT = "10/minute"
GENERAL_LIMIT = "60/minute"
HEALTH_LIMIT = "120/minute"


def get_rate_limit_key(request: Request) -> str:
    """
    Get the rate limit key for a request.

    Uses IP address, with fallback to X-Forwarded-For for proxied requests.
    """
    # Check for forwarded address (behind proxy/load balancer)
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


limiter = Limiter(
    key_func=get_rate_limit_key,
    default_limits=[GENERAL_LIMIT],
    storage_uri="memory://",
    enabled=settings.RATE_LIMIT_ENABLED,
)
