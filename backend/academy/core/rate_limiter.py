"""
Rate Limiting for the academy API
=================================
slowapi limiter keyed on the caller. Redis backs the counters when REDIS_URL
is set; otherwise counters live in process memory.

Special endpoints have their own limits:
- login endpoints: 5 req/min (brute force protection)
- registration and public UPI initiate: 3 req/min
- OTP send: 3 req/min
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse

from academy.core.config import settings
from academy.core.logging_config import logger


def get_user_identifier(request: Request) -> str:
    """
    Rate limit key: authenticated account id when known, else client IP.
    """
    account_id = getattr(request.state, 'account_id', None)
    if account_id:
        return f"user:{account_id}"
    return f"ip:{get_remote_address(request)}"


limiter = Limiter(
    key_func=get_user_identifier,
    default_limits=[f"{settings.RATE_LIMIT_PER_MINUTE}/minute"],
    storage_uri=settings.REDIS_URL or "memory://",
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """
    Returns a JSON 429 with a Retry-After header.
    """
    logger.warning(
        f"[RateLimit] Exceeded for {get_user_identifier(request)}: {exc.detail}"
    )

    return JSONResponse(
        status_code=429,
        content={
            "success": False,
            "error": "Too many requests. Please slow down.",
            "code": "RATE_LIMITED",
            "detail": str(exc.detail),
        },
        headers={
            "Retry-After": "60",
            "X-RateLimit-Limit": str(settings.RATE_LIMIT_PER_MINUTE),
        }
    )


def auth_rate_limit():
    """Rate limit for login endpoints (5/min)"""
    return limiter.limit("5/minute", key_func=get_user_identifier)


def strict_rate_limit():
    """Very strict rate limit for account-creating operations (3/min)"""
    return limiter.limit("3/minute", key_func=get_user_identifier)
