"""Rate limiting — slowapi defaults plus action-specific fixed windows.

Two layers:
  - limiter: slowapi Limiter applying the coarse per-IP default limit to
    every route. Uses Redis when reachable, otherwise in-memory storage
    (limits won't be shared across workers in that case).
  - check_rate_limit(): fixed-window counter keyed by (action, identity)
    for sensitive actions such as login and registration.

The fixed window starts at the first hit and resets when the key expires.
A client can therefore spend max_attempts at the end of one window and
max_attempts again at the start of the next, up to twice the nominal rate
across a boundary.
"""

import os
from dataclasses import dataclass

from fastapi import HTTPException, Request
from loguru import logger
from slowapi import Limiter
from slowapi.util import get_remote_address

from .cache.store import increment
from .config import settings
from .logging_config import security_event


def _resolve_storage() -> str | None:
    """Try Redis for distributed rate limiting; fall back to in-memory."""
    if os.environ.get("TESTING"):
        return None
    if settings.cache_backend != "redis" or not settings.redis_url:
        return None
    try:
        import redis as redis_lib

        r = redis_lib.from_url(settings.redis_url, socket_connect_timeout=2)
        r.ping()
        logger.info("Rate limiter using Redis storage")
        return settings.redis_url
    except Exception:
        logger.warning(
            "Redis unavailable — rate limiter using in-memory storage "
            "(limits won't be shared across workers)"
        )
        return None


limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.rate_limit_default],
    enabled=settings.rate_limit_enabled and not os.environ.get("TESTING"),
    storage_uri=_resolve_storage(),
)


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    current: int


def check_rate_limit(
    action: str, identity: str, max_attempts: int, window_seconds: int
) -> RateLimitResult:
    """Count one attempt for (action, identity) in the current window.

    Allowed while the counter is <= max_attempts. If the counter store
    errors, the attempt is allowed.
    """
    key = f"ratelimit:{action}:{identity}"
    try:
        current = increment(key, window_seconds)
    except Exception as e:
        security_event(
            f"Rate limit store unavailable for {action}; allowing request",
            identity=identity, error=str(e),
        )
        return RateLimitResult(allowed=True, remaining=max_attempts, current=0)
    return RateLimitResult(
        allowed=current <= max_attempts,
        remaining=max(0, max_attempts - current),
        current=current,
    )


def client_ip(request: Request) -> str:
    """Client address, honoring the first X-Forwarded-For hop."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def enforce_rate_limit(
    request: Request,
    action: str,
    max_attempts: int,
    window_seconds: int,
    message: str = "Too many requests. Please try again later.",
) -> RateLimitResult:
    """Raise 429 when the caller's window for action is exhausted."""
    if not settings.rate_limit_enabled:
        return RateLimitResult(allowed=True, remaining=max_attempts, current=0)
    ip = client_ip(request)
    result = check_rate_limit(action, ip, max_attempts, window_seconds)
    if not result.allowed:
        security_event(
            f"Rate limit exceeded for {action}",
            ip=ip,
            path=request.url.path,
            user_agent=request.headers.get("user-agent", ""),
        )
        raise HTTPException(
            429,
            message,
            headers={"Retry-After": str(window_seconds)},
        )
    return result
