"""
Fixed-window rate limiting on Redis.

Key: rate:{minute}:{principal}:{group}
    minute     epoch seconds // 60
    principal  user id from the bearer token, else ip:{client address}
    group      auth (any /api/auth path), mutate (POST/PUT/PATCH/DELETE), read

Per request: INCR the key; the first hit in a window sets EXPIRE 60; a count
above the group's limit is answered with 429. Both commands are atomic in
Redis, so concurrent requests are counted exactly.
"""
import time

from fastapi import Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse
import structlog

from app.core.config import SERVICE_PATHS, settings
from app.core.redis import redis_client
from app.core.security import subject_from_authorization


logger = structlog.get_logger(__name__)

BYPASS_HEADER = "X-Test-Bypass-RateLimit"
WINDOW_SECONDS = 60
MUTATING_METHODS = frozenset(["POST", "PUT", "PATCH", "DELETE"])


def get_bucket() -> int:
    return int(time.time()) // WINDOW_SECONDS


def route_group(request: Request) -> tuple[str, int]:
    """Group name and per-minute limit for a request."""
    if request.url.path.startswith("/api/auth"):
        return "auth", settings.RATE_LIMIT_AUTH
    if request.method in MUTATING_METHODS:
        return "mutate", settings.RATE_LIMIT_MUTATE
    return "read", settings.RATE_LIMIT_READ


def get_rate_limit_key(request: Request, user_id: str | None) -> tuple[str, int]:
    """Return (key, limit_per_minute) for the request."""
    group, limit = route_group(request)
    if user_id:
        principal = user_id
    else:
        principal = f"ip:{request.client.host if request.client else 'unknown'}"
    return f"rate:{get_bucket()}:{principal}:{group}", limit


def check_rate_limit_atomic(key: str, limit: int, window: int = WINDOW_SECONDS) -> tuple[bool, int, int]:
    """
    Count one hit against ``key``.

    Returns (allowed, remaining, retry_after_seconds). If Redis cannot be
    reached the request is allowed and a warning is logged.
    """
    try:
        count = redis_client.incr(key)
        if count == 1:
            redis_client.expire(key, window)

        if count <= limit:
            return True, limit - count, 0

        ttl = redis_client.ttl(key)
        return False, 0, ttl if ttl > 0 else window
    except Exception as e:
        logger.warning("rate_limit.redis_unavailable", error=str(e))
        return True, limit, 0


def _too_many_requests(limit: int, retry_after: int) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={"status": "fail", "detail": "Rate limit exceeded", "retry_after": retry_after},
        headers={
            "Retry-After": str(retry_after),
            "X-RateLimit-Limit": str(limit),
            "X-RateLimit-Remaining": "0",
        },
    )


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Applies the per-minute limits and sets X-RateLimit-Limit /
    X-RateLimit-Remaining on every metered response.

    Service paths are never metered. Outside production the bypass header
    skips the limiter so test suites are not throttled.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path in SERVICE_PATHS:
            return await call_next(request)

        if settings.is_local and request.headers.get(BYPASS_HEADER):
            return await call_next(request)

        user_id = subject_from_authorization(request.headers.get("Authorization"))
        key, limit = get_rate_limit_key(request, user_id)
        allowed, remaining, retry_after = check_rate_limit_atomic(key, limit)

        if not allowed:
            logger.info("rate_limit.exceeded", key=key, limit=limit)
            return _too_many_requests(limit, retry_after)

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(max(0, remaining))
        return response
