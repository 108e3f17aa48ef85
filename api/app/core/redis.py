"""Shared Redis client. Used for rate limiting only; the app runs without it."""
import redis
import structlog

from app.core.config import settings


logger = structlog.get_logger(__name__)

# Short timeouts so a dead Redis cannot stall requests
redis_client = redis.Redis.from_url(
    settings.REDIS_URL,
    socket_connect_timeout=1,
    socket_timeout=1,
)


def check_redis() -> bool:
    try:
        return redis_client.ping() is True
    except redis.RedisError as e:
        logger.warning("redis.unreachable", error=str(e))
        return False
