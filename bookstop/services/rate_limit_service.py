import logging

from redis.exceptions import RedisError

from bookstop.core.config import settings
from bookstop.db.redis_conn import redis_client

logger = logging.getLogger(__name__)


class RateLimitService:
    """
    Fixed-window request counters in Redis (INCR + EXPIRE).

    Rate limiting fails open: if Redis is unreachable, requests go through.
    """

    FAILED_AUTH_LIMIT = 5
    FAILED_AUTH_WINDOW_SECONDS = 15 * 60

    def __init__(self, enabled: bool = settings.RATE_LIMIT_ENABLED):
        self.enabled = enabled

    async def _hit(self, key: str, window_seconds: int) -> int:
        count = await redis_client.incr(key)
        if count == 1:
            await redis_client.expire(key, window_seconds)
        return count

    async def is_rate_limited(
        self, identifier: str, max_requests: int, window_seconds: int
    ) -> bool:
        """Counts this request against `identifier` and reports whether it is over the limit."""
        if not self.enabled:
            return False

        key = f"rate_limit:{identifier}:{window_seconds}"
        try:
            count = await self._hit(key, window_seconds)
        except RedisError:
            logger.warning(f"Rate limit check skipped for {identifier}: Redis unavailable")
            return False
        return count > max_requests

    async def is_auth_rate_limited(self, ip_address: str) -> bool:
        if not self.enabled:
            return False
        try:
            attempts = await redis_client.get(f"failed_auth:{ip_address}")
        except RedisError:
            logger.warning("Failed sign-in counter unavailable: Redis unavailable")
            return False
        return attempts is not None and int(attempts) >= self.FAILED_AUTH_LIMIT

    async def record_failed_auth_attempt(self, ip_address: str) -> None:
        if not self.enabled:
            return
        try:
            attempts = await self._hit(f"failed_auth:{ip_address}", self.FAILED_AUTH_WINDOW_SECONDS)
        except RedisError:
            logger.warning("Could not record failed sign-in: Redis unavailable")
            return
        if attempts >= self.FAILED_AUTH_LIMIT:
            logger.warning(f"Too many failed sign-in attempts from {ip_address}")

    async def clear_failed_auth_attempts(self, ip_address: str) -> None:
        if not self.enabled:
            return
        try:
            await redis_client.delete(f"failed_auth:{ip_address}")
        except RedisError:
            logger.warning("Could not clear failed sign-in counter: Redis unavailable")


rate_limit_service = RateLimitService()
