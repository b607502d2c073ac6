import json
import logging
from typing import Optional

from dateutil.parser import isoparse
from redis.exceptions import RedisError

from bookstop.core.config import settings
from bookstop.db.redis_conn import redis_client
from bookstop.models.book_model import Book

logger = logging.getLogger(__name__)

_TIMESTAMP_FIELDS = ("created_at", "updated_at")


class BookCache:
    """
    Read-through cache for catalog rows, stored in Redis as JSON under
    `book:<id>`.

    Redis errors and undecodable entries count as a miss.
    """

    def __init__(self, ttl: int = settings.CACHE_TTL, enabled: bool = settings.CACHE_ENABLED):
        self.ttl = ttl
        self.enabled = enabled

    @staticmethod
    def key_for(book_id: int) -> str:
        return f"book:{book_id}"

    @staticmethod
    def _decode(raw: str) -> Book:
        data = json.loads(raw)
        # table models skip validation, so timestamps come back as strings
        for field in _TIMESTAMP_FIELDS:
            if isinstance(data.get(field), str):
                data[field] = isoparse(data[field])
        return Book.model_validate(data)

    async def get(self, book_id: int) -> Optional[Book]:
        if not self.enabled:
            return None

        key = self.key_for(book_id)
        try:
            raw = await redis_client.get(key)
            return self._decode(raw) if raw else None
        except (RedisError, ValueError):
            logger.warning(f"Ignoring unreadable cache entry {key}", exc_info=True)
            return None

    async def set(self, book: Book) -> None:
        if not self.enabled or book.id is None:
            return

        key = self.key_for(book.id)
        try:
            await redis_client.set(key, book.model_dump_json(), ex=self.ttl)
        except RedisError:
            logger.warning(f"Could not write cache entry {key}", exc_info=True)

    async def invalidate(self, book_id: int) -> None:
        if not self.enabled:
            return

        key = self.key_for(book_id)
        try:
            await redis_client.delete(key)
        except RedisError:
            logger.warning(f"Could not drop cache entry {key}", exc_info=True)


book_cache = BookCache()
