from redis import asyncio as aioredis

from bookstop.core.config import settings

# from_url does not open a connection until the first command
redis_client = aioredis.from_url(
    settings.REDIS_URL, encoding="utf-8", decode_responses=True
)
