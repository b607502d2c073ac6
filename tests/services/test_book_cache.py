# tests/services/test_book_cache.py
from datetime import datetime, timezone

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from bookstop.models.book_model import Book
from bookstop.services import cache_service
from bookstop.services.cache_service import BookCache

pytestmark = pytest.mark.asyncio


class FakeRedis:
    def __init__(self, fail: bool = False):
        self.store = {}
        self.fail = fail

    async def get(self, key):
        if self.fail:
            raise RedisConnectionError("down")
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        if self.fail:
            raise RedisConnectionError("down")
        self.store[key] = value

    async def delete(self, key):
        if self.fail:
            raise RedisConnectionError("down")
        self.store.pop(key, None)


@pytest.fixture
def fake_redis(monkeypatch):
    redis = FakeRedis()
    monkeypatch.setattr(cache_service, "redis_client", redis)
    return redis


def _book() -> Book:
    stamp = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    return Book(
        id=7,
        title="Dune",
        authors=["Frank Herbert"],
        isbn="9780441013593",
        subjects=["Science fiction"],
        created_at=stamp,
        updated_at=stamp,
    )


async def test_set_then_get_restores_book(fake_redis):
    cache = BookCache(ttl=60, enabled=True)
    await cache.set(_book())

    assert "book:7" in fake_redis.store
    cached = await cache.get(7)
    assert cached.title == "Dune"
    assert cached.authors == ["Frank Herbert"]
    assert isinstance(cached.created_at, datetime)


async def test_invalidate_removes_entry(fake_redis):
    cache = BookCache(ttl=60, enabled=True)
    await cache.set(_book())
    await cache.invalidate(7)

    assert await cache.get(7) is None


async def test_disabled_cache_never_touches_redis(fake_redis):
    cache = BookCache(enabled=False)
    await cache.set(_book())

    assert fake_redis.store == {}
    assert await cache.get(7) is None


async def test_redis_failure_is_a_miss(monkeypatch):
    monkeypatch.setattr(cache_service, "redis_client", FakeRedis(fail=True))
    cache = BookCache(enabled=True)

    await cache.set(_book())
    assert await cache.get(7) is None


async def test_corrupt_entry_is_a_miss(fake_redis):
    fake_redis.store["book:7"] = "{not json"
    assert await BookCache(enabled=True).get(7) is None
