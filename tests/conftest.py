import os

# Must be set before anything from bookstop is imported
os.environ.setdefault("JWT_SECRET", "test-secret-key-that-is-long-enough-for-hs256")
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CACHE_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"

import uuid
from typing import Any, AsyncGenerator, Awaitable, Callable, Dict, List, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

import bookstop.db.base  # noqa: F401
from bookstop.core.security import password_manager, token_manager
from bookstop.db.session import get_session
from bookstop.main import app
from bookstop.models.book_model import Book
from bookstop.models.user_model import User

TEST_PASSWORD = "TestPassword123!"


# --- Test Database Setup ---


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """
    A fresh in-memory database per test. StaticPool keeps every session on
    the same connection so they all see the same tables.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def test_client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    Provides an HTTP client for API testing, overriding the DB dependency.
    """

    async def override_get_session() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_session] = override_get_session

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# --- Test Data Fixtures ---


@pytest.fixture
def sample_user_data() -> Dict[str, Any]:
    """Provides a dictionary of sample user data for sign-up."""
    unique_id = str(uuid.uuid4())[:8]
    return {
        "email": f"reader.{unique_id}@example.com",
        "username": f"reader_{unique_id}",
        "display_name": "Test Reader",
        "password": TEST_PASSWORD,
    }


@pytest.fixture
def make_user(db_session: AsyncSession) -> Callable[..., Awaitable[User]]:
    """Factory creating users directly in the database."""

    async def _make_user(**overrides: Any) -> User:
        unique_id = str(uuid.uuid4())[:8]
        data = {
            "email": f"user.{unique_id}@example.com",
            "username": f"user_{unique_id}",
            "display_name": f"User {unique_id}",
            "hashed_password": password_manager.hash_password(TEST_PASSWORD),
        }
        data.update(overrides)
        user = User(**data)
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_book(db_session: AsyncSession) -> Callable[..., Awaitable[Book]]:
    """Factory creating catalog books directly in the database."""

    async def _make_book(
        *,
        title: str = "Dune",
        isbn: Optional[str] = None,
        ratings_average: Optional[float] = None,
        subjects: Optional[List[str]] = None,
        **overrides: Any,
    ) -> Book:
        book = Book(
            title=title,
            authors=["Frank Herbert"],
            isbn=isbn or str(uuid.uuid4().int)[:13],
            ratings_average=ratings_average,
            subjects=subjects or [],
            **overrides,
        )
        db_session.add(book)
        await db_session.commit()
        await db_session.refresh(book)
        return book

    return _make_book


@pytest_asyncio.fixture
async def sample_user(make_user) -> User:
    return await make_user()


@pytest_asyncio.fixture
async def other_user(make_user) -> User:
    return await make_user()


def _auth_headers(user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token_manager.create_access_token(subject=user.id)}"}


@pytest.fixture
def headers_for() -> Callable[[User], Dict[str, str]]:
    return _auth_headers


@pytest.fixture
def user_headers(sample_user: User) -> Dict[str, str]:
    return _auth_headers(sample_user)


@pytest.fixture
def other_headers(other_user: User) -> Dict[str, str]:
    return _auth_headers(other_user)
