import logging
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from bookstop.core.config import settings

logger = logging.getLogger(__name__)


class Database:
    """Owns the async engine and the session factory for the application."""

    def __init__(self, url: str):
        self.url = url
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker] = None

    def _engine_options(self) -> dict:
        options = {"echo": settings.DB_ECHO, "pool_pre_ping": True}
        if not self.url.startswith("sqlite"):
            options.update(
                pool_size=settings.DB_POOL_SIZE,
                max_overflow=settings.DB_MAX_OVERFLOW,
                pool_recycle=settings.DB_POOL_RECYCLE,
                pool_timeout=settings.DB_POOL_TIMEOUT,
            )
        return options

    async def connect(self) -> None:
        # Registers every table on SQLModel.metadata
        import bookstop.db.base  # noqa: F401

        self.engine = create_async_engine(self.url, **self._engine_options())
        self.session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )
        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)
        logger.info("Database connection established")

    async def disconnect(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()
            self.engine = None
            self.session_factory = None
            logger.info("Database connection closed")


db = Database(settings.DATABASE_URL)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request."""
    if db.session_factory is None:
        await db.connect()
    async with db.session_factory() as session:
        yield session
