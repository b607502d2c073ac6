from contextlib import asynccontextmanager
from fastapi import FastAPI

from bookstop.core.config import settings
from bookstop.core.exception_handler import register_exception_handlers
from bookstop.core.logging_config import setup_logging
from bookstop.core.middleware import register_middlewares
from bookstop.db.redis_conn import redis_client
from bookstop.db.session import db

# Routers
from bookstop.api.v1.endpoints import auth, book, book_list, review, user, user_data


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Handles application startup and shutdown events.
    """
    await db.connect()

    yield

    await db.disconnect()
    await redis_client.aclose()


def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""
    setup_logging()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        description=settings.DESCRIPTION,
        lifespan=lifespan,
    )

    register_middlewares(app)
    register_exception_handlers(app)

    app.include_router(auth.router)
    app.include_router(user.router)
    app.include_router(book.router)
    app.include_router(user_data.router)
    app.include_router(review.router)
    app.include_router(book_list.router)

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


app = create_application()
