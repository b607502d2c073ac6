"""
FastAPI dependencies for authentication, rate limiting and pagination.
Business logic stays in the services; these only adapt the request.
"""

import logging
from typing import Optional

from fastapi import Depends, Query, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel.ext.asyncio.session import AsyncSession

from bookstop.core.exceptions import (
    BookStopException,
    InactiveUser,
    InvalidToken,
    NotAuthenticated,
    RateLimitExceeded,
)
from bookstop.core.middleware import get_client_ip
from bookstop.core.security import token_manager
from bookstop.db.session import get_session
from bookstop.models.user_model import User
from bookstop.services.rate_limit_service import rate_limit_service
from bookstop.services.user_service import user_service

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False, description="JWT access token")


def _user_id_from_token(token: str) -> int:
    payload = token_manager.verify_token(token)
    try:
        return int(payload["sub"])
    except (TypeError, ValueError):
        raise InvalidToken("Token subject is not a valid user id.") from None


# ================== AUTHENTICATION ==================
async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_session),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> User:
    """Validates the bearer token and returns the user it belongs to."""
    if credentials is None or not credentials.credentials:
        raise NotAuthenticated("Access denied. No token provided.")

    user_id = _user_id_from_token(credentials.credentials)
    user = await user_service.get_user_for_auth(db=db, user_id=user_id)
    if user is None:
        raise InvalidToken("The user for this token no longer exists.")
    if not user.is_active:
        logger.warning("Inactive user attempted access", extra={"user_id": user.id})
        raise InactiveUser()

    request.state.user = user
    return user


async def get_current_user_optional(
    request: Request,
    db: AsyncSession = Depends(get_session),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[User]:
    """Like `get_current_user`, but anonymous (or badly authenticated) requests get None."""
    if credentials is None or not credentials.credentials:
        return None
    try:
        return await get_current_user(request, db=db, credentials=credentials)
    except BookStopException as exc:
        logger.info(f"Ignoring invalid credentials on optional-auth route: {exc.detail}")
        return None


# ================== RATE LIMITING ==================
class RateLimitChecker:
    """Fixed-window rate limit keyed by client IP or, when authenticated, by user."""

    def __init__(
        self,
        max_requests: int = 100,
        window_seconds: int = 60,
        identifier_type: str = "ip",  # "ip" or "user"
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.identifier_type = identifier_type

    def _identifier(self, request: Request) -> str:
        if self.identifier_type == "user":
            auth_header = request.headers.get("Authorization", "")
            scheme, _, token = auth_header.partition(" ")
            if scheme.lower() == "bearer" and token:
                try:
                    return f"user:{_user_id_from_token(token)}"
                except BookStopException:
                    pass
        return f"ip:{get_client_ip(request)}"

    async def __call__(self, request: Request) -> None:
        identifier = self._identifier(request)
        if await rate_limit_service.is_rate_limited(
            identifier, self.max_requests, self.window_seconds
        ):
            logger.warning(f"Rate limit exceeded for {identifier}")
            raise RateLimitExceeded(
                f"Rate limit exceeded. Maximum {self.max_requests} requests per {self.window_seconds} seconds."
            )


rate_limit_auth = RateLimitChecker(max_requests=5, window_seconds=60, identifier_type="ip")
rate_limit_api = RateLimitChecker(max_requests=100, window_seconds=60, identifier_type="user")
rate_limit_heavy = RateLimitChecker(max_requests=10, window_seconds=60, identifier_type="user")


# ================== PAGINATION ==================
class PaginationParams:
    def __init__(self, page: int, limit: int):
        self.page = page
        self.limit = limit
        self.skip = (page - 1) * limit


async def get_pagination_params(
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(10, ge=1, le=100, description="Page size"),
) -> PaginationParams:
    return PaginationParams(page=page, limit=limit)
