import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlmodel.ext.asyncio.session import AsyncSession

from bookstop.core.config import settings
from bookstop.db.session import get_session
from bookstop.models.user_book_model import ReadingStatus
from bookstop.models.user_model import User
from bookstop.schemas.user_book_schema import (
    StatusUpdateResponse,
    UserBookEnvelope,
    UserBookListResponse,
    UserBookResponse,
    UserBookStatusUpdate,
)
from bookstop.services.status_service import status_service
from bookstop.utils.deps import get_current_user, rate_limit_api

logger = logging.getLogger(__name__)

router = APIRouter(tags=["User Data"], prefix=f"{settings.API_PREFIX}/userdata")


@router.get(
    "/user/books",
    status_code=status.HTTP_200_OK,
    response_model=UserBookListResponse,
    summary="Your tracked books",
    description="Newest additions first; filter by status or favorites",
    dependencies=[Depends(rate_limit_api)],
)
async def get_my_books(
    *,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
    status_filter: Optional[ReadingStatus] = Query(None, alias="status"),
    is_favorite: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
):
    return await status_service.list_user_books(
        db=db,
        user_id=current_user.id,
        status=status_filter,
        is_favorite=is_favorite,
        page=page,
        limit=limit,
    )


@router.get(
    "/user/{user_id}/books",
    status_code=status.HTTP_200_OK,
    response_model=UserBookListResponse,
    summary="Another user's tracked books",
    dependencies=[Depends(rate_limit_api)],
)
async def get_user_books(
    *,
    user_id: int,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
    status_filter: Optional[ReadingStatus] = Query(None, alias="status"),
    is_favorite: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
):
    return await status_service.list_user_books(
        db=db,
        user_id=user_id,
        status=status_filter,
        is_favorite=is_favorite,
        page=page,
        limit=limit,
    )


@router.api_route(
    "/{isbn}/status",
    methods=["PUT", "POST"],
    status_code=status.HTTP_200_OK,
    response_model=StatusUpdateResponse,
    summary="Set your status for a book",
    description="Creates the record on first use and updates it afterwards",
    dependencies=[Depends(rate_limit_api)],
)
async def set_status(
    *,
    isbn: str,
    status_in: UserBookStatusUpdate,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return await status_service.set_status(
        db=db, user_id=current_user.id, isbn=isbn, status_in=status_in
    )


@router.get(
    "/{isbn}/status",
    status_code=status.HTTP_200_OK,
    response_model=UserBookEnvelope,
    summary="Get your status for a book",
    dependencies=[Depends(rate_limit_api)],
)
async def get_status(
    *,
    isbn: str,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    user_book = await status_service.get_status_by_isbn(
        db=db, user_id=current_user.id, isbn=isbn
    )
    return UserBookEnvelope(user_book=UserBookResponse.model_validate(user_book))
