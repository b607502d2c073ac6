import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlmodel.ext.asyncio.session import AsyncSession

from bookstop.core.config import settings
from bookstop.db.session import get_session
from bookstop.models.user_model import User
from bookstop.schemas.common_schema import MessageResponse
from bookstop.schemas.review_schema import (
    ReviewCreate,
    ReviewEnvelope,
    ReviewListResponse,
    ReviewResponse,
    ReviewUpdate,
)
from bookstop.services.review_service import review_service
from bookstop.utils.deps import (
    PaginationParams,
    get_current_user,
    get_pagination_params,
    rate_limit_api,
    rate_limit_heavy,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Reviews"], prefix=f"{settings.API_PREFIX}/review")

# =====CREATE======
@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=ReviewEnvelope,
    summary="Review a book",
    description="A review needs a rating or written content; written content needs a title",
    dependencies=[Depends(rate_limit_heavy)],
)
async def create_review(
    *,
    review_in: ReviewCreate,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    review = await review_service.create_review(db=db, user_id=current_user.id, review_in=review_in)
    return ReviewEnvelope(
        message="Review created successfully", review=ReviewResponse.model_validate(review)
    )


# =====READ======
@router.get(
    "",
    status_code=status.HTTP_200_OK,
    response_model=ReviewListResponse,
    summary="List reviews",
    dependencies=[Depends(rate_limit_api)],
)
async def get_reviews(
    *,
    db: AsyncSession = Depends(get_session),
    pagination: PaginationParams = Depends(get_pagination_params),
    book_id: Optional[int] = Query(None),
    user_id: Optional[int] = Query(None),
    rating: Optional[int] = Query(None, ge=1, le=5),
    sort_by: str = Query("created_at", pattern="^(created_at|updated_at|rating)$"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
):
    return await review_service.list_reviews(
        db=db,
        page=pagination.page,
        limit=pagination.limit,
        filters={"book_id": book_id, "user_id": user_id, "rating": rating},
        sort_by=sort_by,
        sort_order=sort_order,
    )


@router.get(
    "/book/{book_id}",
    status_code=status.HTTP_200_OK,
    response_model=ReviewListResponse,
    summary="Reviews for a book",
    description="Includes the book's average rating and star distribution",
    dependencies=[Depends(rate_limit_api)],
)
async def get_book_reviews(
    *,
    book_id: int,
    db: AsyncSession = Depends(get_session),
    pagination: PaginationParams = Depends(get_pagination_params),
    sort_by: str = Query("created_at", pattern="^(created_at|updated_at|rating)$"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
):
    return await review_service.list_reviews_for_book(
        db=db,
        book_id=book_id,
        page=pagination.page,
        limit=pagination.limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )


@router.get(
    "/user/{user_id}",
    status_code=status.HTTP_200_OK,
    response_model=ReviewListResponse,
    summary="Reviews written by a user",
    dependencies=[Depends(rate_limit_api)],
)
async def get_user_reviews(
    *,
    user_id: int,
    db: AsyncSession = Depends(get_session),
    pagination: PaginationParams = Depends(get_pagination_params),
):
    return await review_service.list_reviews_for_user(
        db=db, user_id=user_id, page=pagination.page, limit=pagination.limit
    )


@router.get(
    "/{review_id}",
    status_code=status.HTTP_200_OK,
    response_model=ReviewEnvelope,
    summary="Get review by ID",
    dependencies=[Depends(rate_limit_api)],
)
async def get_review(*, review_id: int, db: AsyncSession = Depends(get_session)):
    review = await review_service.get_review(db=db, review_id=review_id)
    return ReviewEnvelope(review=ReviewResponse.model_validate(review))


# =======UPDATE========
@router.put(
    "/{review_id}",
    status_code=status.HTTP_200_OK,
    response_model=ReviewEnvelope,
    summary="Update your review",
    description="Changing the written content keeps the previous version in the edit history",
    dependencies=[Depends(rate_limit_api)],
)
async def update_review(
    *,
    review_id: int,
    review_in: ReviewUpdate,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    review = await review_service.update_review(
        db=db, review_id=review_id, user_id=current_user.id, review_in=review_in
    )
    return ReviewEnvelope(
        message="Review updated successfully", review=ReviewResponse.model_validate(review)
    )


# =======DELETE========
@router.delete(
    "/{review_id}",
    status_code=status.HTTP_200_OK,
    response_model=MessageResponse,
    summary="Delete your review",
    dependencies=[Depends(rate_limit_api)],
)
async def delete_review(
    *,
    review_id: int,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    await review_service.delete_review(db=db, review_id=review_id, user_id=current_user.id)
    return MessageResponse(message="Review deleted successfully")
