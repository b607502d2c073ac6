import logging
from typing import Any, Dict, Optional

from sqlmodel.ext.asyncio.session import AsyncSession

from bookstop.core.exception_utils import raise_for_status
from bookstop.core.exceptions import NotAuthorized, ResourceNotFound, ValidationError
from bookstop.crud.book_crud import book_repository
from bookstop.crud.review_crud import review_repository
from bookstop.crud.user_book_crud import user_book_repository
from bookstop.crud.user_crud import user_repository
from bookstop.models.review_model import Review, ReviewEdit
from bookstop.schemas.review_schema import (
    RatingStats,
    ReviewCreate,
    ReviewListResponse,
    ReviewPagination,
    ReviewResponse,
    ReviewUpdate,
)
from bookstop.utils.datetime_utils import utcnow

logger = logging.getLogger(__name__)


def validate_review_fields(
    title: Optional[str], content: Optional[str], rating: Optional[int]
) -> None:
    """A review needs a rating or written content, and written content needs a title."""
    if rating is None and not content:
        raise ValidationError("Either rating or written review is required")
    if content and not title:
        raise ValidationError("Title is required when providing a written review")


class ReviewService:
    """
    One review per user and book, with an append-only history of previous
    contents.
    """

    def __init__(self):
        self.user_repository = user_repository
        self.review_repository = review_repository
        self.book_repository = book_repository
        self.user_book_repository = user_book_repository
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def _check_authorization(self, user_id: int, review: Review, action: str) -> None:
        if review.user_id != user_id:
            self._logger.warning(
                f"User {user_id} attempted to {action} review {review.id} owned by {review.user_id}"
            )
            raise NotAuthorized(f"Not authorized to {action} this review")

    async def _get_existing_book(self, db: AsyncSession, *, book_id: int) -> None:
        book = await self.book_repository.get(db=db, obj_id=book_id)
        raise_for_status(
            condition=book is None,
            exception=ResourceNotFound,
            resource_type="Book",
            detail="Book not found",
        )

    async def _own_user_book_id(
        self, db: AsyncSession, *, user_book_id: Optional[int], user_id: int, book_id: int
    ) -> Optional[int]:
        """Returns `user_book_id` if it is the caller's status record for this book, else None."""
        if user_book_id is None:
            return None
        user_book = await self.user_book_repository.get(db=db, obj_id=user_book_id)
        if user_book is None or user_book.user_id != user_id or user_book.book_id != book_id:
            self._logger.warning(
                f"Ignoring status {user_book_id} on review by user {user_id}: not theirs for book {book_id}"
            )
            return None
        return user_book_id

    # ======= READ OPERATIONS =======
    async def get_review(self, db: AsyncSession, *, review_id: int) -> Review:
        review = await self.review_repository.get(db=db, obj_id=review_id)
        raise_for_status(
            condition=review is None,
            exception=ResourceNotFound,
            resource_type="Review",
            detail="Review not found",
        )
        return review

    async def list_reviews(
        self,
        db: AsyncSession,
        *,
        page: int = 1,
        limit: int = 10,
        filters: Optional[Dict[str, Any]] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> ReviewListResponse:
        reviews, total = await self.review_repository.get_many(
            db=db,
            skip=(page - 1) * limit,
            limit=limit,
            filters=filters,
            order_by=sort_by,
            order_desc=sort_order != "asc",
        )
        return ReviewListResponse(
            reviews=[ReviewResponse.model_validate(review) for review in reviews],
            pagination=ReviewPagination.build(page=page, limit=limit, total=total),
        )

    async def list_reviews_for_book(
        self,
        db: AsyncSession,
        *,
        book_id: int,
        page: int = 1,
        limit: int = 10,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> ReviewListResponse:
        """A page of a book's reviews together with its rating statistics."""
        await self._get_existing_book(db, book_id=book_id)

        response = await self.list_reviews(
            db,
            page=page,
            limit=limit,
            filters={"book_id": book_id},
            sort_by=sort_by,
            sort_order=sort_order,
        )
        average, count, distribution = await self.review_repository.get_rating_stats(
            db=db, book_id=book_id
        )
        response.rating_stats = RatingStats(
            average_rating=average or 0.0,
            total_ratings=count,
            distribution=distribution,
        )
        return response

    async def list_reviews_for_user(
        self, db: AsyncSession, *, user_id: int, page: int = 1, limit: int = 10
    ) -> ReviewListResponse:
        user = await self.user_repository.get(db=db, obj_id=user_id)
        raise_for_status(
            condition=user is None,
            exception=ResourceNotFound,
            resource_type="User",
            detail="User not found",
        )
        return await self.list_reviews(db, page=page, limit=limit, filters={"user_id": user_id})

    # ======= WRITE OPERATIONS =======
    async def create_review(
        self, db: AsyncSession, *, user_id: int, review_in: ReviewCreate
    ) -> Review:
        """
        Raises:
            ValidationError: Neither rating nor content, or content without a title.
            ResourceNotFound: If the book does not exist.
            ResourceAlreadyExists: If the user already reviewed this book.
        """
        validate_review_fields(review_in.title, review_in.content, review_in.rating)
        await self._get_existing_book(db, book_id=review_in.book_id)
        user_book_id = await self._own_user_book_id(
            db, user_book_id=review_in.user_book_id, user_id=user_id, book_id=review_in.book_id
        )

        review = Review(
            user_id=user_id,
            book_id=review_in.book_id,
            user_book_id=user_book_id,
            title=review_in.title if review_in.content else None,
            content=review_in.content or "",
            rating=review_in.rating,
        )
        review = await self.review_repository.create(db=db, obj_in=review)
        self._logger.info(
            f"Review {review.id} created by user {user_id} for book {review.book_id}",
            extra={"user_id": user_id, "book_id": review.book_id},
        )
        return review

    async def update_review(
        self, db: AsyncSession, *, review_id: int, user_id: int, review_in: ReviewUpdate
    ) -> Review:
        review = await self.get_review(db, review_id=review_id)
        self._check_authorization(user_id, review, "update")

        update_data = review_in.model_dump(exclude_unset=True)
        title = update_data.get("title", review.title)
        content = update_data.get("content", review.content) or ""
        rating = update_data.get("rating", review.rating)

        if "content" in update_data and not content:
            # Clearing the written review clears its title as well
            title = None

        validate_review_fields(title, content, rating)

        if content and content != review.content:
            review.edit_history.append(
                ReviewEdit(content=review.content, edited_at=utcnow())
            )

        fields_to_update = {"title": title, "content": content, "rating": rating}
        review = await self.review_repository.update(
            db=db, review=review, fields_to_update=fields_to_update
        )
        self._logger.info(f"Review {review.id} updated by user {user_id}")
        return review

    async def delete_review(self, db: AsyncSession, *, review_id: int, user_id: int) -> None:
        review = await self.get_review(db, review_id=review_id)
        self._check_authorization(user_id, review, "delete")

        await self.review_repository.delete(db=db, review=review)
        self._logger.warning(f"Review {review_id} deleted by user {user_id}")


review_service = ReviewService()
