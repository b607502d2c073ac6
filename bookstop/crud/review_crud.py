import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlmodel import select, func, and_
from sqlmodel.ext.asyncio.session import AsyncSession

from bookstop.core.exception_utils import handle_exceptions
from bookstop.core.exceptions import InternalServerError, ResourceAlreadyExists
from bookstop.crud.base_crud import BaseRepository, DB_ERROR_MESSAGE
from bookstop.models.review_model import Review

SORTABLE_FIELDS = {"created_at", "updated_at", "rating"}


class ReviewRepository(BaseRepository[Review]):
    def __init__(self):
        super().__init__(Review)
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def get(self, db: AsyncSession, *, obj_id: int) -> Optional[Review]:
        """Get a review, with its author, book and edit history loaded."""
        statement = (
            select(self.model)
            .where(self.model.id == obj_id)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def get_by_user_and_book(
        self, db: AsyncSession, *, user_id: int, book_id: int
    ) -> Optional[Review]:
        statement = select(self.model).where(
            and_(self.model.user_id == user_id, self.model.book_id == book_id)
        )
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    @handle_exceptions(
        default_exception=InternalServerError,
        message=DB_ERROR_MESSAGE,
        integrity_exception=ResourceAlreadyExists,
        integrity_message="You have already reviewed this book",
    )
    async def create(self, db: AsyncSession, *, obj_in: Review) -> Review:
        # uq_review_user_book is the only duplicate check
        db.add(obj_in)
        await db.commit()
        self._logger.info(f"Review created: {obj_in.id}")
        return await self.get(db=db, obj_id=obj_in.id)

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def update(
        self, db: AsyncSession, *, review: Review, fields_to_update: Dict[str, Any]
    ) -> Review:
        for field, value in fields_to_update.items():
            setattr(review, field, value)

        db.add(review)
        await db.commit()
        self._logger.info(
            f"Review fields updated for {review.id}: {list(fields_to_update.keys())}"
        )
        return await self.get(db=db, obj_id=review.id)

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def delete(self, db: AsyncSession, *, review: Review) -> None:
        """Hard-deletes a review; its edit history goes with it."""
        review_id = review.id
        await db.delete(review)
        await db.commit()
        self._logger.info(f"Review hard deleted: {review_id}")

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def get_many(
        self,
        db: AsyncSession,
        *,
        skip: int = 0,
        limit: int = 10,
        filters: Optional[Dict[str, Any]] = None,
        order_by: str = "created_at",
        order_desc: bool = True,
    ) -> Tuple[List[Review], int]:
        """Retrieve reviews with filtering and pagination."""
        query = select(self.model)

        if filters:
            query = self._apply_filters(query, filters=filters)

        count_query = select(func.count()).select_from(query.subquery())
        total = (await db.execute(count_query)).scalar_one()

        query = self._apply_ordering(query, order_by, order_desc)
        result = await db.execute(query.offset(skip).limit(limit))
        return list(result.scalars().all()), total

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def get_rating_stats(
        self, db: AsyncSession, *, book_id: int
    ) -> Tuple[Optional[float], int, Dict[int, int]]:
        """Average, count and per-star distribution over the rated reviews of a book."""
        rated = and_(self.model.book_id == book_id, self.model.rating.is_not(None))

        summary = await db.execute(
            select(func.avg(self.model.rating), func.count(self.model.id)).where(rated)
        )
        average, count = summary.one()

        buckets = await db.execute(
            select(self.model.rating, func.count(self.model.id))
            .where(rated)
            .group_by(self.model.rating)
        )
        distribution = {star: 0 for star in range(1, 6)}
        for rating, rating_count in buckets.all():
            distribution[int(rating)] = rating_count

        return (float(average) if average is not None else None), count, distribution

    def _apply_filters(self, query, *, filters: Dict[str, Any]):
        conditions = []

        if filters.get("book_id") is not None:
            conditions.append(self.model.book_id == filters["book_id"])

        if filters.get("user_id") is not None:
            conditions.append(self.model.user_id == filters["user_id"])

        if filters.get("rating") is not None:
            conditions.append(self.model.rating == filters["rating"])

        if conditions:
            query = query.where(and_(*conditions))
        return query

    def _apply_ordering(self, query, order_by: str, order_desc: bool):
        order_column = getattr(
            self.model, order_by if order_by in SORTABLE_FIELDS else "created_at"
        )
        if order_desc:
            return query.order_by(order_column.desc(), self.model.id.desc())
        return query.order_by(order_column.asc(), self.model.id.asc())


review_repository = ReviewRepository()
