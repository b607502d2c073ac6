import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlmodel import select, func, and_
from sqlmodel.ext.asyncio.session import AsyncSession

from bookstop.core.exception_utils import handle_exceptions
from bookstop.core.exceptions import InternalServerError, ResourceAlreadyExists
from bookstop.crud.base_crud import BaseRepository, DB_ERROR_MESSAGE
from bookstop.models.user_book_model import UserBook


class UserBookRepository(BaseRepository[UserBook]):
    """Persistence for per-(user, book) reading statuses."""

    def __init__(self):
        super().__init__(UserBook)
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def get(self, db: AsyncSession, *, obj_id: int) -> Optional[UserBook]:
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
    ) -> Optional[UserBook]:
        """Get the status record for a (user, book) pair (unique constraint)."""
        statement = (
            select(self.model)
            .where(and_(self.model.user_id == user_id, self.model.book_id == book_id))
            .execution_options(populate_existing=True)
        )
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    @handle_exceptions(
        default_exception=InternalServerError,
        message=DB_ERROR_MESSAGE,
        integrity_exception=ResourceAlreadyExists,
        integrity_message="A status for this book already exists",
    )
    async def create(self, db: AsyncSession, *, obj_in: UserBook) -> UserBook:
        db.add(obj_in)
        await db.commit()
        self._logger.info(
            f"Status created for user {obj_in.user_id}, book {obj_in.book_id}: {obj_in.status}"
        )
        return await self.get(db=db, obj_id=obj_in.id)

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def update(
        self, db: AsyncSession, *, user_book: UserBook, fields_to_update: Dict[str, Any]
    ) -> UserBook:
        for field, value in fields_to_update.items():
            setattr(user_book, field, value)

        db.add(user_book)
        await db.commit()
        self._logger.info(
            f"Status fields updated for {user_book.id}: {list(fields_to_update.keys())}"
        )
        return await self.get(db=db, obj_id=user_book.id)

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def get_many(
        self,
        db: AsyncSession,
        *,
        skip: int = 0,
        limit: int = 50,
        filters: Optional[Dict[str, Any]] = None,
    ) -> Tuple[List[UserBook], int]:
        """A page of statuses, newest additions first, and the total count."""
        query = select(self.model)

        if filters:
            query = self._apply_filters(query, filters=filters)

        count_query = select(func.count()).select_from(query.subquery())
        total = (await db.execute(count_query)).scalar_one()

        query = query.order_by(self.model.added_to_list.desc(), self.model.id.desc())
        result = await db.execute(query.offset(skip).limit(limit))
        return list(result.scalars().all()), total

    def _apply_filters(self, query, *, filters: Dict[str, Any]):
        conditions = []

        if filters.get("user_id") is not None:
            conditions.append(self.model.user_id == filters["user_id"])

        if filters.get("status"):
            conditions.append(self.model.status == filters["status"])

        if filters.get("is_favorite") is not None:
            conditions.append(self.model.is_favorite == filters["is_favorite"])

        if conditions:
            query = query.where(and_(*conditions))
        return query


user_book_repository = UserBookRepository()
