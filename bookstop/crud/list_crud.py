import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import case, update
from sqlmodel import select, func, and_, or_
from sqlmodel.ext.asyncio.session import AsyncSession

from bookstop.core.exception_utils import handle_exceptions
from bookstop.core.exceptions import (
    ConflictError,
    InternalServerError,
    ResourceAlreadyExists,
)
from bookstop.crud.base_crud import BaseRepository, DB_ERROR_MESSAGE
from bookstop.models.list_model import BookList, ListVisibility
from bookstop.schemas.list_schema import ListMetadata
from bookstop.utils.datetime_utils import utcnow

SORTABLE_FIELDS = {"created_at", "updated_at", "likes", "title", "total_books"}


class BookListRepository(BaseRepository[BookList]):
    """
    Persistence for book lists and their members.

    Membership changes are staged on `book_list.books` by the caller and
    committed through `save_membership`, which only succeeds if nobody else
    changed the list since it was read.
    """

    def __init__(self):
        super().__init__(BookList)
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def get(self, db: AsyncSession, *, obj_id: int) -> Optional[BookList]:
        """Get a list with its owner and its ordered members loaded."""
        statement = (
            select(self.model)
            .where(self.model.id == obj_id)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    @handle_exceptions(
        default_exception=InternalServerError,
        message=DB_ERROR_MESSAGE,
        integrity_exception=ResourceAlreadyExists,
        integrity_message="Book is already in this list",
    )
    async def create(self, db: AsyncSession, *, obj_in: BookList) -> BookList:
        db.add(obj_in)
        await db.commit()
        self._logger.info(f"List created: {obj_in.id} with {obj_in.total_books} books")
        return await self.get(db=db, obj_id=obj_in.id)

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def update(
        self, db: AsyncSession, *, book_list: BookList, fields_to_update: Dict[str, Any]
    ) -> BookList:
        for field, value in fields_to_update.items():
            setattr(book_list, field, value)

        db.add(book_list)
        await db.commit()
        self._logger.info(
            f"List fields updated for {book_list.id}: {list(fields_to_update.keys())}"
        )
        return await self.get(db=db, obj_id=book_list.id)

    @handle_exceptions(
        default_exception=InternalServerError,
        message=DB_ERROR_MESSAGE,
        integrity_exception=ResourceAlreadyExists,
        integrity_message="Book is already in this list",
    )
    async def save_membership(
        self,
        db: AsyncSession,
        *,
        book_list: BookList,
        expected_version: int,
        metadata: Optional[ListMetadata] = None,
    ) -> BookList:
        """
        Commits the staged member changes of `book_list` together with a
        version bump (and the recomputed metadata, when given).

        The list row is updated with `WHERE version = expected_version`; if no
        row matches, someone else changed the list first and the whole
        transaction is rolled back with a ConflictError.
        """
        # the rollback expires `book_list`, so only the id is used afterwards
        list_id = book_list.id
        values: Dict[str, Any] = {
            "version": self.model.version + 1,
            "updated_at": utcnow(),
        }
        if metadata is not None:
            values.update(
                total_books=metadata.total_books,
                average_rating=metadata.average_rating,
                genres=metadata.genres,
            )

        statement = (
            update(self.model)
            .where(and_(self.model.id == list_id, self.model.version == expected_version))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await db.flush()
        result = await db.execute(statement)
        if result.rowcount == 0:
            await db.rollback()
            self._logger.warning(
                f"Concurrent modification of list {list_id} (expected version {expected_version})"
            )
            raise ConflictError("List was modified concurrently. Please retry.")

        await db.commit()
        return await self.get(db=db, obj_id=list_id)

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def change_likes(self, db: AsyncSession, *, list_id: int, delta: int) -> int:
        """
        Atomically adds `delta` (+1 or -1) to the like counter, never going
        below zero, and returns the new value.
        """
        if delta >= 0:
            new_value = self.model.likes + delta
        else:
            new_value = case(
                (self.model.likes + delta < 0, 0), else_=self.model.likes + delta
            )

        await db.execute(
            update(self.model)
            .where(self.model.id == list_id)
            .values(likes=new_value)
            .execution_options(synchronize_session=False)
        )
        await db.commit()

        result = await db.execute(select(self.model.likes).where(self.model.id == list_id))
        return result.scalar_one()

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def delete(self, db: AsyncSession, *, book_list: BookList) -> None:
        list_id = book_list.id
        await db.delete(book_list)
        await db.commit()
        self._logger.info(f"List hard deleted: {list_id}")

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
    ) -> Tuple[List[BookList], int]:
        query = select(self.model)

        if filters:
            query = self._apply_filters(query, filters=filters)

        count_query = select(func.count()).select_from(query.subquery())
        total = (await db.execute(count_query)).scalar_one()

        query = self._apply_ordering(query, order_by, order_desc)
        result = await db.execute(query.offset(skip).limit(limit))
        return list(result.scalars().all()), total

    def _apply_filters(self, query, *, filters: Dict[str, Any]):
        """
        Supported keys: `user_id`, `visibility`, `search` and `readable_by`.
        `readable_by` (a viewer id or None for anonymous) limits results to
        public lists plus the viewer's own.
        """
        conditions = []

        if filters.get("user_id") is not None:
            conditions.append(self.model.user_id == filters["user_id"])

        if filters.get("visibility"):
            conditions.append(self.model.visibility == filters["visibility"])

        if filters.get("search"):
            search_term = f"%{filters['search']}%"
            conditions.append(
                or_(
                    self.model.title.ilike(search_term),
                    self.model.description.ilike(search_term),
                )
            )

        if "readable_by" in filters:
            is_public = self.model.visibility == ListVisibility.PUBLIC.value
            viewer_id = filters["readable_by"]
            if viewer_id is None:
                conditions.append(is_public)
            else:
                conditions.append(or_(is_public, self.model.user_id == viewer_id))

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


book_list_repository = BookListRepository()
