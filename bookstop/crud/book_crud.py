import logging
from typing import Any, Dict, List, Optional, Sequence

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from bookstop.core.exception_utils import handle_exceptions
from bookstop.core.exceptions import InternalServerError
from bookstop.crud.base_crud import BaseRepository, DB_ERROR_MESSAGE
from bookstop.models.book_model import Book


class BookRepository(BaseRepository[Book]):
    def __init__(self):
        super().__init__(Book)
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def get(self, db: AsyncSession, *, obj_id: int) -> Optional[Book]:
        statement = select(self.model).where(self.model.id == obj_id)
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def get_by_ids(self, db: AsyncSession, *, ids: Sequence[int]) -> List[Book]:
        """Books whose id is in `ids`, in no particular order."""
        if not ids:
            return []
        statement = select(self.model).where(self.model.id.in_(set(ids)))
        result = await db.execute(statement)
        return list(result.scalars().all())

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def get_by_isbn(self, db: AsyncSession, *, isbn: str) -> Optional[Book]:
        # isbn is not unique; the oldest record is the canonical one
        statement = (
            select(self.model)
            .where(self.model.isbn == isbn.strip())
            .order_by(self.model.id)
            .limit(1)
        )
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def get_by_openlibrary_id(
        self, db: AsyncSession, *, openlibrary_id: str
    ) -> Optional[Book]:
        statement = (
            select(self.model)
            .where(self.model.openlibrary_id == openlibrary_id)
            .order_by(self.model.id)
            .limit(1)
        )
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def create(self, db: AsyncSession, *, obj_in: Book) -> Book:
        db.add(obj_in)
        await db.commit()
        await db.refresh(obj_in)
        self._logger.info(f"Book created: {obj_in.id} ({obj_in.isbn})")
        return obj_in

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def update(
        self, db: AsyncSession, *, book: Book, fields_to_update: Dict[str, Any]
    ) -> Book:
        for field, value in fields_to_update.items():
            setattr(book, field, value)

        db.add(book)
        await db.commit()
        await db.refresh(book)
        self._logger.info(f"Book fields updated for {book.id}: {list(fields_to_update.keys())}")
        return book


book_repository = BookRepository()
