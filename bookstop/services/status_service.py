"""
Reading-status tracking: one record per (user, book) holding the status,
favorite flag, rating, notes, progress and reading dates.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from sqlmodel.ext.asyncio.session import AsyncSession

from bookstop.core.exception_utils import raise_for_status
from bookstop.core.exceptions import ConflictError, ResourceAlreadyExists, ResourceNotFound
from bookstop.crud.book_crud import book_repository
from bookstop.crud.user_book_crud import user_book_repository
from bookstop.models.user_book_model import ReadingStatus, UserBook
from bookstop.schemas.book_schema import BookSummary
from bookstop.schemas.user_book_schema import (
    StatusUpdateResponse,
    UserBookListResponse,
    UserBookPagination,
    UserBookResponse,
    UserBookStatusUpdate,
)
from bookstop.utils.datetime_utils import utcnow
from bookstop.utils.rounding import round_half_up

logger = logging.getLogger(__name__)


def progress_percentage(current_page: int, total_pages: int) -> Optional[int]:
    """Whole-number percentage read, or None when the page count is unknown. Not capped at 100."""
    if not total_pages or total_pages <= 0:
        return None
    return int(round_half_up(current_page / total_pages * 100))


def resolve_status_fields(
    status_in: UserBookStatusUpdate,
    existing: Optional[UserBook],
    now: datetime,
) -> Dict[str, Any]:
    """
    Column values to write for a status change.

    Only fields present in the request are written (a null rating is
    ignored). The reading dates and the progress percentage are derived
    from the merged record:

    - "reading" sets `started_reading` if it is not set yet;
    - "read" sets `finished_reading` and also `started_reading` if missing;
    - `percentage` is recomputed whenever the total page count is known.
    """
    requested = status_in.model_dump(exclude_unset=True)
    fields: Dict[str, Any] = {"status": status_in.status.value}

    for name in ("is_favorite", "rating", "notes", "tags", "current_page", "total_pages"):
        if requested.get(name) is not None:
            fields[name] = requested[name]

    current_page = fields.get("current_page", existing.current_page if existing else 0)
    total_pages = fields.get("total_pages", existing.total_pages if existing else 0)
    percentage = progress_percentage(current_page, total_pages)
    if percentage is not None:
        fields["percentage"] = percentage

    started = existing.started_reading if existing else None
    if status_in.status in (ReadingStatus.READING, ReadingStatus.READ) and started is None:
        fields["started_reading"] = now
    if status_in.status == ReadingStatus.READ:
        fields["finished_reading"] = now

    return fields


class StatusService:
    def __init__(self):
        self.book_repository = book_repository
        self.user_book_repository = user_book_repository
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    async def _resolve_book(self, db: AsyncSession, *, isbn: str):
        book = await self.book_repository.get_by_isbn(db=db, isbn=isbn.strip())
        raise_for_status(
            condition=book is None,
            exception=ResourceNotFound,
            detail="Book not found with the provided ISBN",
        )
        return book

    async def set_status(
        self, db: AsyncSession, *, user_id: int, isbn: str, status_in: UserBookStatusUpdate
    ) -> StatusUpdateResponse:
        """Creates or updates the caller's status for the book with this ISBN."""
        book = await self._resolve_book(db, isbn=isbn)
        # a failed insert rolls the session back and expires `book`
        book_id = book.id
        book_summary = BookSummary.model_validate(book)
        now = utcnow()

        existing = await self.user_book_repository.get_by_user_and_book(
            db=db, user_id=user_id, book_id=book_id
        )
        if existing is None:
            fields = resolve_status_fields(status_in, None, now)
            try:
                user_book = await self.user_book_repository.create(
                    db=db,
                    obj_in=UserBook(user_id=user_id, book_id=book_id, added_to_list=now, **fields),
                )
            except ResourceAlreadyExists:
                # A concurrent request created the record first; apply on top of it
                existing = await self.user_book_repository.get_by_user_and_book(
                    db=db, user_id=user_id, book_id=book_id
                )
                if existing is None:
                    raise ConflictError("Status changed concurrently. Please retry.")

        if existing is not None:
            user_book = await self.user_book_repository.update(
                db=db,
                user_book=existing,
                fields_to_update=resolve_status_fields(status_in, existing, now),
            )

        self._logger.info(
            f"User {user_id} set book {book_id} to '{user_book.status}'",
            extra={"user_id": user_id, "book_id": book_id},
        )
        return StatusUpdateResponse(
            user_book=UserBookResponse.model_validate(user_book),
            book=book_summary,
        )

    async def get_status(self, db: AsyncSession, *, user_id: int, book_id: int) -> UserBook:
        user_book = await self.user_book_repository.get_by_user_and_book(
            db=db, user_id=user_id, book_id=book_id
        )
        raise_for_status(
            condition=user_book is None,
            exception=ResourceNotFound,
            detail="Book not found in user library",
        )
        return user_book

    async def get_status_by_isbn(self, db: AsyncSession, *, user_id: int, isbn: str) -> UserBook:
        book = await self._resolve_book(db, isbn=isbn)
        return await self.get_status(db, user_id=user_id, book_id=book.id)

    async def list_user_books(
        self,
        db: AsyncSession,
        *,
        user_id: int,
        status: Optional[ReadingStatus] = None,
        is_favorite: Optional[bool] = None,
        page: int = 1,
        limit: int = 50,
    ) -> UserBookListResponse:
        filters = {
            "user_id": user_id,
            "status": status.value if status else None,
            "is_favorite": is_favorite,
        }
        items, total = await self.user_book_repository.get_many(
            db=db, skip=(page - 1) * limit, limit=limit, filters=filters
        )
        return UserBookListResponse(
            books=[UserBookResponse.model_validate(item) for item in items],
            pagination=UserBookPagination(
                current_page=page,
                total_pages=(total + limit - 1) // limit,
                count=len(items),
                total_books=total,
            ),
        )


status_service = StatusService()
