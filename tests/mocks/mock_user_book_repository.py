# tests/mocks/mock_user_book_repository.py
from typing import Any, Dict, List, Optional, Tuple

from bookstop.core.exceptions import ResourceAlreadyExists
from bookstop.models.book_model import Book
from bookstop.models.user_book_model import UserBook


class FakeBookRepository:
    """In-memory stand-in for BookRepository, enough for status tracking."""

    def __init__(self, initial_books: List[Book] = None):
        self.books = initial_books or []

    async def get(self, db, *, obj_id: int) -> Optional[Book]:
        return next((book for book in self.books if book.id == obj_id), None)

    async def get_by_isbn(self, db, *, isbn: str) -> Optional[Book]:
        return next((book for book in self.books if book.isbn == isbn), None)


class FakeUserBookRepository:
    """
    In-memory stand-in for UserBookRepository. Enforces the one-record-per-
    (user, book) rule the way the unique constraint does.
    """

    def __init__(self, initial_user_books: List[UserBook] = None):
        self.user_books = initial_user_books or []
        self._next_id = len(self.user_books) + 1

    async def get_by_user_and_book(
        self, db, *, user_id: int, book_id: int
    ) -> Optional[UserBook]:
        for user_book in self.user_books:
            if user_book.user_id == user_id and user_book.book_id == book_id:
                return user_book
        return None

    async def create(self, db, *, obj_in: UserBook) -> UserBook:
        if await self.get_by_user_and_book(db, user_id=obj_in.user_id, book_id=obj_in.book_id):
            raise ResourceAlreadyExists("A status for this book already exists")
        obj_in.id = self._next_id
        self._next_id += 1
        self.user_books.append(obj_in)
        return obj_in

    async def update(
        self, db, *, user_book: UserBook, fields_to_update: Dict[str, Any]
    ) -> UserBook:
        for field, value in fields_to_update.items():
            setattr(user_book, field, value)
        return user_book

    async def get_many(
        self,
        db,
        *,
        skip: int = 0,
        limit: int = 50,
        filters: Optional[Dict[str, Any]] = None,
    ) -> Tuple[List[UserBook], int]:
        items = self.user_books
        for key, value in (filters or {}).items():
            if value is not None:
                items = [item for item in items if getattr(item, key) == value]
        items = sorted(items, key=lambda item: (item.added_to_list, item.id), reverse=True)
        return items[skip : skip + limit], len(items)
