import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlmodel.ext.asyncio.session import AsyncSession

from bookstop.core.exception_utils import raise_for_status
from bookstop.core.exceptions import ResourceNotFound, ValidationError
from bookstop.crud.book_crud import book_repository
from bookstop.models.book_model import Book, DEFAULT_DESCRIPTION
from bookstop.schemas.book_schema import BookCreate
from bookstop.schemas.external_schema import AuthorDetail, AuthorSummary, BookSearchResult
from bookstop.services.cache_service import book_cache
from bookstop.services.cover_service import cover_service
from bookstop.services.google_books_service import google_books_client
from bookstop.services.openlibrary_service import openlibrary_client

logger = logging.getLogger(__name__)


class BookService:
    """
    The book catalog, plus the OpenLibrary / Google Books / cover lookups
    that feed it.
    """

    def __init__(self):
        self.book_repository = book_repository
        self.openlibrary_client = openlibrary_client
        self.cover_service = cover_service
        self.google_books_client = google_books_client
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    # ======= CATALOG =======
    async def get_book_by_id(self, db: AsyncSession, *, book_id: int) -> Book:
        if book_id <= 0:
            raise ValidationError("Book ID must be a positive integer")

        cached_book = await book_cache.get(book_id)
        if cached_book:
            return await db.merge(cached_book)

        book = await self.book_repository.get(db=db, obj_id=book_id)
        raise_for_status(
            condition=book is None,
            exception=ResourceNotFound,
            resource_type="Book",
            detail="Book not found",
        )
        await book_cache.set(book)
        return book

    @staticmethod
    def _to_model_fields(book_in: BookCreate) -> Dict[str, Any]:
        return {
            "title": book_in.title,
            "authors": book_in.author_name,
            "isbn": book_in.isbn,
            "lccn": book_in.lccn,
            "description": (book_in.description or "").strip() or DEFAULT_DESCRIPTION,
            "cover_image": book_in.cover_image,
            "published_year": book_in.first_publish_year,
            "page_count": book_in.number_of_pages_median or 0,
            "languages": book_in.language,
            "subjects": book_in.subject,
            "ratings_average": book_in.ratings_average,
            "readinglog_count": book_in.readinglog_count,
            "google_books_id": book_in.external_ids.google_books,
            "goodreads_id": book_in.external_ids.goodreads,
            "openlibrary_id": book_in.openlibrary_id,
        }

    async def save_book(self, db: AsyncSession, *, book_in: BookCreate) -> Tuple[Book, bool]:
        """
        Returns the catalog record for `book_in`, creating it on first sight.

        Existing records are matched by ISBN, then by OpenLibrary id. A match
        whose description or cover is still missing gets them filled in from
        the payload. The second element of the result is True if a new record
        was created.
        """
        fields = self._to_model_fields(book_in)

        existing = await self.book_repository.get_by_isbn(db=db, isbn=book_in.isbn)
        if existing is None and book_in.openlibrary_id:
            existing = await self.book_repository.get_by_openlibrary_id(
                db=db, openlibrary_id=book_in.openlibrary_id
            )

        if existing is None:
            book = await self.book_repository.create(db=db, obj_in=Book(**fields))
            return book, True

        backfill: Dict[str, Any] = {}
        if existing.has_default_description and fields["description"] != DEFAULT_DESCRIPTION:
            backfill["description"] = fields["description"]
        if not existing.cover_image and fields["cover_image"]:
            backfill["cover_image"] = fields["cover_image"]

        if backfill:
            existing = await self.book_repository.update(
                db=db, book=existing, fields_to_update=backfill
            )
            await book_cache.invalidate(existing.id)
            self._logger.info(f"Backfilled {list(backfill)} for book {existing.id}")

        return existing, False

    # ======= EXTERNAL LOOKUPS =======
    async def search_books(self, **criteria: Any) -> BookSearchResult:
        return await self.openlibrary_client.search_books(**criteria)

    async def search_authors(self, *, q: str) -> List[AuthorSummary]:
        return await self.openlibrary_client.search_authors(q)

    async def get_author(self, *, author_key: str) -> AuthorDetail:
        return await self.openlibrary_client.get_author(author_key)

    async def find_cover(
        self,
        *,
        title: Optional[str] = None,
        author: Optional[str] = None,
        lccn: Optional[List[str]] = None,
        isbn: Optional[str] = None,
    ) -> Optional[str]:
        return await self.cover_service.find_cover(
            title=title, author=author, lccn=lccn, isbn=isbn
        )

    async def get_description(self, *, title: str, author: Optional[str] = None) -> Optional[str]:
        return await self.google_books_client.get_description(title=title, author=author)


book_service = BookService()
