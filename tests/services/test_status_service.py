# tests/services/test_status_service.py
import pytest
from datetime import datetime, timezone

from sqlmodel import select

from bookstop.core.exceptions import ConflictError, ResourceAlreadyExists, ResourceNotFound
from bookstop.models.book_model import Book
from bookstop.models.user_book_model import ReadingStatus, UserBook
from bookstop.schemas.user_book_schema import UserBookStatusUpdate
from bookstop.services.status_service import (
    StatusService,
    progress_percentage,
    resolve_status_fields,
)
from tests.mocks.mock_user_book_repository import FakeBookRepository, FakeUserBookRepository

pytestmark = pytest.mark.asyncio

ISBN = "9780441172719"
NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def book() -> Book:
    return Book(id=1, title="Dune", authors=["Frank Herbert"], isbn=ISBN, page_count=412)


@pytest.fixture
def status_service(book: Book) -> StatusService:
    service = StatusService()
    service.book_repository = FakeBookRepository([book])
    service.user_book_repository = FakeUserBookRepository()
    return service


# ==================== pure helpers ====================


async def test_progress_percentage_rounds_half_up():
    """Test the percentage is a whole number rounded half-up."""
    assert progress_percentage(1, 8) == 13
    assert progress_percentage(1, 3) == 33
    assert progress_percentage(50, 100) == 50


async def test_progress_percentage_unknown_total():
    """Test that no total page count means no percentage."""
    assert progress_percentage(10, 0) is None


async def test_progress_percentage_not_capped():
    """Test that reading past the stated page count is reported as-is."""
    assert progress_percentage(120, 100) == 120


async def test_reading_sets_started_date_once():
    """Test that 'reading' stamps started_reading only when it is unset."""
    fields = resolve_status_fields(UserBookStatusUpdate(status="reading"), None, NOW)
    assert fields["started_reading"] == NOW
    assert "finished_reading" not in fields

    earlier = datetime(2024, 1, 1, tzinfo=timezone.utc)
    existing = UserBook(user_id=1, book_id=1, status="reading", started_reading=earlier)
    fields = resolve_status_fields(UserBookStatusUpdate(status="reading"), existing, NOW)
    assert "started_reading" not in fields


async def test_read_sets_both_dates_when_missing():
    """Test that jumping straight to 'read' fills both reading dates."""
    fields = resolve_status_fields(UserBookStatusUpdate(status="read"), None, NOW)
    assert fields["started_reading"] == NOW
    assert fields["finished_reading"] == NOW


async def test_null_rating_is_ignored():
    """Test that an explicit null rating does not clear the stored one."""
    fields = resolve_status_fields(
        UserBookStatusUpdate(status="read", rating=None), None, NOW
    )
    assert "rating" not in fields


async def test_percentage_uses_merged_page_counts():
    """Test the percentage combines new current_page with the stored total."""
    existing = UserBook(user_id=1, book_id=1, status="reading", current_page=10, total_pages=200)
    fields = resolve_status_fields(
        UserBookStatusUpdate(status="reading", current_page=50), existing, NOW
    )
    assert fields["percentage"] == 25


# ==================== set_status TESTS ====================


async def test_set_status_creates_record(status_service: StatusService):
    """Test the first status call creates the user-book record."""
    response = await status_service.set_status(
        None,
        user_id=7,
        isbn=ISBN,
        status_in=UserBookStatusUpdate(status="plan-to-read", is_favorite=True),
    )

    assert response.user_book.status == ReadingStatus.PLAN_TO_READ
    assert response.user_book.is_favorite is True
    assert response.book.id == 1
    assert len(status_service.user_book_repository.user_books) == 1


async def test_set_status_updates_existing_record(status_service: StatusService):
    """Test a second call updates the same record instead of creating another."""
    await status_service.set_status(
        None, user_id=7, isbn=ISBN, status_in=UserBookStatusUpdate(status="reading", rating=4)
    )
    response = await status_service.set_status(
        None, user_id=7, isbn=ISBN, status_in=UserBookStatusUpdate(status="read")
    )

    records = status_service.user_book_repository.user_books
    assert len(records) == 1
    assert response.user_book.status == ReadingStatus.READ
    assert response.user_book.rating == 4
    assert records[0].finished_reading is not None


async def test_set_status_unknown_isbn(status_service: StatusService):
    """Test that an ISBN missing from the catalog is a 404."""
    with pytest.raises(ResourceNotFound, match="ISBN"):
        await status_service.set_status(
            None, user_id=7, isbn="0000000000", status_in=UserBookStatusUpdate(status="read")
        )


async def test_set_status_after_concurrent_insert_updates_in_place(
    db_session, sample_user, make_book, monkeypatch
):
    """Test a record inserted between lookup and create is updated, not duplicated."""
    book = await make_book(isbn=ISBN)
    user_id, book_id = sample_user.id, book.id
    db_session.add(UserBook(user_id=user_id, book_id=book_id, status="plan-to-read", rating=3))
    await db_session.commit()

    service = StatusService()
    real_lookup = service.user_book_repository.get_by_user_and_book
    lookups = []

    async def lookup_misses_first_time(db, *, user_id: int, book_id: int):
        lookups.append(book_id)
        if len(lookups) == 1:
            return None
        return await real_lookup(db=db, user_id=user_id, book_id=book_id)

    monkeypatch.setattr(
        service.user_book_repository, "get_by_user_and_book", lookup_misses_first_time
    )

    response = await service.set_status(
        db_session, user_id=user_id, isbn=ISBN, status_in=UserBookStatusUpdate(status="reading")
    )

    assert len(lookups) == 2
    assert response.user_book.status == ReadingStatus.READING
    assert response.user_book.rating == 3
    assert response.user_book.started_reading is not None
    assert response.book.id == book_id

    rows = await db_session.execute(
        select(UserBook).where(UserBook.user_id == user_id, UserBook.book_id == book_id)
    )
    assert len(rows.scalars().all()) == 1


async def test_set_status_conflict_when_record_vanishes(status_service: StatusService):
    """Test a failed insert whose record cannot be re-read is reported as a conflict."""

    async def create_always_conflicts(db, *, obj_in: UserBook) -> UserBook:
        raise ResourceAlreadyExists("A status for this book already exists")

    status_service.user_book_repository.create = create_always_conflicts

    with pytest.raises(ConflictError, match="concurrently"):
        await status_service.set_status(
            None, user_id=7, isbn=ISBN, status_in=UserBookStatusUpdate(status="read")
        )


async def test_get_status_not_in_library(status_service: StatusService):
    """Test reading a status the user never set."""
    with pytest.raises(ResourceNotFound, match="not found in user library"):
        await status_service.get_status_by_isbn(None, user_id=7, isbn=ISBN)


async def test_list_user_books_filters_by_status(status_service: StatusService, book: Book):
    """Test listing a user's books filtered by status."""
    other = Book(id=2, title="Emma", authors=["Jane Austen"], isbn="9780141439587")
    status_service.book_repository.books.append(other)

    await status_service.set_status(
        None, user_id=7, isbn=ISBN, status_in=UserBookStatusUpdate(status="read")
    )
    await status_service.set_status(
        None, user_id=7, isbn=other.isbn, status_in=UserBookStatusUpdate(status="reading")
    )

    result = await status_service.list_user_books(None, user_id=7, status=ReadingStatus.READ)

    assert result.pagination.total_books == 1
    assert result.books[0].book_id == 1
