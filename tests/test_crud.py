import pytest
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from bookstop.core.exceptions import ResourceAlreadyExists
from bookstop.crud.book_crud import book_repository
from bookstop.crud.list_crud import book_list_repository
from bookstop.crud.user_book_crud import user_book_repository
from bookstop.crud.user_crud import user_repository
from bookstop.models.list_model import BookList, ListBook
from bookstop.models.review_model import Review
from bookstop.models.user_book_model import UserBook
from bookstop.models.user_model import User

# Mark all tests in this file as async
pytestmark = pytest.mark.asyncio


# ==================== USER TESTS ====================


async def test_create_user_duplicate_email_fails(db_session: AsyncSession, sample_user: User):
    """
    Test case: the unique email constraint surfaces as ResourceAlreadyExists.
    """
    duplicate = User(
        email=sample_user.email,
        username="new_unique_username",
        display_name="New User",
        hashed_password="hashed",
    )

    with pytest.raises(ResourceAlreadyExists, match="already in use"):
        await user_repository.create(db=db_session, obj_in=duplicate)


async def test_get_by_email_is_case_insensitive(db_session: AsyncSession, sample_user: User):
    """Emails are stored lower-case and looked up lower-case."""
    found = await user_repository.get_by_email(db_session, email=sample_user.email.upper())
    assert found is not None
    assert found.id == sample_user.id


async def test_delete_user_removes_owned_rows(db_session: AsyncSession, sample_user: User, make_book):
    """Deleting a user removes their statuses, reviews and lists."""
    book = await make_book()
    db_session.add(UserBook(user_id=sample_user.id, book_id=book.id, status="read"))
    db_session.add(Review(user_id=sample_user.id, book_id=book.id, rating=4))
    book_list = BookList(user_id=sample_user.id, title="Mine")
    book_list.books.append(ListBook(book_id=book.id, order=0))
    db_session.add(book_list)
    await db_session.commit()

    await user_repository.delete(db=db_session, obj_id=sample_user.id)

    for model in (UserBook, Review, BookList, ListBook):
        remaining = (await db_session.execute(select(model))).scalars().all()
        assert remaining == [], model.__name__
    assert await user_repository.get(db=db_session, obj_id=sample_user.id) is None


# ==================== BOOK TESTS ====================


async def test_get_by_isbn_returns_oldest_record(db_session: AsyncSession, make_book):
    """With duplicate ISBNs the first record created wins."""
    first = await make_book(title="First", isbn="9780000000001")
    await make_book(title="Second", isbn="9780000000001")

    found = await book_repository.get_by_isbn(db_session, isbn=" 9780000000001 ")
    assert found.id == first.id


async def test_get_by_ids_ignores_unknown(db_session: AsyncSession, make_book):
    book = await make_book()
    found = await book_repository.get_by_ids(db_session, ids=[book.id, 999])
    assert [b.id for b in found] == [book.id]


# ==================== USER BOOK TESTS ====================


async def test_duplicate_status_record_fails(db_session: AsyncSession, sample_user: User, make_book):
    """Only one status record may exist per user and book."""
    book = await make_book()
    await user_book_repository.create(
        db=db_session, obj_in=UserBook(user_id=sample_user.id, book_id=book.id, status="reading")
    )

    with pytest.raises(ResourceAlreadyExists):
        await user_book_repository.create(
            db=db_session, obj_in=UserBook(user_id=sample_user.id, book_id=book.id, status="read")
        )


# ==================== LIST TESTS ====================


async def test_change_likes_is_clamped_at_zero(db_session: AsyncSession, sample_user: User):
    """The like counter never goes negative."""
    book_list = await book_list_repository.create(
        db=db_session, obj_in=BookList(user_id=sample_user.id, title="Empty")
    )

    assert await book_list_repository.change_likes(db_session, list_id=book_list.id, delta=-1) == 0
    assert await book_list_repository.change_likes(db_session, list_id=book_list.id, delta=1) == 1


async def test_save_membership_bumps_version(db_session: AsyncSession, sample_user: User, make_book):
    """A successful membership save increments the version by one."""
    book = await make_book()
    book_list = await book_list_repository.create(
        db=db_session, obj_in=BookList(user_id=sample_user.id, title="Queue")
    )

    book_list.books.append(ListBook(book_id=book.id, order=0))
    saved = await book_list_repository.save_membership(
        db=db_session, book_list=book_list, expected_version=1
    )

    assert saved.version == 2
    assert [member.book_id for member in saved.books] == [book.id]
