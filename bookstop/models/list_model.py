from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from sqlalchemy import JSON, CheckConstraint, Index, UniqueConstraint
from sqlmodel import SQLModel, Field, Relationship, Column, String, DateTime, Text

from bookstop.utils.datetime_utils import utcnow

if TYPE_CHECKING:
    from bookstop.models.user_model import User
    from bookstop.models.book_model import Book


class ListVisibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"
    FRIENDS = "friends"


class BookList(SQLModel, table=True):
    """
    A named, ordered collection of books owned by one user.

    `total_books`, `average_rating` and `genres` are derived from the member
    books and rewritten on every membership change. `version` is bumped by
    every membership change and guards against lost updates.
    """

    __tablename__ = "book_lists"
    __table_args__ = (
        Index("idx_book_list_user", "user_id"),
        Index("idx_book_list_visibility", "visibility"),
        CheckConstraint("likes >= 0", name="ck_book_list_likes_positive"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", nullable=False)
    title: str = Field(sa_column=Column(String(100), nullable=False))
    description: str = Field(default="", sa_column=Column(Text, nullable=False))
    visibility: str = Field(
        default=ListVisibility.PUBLIC.value,
        sa_column=Column(String(10), nullable=False),
    )
    tags: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))

    followers: int = Field(default=0)
    likes: int = Field(default=0)

    # Derived from the member books
    total_books: int = Field(default=0)
    average_rating: float = Field(default=0.0)
    genres: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))

    version: int = Field(default=1)

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, onupdate=utcnow),
    )

    user: Optional["User"] = Relationship(sa_relationship_kwargs={"lazy": "selectin"})
    books: List["ListBook"] = Relationship(
        sa_relationship_kwargs={
            "lazy": "selectin",
            "cascade": "all, delete-orphan",
            "order_by": lambda: [ListBook.order, ListBook.id],
        }
    )

    @property
    def stats(self) -> Dict[str, Any]:
        return {
            "total_books": self.total_books,
            "average_rating": self.average_rating,
            "genres": self.genres,
        }

    def is_owned_by(self, user_id: Optional[int]) -> bool:
        return user_id is not None and self.user_id == user_id

    def __repr__(self) -> str:
        return f"<BookList(id={self.id}, title='{self.title}', user_id={self.user_id})>"


class ListBook(SQLModel, table=True):
    __tablename__ = "list_books"
    __table_args__ = (UniqueConstraint("list_id", "book_id", name="uq_list_book"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    list_id: Optional[int] = Field(default=None, foreign_key="book_lists.id", index=True)
    book_id: int = Field(foreign_key="books.id", nullable=False)
    order: int = Field(default=0)
    note: str = Field(default="", max_length=500)
    added_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )

    book: Optional["Book"] = Relationship(sa_relationship_kwargs={"lazy": "selectin"})
