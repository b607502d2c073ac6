from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import JSON, CheckConstraint, Index, UniqueConstraint
from sqlmodel import SQLModel, Field, Relationship, Column, String, DateTime

from bookstop.utils.datetime_utils import utcnow

if TYPE_CHECKING:
    from bookstop.models.book_model import Book


class ReadingStatus(str, Enum):
    READ = "read"
    READING = "reading"
    PLAN_TO_READ = "plan-to-read"
    UNDEFINED = "undefined"


class UserBook(SQLModel, table=True):
    """A user's relationship to one book: status, favorite, progress and dates."""

    __tablename__ = "user_books"
    __table_args__ = (
        UniqueConstraint("user_id", "book_id", name="uq_user_book"),
        Index("idx_user_book_status", "user_id", "status"),
        Index("idx_user_book_favorite", "user_id", "is_favorite"),
        CheckConstraint(
            "rating IS NULL OR (rating >= 1 AND rating <= 5)", name="ck_user_book_rating"
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", nullable=False)
    book_id: int = Field(foreign_key="books.id", nullable=False)

    status: str = Field(
        default=ReadingStatus.UNDEFINED.value,
        sa_column=Column(String(20), nullable=False),
    )
    is_favorite: bool = Field(default=False)
    rating: Optional[int] = Field(default=None)
    notes: str = Field(default="", max_length=1000)
    tags: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))

    # Progress
    current_page: int = Field(default=0)
    total_pages: int = Field(default=0)
    percentage: int = Field(default=0)

    # Dates
    started_reading: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    finished_reading: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    added_to_list: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, onupdate=utcnow),
    )

    book: Optional["Book"] = Relationship(sa_relationship_kwargs={"lazy": "selectin"})

    def __repr__(self) -> str:
        return f"<UserBook(user_id={self.user_id}, book_id={self.book_id}, status='{self.status}')>"
