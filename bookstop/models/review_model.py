from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import CheckConstraint, Index, UniqueConstraint
from sqlmodel import SQLModel, Field, Relationship, Column, String, DateTime, Text

from bookstop.utils.datetime_utils import utcnow

if TYPE_CHECKING:
    from bookstop.models.user_model import User
    from bookstop.models.book_model import Book


class Review(SQLModel, table=True):

    __tablename__ = "reviews"
    __table_args__ = (
        # One review per user per book
        UniqueConstraint("user_id", "book_id", name="uq_review_user_book"),
        Index("idx_review_book_created", "book_id", "created_at"),
        Index("idx_review_user_created", "user_id", "created_at"),
        Index("idx_review_rating", "rating"),
        CheckConstraint(
            "rating IS NULL OR (rating >= 1 AND rating <= 5)", name="ck_review_rating"
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", nullable=False)
    book_id: int = Field(foreign_key="books.id", nullable=False)
    user_book_id: Optional[int] = Field(default=None, foreign_key="user_books.id")

    title: Optional[str] = Field(default=None, sa_column=Column(String(200), nullable=True))
    content: str = Field(default="", sa_column=Column(Text, nullable=False))
    rating: Optional[int] = Field(default=None)

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, onupdate=utcnow),
    )

    # Relationships
    user: Optional["User"] = Relationship(sa_relationship_kwargs={"lazy": "selectin"})
    book: Optional["Book"] = Relationship(sa_relationship_kwargs={"lazy": "selectin"})
    edit_history: List["ReviewEdit"] = Relationship(
        sa_relationship_kwargs={
            "lazy": "selectin",
            "cascade": "all, delete-orphan",
            "order_by": "ReviewEdit.id",
        }
    )

    def __repr__(self) -> str:
        return f"<Review(id={self.id}, user_id={self.user_id}, book_id={self.book_id}, rating={self.rating})>"


class ReviewEdit(SQLModel, table=True):
    """Append-only snapshot of a review's content before it was changed."""

    __tablename__ = "review_edits"

    id: Optional[int] = Field(default=None, primary_key=True)
    review_id: Optional[int] = Field(default=None, foreign_key="reviews.id", index=True)
    content: str = Field(sa_column=Column(Text, nullable=False))
    edited_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
