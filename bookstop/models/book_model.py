from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON, Index
from sqlmodel import SQLModel, Field, Column, String, DateTime, Text

from bookstop.utils.datetime_utils import utcnow

DEFAULT_DESCRIPTION = "Description not available"


class Book(SQLModel, table=True):
    """
    Catalog record for a book. Created the first time a book is referenced
    and deduplicated by ISBN, then by OpenLibrary id.
    """

    __tablename__ = "books"
    __table_args__ = (
        Index("idx_book_isbn", "isbn"),
        Index("idx_book_openlibrary_id", "openlibrary_id"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(sa_column=Column(String(500), nullable=False))
    authors: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    isbn: str = Field(max_length=20)
    lccn: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    description: str = Field(
        default=DEFAULT_DESCRIPTION, sa_column=Column(Text, nullable=False)
    )
    cover_image: Optional[str] = Field(default=None, max_length=1000)
    published_year: Optional[int] = Field(default=None)
    page_count: int = Field(default=0)
    languages: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    subjects: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    ratings_average: Optional[float] = Field(default=None)
    readinglog_count: int = Field(default=0)

    # External identifiers
    google_books_id: Optional[str] = Field(default=None, max_length=50)
    goodreads_id: Optional[str] = Field(default=None, max_length=50)
    openlibrary_id: Optional[str] = Field(default=None, max_length=50)

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, onupdate=utcnow),
    )

    @property
    def has_default_description(self) -> bool:
        return not self.description or self.description == DEFAULT_DESCRIPTION

    def __repr__(self) -> str:
        return f"<Book(id={self.id}, title='{self.title}', isbn='{self.isbn}')>"
