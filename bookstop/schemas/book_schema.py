from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from bookstop.schemas.external_schema import AuthorDetail, AuthorSummary, BookSearchResult


def clean_subjects(subjects: List[str]) -> List[str]:
    """
    Splits comma-joined subjects, trims them, upper-cases the first letter
    and drops duplicates while keeping first-seen order.
    """
    cleaned: List[str] = []
    for raw in subjects:
        for part in str(raw).split(","):
            part = part.strip()
            if not part:
                continue
            part = part[0].upper() + part[1:]
            if part not in cleaned:
                cleaned.append(part)
    return cleaned


class ExternalIds(BaseModel):
    google_books: Optional[str] = None
    goodreads: Optional[str] = None
    open_library: Optional[str] = None


class BookCreate(BaseModel):
    """
    Catalog payload, shaped like an OpenLibrary search document so the
    client can post what it got from `/api/book/search` unchanged.
    """

    title: str = Field(..., min_length=1, max_length=500, examples=["Dune"])
    author_name: List[str] = Field(default_factory=list, examples=[["Frank Herbert"]])
    isbn: str = Field(..., min_length=1, max_length=20, examples=["9780441172719"])
    key: Optional[str] = Field(None, description="OpenLibrary work key", examples=["/works/OL893415W"])
    lccn: List[str] = Field(default_factory=list)
    description: Optional[str] = None
    cover_image: Optional[str] = Field(None, max_length=1000)
    first_publish_year: Optional[int] = None
    number_of_pages_median: Optional[int] = Field(None, ge=0)
    language: List[str] = Field(default_factory=list)
    subject: List[str] = Field(default_factory=list)
    ratings_average: Optional[float] = Field(None, ge=0, le=5)
    readinglog_count: int = Field(0, ge=0)
    external_ids: ExternalIds = Field(default_factory=ExternalIds)

    @field_validator("isbn", mode="before")
    @classmethod
    def first_isbn(cls, v: Any) -> Any:
        if isinstance(v, list):
            v = v[0] if v else None
        return v.strip() if isinstance(v, str) else v

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        return v.strip()

    @field_validator("subject")
    @classmethod
    def tidy_subjects(cls, v: List[str]) -> List[str]:
        return clean_subjects(v)

    @property
    def openlibrary_id(self) -> Optional[str]:
        if self.external_ids.open_library:
            return self.external_ids.open_library
        return self.key.rsplit("/", 1)[-1] if self.key else None


class BookSummary(BaseModel):
    """Book fields denormalized into statuses, reviews and list entries."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    authors: List[str] = Field(default_factory=list)
    isbn: str
    cover_image: Optional[str] = None
    page_count: int = 0


class BookResponse(BookSummary):
    lccn: List[str] = Field(default_factory=list)
    description: str
    published_year: Optional[int] = None
    languages: List[str] = Field(default_factory=list)
    subjects: List[str] = Field(default_factory=list)
    ratings_average: Optional[float] = None
    readinglog_count: int = 0
    google_books_id: Optional[str] = None
    goodreads_id: Optional[str] = None
    openlibrary_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class BookEnvelope(BaseModel):
    success: bool = True
    message: Optional[str] = None
    book: BookResponse
    created: bool = False


class BookSearchResponse(BaseModel):
    success: bool = True
    data: BookSearchResult


class AuthorSearchResponse(BaseModel):
    success: bool = True
    authors: List[AuthorSummary]


class AuthorResponse(BaseModel):
    success: bool = True
    author: AuthorDetail


class CoverResponse(BaseModel):
    success: bool = True
    url: Optional[str] = None


class DescriptionResponse(BaseModel):
    success: bool = True
    description: Optional[str] = None


__all__ = [
    "clean_subjects",
    "ExternalIds",
    "BookCreate",
    "BookSummary",
    "BookResponse",
    "BookEnvelope",
    "BookSearchResponse",
    "AuthorSearchResponse",
    "AuthorResponse",
    "CoverResponse",
    "DescriptionResponse",
]
