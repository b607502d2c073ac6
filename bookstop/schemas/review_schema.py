"""
Review schemas for request/response models.

The "rating or content, and a title whenever there is content" rule spans
several fields and, on update, the stored review as well, so it is checked
by the review service rather than here.
"""

from datetime import datetime
from typing import Dict, List, Optional, Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

from bookstop.schemas.book_schema import BookSummary
from bookstop.schemas.user_schema import UserSummary

Rating = Annotated[int, Field(ge=1, le=5, description="Rating from 1 to 5 stars", examples=[4])]


def _clean_optional_text(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    return v.strip()


class ReviewCreate(BaseModel):
    book_id: int = Field(..., gt=0, description="ID of the book being reviewed")
    title: Optional[str] = Field(None, max_length=200, examples=["An excellent read!"])
    content: Optional[str] = Field(None, max_length=5000)
    rating: Optional[Rating] = None
    user_book_id: Optional[int] = Field(None, gt=0)

    @field_validator("title", "content")
    @classmethod
    def strip_text(cls, v: Optional[str]) -> Optional[str]:
        return _clean_optional_text(v)


class ReviewUpdate(BaseModel):
    """
    Partial update. Fields left out are kept; an explicit `null` or empty
    `content` clears the written review (and its title).
    """

    title: Optional[str] = Field(None, max_length=200)
    content: Optional[str] = Field(None, max_length=5000)
    rating: Optional[Rating] = None

    @field_validator("title", "content")
    @classmethod
    def strip_text(cls, v: Optional[str]) -> Optional[str]:
        return _clean_optional_text(v)


class ReviewEditResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    content: str
    edited_at: datetime


class ReviewResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    book_id: int
    user_book_id: Optional[int] = None
    title: Optional[str] = None
    content: str = ""
    rating: Optional[int] = None
    edit_history: List[ReviewEditResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
    user: Optional[UserSummary] = None
    book: Optional[BookSummary] = None


class ReviewEnvelope(BaseModel):
    success: bool = True
    message: Optional[str] = None
    review: ReviewResponse


class RatingStats(BaseModel):
    average_rating: float = 0.0
    total_ratings: int = 0
    distribution: Dict[int, int] = Field(
        default_factory=lambda: {star: 0 for star in range(1, 6)}
    )


class ReviewPagination(BaseModel):
    current_page: int
    total_pages: int
    total_reviews: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, *, page: int, limit: int, total: int) -> "ReviewPagination":
        pages = (total + limit - 1) // limit
        return cls(
            current_page=page,
            total_pages=pages,
            total_reviews=total,
            has_next=page < pages,
            has_prev=page > 1,
        )


class ReviewListResponse(BaseModel):
    success: bool = True
    reviews: List[ReviewResponse]
    pagination: ReviewPagination
    rating_stats: Optional[RatingStats] = None


__all__ = [
    "ReviewCreate",
    "ReviewUpdate",
    "ReviewEditResponse",
    "ReviewResponse",
    "ReviewEnvelope",
    "RatingStats",
    "ReviewPagination",
    "ReviewListResponse",
]
