from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from bookstop.models.user_book_model import ReadingStatus
from bookstop.schemas.book_schema import BookSummary


class UserBookStatusUpdate(BaseModel):
    """Body of `PUT /api/userdata/{isbn}/status`. Only `status` is required."""

    status: ReadingStatus = Field(..., examples=["reading"])
    is_favorite: Optional[bool] = None
    rating: Optional[int] = Field(None, ge=1, le=5, description="Rating must be between 1 and 5")
    notes: Optional[str] = Field(None, max_length=1000)
    tags: Optional[List[str]] = None
    current_page: Optional[int] = Field(None, ge=0)
    total_pages: Optional[int] = Field(None, ge=0)

    @field_validator("tags")
    @classmethod
    def strip_tags(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return v
        return [tag.strip() for tag in v if tag and tag.strip()]


class UserBookResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    book_id: int
    status: ReadingStatus
    is_favorite: bool = False
    rating: Optional[int] = None
    notes: str = ""
    tags: List[str] = Field(default_factory=list)
    current_page: int = 0
    total_pages: int = 0
    percentage: int = 0
    started_reading: Optional[datetime] = None
    finished_reading: Optional[datetime] = None
    added_to_list: datetime
    updated_at: datetime
    book: Optional[BookSummary] = None


class StatusUpdateResponse(BaseModel):
    success: bool = True
    message: str = "Book status updated successfully"
    user_book: UserBookResponse
    book: BookSummary


class UserBookEnvelope(BaseModel):
    success: bool = True
    user_book: UserBookResponse


class UserBookPagination(BaseModel):
    current_page: int
    total_pages: int
    count: int
    total_books: int


class UserBookListResponse(BaseModel):
    success: bool = True
    books: List[UserBookResponse]
    pagination: UserBookPagination
