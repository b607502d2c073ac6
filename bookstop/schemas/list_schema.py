from datetime import datetime
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from bookstop.models.list_model import ListVisibility
from bookstop.schemas.book_schema import BookSummary
from bookstop.schemas.common_schema import PagePagination
from bookstop.schemas.user_schema import UserSummary


def _clean_tags(v: Optional[List[str]]) -> Optional[List[str]]:
    if v is None:
        return v
    return [tag.strip() for tag in v if tag and tag.strip()]


class ListBookInput(BaseModel):
    book_id: int = Field(..., gt=0)
    order: Optional[int] = Field(None, ge=0)
    note: str = Field("", max_length=500)


class ListCreate(BaseModel):
    title: str = Field("", max_length=100, examples=["Summer reading"])
    description: str = Field("", max_length=1000)
    visibility: ListVisibility = ListVisibility.PUBLIC
    tags: List[str] = Field(default_factory=list)
    books: List[ListBookInput] = Field(default_factory=list)

    @field_validator("title", "description")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()

    @field_validator("tags")
    @classmethod
    def strip_tags(cls, v: List[str]) -> List[str]:
        return _clean_tags(v)


class ListUpdate(BaseModel):
    """
    A blank title and an unrecognised visibility are ignored rather than
    rejected, so `visibility` stays a plain string here.
    """

    title: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    visibility: Optional[str] = None
    tags: Optional[List[str]] = None

    @field_validator("tags")
    @classmethod
    def strip_tags(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _clean_tags(v)


class AddBookRequest(ListBookInput):
    pass


class ReorderItem(BaseModel):
    book_id: int
    order: int


class ReorderRequest(BaseModel):
    book_orders: List[ReorderItem] = Field(..., min_length=1)


class LikeRequest(BaseModel):
    action: str = Field(..., examples=["like"])


class ListMetadata(BaseModel):
    total_books: int = 0
    average_rating: float = 0.0
    genres: List[str] = Field(default_factory=list)


class ListBookResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    book_id: int
    order: int
    note: str = ""
    added_at: datetime
    book: Optional[BookSummary] = None


class ListResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    title: str
    description: str = ""
    visibility: ListVisibility
    tags: List[str] = Field(default_factory=list)
    books: List[ListBookResponse] = Field(default_factory=list)
    followers: int = 0
    likes: int = 0
    # BookList keeps these as flat columns and exposes them as `stats`
    metadata: ListMetadata = Field(validation_alias=AliasChoices("stats", "metadata"))
    version: int
    created_at: datetime
    updated_at: datetime
    user: Optional[UserSummary] = None


class ListEnvelope(BaseModel):
    success: bool = True
    message: Optional[str] = None
    list: ListResponse


class ReorderResponse(ListEnvelope):
    skipped_book_ids: List[int] = Field(default_factory=list)


class LikeResponse(BaseModel):
    success: bool = True
    message: str
    likes: int


class ListCollectionResponse(BaseModel):
    success: bool = True
    lists: List[ListResponse]
    pagination: PagePagination


__all__ = [
    "ListBookInput",
    "ListCreate",
    "ListUpdate",
    "AddBookRequest",
    "ReorderItem",
    "ReorderRequest",
    "LikeRequest",
    "ListMetadata",
    "ListBookResponse",
    "ListResponse",
    "ListEnvelope",
    "ReorderResponse",
    "LikeResponse",
    "ListCollectionResponse",
]
