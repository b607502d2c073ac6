"""
DTOs for the third-party book APIs.

Every field is optional or defaulted: OpenLibrary and Google Books omit keys
freely, and a missing key must never fail ingestion.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class OpenLibraryDoc(BaseModel):
    """One document from OpenLibrary's /search.json."""

    model_config = ConfigDict(extra="ignore")

    key: Optional[str] = None
    title: str = ""
    author_name: List[str] = Field(default_factory=list)
    author_key: List[str] = Field(default_factory=list)
    first_publish_year: Optional[int] = None
    language: List[str] = Field(default_factory=list)
    number_of_pages_median: Optional[int] = None
    subject: List[str] = Field(default_factory=list)
    person: List[str] = Field(default_factory=list)
    subject_key: List[str] = Field(default_factory=list)
    ratings_average: Optional[float] = None
    readinglog_count: int = 0
    lccn: List[str] = Field(default_factory=list)
    isbn: List[str] = Field(default_factory=list)

    @property
    def openlibrary_id(self) -> Optional[str]:
        # "/works/OL45883W" -> "OL45883W"
        return self.key.rsplit("/", 1)[-1] if self.key else None


class BookSearchResult(BaseModel):
    books: List[OpenLibraryDoc]
    total: int
    page: int
    total_pages: int


class AuthorSummary(BaseModel):
    model_config = ConfigDict(extra="ignore")

    key: str
    name: str = ""
    birth_date: Optional[str] = None
    death_date: Optional[str] = None
    top_work: Optional[str] = None
    work_count: int = 0
    top_subjects: List[str] = Field(default_factory=list)
    bio: Optional[str] = None
    photos: List[int] = Field(default_factory=list)


class AuthorLink(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    url: Optional[str] = None


class AuthorDetail(BaseModel):
    """OpenLibrary /authors/{key}.json."""

    model_config = ConfigDict(extra="ignore")

    key: str
    name: str = ""
    personal_name: Optional[str] = None
    birth_date: Optional[str] = None
    death_date: Optional[str] = None
    bio: Optional[str] = None
    wikipedia: Optional[str] = None
    photos: List[int] = Field(default_factory=list)
    links: List[AuthorLink] = Field(default_factory=list)

    @field_validator("key", mode="before")
    @classmethod
    def strip_key_prefix(cls, v: Any) -> Any:
        # "/authors/OL23919A" -> "OL23919A"
        return v.rsplit("/", 1)[-1] if isinstance(v, str) else v

    @field_validator("bio", mode="before")
    @classmethod
    def unwrap_text_value(cls, v: Any) -> Any:
        # bio is either a plain string or {"type": "/type/text", "value": "..."}
        if isinstance(v, dict):
            return v.get("value")
        return v

    @field_validator("photos", mode="before")
    @classmethod
    def drop_placeholder_photos(cls, v: Any) -> Any:
        if isinstance(v, list):
            return [photo for photo in v if isinstance(photo, int) and photo > 0]
        return v


class GoogleVolumeInfo(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    title: Optional[str] = None
    authors: List[str] = Field(default_factory=list)
    description: Optional[str] = None
    page_count: Optional[int] = Field(None, alias="pageCount")


class GoogleVolume(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: Optional[str] = None
    volume_info: GoogleVolumeInfo = Field(default_factory=GoogleVolumeInfo, alias="volumeInfo")


class GoogleVolumesResponse(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    total_items: int = Field(0, alias="totalItems")
    items: List[GoogleVolume] = Field(default_factory=list)
