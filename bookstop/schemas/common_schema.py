from pydantic import BaseModel, Field


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class PagePagination(BaseModel):
    """Page metadata shared by the paged list endpoints."""

    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)
    total: int = Field(..., ge=0)
    pages: int = Field(..., ge=0)

    @classmethod
    def build(cls, *, page: int, limit: int, total: int) -> "PagePagination":
        return cls(page=page, limit=limit, total=total, pages=(total + limit - 1) // limit)
