import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlmodel.ext.asyncio.session import AsyncSession

from bookstop.core.config import settings
from bookstop.db.session import get_session
from bookstop.schemas.book_schema import (
    AuthorResponse,
    AuthorSearchResponse,
    BookCreate,
    BookEnvelope,
    BookResponse,
    BookSearchResponse,
    CoverResponse,
    DescriptionResponse,
)
from bookstop.services.book_service import book_service
from bookstop.utils.deps import rate_limit_api, rate_limit_heavy

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Books"], prefix=f"{settings.API_PREFIX}/book")


@router.get(
    "/search",
    status_code=status.HTTP_200_OK,
    response_model=BookSearchResponse,
    summary="Search books",
    description="Searches OpenLibrary. At least one of q, title, author, subject or isbn is required.",
    dependencies=[Depends(rate_limit_api)],
)
async def search_books(
    *,
    q: Optional[str] = Query(None, description="Free-text query"),
    title: Optional[str] = Query(None),
    author: Optional[str] = Query(None),
    subject: Optional[str] = Query(None),
    isbn: Optional[str] = Query(None),
    sort: Optional[str] = Query(None, description="OpenLibrary sort, e.g. 'new' or 'rating'"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    data = await book_service.search_books(
        q=q, title=title, author=author, subject=subject, isbn=isbn,
        sort=sort, page=page, limit=limit,
    )
    return BookSearchResponse(data=data)


@router.get(
    "/author/search",
    status_code=status.HTTP_200_OK,
    response_model=AuthorSearchResponse,
    summary="Search authors",
    dependencies=[Depends(rate_limit_heavy)],
)
async def search_authors(*, q: str = Query(..., min_length=1)):
    authors = await book_service.search_authors(q=q)
    return AuthorSearchResponse(authors=authors)


@router.get(
    "/author/{author_key}",
    status_code=status.HTTP_200_OK,
    response_model=AuthorResponse,
    summary="Get an author by OpenLibrary key",
    dependencies=[Depends(rate_limit_api)],
)
async def get_author(*, author_key: str):
    author = await book_service.get_author(author_key=author_key)
    return AuthorResponse(author=author)


@router.get(
    "/cover",
    status_code=status.HTTP_200_OK,
    response_model=CoverResponse,
    summary="Find a cover image",
    description="Tries the bookcover API, then OpenLibrary covers by LCCN, then by ISBN",
    dependencies=[Depends(rate_limit_heavy)],
)
async def find_cover(
    *,
    title: Optional[str] = Query(None),
    author: Optional[str] = Query(None),
    lccn: List[str] = Query(default_factory=list),
    isbn: Optional[str] = Query(None),
):
    url = await book_service.find_cover(title=title, author=author, lccn=lccn, isbn=isbn)
    return CoverResponse(url=url)


@router.get(
    "/description",
    status_code=status.HTTP_200_OK,
    response_model=DescriptionResponse,
    summary="Look up a description on Google Books",
    dependencies=[Depends(rate_limit_heavy)],
)
async def get_description(
    *,
    title: str = Query(..., min_length=1),
    author: Optional[str] = Query(None),
):
    description = await book_service.get_description(title=title, author=author)
    return DescriptionResponse(description=description)


@router.post(
    "/db",
    status_code=status.HTTP_201_CREATED,
    response_model=BookEnvelope,
    summary="Save a book to the catalog",
    description="Returns 201 when the book is new and 200 when it was already known",
    dependencies=[Depends(rate_limit_api)],
)
async def save_book(
    *,
    response: Response,
    db: AsyncSession = Depends(get_session),
    book_in: BookCreate,
):
    book, created = await book_service.save_book(db=db, book_in=book_in)
    if not created:
        response.status_code = status.HTTP_200_OK
    return BookEnvelope(
        message="Book saved successfully" if created else "Book already exists",
        book=BookResponse.model_validate(book),
        created=created,
    )


@router.get(
    "/{book_id}",
    status_code=status.HTTP_200_OK,
    response_model=BookEnvelope,
    summary="Get a catalog book",
    dependencies=[Depends(rate_limit_api)],
)
async def get_book(*, book_id: int, db: AsyncSession = Depends(get_session)):
    book = await book_service.get_book_by_id(db=db, book_id=book_id)
    return BookEnvelope(book=BookResponse.model_validate(book))
