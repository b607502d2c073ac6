import asyncio
import logging
import math
import re
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from bookstop.core.config import settings
from bookstop.core.exceptions import ExternalServiceError, ResourceNotFound, ValidationError
from bookstop.schemas.external_schema import (
    AuthorDetail,
    AuthorSummary,
    BookSearchResult,
    OpenLibraryDoc,
)

logger = logging.getLogger(__name__)

SEARCH_FIELDS = ",".join(
    [
        "key",
        "title",
        "author_key",
        "author_name",
        "first_publish_year",
        "language",
        "number_of_pages_median",
        "subject",
        "person",
        "subject_key",
        "ratings_average",
        "readinglog_count",
        "lccn",
        "isbn",
    ]
)
DEFAULT_SORT = "readinglog"
AUTHOR_KEY_PATTERN = re.compile(r"^OL\d+A$")


class OpenLibraryClient:
    """Thin async wrapper around the OpenLibrary search and author APIs."""

    def __init__(
        self,
        base_url: str = settings.OPENLIBRARY_URL,
        timeout: float = settings.EXTERNAL_API_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self._transport = transport
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, transport=self._transport
        )

    async def search_books(
        self,
        *,
        q: Optional[str] = None,
        title: Optional[str] = None,
        author: Optional[str] = None,
        subject: Optional[str] = None,
        isbn: Optional[str] = None,
        sort: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> BookSearchResult:
        terms = {"q": q, "title": title, "author": author, "subject": subject, "isbn": isbn}
        terms = {name: value.strip() for name, value in terms.items() if value and value.strip()}
        if not terms:
            raise ValidationError("At least one search parameter is required")

        params: Dict[str, Any] = {
            **terms,
            "sort": sort or DEFAULT_SORT,
            "page": page,
            "limit": limit,
            "fields": SEARCH_FIELDS,
        }

        try:
            async with self._client() as client:
                response = await client.get("/search.json", params=params)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            self._logger.error(f"OpenLibrary search failed: {exc}", extra={"params": terms})
            raise ExternalServiceError("Error fetching books from OpenLibrary") from exc

        total = int(data.get("numFound") or data.get("num_found") or 0)
        books = [OpenLibraryDoc.model_validate(doc) for doc in data.get("docs", [])]
        return BookSearchResult(
            books=books,
            total=total,
            page=page,
            total_pages=math.ceil(total / limit) if limit else 0,
        )

    async def _author_details(self, client: httpx.AsyncClient, key: str) -> Optional[AuthorDetail]:
        try:
            response = await client.get(f"/authors/{key}.json")
            response.raise_for_status()
            return AuthorDetail.model_validate(response.json())
        except (httpx.HTTPError, ValueError, PydanticValidationError) as exc:
            self._logger.info(f"No details for author {key}: {exc}")
            return None

    async def search_authors(self, q: str, limit: int = 10) -> List[AuthorSummary]:
        """Author search, with each hit enriched with its bio and photos."""
        if not q or not q.strip():
            raise ValidationError("Search query is required")

        try:
            async with self._client() as client:
                response = await client.get(
                    "/search/authors.json", params={"q": q.strip(), "limit": limit}
                )
                response.raise_for_status()
                docs = response.json().get("docs", [])

                authors = [AuthorSummary.model_validate(doc) for doc in docs if doc.get("key")]
                details = await asyncio.gather(
                    *(self._author_details(client, author.key) for author in authors)
                )
        except (httpx.HTTPError, ValueError) as exc:
            self._logger.error(f"OpenLibrary author search failed: {exc}")
            raise ExternalServiceError("Error fetching authors from OpenLibrary") from exc

        for author, detail in zip(authors, details):
            if detail is not None:
                author.bio = detail.bio
                author.photos = detail.photos
                author.death_date = author.death_date or detail.death_date
        return authors

    async def get_author(self, author_key: str) -> AuthorDetail:
        if not AUTHOR_KEY_PATTERN.match(author_key or ""):
            raise ValidationError("Invalid author key format")

        try:
            async with self._client() as client:
                response = await client.get(f"/authors/{author_key}.json")
                if response.status_code == 404:
                    raise ResourceNotFound("Author not found")
                response.raise_for_status()
                return AuthorDetail.model_validate(response.json())
        except (httpx.HTTPError, ValueError) as exc:
            self._logger.error(f"OpenLibrary author lookup failed for {author_key}: {exc}")
            raise ExternalServiceError("Error fetching author from OpenLibrary") from exc


openlibrary_client = OpenLibraryClient()
