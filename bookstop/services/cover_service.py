import logging
from typing import List, Optional, Sequence, Union

import httpx

from bookstop.core.config import settings

logger = logging.getLogger(__name__)


def _clean_query_value(value: Union[str, Sequence[str], None]) -> str:
    """First entry of a list, with dots removed and whitespace trimmed."""
    if isinstance(value, (list, tuple)):
        value = value[0] if value else ""
    return (value or "").replace(".", "").strip()


class CoverService:
    """
    Finds a cover image URL for a book, trying in order:

    1. the bookcover API, by title and first author;
    2. OpenLibrary covers by LCCN, most recent LCCN first;
    3. the OpenLibrary cover for the ISBN.

    Every lookup failure counts as "no cover" and moves on to the next source.
    """

    def __init__(
        self,
        bookcover_url: str = settings.BOOKCOVER_API_URL,
        covers_url: str = settings.OPENLIBRARY_COVERS_URL,
        timeout: float = settings.EXTERNAL_API_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.bookcover_url = bookcover_url
        self.covers_url = covers_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout, transport=self._transport, follow_redirects=True
        )

    async def find_cover(
        self,
        *,
        title: Optional[str] = None,
        author: Union[str, Sequence[str], None] = None,
        lccn: Optional[List[str]] = None,
        isbn: Optional[str] = None,
    ) -> Optional[str]:
        async with self._client() as client:
            url = await self.from_bookcover_api(client, title=title, author=author)
            if not url:
                url = await self.from_lccn(client, lccn or [])
            if not url and isbn:
                url = await self.from_isbn(client, isbn)

        if not url:
            self._logger.info(f"No cover found for '{title}'")
        return url

    async def from_bookcover_api(
        self,
        client: httpx.AsyncClient,
        *,
        title: Optional[str],
        author: Union[str, Sequence[str], None],
    ) -> Optional[str]:
        book_title = _clean_query_value(title)
        author_name = _clean_query_value(author)
        if not book_title or not author_name:
            return None

        try:
            response = await client.get(
                self.bookcover_url,
                params={"book_title": book_title, "author_name": author_name},
            )
            if response.status_code != 200:
                return None
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            self._logger.info(f"Bookcover API lookup failed: {exc}")
            return None

        if not isinstance(payload, dict):
            self._logger.info("Bookcover API returned an unexpected payload")
            return None
        return payload.get("url") or None

    async def from_lccn(self, client: httpx.AsyncClient, lccns: List[str]) -> Optional[str]:
        for lccn in reversed(lccns):
            url = f"{self.covers_url}/b/lccn/{lccn}-L.jpg?default=false"
            if await self._is_image(client, url):
                return url
        return None

    async def from_isbn(self, client: httpx.AsyncClient, isbn: str) -> Optional[str]:
        url = f"{self.covers_url}/b/isbn/{isbn.strip()}-L.jpg?default=false"
        return url if await self._is_image(client, url) else None

    async def _is_image(self, client: httpx.AsyncClient, url: str) -> bool:
        # default=false makes OpenLibrary answer 404 instead of a blank image
        try:
            response = await client.head(url)
        except httpx.HTTPError as exc:
            self._logger.info(f"Cover check failed for {url}: {exc}")
            return False
        content_type = response.headers.get("content-type", "")
        return response.status_code == 200 and content_type.startswith("image/")


cover_service = CoverService()
