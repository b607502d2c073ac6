import logging
from typing import Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from bookstop.core.config import settings
from bookstop.schemas.external_schema import GoogleVolumesResponse

logger = logging.getLogger(__name__)


class GoogleBooksClient:
    """Looks up book descriptions on Google Books. Any failure means "no description"."""

    def __init__(
        self,
        base_url: str = settings.GOOGLE_BOOKS_URL,
        api_key: Optional[str] = settings.GOOGLE_BOOKS_API_KEY,
        timeout: float = settings.EXTERNAL_API_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    async def get_description(self, *, title: str, author: Optional[str] = None) -> Optional[str]:
        if not title or not title.strip():
            return None

        query = f"intitle:{title.strip()}"
        if author and author.strip():
            query += f"+inauthor:{author.strip()}"
        params = {"q": query, "maxResults": 1}
        if self.api_key:
            params["key"] = self.api_key

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(self.base_url, params=params)
                response.raise_for_status()
                volumes = GoogleVolumesResponse.model_validate(response.json())
        except (httpx.HTTPError, ValueError, PydanticValidationError) as exc:
            self._logger.info(f"Google Books lookup failed for '{title}': {exc}")
            return None

        for volume in volumes.items:
            if volume.volume_info.description:
                return volume.volume_info.description
        return None


google_books_client = GoogleBooksClient()
