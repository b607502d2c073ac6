"""
Async HTTP client for the BookStop API.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from bookstop.client.session import AuthSession, token_is_expired

logger = logging.getLogger(__name__)


class BookStopAPIError(Exception):
    """An error envelope returned by the API."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"{status_code}: {message}")


class SessionExpired(BookStopAPIError):
    """The token is expired or was rejected; the session has been cleared."""

    def __init__(self, message: str = "Session expired. Please sign in again."):
        super().__init__(401, message)


class BookStopClient:
    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        *,
        session: Optional[AuthSession] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.session = session or AuthSession()
        self._http = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def __aenter__(self) -> "BookStopClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    def _auth_headers(self) -> Dict[str, str]:
        if token_is_expired(self.session.token):
            self.session.clear()
            raise SessionExpired()
        return {"Authorization": f"Bearer {self.session.token}"}

    async def _request(
        self, method: str, path: str, *, auth: bool = True, **kwargs
    ) -> Dict[str, Any]:
        headers = self._auth_headers() if auth else {}
        response = await self._http.request(method, f"/api{path}", headers=headers, **kwargs)

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code == 401:
            self.session.clear()
            raise SessionExpired(body.get("message") or "Session expired. Please sign in again.")
        if response.is_error:
            message = body.get("message") or response.reason_phrase
            logger.debug(f"{method} {path} failed with {response.status_code}: {message}")
            raise BookStopAPIError(response.status_code, message)
        return body

    # ======= AUTH =======
    async def sign_up(
        self, *, username: str, email: str, password: str, **profile
    ) -> Dict[str, Any]:
        body = await self._request(
            "POST",
            "/auth/signup",
            auth=False,
            json={"username": username, "email": email, "password": password, **profile},
        )
        self.session.login(body["token"], body.get("user"))
        return body

    async def sign_in(self, *, email: str, password: str) -> Dict[str, Any]:
        body = await self._request(
            "POST", "/auth/signin", auth=False, json={"email": email, "password": password}
        )
        self.session.login(body["token"], body.get("user"))
        return body

    # ======= BOOKS =======
    async def search_books(self, q: Optional[str] = None, **params) -> Dict[str, Any]:
        if q is not None:
            params["q"] = q
        body = await self._request("GET", "/book/search", auth=False, params=params)
        return body["data"]

    async def save_book(self, book: Dict[str, Any]) -> Dict[str, Any]:
        body = await self._request("POST", "/book/db", auth=False, json=book)
        return body["book"]

    # ======= STATUS =======
    async def set_status(self, isbn: str, *, status: str, **fields) -> Dict[str, Any]:
        return await self._request("PUT", f"/userdata/{isbn}/status", json={"status": status, **fields})

    async def get_status(self, isbn: str) -> Dict[str, Any]:
        body = await self._request("GET", f"/userdata/{isbn}/status")
        return body["user_book"]

    # ======= REVIEWS =======
    async def create_review(
        self,
        book_id: int,
        *,
        rating: Optional[int] = None,
        title: Optional[str] = None,
        content: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload = {"book_id": book_id, "rating": rating, "title": title, "content": content}
        body = await self._request(
            "POST", "/review", json={k: v for k, v in payload.items() if v is not None}
        )
        return body["review"]

    async def update_review(self, review_id: int, **fields) -> Dict[str, Any]:
        body = await self._request("PUT", f"/review/{review_id}", json=fields)
        return body["review"]

    # ======= LISTS =======
    async def create_list(
        self,
        title: str,
        *,
        description: str = "",
        visibility: str = "public",
        tags: Optional[List[str]] = None,
        books: Optional[List[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        body = await self._request(
            "POST",
            "/list",
            json={
                "title": title,
                "description": description,
                "visibility": visibility,
                "tags": tags or [],
                "books": books or [],
            },
        )
        return body["list"]

    async def add_book_to_list(self, list_id: int, book_id: int, *, note: str = "") -> Dict[str, Any]:
        body = await self._request(
            "POST", f"/list/{list_id}/books", json={"book_id": book_id, "note": note}
        )
        return body["list"]

    async def remove_book_from_list(self, list_id: int, book_id: int) -> Dict[str, Any]:
        body = await self._request("DELETE", f"/list/{list_id}/books/{book_id}")
        return body["list"]

    async def like_list(self, list_id: int, *, like: bool = True) -> int:
        body = await self._request(
            "POST", f"/list/{list_id}/like", json={"action": "like" if like else "unlike"}
        )
        return body["likes"]
