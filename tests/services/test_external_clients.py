# tests/services/test_external_clients.py
import httpx
import pytest

from bookstop.core.exceptions import ExternalServiceError, ResourceNotFound, ValidationError
from bookstop.services.cover_service import CoverService
from bookstop.services.google_books_service import GoogleBooksClient
from bookstop.services.openlibrary_service import OpenLibraryClient

pytestmark = pytest.mark.asyncio


def _transport(handler) -> httpx.MockTransport:
    return httpx.MockTransport(handler)


# ==================== OpenLibrary ====================


async def test_search_books_builds_query_and_parses_docs():
    """Search forwards the terms with the default sort and maps the docs."""
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(request.url.params)
        return httpx.Response(
            200,
            json={
                "numFound": 25,
                "docs": [{"key": "/works/OL1W", "title": "Dune", "author_name": ["Frank Herbert"]}],
            },
        )

    client = OpenLibraryClient(base_url="https://ol.test", transport=_transport(handler))
    result = await client.search_books(title=" dune ", limit=10)

    assert seen["title"] == "dune"
    assert seen["sort"] == "readinglog"
    assert "q" not in seen
    assert result.total == 25
    assert result.total_pages == 3
    assert result.books[0].openlibrary_id == "OL1W"


async def test_search_books_needs_a_term():
    client = OpenLibraryClient(base_url="https://ol.test", transport=_transport(lambda r: None))
    with pytest.raises(ValidationError):
        await client.search_books(q="   ")


async def test_search_books_upstream_failure():
    """Upstream errors become a 502-style ExternalServiceError."""
    client = OpenLibraryClient(
        base_url="https://ol.test", transport=_transport(lambda r: httpx.Response(503))
    )
    with pytest.raises(ExternalServiceError):
        await client.search_books(q="dune")


async def test_search_authors_enriches_with_details():
    """Each author hit gets its bio and real photos from the detail endpoint."""

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/search/authors.json":
            return httpx.Response(200, json={"docs": [{"key": "OL1A", "name": "Frank Herbert"}]})
        return httpx.Response(
            200,
            json={
                "key": "/authors/OL1A",
                "name": "Frank Herbert",
                "bio": {"type": "/type/text", "value": "American author."},
                "photos": [-1, 42],
            },
        )

    client = OpenLibraryClient(base_url="https://ol.test", transport=_transport(handler))
    authors = await client.search_authors("herbert")

    assert authors[0].bio == "American author."
    assert authors[0].photos == [42]


async def test_get_author_rejects_bad_key():
    client = OpenLibraryClient(base_url="https://ol.test", transport=_transport(lambda r: None))
    with pytest.raises(ValidationError, match="Invalid author key"):
        await client.get_author("../etc/passwd")


async def test_get_author_not_found():
    client = OpenLibraryClient(
        base_url="https://ol.test", transport=_transport(lambda r: httpx.Response(404))
    )
    with pytest.raises(ResourceNotFound):
        await client.get_author("OL999A")


# ==================== Covers ====================


async def test_cover_prefers_bookcover_api():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["book_title"] == "Dr No"
        return httpx.Response(200, json={"url": "https://img.test/dr-no.jpg"})

    service = CoverService(
        bookcover_url="https://bookcover.test/cover",
        covers_url="https://covers.test",
        transport=_transport(handler),
    )
    url = await service.find_cover(title="Dr. No", author=["Ian Fleming"], isbn="123")
    assert url == "https://img.test/dr-no.jpg"


async def test_cover_falls_back_to_latest_lccn_then_isbn():
    """LCCNs are tried newest first; only real images count."""
    checked = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "bookcover.test":
            return httpx.Response(404)
        assert request.method == "HEAD"
        checked.append(request.url.path)
        if "/isbn/" in request.url.path:
            return httpx.Response(200, headers={"content-type": "image/jpeg"})
        return httpx.Response(404)

    service = CoverService(
        bookcover_url="https://bookcover.test/cover",
        covers_url="https://covers.test",
        transport=_transport(handler),
    )
    url = await service.find_cover(title="T", author="A", lccn=["old", "new"], isbn="9780441172719")

    assert checked == ["/b/lccn/new-L.jpg", "/b/lccn/old-L.jpg", "/b/isbn/9780441172719-L.jpg"]
    assert url == "https://covers.test/b/isbn/9780441172719-L.jpg?default=false"


async def test_cover_ignores_non_object_bookcover_payload():
    """A bookcover answer that is not a JSON object falls through to OpenLibrary."""

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "bookcover.test":
            return httpx.Response(200, json=["https://img.test/x.jpg"])
        return httpx.Response(200, headers={"content-type": "image/jpeg"})

    service = CoverService(
        bookcover_url="https://bookcover.test/cover",
        covers_url="https://covers.test",
        transport=_transport(handler),
    )
    url = await service.find_cover(title="T", author="A", isbn="1")
    assert url == "https://covers.test/b/isbn/1-L.jpg?default=false"


async def test_no_cover_anywhere():
    service = CoverService(
        bookcover_url="https://bookcover.test/cover",
        covers_url="https://covers.test",
        transport=_transport(lambda r: httpx.Response(404)),
    )
    assert await service.find_cover(title="T", author="A", isbn="1") is None


# ==================== Google Books ====================


async def test_description_from_first_volume_with_one():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["q"] == "intitle:Dune+inauthor:Frank Herbert"
        return httpx.Response(
            200,
            json={
                "totalItems": 2,
                "items": [{"volumeInfo": {"title": "Dune", "description": "Desert planet."}}],
            },
        )

    client = GoogleBooksClient(base_url="https://gb.test/volumes", transport=_transport(handler))
    assert await client.get_description(title="Dune", author="Frank Herbert") == "Desert planet."


async def test_description_failure_is_none():
    client = GoogleBooksClient(
        base_url="https://gb.test/volumes", transport=_transport(lambda r: httpx.Response(500))
    )
    assert await client.get_description(title="Dune") is None
