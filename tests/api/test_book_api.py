import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio

DUNE_DOC = {
    "key": "/works/OL893415W",
    "title": "Dune",
    "author_name": ["Frank Herbert"],
    "isbn": ["9780441172719", "0441172717"],
    "first_publish_year": 1965,
    "number_of_pages_median": 604,
    "subject": ["science fiction, ecology", "Science fiction"],
    "ratings_average": 4.3,
}


async def test_save_book_creates_then_reuses(test_client: AsyncClient):
    """The first save creates the record (201); the second returns it (200)."""
    created = await test_client.post("/api/book/db", json=DUNE_DOC)
    assert created.status_code == 201
    book = created.json()["book"]
    assert created.json()["created"] is True
    assert book["isbn"] == "9780441172719"
    assert book["openlibrary_id"] == "OL893415W"
    assert book["subjects"] == ["Science fiction", "Ecology"]
    assert book["description"] == "Description not available"

    again = await test_client.post("/api/book/db", json=DUNE_DOC)
    assert again.status_code == 200
    assert again.json()["created"] is False
    assert again.json()["book"]["id"] == book["id"]


async def test_save_book_backfills_description(test_client: AsyncClient):
    """A later save with a description fills in the placeholder."""
    await test_client.post("/api/book/db", json=DUNE_DOC)

    response = await test_client.post(
        "/api/book/db", json={**DUNE_DOC, "description": "Spice and sandworms."}
    )

    assert response.status_code == 200
    assert response.json()["book"]["description"] == "Spice and sandworms."


async def test_save_book_dedupes_by_openlibrary_id(test_client: AsyncClient):
    """A different ISBN for the same work maps onto the existing record."""
    first = await test_client.post("/api/book/db", json=DUNE_DOC)
    second = await test_client.post("/api/book/db", json={**DUNE_DOC, "isbn": ["9780593099322"]})

    assert second.status_code == 200
    assert second.json()["book"]["id"] == first.json()["book"]["id"]


async def test_get_book(test_client: AsyncClient, make_book):
    book = await make_book(title="Emma")
    book_id = book.id

    response = await test_client.get(f"/api/book/{book_id}")

    assert response.status_code == 200
    assert response.json()["book"]["title"] == "Emma"


async def test_get_missing_book(test_client: AsyncClient):
    response = await test_client.get("/api/book/424242")
    assert response.status_code == 404
    assert response.json()["success"] is False


async def test_search_requires_a_term(test_client: AsyncClient):
    """Searching with no query terms is rejected before calling OpenLibrary."""
    response = await test_client.get("/api/book/search")

    assert response.status_code == 400
    assert response.json()["message"] == "At least one search parameter is required"
