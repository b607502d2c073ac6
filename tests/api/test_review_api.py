import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


async def test_review_lifecycle(test_client: AsyncClient, user_headers, make_book):
    """Create, edit, read and delete a review over HTTP."""
    book = await make_book()
    book_id = book.id

    created = await test_client.post(
        "/api/review",
        json={"book_id": book_id, "title": "Classic", "content": "Still holds up.", "rating": 5},
        headers=user_headers,
    )
    assert created.status_code == 201
    review_id = created.json()["review"]["id"]

    updated = await test_client.put(
        f"/api/review/{review_id}",
        json={"content": "Holds up, mostly."},
        headers=user_headers,
    )
    assert updated.status_code == 200
    history = updated.json()["review"]["edit_history"]
    assert [edit["content"] for edit in history] == ["Still holds up."]

    listing = await test_client.get(f"/api/review/book/{book_id}")
    assert listing.status_code == 200
    assert listing.json()["rating_stats"]["average_rating"] == 5.0
    assert listing.json()["reviews"][0]["user"]["id"] is not None

    deleted = await test_client.delete(f"/api/review/{review_id}", headers=user_headers)
    assert deleted.status_code == 200
    assert (await test_client.get(f"/api/review/{review_id}")).status_code == 404


async def test_review_without_rating_or_content(test_client: AsyncClient, user_headers, make_book):
    book = await make_book()

    response = await test_client.post(
        "/api/review", json={"book_id": book.id}, headers=user_headers
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Either rating or written review is required"


async def test_duplicate_review_conflicts(test_client: AsyncClient, user_headers, make_book):
    book = await make_book()
    book_id = book.id
    await test_client.post("/api/review", json={"book_id": book_id, "rating": 3}, headers=user_headers)

    response = await test_client.post(
        "/api/review", json={"book_id": book_id, "rating": 4}, headers=user_headers
    )
    assert response.status_code == 409


async def test_only_author_can_delete(test_client: AsyncClient, user_headers, other_headers, make_book):
    book = await make_book()
    created = await test_client.post(
        "/api/review", json={"book_id": book.id, "rating": 2}, headers=user_headers
    )

    response = await test_client.delete(
        f"/api/review/{created.json()['review']['id']}", headers=other_headers
    )
    assert response.status_code == 403
