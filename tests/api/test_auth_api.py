import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


async def test_health(test_client: AsyncClient):
    """The health endpoint needs no auth."""
    response = await test_client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


async def test_signup_returns_token_and_user(test_client: AsyncClient, sample_user_data):
    """Sign-up creates the account and signs it in."""
    response = await test_client.post("/api/auth/signup", json=sample_user_data)

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["token"]
    assert body["user"]["email"] == sample_user_data["email"]
    assert "hashed_password" not in body["user"]
    assert "password" not in body["user"]


async def test_signup_duplicate_email(test_client: AsyncClient, sample_user_data):
    """A second sign-up with the same email is a 409."""
    await test_client.post("/api/auth/signup", json=sample_user_data)
    duplicate = {**sample_user_data, "username": "someone_else"}

    response = await test_client.post("/api/auth/signup", json=duplicate)

    assert response.status_code == 409
    assert response.json() == {"success": False, "message": "Email already in use"}


async def test_signup_validation_error_envelope(test_client: AsyncClient):
    """Malformed bodies get the 400 error envelope."""
    response = await test_client.post("/api/auth/signup", json={"email": "x@example.com"})

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Validation error"
    assert body["errors"]


async def test_signin_and_refresh(test_client: AsyncClient, sample_user_data):
    """Sign-in with the right password returns a token usable on protected routes."""
    await test_client.post("/api/auth/signup", json=sample_user_data)

    response = await test_client.post(
        "/api/auth/signin",
        json={"email": sample_user_data["email"].upper(), "password": sample_user_data["password"]},
    )
    assert response.status_code == 200
    token = response.json()["token"]

    refreshed = await test_client.post(
        "/api/auth/refresh", headers={"Authorization": f"Bearer {token}"}
    )
    assert refreshed.status_code == 200
    assert refreshed.json()["token"]


async def test_signin_wrong_password(test_client: AsyncClient, sample_user_data):
    """Wrong passwords and unknown emails get the same 401."""
    await test_client.post("/api/auth/signup", json=sample_user_data)

    wrong_password = await test_client.post(
        "/api/auth/signin", json={"email": sample_user_data["email"], "password": "nope-nope"}
    )
    unknown_email = await test_client.post(
        "/api/auth/signin", json={"email": "ghost@example.com", "password": "nope-nope"}
    )

    assert wrong_password.status_code == 401
    assert unknown_email.status_code == 401
    assert wrong_password.json()["message"] == unknown_email.json()["message"]


async def test_protected_route_without_token(test_client: AsyncClient):
    """Missing tokens get a 401 with a Bearer challenge."""
    response = await test_client.post("/api/auth/refresh")

    assert response.status_code == 401
    assert response.json()["message"] == "Access denied. No token provided."
    assert response.headers["www-authenticate"] == "Bearer"


async def test_protected_route_with_garbage_token(test_client: AsyncClient):
    response = await test_client.post(
        "/api/auth/refresh", headers={"Authorization": "Bearer not-a-jwt"}
    )
    assert response.status_code == 401


async def test_user_cannot_edit_another_profile(
    test_client: AsyncClient, user_headers, other_user
):
    """Profile edits are limited to the account owner."""
    other_id = other_user.id
    response = await test_client.put(
        f"/api/user/{other_id}", json={"display_name": "Hijacked"}, headers=user_headers
    )
    assert response.status_code == 403


async def test_get_public_profile_hides_email(test_client: AsyncClient, user_headers, other_user):
    other_id = other_user.id
    response = await test_client.get(f"/api/user/{other_id}", headers=user_headers)

    assert response.status_code == 200
    assert response.json()["user"]["id"] == other_id
    assert "email" not in response.json()["user"]
