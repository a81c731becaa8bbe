"""Tests for registration, login and session tokens."""

import pytest
from httpx import AsyncClient

from app.config import settings
from app.core.security import create_access_token
from conftest import PASSWORD, login


@pytest.mark.asyncio
async def test_register_clinic(client: AsyncClient):
    """Test registering a clinic with its admin."""
    response = await client.post(
        "/api/auth/register",
        json={
            "email": "Owner@Acme.com",
            "password": PASSWORD,
            "clinic_name": "Acme Clinic",
            "clinic_address": "1 Main St",
        },
    )

    assert response.status_code == 201
    data = response.json()
    assert data["message"] == "Clinic and admin account created successfully"
    assert data["user"]["role"] == "ADMIN"
    assert data["user"]["email"] == "owner@acme.com"
    assert data["user"]["clinic_id"] == data["clinic_id"]


@pytest.mark.asyncio
async def test_register_duplicate_email(client: AsyncClient, admin):
    """Test that an e-mail can only be registered once."""
    response = await client.post(
        "/api/auth/register",
        json={"email": "admin@acme.com", "password": PASSWORD, "clinic_name": "Second"},
    )

    assert response.status_code == 400
    assert response.json()["message"] == "User with this email already exists"


@pytest.mark.asyncio
async def test_register_missing_fields(client: AsyncClient):
    """Test that validation failures are reported as 400."""
    response = await client.post("/api/auth/register", json={"email": "x@acme.com"})

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "ValidationError"
    assert body["details"]


@pytest.mark.asyncio
async def test_login_returns_tokens(client: AsyncClient, admin):
    """Test password login."""
    response = await client.post(
        "/api/auth/login",
        json={"email": "admin@acme.com", "password": PASSWORD},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["access_token"]
    assert data["refresh_token"]
    assert data["token_type"] == "bearer"
    assert data["user"]["clinic_id"] == admin["clinic_id"]


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient, admin):
    """Test that a wrong password is rejected."""
    response = await client.post(
        "/api/auth/login",
        json={"email": "admin@acme.com", "password": "not-the-password"},
    )

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid email or password"


@pytest.mark.asyncio
async def test_login_rate_limited(client: AsyncClient, admin, monkeypatch):
    """Test that repeated login attempts are throttled."""
    monkeypatch.setattr(settings, "login_rate_limit_per_minute", 2)
    payload = {"email": "admin@acme.com", "password": "wrong-password"}

    # The admin fixture already used one attempt
    first = await client.post("/api/auth/login", json=payload)
    second = await client.post("/api/auth/login", json=payload)

    assert first.status_code == 401
    assert second.status_code == 429


@pytest.mark.asyncio
async def test_session_reflects_token_claims(client: AsyncClient, admin):
    """Test the session endpoint."""
    response = await client.get("/api/auth/session", headers=admin["headers"])

    assert response.status_code == 200
    data = response.json()
    assert data["user_id"] == admin["user_id"]
    assert data["role"] == "ADMIN"
    assert data["clinic_id"] == admin["clinic_id"]
    assert data["email"] == "admin@acme.com"


@pytest.mark.asyncio
async def test_missing_token_is_unauthenticated(client: AsyncClient):
    """Test that protected routes need a session."""
    response = await client.get("/api/patients")

    assert response.status_code == 401
    assert response.json()["message"] == "Not authenticated"


@pytest.mark.asyncio
async def test_invalid_token_is_unauthenticated(client: AsyncClient):
    """Test that a forged token is rejected."""
    response = await client.get(
        "/api/auth/session", headers={"Authorization": "Bearer not-a-jwt"}
    )

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_token_with_unknown_role_is_rejected(client: AsyncClient):
    """Test that a signed token carrying an unknown role is rejected."""
    token = create_access_token(
        {"sub": "00000000-0000-0000-0000-000000000001", "role": "SUPERUSER"}
    )
    response = await client.get(
        "/api/auth/session", headers={"Authorization": f"Bearer {token}"}
    )

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_refresh_rotates_tokens(client: AsyncClient, admin):
    """Test that a refresh token can be used exactly once."""
    login_response = await client.post(
        "/api/auth/login",
        json={"email": "admin@acme.com", "password": PASSWORD},
    )
    refresh_token = login_response.json()["refresh_token"]

    response = await client.post("/api/auth/refresh", json={"refresh_token": refresh_token})
    assert response.status_code == 200
    new_tokens = response.json()
    assert new_tokens["refresh_token"] != refresh_token

    session = await client.get(
        "/api/auth/session",
        headers={"Authorization": f"Bearer {new_tokens['access_token']}"},
    )
    assert session.json()["clinic_id"] == admin["clinic_id"]

    replay = await client.post("/api/auth/refresh", json={"refresh_token": refresh_token})
    assert replay.status_code == 401


@pytest.mark.asyncio
async def test_logout_revokes_refresh_token(client: AsyncClient, admin):
    """Test logout."""
    login_response = await client.post(
        "/api/auth/login",
        json={"email": "admin@acme.com", "password": PASSWORD},
    )
    refresh_token = login_response.json()["refresh_token"]

    response = await client.post("/api/auth/logout", json={"refresh_token": refresh_token})
    assert response.status_code == 204

    response = await client.post("/api/auth/refresh", json={"refresh_token": refresh_token})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_access_token_cannot_refresh(client: AsyncClient, admin):
    """Test that only refresh tokens are accepted by the refresh endpoint."""
    access_token = admin["headers"]["Authorization"].removeprefix("Bearer ")

    response = await client.post("/api/auth/refresh", json={"refresh_token": access_token})

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_patient_login(client: AsyncClient, patient):
    """Test that patients created with a password can log in."""
    headers = await login(client, "jane@acme.com")
    response = await client.get("/api/auth/session", headers=headers)

    assert response.json()["role"] == "PATIENT"
