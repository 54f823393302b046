"""Tests for authentication and the current user endpoint."""

from datetime import timedelta
from uuid import uuid4

import pytest
from httpx import AsyncClient

from app.core.security import create_access_token


@pytest.mark.asyncio
async def test_get_me(client: AsyncClient, patient: dict, patient_headers: dict) -> None:
    response = await client.get("/api/v1/users/me", headers=patient_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["id"] == str(patient["id"])
    assert data["email"] == patient["email"]
    assert data["role"] == "patient"


@pytest.mark.asyncio
async def test_invalid_token(client: AsyncClient) -> None:
    response = await client.get(
        "/api/v1/users/me",
        headers={"Authorization": "Bearer not-a-token"},
    )
    assert response.status_code == 401
    assert response.json()["error"] == "HTTPException"


@pytest.mark.asyncio
async def test_expired_token(client: AsyncClient, patient: dict) -> None:
    token = create_access_token({"sub": str(patient["id"])}, expires_delta=timedelta(minutes=-5))
    response = await client.get(
        "/api/v1/users/me",
        headers={"Authorization": f"Bearer {token}"},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_unknown_user(client: AsyncClient, make_auth_headers) -> None:
    headers = make_auth_headers({"id": uuid4(), "email": "ghost@example.com"})
    response = await client.get("/api/v1/users/me", headers=headers)
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_inactive_user(client: AsyncClient, create_user, make_auth_headers) -> None:
    inactive = await create_user("patient", is_active=False)
    response = await client.get("/api/v1/users/me", headers=make_auth_headers(inactive))
    assert response.status_code == 403
