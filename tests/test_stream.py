"""Tests for the chat session endpoint."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from httpx import AsyncClient
from jose import jwt

from app.core.exceptions import ExternalServiceException
from app.services.stream_service import StreamSessionService


def _vendor_response(status_code: int) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    return response


def test_issue_session_token():
    service = StreamSessionService(api_key="key", api_secret="secret")
    token = service.issue_session_token("5b1d6c6e-0000-0000-0000-000000000001")
    claims = jwt.decode(token, "secret", algorithms=["HS256"])
    assert claims == {"user_id": "5b1d6c6e-0000-0000-0000-000000000001"}


def test_unconfigured_vendor():
    service = StreamSessionService(api_key="", api_secret="")
    with pytest.raises(ExternalServiceException):
        service.issue_session_token("anyone")


@pytest.mark.asyncio
async def test_stream_token_endpoint(
    client: AsyncClient,
    patient: dict,
    patient_headers: dict,
) -> None:
    """The caller is registered with the vendor before joining the general channel."""
    post = AsyncMock(return_value=_vendor_response(201))

    with patch("httpx.AsyncClient.post", post):
        response = await client.get("/api/v1/stream/token", headers=patient_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["api_key"] == "test-stream-key"
    assert data["user"] == {"id": str(patient["id"]), "name": "Pat Patient"}
    claims = jwt.decode(data["token"], "test-stream-secret", algorithms=["HS256"])
    assert claims["user_id"] == str(patient["id"])

    upsert, membership = post.call_args_list
    assert upsert.args[0].endswith("/users")
    assert upsert.kwargs["json"] == {
        "users": {str(patient["id"]): {"id": str(patient["id"]), "name": "Pat Patient"}}
    }
    assert membership.args[0].endswith("/channels/messaging/my_general_chat")
    assert membership.kwargs["json"] == {"add_members": [str(patient["id"])]}
    assert membership.kwargs["headers"]["stream-auth-type"] == "jwt"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "post",
    [
        AsyncMock(return_value=_vendor_response(500)),
        AsyncMock(side_effect=httpx.ConnectError("unreachable")),
    ],
)
async def test_stream_token_vendor_failure(
    client: AsyncClient,
    patient_headers: dict,
    post: AsyncMock,
) -> None:
    with patch("httpx.AsyncClient.post", post):
        response = await client.get("/api/v1/stream/token", headers=patient_headers)

    assert response.status_code == 502
    assert response.json()["error"] == "ExternalServiceException"


@pytest.mark.asyncio
async def test_stream_token_skips_membership_when_upsert_fails(
    client: AsyncClient,
    patient_headers: dict,
) -> None:
    post = AsyncMock(return_value=_vendor_response(400))

    with patch("httpx.AsyncClient.post", post):
        response = await client.get("/api/v1/stream/token", headers=patient_headers)

    assert response.status_code == 502
    post.assert_awaited_once()
    assert post.call_args.args[0].endswith("/users")
