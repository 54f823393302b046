"""Chat session endpoints."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.config import settings
from app.dependencies import CurrentUser, CurrentUserId
from app.services.stream_service import StreamSessionService

router = APIRouter(prefix="/stream", tags=["Stream"])


class StreamUser(BaseModel):
    """Vendor-side user identity."""

    id: str
    name: str


class StreamTokenResponse(BaseModel):
    """Credentials a client needs to connect to the chat vendor."""

    token: str
    api_key: str
    user: StreamUser


def get_stream_service() -> StreamSessionService:
    """Get chat session service instance."""
    return StreamSessionService()


@router.get("/token", response_model=StreamTokenResponse)
async def get_stream_token(
    user_id: CurrentUserId,
    current_user: CurrentUser,
    stream_service: StreamSessionService = Depends(get_stream_service),
):
    """
    Issue a chat token, register the caller with the vendor and join the general channel.

    Raises:
        ExternalServiceException: If the chat vendor is unavailable
    """
    token = stream_service.issue_session_token(user_id)
    await stream_service.upsert_user(user_id, current_user["full_name"])
    await stream_service.ensure_channel_membership(settings.stream_general_channel, user_id)

    return StreamTokenResponse(
        token=token,
        api_key=stream_service.api_key,
        user=StreamUser(id=str(user_id), name=current_user["full_name"]),
    )
