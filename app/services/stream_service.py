"""Chat and video session service backed by the Stream vendor API."""

from uuid import UUID

import httpx
import structlog
from jose import jwt

from app.config import settings
from app.core.exceptions import ExternalServiceException

logger = structlog.get_logger(__name__)


class StreamSessionService:
    """Issues vendor user tokens and manages channel membership."""

    TIMEOUT = 10.0

    def __init__(
        self,
        api_key: str | None = None,
        api_secret: str | None = None,
        base_url: str | None = None,
    ):
        self.api_key = api_key if api_key is not None else settings.stream_api_key
        self.api_secret = api_secret if api_secret is not None else settings.stream_api_secret
        self.base_url = (base_url or settings.stream_base_url).rstrip("/")

    def _ensure_configured(self) -> None:
        if not (self.api_key and self.api_secret):
            raise ExternalServiceException("Chat service is not configured")

    def issue_session_token(self, user_id: UUID) -> str:
        """
        Create a vendor user token for the given user.

        Raises:
            ExternalServiceException: If vendor credentials are missing
        """
        self._ensure_configured()
        return jwt.encode({"user_id": str(user_id)}, self.api_secret, algorithm="HS256")

    def _server_token(self) -> str:
        return jwt.encode({"server": True}, self.api_secret, algorithm="HS256")

    async def _post(self, path: str, payload: dict, **log_context) -> None:
        """Send a server-authenticated request to the vendor REST API."""
        self._ensure_configured()
        headers = {
            "Authorization": self._server_token(),
            "stream-auth-type": "jwt",
        }

        async with httpx.AsyncClient(timeout=self.TIMEOUT) as client:
            try:
                response = await client.post(
                    f"{self.base_url}{path}",
                    params={"api_key": self.api_key},
                    headers=headers,
                    json=payload,
                )
            except httpx.HTTPError as e:
                logger.error("stream_request_failed", path=path, error=str(e), **log_context)
                raise ExternalServiceException("Chat service unavailable") from e

        if response.status_code >= 400:
            logger.error(
                "stream_request_rejected",
                path=path,
                status_code=response.status_code,
                **log_context,
            )
            raise ExternalServiceException("Chat service rejected the request")

    async def upsert_user(self, user_id: UUID, name: str) -> None:
        """
        Create or update the vendor-side user record.

        The vendor only accepts channel members it already knows about.

        Raises:
            ExternalServiceException: If the vendor call fails
        """
        await self._post(
            "/users",
            {"users": {str(user_id): {"id": str(user_id), "name": name}}},
            user_id=str(user_id),
        )
        logger.info("stream_user_upserted", user_id=str(user_id))

    async def ensure_channel_membership(self, channel_id: str, user_id: UUID) -> None:
        """
        Add the user to a messaging channel.

        Adding an existing member is a no-op on the vendor side.

        Raises:
            ExternalServiceException: If the vendor call fails
        """
        await self._post(
            f"/channels/messaging/{channel_id}",
            {"add_members": [str(user_id)]},
            channel_id=channel_id,
            user_id=str(user_id),
        )
        logger.info("stream_channel_member_added", channel_id=channel_id, user_id=str(user_id))
