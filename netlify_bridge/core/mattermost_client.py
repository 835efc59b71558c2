"""
Mattermost API client.

Posts messages to Mattermost as the bot account: channel posts,
ephemeral posts visible to one user and direct messages.
"""

from typing import Any, Dict, List, Optional

import httpx
import structlog

from netlify_bridge.core.exceptions import MattermostAPIError
from netlify_bridge.models.mattermost import SlackAttachment, attachments_props

logger = structlog.get_logger(__name__)


class MattermostClient:
    """Mattermost REST API v4 client authenticated with a bot token."""

    def __init__(self, http_client: httpx.AsyncClient, base_url: str, bot_token: str):
        self.http_client = http_client
        self.api_url = f"{base_url.rstrip('/')}/api/v4"
        self.bot_token = bot_token
        self._bot_user_id: Optional[str] = None
        self.logger = logger.bind(client="mattermost")

    async def _request(self, operation: str, method: str, path: str, json: Optional[Any] = None) -> Any:
        try:
            response = await self.http_client.request(
                method,
                f"{self.api_url}{path}",
                json=json,
                headers={"Authorization": f"Bearer {self.bot_token}"},
            )
        except httpx.HTTPError as e:
            self.logger.error(
                "Mattermost request failed",
                operation=operation,
                error=str(e),
                error_type=type(e).__name__
            )
            raise MattermostAPIError(operation, f"Request to Mattermost failed: {e}") from e

        if response.is_error:
            message = f"Mattermost API error: {response.status_code}"
            try:
                error_data = response.json()
                if isinstance(error_data, dict) and error_data.get("message"):
                    message = error_data["message"]
            except ValueError:
                pass

            self.logger.error(
                "Mattermost API returned an error",
                operation=operation,
                status_code=response.status_code,
                error_message=message
            )
            raise MattermostAPIError(
                operation,
                message,
                status_code=response.status_code,
                response_body=response.text
            )

        if not response.content:
            return None
        return response.json()

    async def get_bot_user_id(self) -> str:
        """User ID of the bot account, looked up once."""
        if self._bot_user_id is None:
            user = await self._request("get_me", "GET", "/users/me")
            self._bot_user_id = user["id"]
        return self._bot_user_id

    @staticmethod
    def _post_body(channel_id: str, message: str, attachments: Optional[List[SlackAttachment]]) -> Dict[str, Any]:
        return {
            "channel_id": channel_id,
            "message": message,
            "props": attachments_props(attachments),
        }

    async def create_post(
            self,
            channel_id: str,
            message: str = "",
            attachments: Optional[List[SlackAttachment]] = None
    ) -> Dict[str, Any]:
        """Post to a channel as the bot."""
        return await self._request("create_post", "POST", "/posts", json=self._post_body(channel_id, message, attachments))

    async def send_ephemeral_post(
            self,
            user_id: str,
            channel_id: str,
            message: str = "",
            attachments: Optional[List[SlackAttachment]] = None
    ) -> Dict[str, Any]:
        """Post to a channel, visible only to one user."""
        return await self._request(
            "create_ephemeral_post",
            "POST",
            "/posts/ephemeral",
            json={"user_id": user_id, "post": self._post_body(channel_id, message, attachments)},
        )

    async def get_direct_channel_id(self, user_id: str) -> str:
        """ID of the direct message channel between the bot and a user."""
        bot_user_id = await self.get_bot_user_id()
        channel = await self._request("create_direct_channel", "POST", "/channels/direct", json=[bot_user_id, user_id])
        return channel["id"]

    async def send_direct_message(self, user_id: str, message: str) -> Dict[str, Any]:
        channel_id = await self.get_direct_channel_id(user_id)
        return await self.create_post(channel_id, message)
