"""
Webhook Service

Turns Netlify deploy notifications into bot posts in every channel
subscribed to the site.
"""

from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from netlify_bridge.config.constants import NetlifyEvent
from netlify_bridge.config.settings import Settings
from netlify_bridge.core.exceptions import MattermostAPIError
from netlify_bridge.core.mattermost_client import MattermostClient
from netlify_bridge.models.netlify import WebhookEvent
from netlify_bridge.repositories.subscription_repository import SubscriptionRepository
from netlify_bridge.services.base_service import BaseService
from netlify_bridge.services.exceptions import NotFoundError, UnauthorizedError, ValidationError
from netlify_bridge.utils.encryption import verify_netlify_signature
from netlify_bridge.utils.formatters import build_notification_attachment
from netlify_bridge.utils.metrics import record_webhook_event


class WebhookService(BaseService):
    """Netlify outgoing webhook receiver"""

    def __init__(
            self,
            settings: Settings,
            mattermost: MattermostClient,
            subscription_repository: SubscriptionRepository
    ):
        super().__init__()
        self.settings = settings
        self.mattermost = mattermost
        self.subscription_repository = subscription_repository

    def parse_event(self, body: bytes) -> WebhookEvent:
        """
        Parse a notification body

        Raises:
            ValidationError: If the body is not a valid notification
        """
        try:
            return WebhookEvent.model_validate_json(body)
        except PydanticValidationError as e:
            raise ValidationError("Corrupt incoming webhook, Cannot unmarshal input json") from e

    def verify_signature(self, body: bytes, signature: Optional[str]) -> None:
        """
        Check the request signature when a webhook secret is configured

        Raises:
            UnauthorizedError: If the signature is missing or invalid
        """
        secret = self.settings.WEBHOOK_SECRET
        if not secret:
            return

        if not verify_netlify_signature(body, signature, secret):
            raise UnauthorizedError("Invalid webhook signature", resource="webhook")

    async def handle(self, event_type: Optional[str], body: bytes, signature: Optional[str] = None) -> int:
        """
        Deliver a notification to the subscribed channels

        Args:
            event_type: Value of the event header
            body: Raw request body
            signature: Value of the signature header

        Returns:
            Number of channels the notification was posted to

        Raises:
            ValidationError: Corrupt body or unknown event type
            UnauthorizedError: Signature check failed
            NotFoundError: No channel is subscribed to the site
        """
        event = self.parse_event(body)

        try:
            self.verify_signature(body, signature)
        except UnauthorizedError:
            record_webhook_event(event_type or "", "unauthorized")
            raise

        channels = await self.subscription_repository.get_channels(event.site_id)
        if not channels:
            record_webhook_event(event_type or "", "unsubscribed")
            raise NotFoundError("No channels subscribed to the site", resource_type="site", resource_id=event.site_id)

        try:
            netlify_event = NetlifyEvent(event_type)
        except ValueError as e:
            record_webhook_event(event_type or "", "rejected")
            raise ValidationError("Incoming webhook of unknown type", field="event", value=event_type) from e

        attachment = build_notification_attachment(netlify_event, event)

        delivered = 0
        for channel_id in channels:
            try:
                await self.mattermost.create_post(channel_id, attachments=[attachment])
                delivered += 1
            except MattermostAPIError as e:
                self.logger.error(
                    "Failed to post build notification",
                    channel_id=channel_id,
                    site_id=event.site_id,
                    error=e.message
                )

        record_webhook_event(netlify_event.value, "delivered")
        self.log_operation(
            "webhook_notification",
            site_id=event.site_id,
            netlify_event=netlify_event.value,
            channels=len(channels),
            delivered=delivered
        )
        return delivered
