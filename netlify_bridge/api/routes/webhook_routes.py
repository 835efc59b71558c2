"""
Webhook Routes

Receiver for Netlify outgoing deploy notifications.
"""

from typing import Annotated, Optional

import structlog
from fastapi import APIRouter, Depends, Header, Request

from netlify_bridge.config.constants import NETLIFY_EVENT_TYPE_HEADER, NETLIFY_SIGNATURE_HEADER
from netlify_bridge.dependencies import get_webhook_service
from netlify_bridge.exceptions.base_exceptions import ValidationError
from netlify_bridge.services.webhook_service import WebhookService

logger = structlog.get_logger()
router = APIRouter(tags=["webhooks"])


@router.post(
    "/webhook",
    summary="Netlify deploy notification",
    description="Forwards deploy building, created and failed events to subscribed channels"
)
async def receive_webhook(
        request: Request,
        webhook_service: Annotated[WebhookService, Depends(get_webhook_service)],
        event_type: Optional[str] = Header(default=None, alias=NETLIFY_EVENT_TYPE_HEADER),
        signature: Optional[str] = Header(default=None, alias=NETLIFY_SIGNATURE_HEADER)
) -> dict:
    """
    Handle a Netlify notification

    Raises:
        ValidationError: If the request is not JSON
    """
    content_type = request.headers.get("content-type", "")
    if content_type.split(";")[0].strip().lower() != "application/json":
        raise ValidationError("Corrupt incoming webhook, Content types don't match")

    body = await request.body()
    delivered = await webhook_service.handle(event_type, body, signature)

    logger.info("Webhook processed", event_type=event_type, delivered=delivered)
    return {"status": "ok", "delivered": delivered}
