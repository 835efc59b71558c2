"""
Data models for the Netlify Bridge.

Mattermost request/post payloads and Netlify API resources.
"""

from netlify_bridge.models.mattermost import (
    SlashCommandRequest,
    PostAction,
    PostActionOptions,
    PostActionIntegration,
    PostActionIntegrationRequest,
    PostActionIntegrationResponse,
    PostUpdate,
    SlackAttachment,
    attachments_props,
)
from netlify_bridge.models.netlify import (
    Account,
    Build,
    BuildHook,
    BuildSettings,
    Hook,
    Site,
    WebhookEvent,
)

__all__ = [
    "SlashCommandRequest",
    "PostAction",
    "PostActionOptions",
    "PostActionIntegration",
    "PostActionIntegrationRequest",
    "PostActionIntegrationResponse",
    "PostUpdate",
    "SlackAttachment",
    "attachments_props",
    "Account",
    "Build",
    "BuildHook",
    "BuildSettings",
    "Hook",
    "Site",
    "WebhookEvent",
]
