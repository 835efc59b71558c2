"""
Dependency injection for services and repositories

Provides FastAPI dependency providers for the shared HTTP client, the
Redis connection, repositories and services.
"""

from functools import lru_cache
from typing import Annotated, Optional

import httpx
from fastapi import Depends, Request
from redis.asyncio import Redis

from netlify_bridge.config.settings import Settings, get_settings
from netlify_bridge.core.mattermost_client import MattermostClient
from netlify_bridge.database.redis_client import get_redis
from netlify_bridge.repositories.oauth_state_repository import OAuthStateRepository
from netlify_bridge.repositories.subscription_repository import SubscriptionRepository
from netlify_bridge.repositories.token_repository import TokenRepository
from netlify_bridge.services.action_service import ActionService
from netlify_bridge.services.command_service import CommandService
from netlify_bridge.services.oauth_service import OAuthService
from netlify_bridge.services.webhook_service import WebhookService
from netlify_bridge.utils.encryption import TokenCipher


# =============================================================================
# Infrastructure
# =============================================================================

def get_app_settings() -> Settings:
    return get_settings()


def get_http_client(request: Request) -> httpx.AsyncClient:
    """Outbound HTTP client shared by the application."""
    return request.app.state.http_client


def get_mattermost_client(
        request: Request,
        http_client: Annotated[httpx.AsyncClient, Depends(get_http_client)],
        settings: Annotated[Settings, Depends(get_app_settings)]
) -> MattermostClient:
    """
    Bot client, kept on the application so the bot user lookup
    happens once.
    """
    client = getattr(request.app.state, "mattermost_client", None)
    if client is None:
        client = MattermostClient(http_client, settings.MATTERMOST_URL, settings.MATTERMOST_BOT_TOKEN)
        request.app.state.mattermost_client = client
    return client


async def get_redis_client() -> Redis:
    return await get_redis()


@lru_cache(maxsize=4)
def get_token_cipher(encryption_key: str) -> TokenCipher:
    """Cipher for a key; key derivation is slow so instances are reused."""
    return TokenCipher(encryption_key)


# =============================================================================
# Repositories
# =============================================================================

def get_token_repository(
        redis: Annotated[Redis, Depends(get_redis_client)],
        settings: Annotated[Settings, Depends(get_app_settings)]
) -> TokenRepository:
    cipher: Optional[TokenCipher] = None
    if settings.ENCRYPT_TOKENS:
        cipher = get_token_cipher(settings.ENCRYPTION_KEY)
    return TokenRepository(redis, cipher=cipher, key_prefix=settings.KV_KEY_PREFIX)


def get_oauth_state_repository(
        redis: Annotated[Redis, Depends(get_redis_client)],
        settings: Annotated[Settings, Depends(get_app_settings)]
) -> OAuthStateRepository:
    return OAuthStateRepository(redis, ttl_seconds=settings.OAUTH_STATE_TTL_SECONDS, key_prefix=settings.KV_KEY_PREFIX)


def get_subscription_repository(
        redis: Annotated[Redis, Depends(get_redis_client)],
        settings: Annotated[Settings, Depends(get_app_settings)]
) -> SubscriptionRepository:
    return SubscriptionRepository(redis, key_prefix=settings.KV_KEY_PREFIX)


# =============================================================================
# Services
# =============================================================================

def get_oauth_service(
        settings: Annotated[Settings, Depends(get_app_settings)],
        http_client: Annotated[httpx.AsyncClient, Depends(get_http_client)],
        mattermost: Annotated[MattermostClient, Depends(get_mattermost_client)],
        state_repository: Annotated[OAuthStateRepository, Depends(get_oauth_state_repository)],
        token_repository: Annotated[TokenRepository, Depends(get_token_repository)]
) -> OAuthService:
    return OAuthService(settings, http_client, mattermost, state_repository, token_repository)


def get_command_service(
        settings: Annotated[Settings, Depends(get_app_settings)],
        http_client: Annotated[httpx.AsyncClient, Depends(get_http_client)],
        mattermost: Annotated[MattermostClient, Depends(get_mattermost_client)],
        token_repository: Annotated[TokenRepository, Depends(get_token_repository)],
        subscription_repository: Annotated[SubscriptionRepository, Depends(get_subscription_repository)],
        oauth_service: Annotated[OAuthService, Depends(get_oauth_service)]
) -> CommandService:
    return CommandService(settings, http_client, mattermost, token_repository, subscription_repository, oauth_service)


def get_action_service(
        settings: Annotated[Settings, Depends(get_app_settings)],
        http_client: Annotated[httpx.AsyncClient, Depends(get_http_client)],
        mattermost: Annotated[MattermostClient, Depends(get_mattermost_client)],
        token_repository: Annotated[TokenRepository, Depends(get_token_repository)],
        subscription_repository: Annotated[SubscriptionRepository, Depends(get_subscription_repository)]
) -> ActionService:
    return ActionService(settings, http_client, mattermost, token_repository, subscription_repository)


def get_webhook_service(
        settings: Annotated[Settings, Depends(get_app_settings)],
        mattermost: Annotated[MattermostClient, Depends(get_mattermost_client)],
        subscription_repository: Annotated[SubscriptionRepository, Depends(get_subscription_repository)]
) -> WebhookService:
    return WebhookService(settings, mattermost, subscription_repository)
