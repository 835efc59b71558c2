"""
Service layer for Netlify Bridge.
"""

from .exceptions import (
    ServiceError,
    ValidationError,
    UnauthorizedError,
    ForbiddenError,
    NotFoundError,
    ExternalServiceError,
    ConfigurationError,
)
from .base_service import BaseService, NetlifyUserService
from .deploy_service import DeployService
from .oauth_service import OAuthService
from .command_service import CommandService
from .action_service import ActionService
from .webhook_service import WebhookService

__all__ = [
    "ServiceError",
    "ValidationError",
    "UnauthorizedError",
    "ForbiddenError",
    "NotFoundError",
    "ExternalServiceError",
    "ConfigurationError",
    "BaseService",
    "NetlifyUserService",
    "DeployService",
    "OAuthService",
    "CommandService",
    "ActionService",
    "WebhookService",
]
