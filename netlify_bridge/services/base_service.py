"""
Base Service Class

Common service plumbing: structured logging, error wrapping and access
to a user's Netlify client.
"""

from abc import ABC
from datetime import datetime, timezone
from typing import Optional

import httpx
import structlog

from netlify_bridge.config.settings import Settings
from netlify_bridge.core.mattermost_client import MattermostClient
from netlify_bridge.core.netlify_client import NetlifyClient
from netlify_bridge.repositories.exceptions import RepositoryError
from netlify_bridge.repositories.token_repository import TokenRepository
from netlify_bridge.services.exceptions import (
    ConfigurationError,
    ServiceError,
    UnauthorizedError,
    ValidationError,
)


class BaseService(ABC):
    """Abstract base class for all services"""

    def __init__(self):
        self.logger = structlog.get_logger(self.__class__.__name__)
        self.service_name = self.__class__.__name__

    def log_operation(
            self,
            operation: str,
            user_id: Optional[str] = None,
            **kwargs
    ) -> None:
        """Log service operation with standard fields"""
        log_data = {
            "service": self.service_name,
            "operation": operation,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            **kwargs
        }

        if user_id:
            log_data["user_id"] = user_id

        self.logger.info("Service operation", **log_data)

    def handle_service_error(
            self,
            error: Exception,
            operation: str,
            **context
    ) -> ServiceError:
        """
        Handle and wrap service errors with context

        Args:
            error: Original exception
            operation: Operation that failed
            **context: Additional context

        Returns:
            ServiceError with wrapped exception
        """
        self.logger.error(
            "Service operation failed",
            service=self.service_name,
            operation=operation,
            error_type=type(error).__name__,
            error_message=str(error),
            **context
        )

        if isinstance(error, ServiceError):
            return error

        return ServiceError(
            f"{operation} failed: {str(error)}",
            original_error=error
        )


class NetlifyUserService(BaseService):
    """
    Base for services acting on behalf of a connected Netlify user.

    Replies go through the bot; Netlify calls use the user's stored
    access token.
    """

    def __init__(
            self,
            settings: Settings,
            http_client: httpx.AsyncClient,
            mattermost: MattermostClient,
            token_repository: TokenRepository
    ):
        super().__init__()
        self.settings = settings
        self.http_client = http_client
        self.mattermost = mattermost
        self.token_repository = token_repository

    async def get_netlify_client(self, user_id: str) -> Optional[NetlifyClient]:
        """
        Netlify client for a user

        Returns:
            None if the user has not connected a Netlify account

        Raises:
            UnauthorizedError: If the stored token cannot be read back
        """
        try:
            access_token = await self.token_repository.get_token(user_id)
        except RepositoryError as e:
            self.logger.error("Failed to load access token", user_id=user_id, error=str(e))
            raise UnauthorizedError(str(e), user_id=user_id) from e

        if not access_token:
            return None

        return NetlifyClient(self.http_client, access_token, api_url=self.settings.NETLIFY_API_URL)

    def callback_url(self, path: str) -> str:
        """
        Public URL of one of the service's endpoints

        Raises:
            ConfigurationError: If SERVICE_URL is not configured
        """
        url = self.settings.callback_url(path)
        if url is None:
            raise ConfigurationError("SERVICE_URL is not configured", config_key="SERVICE_URL")
        return url

    @staticmethod
    def require_values(values: list, count: int) -> list:
        """Ensure a dropdown selection carried all expected fields."""
        if len(values) < count or not all(values[:count]):
            raise ValidationError("Selection is missing values", field="selected_option")
        return values[:count]
