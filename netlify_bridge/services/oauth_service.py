"""
OAuth Service

Netlify authorization code flow: signed connect links, anti-CSRF
states, code exchange and token storage.
"""

from pathlib import Path
from typing import Optional
from urllib.parse import urlencode

import httpx

from netlify_bridge.config.constants import (
    DEFAULT_AUTH_REDIRECT_HTML,
    SUCCESSFULLY_NETLIFY_CONNECTED_MESSAGE,
)
from netlify_bridge.config.settings import Settings
from netlify_bridge.core.exceptions import MattermostAPIError, OAuthExchangeError
from netlify_bridge.core.mattermost_client import MattermostClient
from netlify_bridge.core.netlify_client import exchange_authorization_code
from netlify_bridge.repositories.exceptions import RepositoryError
from netlify_bridge.repositories.oauth_state_repository import OAuthStateRepository
from netlify_bridge.repositories.token_repository import TokenRepository
from netlify_bridge.services.base_service import BaseService
from netlify_bridge.services.exceptions import (
    ConfigurationError,
    ExternalServiceError,
    ForbiddenError,
    ServiceError,
    UnauthorizedError,
    ValidationError,
)
from netlify_bridge.utils.encryption import hmac_signature, verify_hmac_signature

COOKIE_VALUE_SEPARATOR = "."


class OAuthService(BaseService):
    """Connects Mattermost users to their Netlify accounts"""

    def __init__(
            self,
            settings: Settings,
            http_client: httpx.AsyncClient,
            mattermost: MattermostClient,
            state_repository: OAuthStateRepository,
            token_repository: TokenRepository
    ):
        super().__init__()
        self.settings = settings
        self.http_client = http_client
        self.mattermost = mattermost
        self.state_repository = state_repository
        self.token_repository = token_repository

    def _service_url(self, path: str) -> str:
        url = self.settings.callback_url(path)
        if url is None:
            raise ConfigurationError("SERVICE_URL is not configured", config_key="SERVICE_URL")
        return url

    @property
    def redirect_uri(self) -> str:
        return self._service_url("/auth/redirect")

    def sign_user(self, user_id: str) -> str:
        return hmac_signature(user_id, self.settings.ACTION_SECRET)

    def connect_url(self, user_id: str) -> str:
        """Link a user follows to start connecting their account."""
        query = urlencode({"user_id": user_id, "signature": self.sign_user(user_id)})
        return f"{self._service_url('/auth/connect')}?{query}"

    def verify_connect_request(self, user_id: Optional[str], signature: Optional[str]) -> str:
        """
        Check a connect link was issued by the bot for this user

        Raises:
            UnauthorizedError: If the link is missing fields or was tampered with
        """
        if not user_id or not verify_hmac_signature(user_id, signature, self.settings.ACTION_SECRET):
            raise UnauthorizedError("Not authorized", user_id=user_id, resource="auth/connect")
        return user_id

    def browser_binding(self, user_id: str) -> str:
        """Cookie value tying the browser to the user starting the flow."""
        return f"{user_id}{COOKIE_VALUE_SEPARATOR}{self.sign_user(user_id)}"

    def bound_user(self, cookie_value: Optional[str]) -> Optional[str]:
        """User ID carried by a valid binding cookie, else None."""
        if not cookie_value:
            return None
        user_id, _, signature = cookie_value.rpartition(COOKIE_VALUE_SEPARATOR)
        if not user_id or not verify_hmac_signature(user_id, signature, self.settings.ACTION_SECRET):
            return None
        return user_id

    async def start_authorization(self, user_id: str) -> str:
        """
        Create a state for the user and build the Netlify authorize URL

        Returns:
            URL to redirect the browser to
        """
        try:
            state = await self.state_repository.create_state(user_id)
        except RepositoryError as e:
            raise self.handle_service_error(e, "start_authorization", user_id=user_id)

        query = urlencode({
            "client_id": self.settings.NETLIFY_OAUTH_CLIENT_ID,
            "response_type": "code",
            "redirect_uri": self.redirect_uri,
            "state": state,
        })

        self.log_operation("start_authorization", user_id=user_id)
        return f"{self.settings.NETLIFY_AUTH_URL}?{query}"

    async def complete_authorization(
            self,
            bound_user_id: Optional[str],
            code: Optional[str],
            state: Optional[str]
    ) -> str:
        """
        Finish the flow started by start_authorization

        Args:
            bound_user_id: User the browser was bound to, if any
            code: Authorization code from Netlify
            state: State echoed back by Netlify

        Returns:
            ID of the user who connected

        Raises:
            UnauthorizedError: Browser not bound, or bound to another user
            ValidationError: State unknown or already used
            ForbiddenError: State empty or not matching the stored one
            ExternalServiceError: Code exchange failed
            ServiceError: Token could not be stored
        """
        if not bound_user_id:
            raise UnauthorizedError("Not authorized", resource="auth/redirect")

        if not state:
            raise ForbiddenError("Cross-site request forgery", resource="auth/redirect")

        try:
            stored_state = await self.state_repository.consume_state(state)
        except RepositoryError as e:
            raise self.handle_service_error(e, "consume_state", user_id=bound_user_id)

        if stored_state is None:
            raise ValidationError("AntiCSRF state not found", field="state")

        if stored_state != state:
            raise ForbiddenError("Cross-site request forgery", resource="auth/redirect")

        if self.state_repository.user_id_from_state(state) != bound_user_id:
            self.logger.warning("OAuth state issued for another user", user_id=bound_user_id)
            raise UnauthorizedError("Incorrect user while authentication", user_id=bound_user_id)

        if not code:
            raise ValidationError("Authorization code is missing", field="code")

        try:
            access_token = await exchange_authorization_code(
                self.http_client,
                token_url=self.settings.NETLIFY_TOKEN_URL,
                client_id=self.settings.NETLIFY_OAUTH_CLIENT_ID,
                client_secret=self.settings.NETLIFY_OAUTH_SECRET,
                code=code,
                redirect_uri=self.redirect_uri,
            )
        except OAuthExchangeError as e:
            raise ExternalServiceError(e.message, service_name="netlify", status_code=e.status_code, original_error=e) from e

        try:
            await self.token_repository.save_token(bound_user_id, access_token)
        except RepositoryError as e:
            self.logger.error("Failed to store access token", user_id=bound_user_id, error=str(e))
            raise ServiceError("Could not store netlify credentials", original_error=e) from e

        try:
            await self.mattermost.send_direct_message(
                bound_user_id, self.settings.command_message(SUCCESSFULLY_NETLIFY_CONNECTED_MESSAGE)
            )
        except MattermostAPIError as e:
            self.logger.warning("Failed to send welcome message", user_id=bound_user_id, error=e.message)

        self.log_operation("complete_authorization", user_id=bound_user_id)
        return bound_user_id

    def redirect_page(self) -> str:
        """HTML shown once the account is connected."""
        path = self.settings.AUTH_REDIRECT_HTML_PATH
        if not path:
            return DEFAULT_AUTH_REDIRECT_HTML

        try:
            return Path(path).read_text(encoding="utf-8")
        except OSError as e:
            self.logger.warning("Failed to read redirect page, using default", path=path, error=str(e))
            return DEFAULT_AUTH_REDIRECT_HTML
