"""
Netlify API client.

Thin async adapter over the Netlify REST API, issuing calls on behalf of
one connected user, plus the OAuth authorization code exchange.
"""

from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from netlify_bridge.config.constants import (
    MATTERMOST_NETLIFY_BUILD_HOOK_MESSAGE,
    NETLIFY_API_URL,
    NETLIFY_HOOK_TYPE_URL,
    SERVICE_NAME,
    SERVICE_VERSION,
)
from netlify_bridge.core.exceptions import NetlifyAPIError, OAuthExchangeError
from netlify_bridge.models.netlify import Account, Build, BuildHook, Hook, Site
from netlify_bridge.utils.metrics import record_netlify_request

logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

USER_AGENT = f"{SERVICE_NAME}/{SERVICE_VERSION}"


def _error_message(response: httpx.Response) -> str:
    """Best effort human readable error from a Netlify error response."""
    try:
        data = response.json()
    except ValueError:
        data = None

    if isinstance(data, dict):
        for key in ("message", "error_description", "error"):
            if isinstance(data.get(key), str) and data[key]:
                return data[key]

    return f"[{response.status_code}] {response.reason_phrase or 'Netlify request failed'}"


class NetlifyClient:
    """
    Netlify REST API client for a single access token.

    Every method raises NetlifyAPIError when the request cannot be sent,
    Netlify answers with an error status, or the payload has an
    unexpected shape.
    """

    def __init__(
            self,
            http_client: httpx.AsyncClient,
            access_token: str,
            api_url: str = NETLIFY_API_URL
    ):
        self.http_client = http_client
        self.access_token = access_token
        self.api_url = api_url.rstrip("/")
        self.logger = logger.bind(client="netlify")

    def _headers(self, authenticated: bool = True) -> Dict[str, str]:
        headers = {"User-Agent": USER_AGENT}
        if authenticated:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    async def _request(
            self,
            operation: str,
            method: str,
            url: str,
            params: Optional[Dict[str, Any]] = None,
            json: Optional[Any] = None,
            authenticated: bool = True
    ) -> Any:
        try:
            response = await self.http_client.request(
                method,
                url,
                params=params,
                json=json,
                headers=self._headers(authenticated),
            )
        except httpx.HTTPError as e:
            record_netlify_request(operation, "error")
            self.logger.error(
                "Netlify request failed",
                operation=operation,
                error=str(e),
                error_type=type(e).__name__
            )
            raise NetlifyAPIError(operation, f"Request to Netlify failed: {e}") from e

        record_netlify_request(operation, str(response.status_code))

        if response.is_error:
            message = _error_message(response)
            self.logger.warning(
                "Netlify API returned an error",
                operation=operation,
                status_code=response.status_code,
                error_message=message
            )
            raise NetlifyAPIError(
                operation,
                message,
                status_code=response.status_code,
                response_body=response.text
            )

        self.logger.debug("Netlify request succeeded", operation=operation, status_code=response.status_code)

        if not response.content:
            return None

        try:
            return response.json()
        except ValueError:
            return None

    def _url(self, path: str) -> str:
        return f"{self.api_url}{path}"

    @staticmethod
    def _parse(operation: str, model: Type[ModelT], payload: Any) -> ModelT:
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            raise NetlifyAPIError(operation, f"Unexpected response from Netlify: {e.error_count()} invalid fields") from e

    def _parse_list(self, operation: str, model: Type[ModelT], payload: Any) -> List[ModelT]:
        if payload is None:
            return []
        if not isinstance(payload, list):
            raise NetlifyAPIError(operation, "Unexpected response from Netlify: expected a list")
        return [self._parse(operation, model, item) for item in payload]

    async def get_current_account(self) -> Account:
        """The account the access token belongs to."""
        operation = "list_accounts"
        accounts = self._parse_list(operation, Account, await self._request(operation, "GET", self._url("/accounts")))
        if not accounts:
            raise NetlifyAPIError(operation, "No Netlify account is associated with this token")
        return accounts[0]

    async def list_sites(self) -> List[Site]:
        operation = "list_sites"
        return self._parse_list(operation, Site, await self._request(operation, "GET", self._url("/sites")))

    async def get_site(self, site_id: str) -> Site:
        operation = "get_site"
        return self._parse(operation, Site, await self._request(operation, "GET", self._url(f"/sites/{site_id}")))

    async def list_build_hooks(self, site_id: str) -> List[BuildHook]:
        operation = "list_site_build_hooks"
        payload = await self._request(operation, "GET", self._url(f"/sites/{site_id}/build_hooks"))
        return self._parse_list(operation, BuildHook, payload)

    async def create_build_hook(self, site_id: str, title: str, branch: Optional[str]) -> BuildHook:
        operation = "create_site_build_hook"
        payload = await self._request(
            operation,
            "POST",
            self._url(f"/sites/{site_id}/build_hooks"),
            json={"title": title, "branch": branch},
        )
        return self._parse(operation, BuildHook, payload)

    async def trigger_build_hook(
            self,
            hook_url: str,
            branch: Optional[str],
            title: str = MATTERMOST_NETLIFY_BUILD_HOOK_MESSAGE
    ) -> None:
        """
        Ask Netlify to start a build through a build hook.

        Build hook URLs carry their own secret, so no token is sent.
        """
        params = {"trigger_title": title}
        if branch:
            params["trigger_branch"] = branch

        await self._request("trigger_build_hook", "POST", hook_url, params=params, authenticated=False)

    async def list_builds(self, site_id: str) -> List[Build]:
        """Builds of a site, most recent first."""
        operation = "list_site_builds"
        return self._parse_list(operation, Build, await self._request(operation, "GET", self._url(f"/sites/{site_id}/builds")))

    async def restore_deploy(self, site_id: str, deploy_id: str) -> None:
        """Publish a previous deploy of a site again."""
        await self._request(
            "restore_site_deploy",
            "POST",
            self._url(f"/sites/{site_id}/deploys/{deploy_id}/restore"),
        )

    async def list_hooks(self, site_id: str) -> List[Hook]:
        operation = "list_hooks_by_site_id"
        payload = await self._request(operation, "GET", self._url("/hooks"), params={"site_id": site_id})
        return self._parse_list(operation, Hook, payload)

    async def create_hook(
            self,
            site_id: str,
            event: str,
            url: str,
            signature_secret: Optional[str] = None
    ) -> Hook:
        """
        Create an outgoing URL notification for a site event.

        Args:
            site_id: Site to watch
            event: Netlify event name, e.g. "deploy_created"
            url: Where Netlify posts the notification
            signature_secret: Secret Netlify signs notifications with

        Returns:
            The created hook
        """
        operation = "create_hook_by_site_id"
        data: Dict[str, Any] = {"url": url}
        if signature_secret:
            data["signature_secret"] = signature_secret

        payload = await self._request(
            operation,
            "POST",
            self._url("/hooks"),
            params={"site_id": site_id},
            json={"site_id": site_id, "type": NETLIFY_HOOK_TYPE_URL, "event": event, "data": data},
        )
        return self._parse(operation, Hook, payload)

    async def delete_hook(self, hook_id: str) -> None:
        await self._request("delete_hook", "DELETE", self._url(f"/hooks/{hook_id}"))


async def exchange_authorization_code(
        http_client: httpx.AsyncClient,
        token_url: str,
        client_id: str,
        client_secret: str,
        code: str,
        redirect_uri: str
) -> str:
    """
    Exchange an OAuth authorization code for an access token.

    Raises:
        OAuthExchangeError: If Netlify refuses the code or the response
            carries no access token
    """
    form = {
        "grant_type": "authorization_code",
        "code": code,
        "client_id": client_id,
        "client_secret": client_secret,
        "redirect_uri": redirect_uri,
    }

    try:
        response = await http_client.post(
            token_url,
            data=form,
            headers={"Accept": "application/json", "User-Agent": USER_AGENT},
        )
    except httpx.HTTPError as e:
        record_netlify_request("oauth_token_exchange", "error")
        logger.error("OAuth token exchange failed", error=str(e), error_type=type(e).__name__)
        raise OAuthExchangeError(f"Token request failed: {e}") from e

    record_netlify_request("oauth_token_exchange", str(response.status_code))

    if response.is_error:
        message = _error_message(response)
        logger.warning("OAuth token exchange rejected", status_code=response.status_code, error_message=message)
        raise OAuthExchangeError(message, status_code=response.status_code, response_body=response.text)

    try:
        payload = response.json()
    except ValueError as e:
        raise OAuthExchangeError("Token response is not valid JSON", status_code=response.status_code) from e

    access_token = payload.get("access_token") if isinstance(payload, dict) else None
    if not access_token:
        raise OAuthExchangeError("Token response carries no access token", status_code=response.status_code)

    return access_token
