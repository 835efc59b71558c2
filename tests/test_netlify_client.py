"""
Tests for the Netlify API client and OAuth code exchange.
"""

from urllib.parse import parse_qs

import httpx
import pytest

from netlify_bridge.core.exceptions import NetlifyAPIError, OAuthExchangeError
from netlify_bridge.core.netlify_client import NetlifyClient, exchange_authorization_code
from tests.conftest import NETLIFY_API, site_payload

TOKEN_URL = "https://api.netlify.com/oauth/token"


@pytest.fixture
def netlify(http_client):
    return NetlifyClient(http_client, "access-token", NETLIFY_API)


class TestNetlifyClient:
    """Tests for NetlifyClient requests and error handling."""

    async def test_list_sites(self, netlify, transport):
        """Should parse sites and authenticate with the user token."""
        transport.add_json("GET", f"{NETLIFY_API}/sites", [site_payload(), site_payload("site-2", "blog")])

        sites = await netlify.list_sites()

        assert [site.name for site in sites] == ["docs", "blog"]
        assert sites[0].repo_branch == "main"
        assert transport.requests[0].headers["Authorization"] == "Bearer access-token"

    async def test_current_account(self, netlify, transport):
        """Should return the first account."""
        transport.add_json("GET", f"{NETLIFY_API}/accounts", [{"id": "acc-1", "name": "Jane"}, {"id": "acc-2"}])

        account = await netlify.get_current_account()

        assert account.id == "acc-1"

    async def test_no_account(self, netlify, transport):
        """Should fail when the token has no account."""
        transport.add_json("GET", f"{NETLIFY_API}/accounts", [])

        with pytest.raises(NetlifyAPIError):
            await netlify.get_current_account()

    async def test_error_message_from_body(self, netlify, transport):
        """Should surface Netlify's error message."""
        transport.add_json("GET", f"{NETLIFY_API}/sites/missing", {"code": 404, "message": "Not Found"}, status_code=404)

        with pytest.raises(NetlifyAPIError) as exc_info:
            await netlify.get_site("missing")

        assert exc_info.value.message == "Not Found"
        assert exc_info.value.status_code == 404
        assert exc_info.value.operation == "get_site"

    async def test_error_without_body(self, netlify, transport):
        """Should fall back to the status line."""
        transport.add("GET", f"{NETLIFY_API}/sites", httpx.Response(500, content=b""))

        with pytest.raises(NetlifyAPIError) as exc_info:
            await netlify.list_sites()

        assert exc_info.value.message == "[500] Internal Server Error"

    async def test_transport_failure(self, netlify, transport):
        """Should wrap connection failures."""
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        transport.add("GET", f"{NETLIFY_API}/sites", refuse)

        with pytest.raises(NetlifyAPIError) as exc_info:
            await netlify.list_sites()

        assert "connection refused" in exc_info.value.message

    async def test_unexpected_shape(self, netlify, transport):
        """Should reject a non-list payload where a list is expected."""
        transport.add_json("GET", f"{NETLIFY_API}/sites", {"id": "site-1"})

        with pytest.raises(NetlifyAPIError):
            await netlify.list_sites()

    async def test_create_build_hook(self, netlify, transport):
        """Should post the title and branch."""
        transport.add_json(
            "POST",
            f"{NETLIFY_API}/sites/site-1/build_hooks",
            {"id": "bh-1", "title": "Mattermost Netlify Bridge", "branch": "main", "url": "https://api.netlify.com/build_hooks/bh-1"},
            status_code=201,
        )

        hook = await netlify.create_build_hook("site-1", "Mattermost Netlify Bridge", "main")

        assert hook.url == "https://api.netlify.com/build_hooks/bh-1"
        assert transport.json_body(transport.requests[0]) == {"title": "Mattermost Netlify Bridge", "branch": "main"}

    async def test_trigger_build_hook(self, netlify, transport):
        """Should trigger without the user token and pass the branch."""
        hook_url = "https://api.netlify.com/build_hooks/bh-1"
        transport.add("POST", hook_url, httpx.Response(200, content=b""))

        await netlify.trigger_build_hook(hook_url, "main")

        request = transport.requests[0]
        assert "Authorization" not in request.headers
        assert request.url.params["trigger_branch"] == "main"
        assert request.url.params["trigger_title"] == "Deploy triggered from Mattermost"

    async def test_trigger_without_branch(self, netlify, transport):
        """Should leave out an unknown branch."""
        hook_url = "https://api.netlify.com/build_hooks/bh-1"
        transport.add("POST", hook_url, httpx.Response(200, content=b""))

        await netlify.trigger_build_hook(hook_url, None)

        assert "trigger_branch" not in transport.requests[0].url.params

    async def test_restore_deploy(self, netlify, transport):
        """Should post to the restore endpoint."""
        url = f"{NETLIFY_API}/sites/site-1/deploys/dep-1/restore"
        transport.add_json("POST", url, {"id": "dep-1"})

        await netlify.restore_deploy("site-1", "dep-1")

        assert len(transport.sent("POST", url)) == 1

    async def test_create_hook(self, netlify, transport):
        """Should create a signed URL notification for the site."""
        transport.add_json(
            "POST",
            f"{NETLIFY_API}/hooks",
            {"id": "h-1", "site_id": "site-1", "type": "url", "event": "deploy_created", "data": {"url": "https://x"}},
            status_code=201,
        )

        hook = await netlify.create_hook("site-1", "deploy_created", "https://x", signature_secret="s3cret")

        request = transport.requests[0]
        assert request.url.params["site_id"] == "site-1"
        assert transport.json_body(request) == {
            "site_id": "site-1",
            "type": "url",
            "event": "deploy_created",
            "data": {"url": "https://x", "signature_secret": "s3cret"},
        }
        assert hook.url == "https://x"

    async def test_list_hooks(self, netlify, transport):
        """Should filter hooks by site."""
        transport.add_json("GET", f"{NETLIFY_API}/hooks", [{"id": "h-1", "event": "deploy_failed", "data": {"url": "u"}}])

        hooks = await netlify.list_hooks("site-1")

        assert hooks[0].event == "deploy_failed"
        assert transport.requests[0].url.params["site_id"] == "site-1"

    async def test_delete_hook(self, netlify, transport):
        """Should accept an empty 204 response."""
        transport.add("DELETE", f"{NETLIFY_API}/hooks/h-1", httpx.Response(204))

        assert await netlify.delete_hook("h-1") is None


class TestExchangeAuthorizationCode:
    """Tests for the OAuth code exchange."""

    async def test_returns_access_token(self, http_client, transport):
        """Should post the code as a form and return the token."""
        transport.add_json("POST", TOKEN_URL, {"access_token": "new-token", "token_type": "Bearer"})

        token = await exchange_authorization_code(
            http_client, TOKEN_URL, "client-id", "client-secret", "the-code", "https://bridge.example.com/auth/redirect"
        )

        assert token == "new-token"
        form = parse_qs(transport.requests[0].content.decode())
        assert form["grant_type"] == ["authorization_code"]
        assert form["code"] == ["the-code"]
        assert form["redirect_uri"] == ["https://bridge.example.com/auth/redirect"]

    async def test_rejected_code(self, http_client, transport):
        """Should raise with Netlify's description."""
        transport.add_json(
            "POST", TOKEN_URL, {"error": "invalid_grant", "error_description": "Code expired"}, status_code=400
        )

        with pytest.raises(OAuthExchangeError) as exc_info:
            await exchange_authorization_code(http_client, TOKEN_URL, "id", "secret", "code", "uri")

        assert exc_info.value.message == "Code expired"

    async def test_missing_token(self, http_client, transport):
        """Should raise when no token is returned."""
        transport.add_json("POST", TOKEN_URL, {"token_type": "Bearer"})

        with pytest.raises(OAuthExchangeError):
            await exchange_authorization_code(http_client, TOKEN_URL, "id", "secret", "code", "uri")
