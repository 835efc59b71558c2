"""
Tests for interactive message callbacks.
"""

import httpx
import pytest

from netlify_bridge.config.constants import (
    AUTHENTICATION_FAILED_MESSAGE,
    EMPTY_SELECTION_MESSAGE,
    NOT_CONNECTED_MESSAGE,
    CallbackRoute,
)
from netlify_bridge.core.exceptions import MattermostAPIError
from netlify_bridge.models.mattermost import PostActionIntegrationRequest
from netlify_bridge.services.action_service import (
    DISCONNECT_CANCELLED_MESSAGE,
    DISCONNECTED_MESSAGE,
    ActionService,
)
from netlify_bridge.services.exceptions import UnauthorizedError, ValidationError
from tests.conftest import ACTION_SECRET, CHANNEL_ID, NETLIFY_API, SERVICE_URL, USER_ID, make_settings

WEBHOOK_URL = f"{SERVICE_URL}/webhook"


@pytest.fixture
def service(settings, http_client, mattermost, token_repository, subscription_repository):
    return ActionService(settings, http_client, mattermost, token_repository, subscription_repository)


def callback(selected: str = "", secret: str = ACTION_SECRET, **context) -> PostActionIntegrationRequest:
    payload = {"actionSecret": secret, **context}
    if selected:
        payload["selected_option"] = selected
    return PostActionIntegrationRequest(
        user_id=USER_ID,
        channel_id=CHANNEL_ID,
        channel_name="town-square",
        context=payload,
    )


def message_of(response) -> str:
    return response.update.message


# ============================================================================
# Common Checks
# ============================================================================


class TestCallbackChecks:
    """Checks applied to every callback."""

    async def test_missing_user(self, service):
        """Should reject callbacks without a user."""
        with pytest.raises(UnauthorizedError):
            await service.handle(CallbackRoute.DEPLOY, PostActionIntegrationRequest(context={"actionSecret": ACTION_SECRET}))

    @pytest.mark.parametrize("route", list(CallbackRoute))
    async def test_wrong_secret(self, service, route):
        """Should refuse callbacks carrying the wrong secret."""
        response = await service.handle(route, callback("site-1 docs main", secret="forged", action="disconnect"))

        assert message_of(response) == AUTHENTICATION_FAILED_MESSAGE

    async def test_missing_secret(self, service, connected_user, fake_redis):
        """Should not disconnect without a secret."""
        request = PostActionIntegrationRequest(user_id=USER_ID, channel_id=CHANNEL_ID, context={"action": "disconnect"})

        response = await service.handle(CallbackRoute.DISCONNECT, request)

        assert message_of(response) == AUTHENTICATION_FAILED_MESSAGE
        assert f"{USER_ID}_netlifyToken" in fake_redis.store

    async def test_empty_selection(self, service, connected_user):
        """Should reject incomplete dropdown values."""
        response = await service.handle(CallbackRoute.ROLLBACK, callback("site-1 docs"))

        assert message_of(response) == EMPTY_SELECTION_MESSAGE

    async def test_not_connected(self, service):
        """Should ask the user to connect first."""
        response = await service.handle(CallbackRoute.DEPLOY, callback("site-1 docs main"))

        assert message_of(response) == NOT_CONNECTED_MESSAGE.format(command="/netlify")

    async def test_mattermost_failure(self, service, connected_user, mattermost, transport):
        """Should report posting failures in the response."""
        transport.add_json("POST", f"{NETLIFY_API}/sites/site-1/deploys/d1/restore", {})
        mattermost.create_post.side_effect = MattermostAPIError("create_post", "channel archived", 400)

        response = await service.handle(CallbackRoute.ROLLBACK, callback("site-1 docs d1"))

        assert message_of(response) == ":exclamation: Failed to post to Mattermost\n*Error : channel archived*"


# ============================================================================
# Disconnect Tests
# ============================================================================


class TestDisconnect:
    """Tests for the disconnect confirmation."""

    async def test_disconnect(self, service, connected_user, token_repository):
        """Should forget the user's token."""
        response = await service.handle(CallbackRoute.DISCONNECT, callback(action="disconnect"))

        assert message_of(response) == DISCONNECTED_MESSAGE.format(command="/netlify")
        assert await token_repository.get_token(USER_ID) is None

    async def test_disconnect_names_trigger(
            self, http_client, mattermost, token_repository, subscription_repository, connected_user
    ):
        """Should tell the user how to reconnect with the configured trigger."""
        service = ActionService(
            make_settings(COMMAND_TRIGGER="deploybot"), http_client, mattermost,
            token_repository, subscription_repository
        )

        response = await service.handle(CallbackRoute.DISCONNECT, callback(action="disconnect"))

        assert message_of(response).endswith("just run `/deploybot connect`")

    async def test_cancel(self, service, connected_user, token_repository):
        """Should keep the token."""
        response = await service.handle(CallbackRoute.DISCONNECT, callback(action="cancel"))

        assert message_of(response) == DISCONNECT_CANCELLED_MESSAGE
        assert await token_repository.get_token(USER_ID) == "netlify-access-token"

    async def test_unknown_action(self, service, connected_user):
        """Should reject unknown actions."""
        with pytest.raises(ValidationError):
            await service.handle(CallbackRoute.DISCONNECT, callback(action="explode"))


# ============================================================================
# Deploy And Rollback Tests
# ============================================================================


class TestDeployAndRollback:
    """Tests for deploy and rollback callbacks."""

    @pytest.fixture(autouse=True)
    async def _connected(self, connected_user):
        return connected_user

    async def test_deploy(self, service, mattermost, transport):
        """Should trigger the build hook and announce it."""
        hook_url = "https://api.netlify.com/build_hooks/bh-1"
        transport.add_json(
            "GET", f"{NETLIFY_API}/sites/site-1/build_hooks",
            [{"id": "bh-1", "title": "Mattermost Netlify Bridge", "url": hook_url}],
        )
        transport.add_json("POST", hook_url, {})

        response = await service.handle(CallbackRoute.DEPLOY, callback("site-1 docs main"))

        assert message_of(response).endswith("If you have configured notifications, you should be seeing one soon.")
        assert mattermost.create_post.call_args.args[0] == CHANNEL_ID
        assert transport.sent("POST", hook_url)[0].url.params["trigger_branch"] == "main"

    async def test_deploy_without_branch(self, service, mattermost, transport):
        """Should deploy sites that have no branch without naming one."""
        hook_url = "https://api.netlify.com/build_hooks/bh-1"
        transport.add_json(
            "GET", f"{NETLIFY_API}/sites/site-1/build_hooks",
            [{"id": "bh-1", "title": "Mattermost Netlify Bridge", "url": hook_url}],
        )
        transport.add_json("POST", hook_url, {})

        response = await service.handle(CallbackRoute.DEPLOY, callback("site-1 docs"))

        assert "trigger_branch" not in transport.sent("POST", hook_url)[0].url.params
        assert mattermost.create_post.call_args.args[1] == (
            ":satellite: Mattermost Netlify Bot has successfully asked Netlify to deploy **docs** site."
        )
        assert "None" not in message_of(response)

    async def test_deploy_failure(self, service, mattermost, transport):
        """Should show the failing step instead of announcing."""
        transport.add_json("GET", f"{NETLIFY_API}/sites/site-1/build_hooks", [])
        transport.add_json(
            "POST", f"{NETLIFY_API}/sites/site-1/build_hooks", {"message": "Forbidden"}, status_code=403
        )

        response = await service.handle(CallbackRoute.DEPLOY, callback("site-1 docs main"))

        assert message_of(response) == (
            ":exclamation: Failed to create a deploy hook for **docs** site.\n*Error : Forbidden*"
        )
        mattermost.create_post.assert_not_called()

    async def test_rollback_builds(self, service, mattermost, transport):
        """Should post the deploy table and offer a rollback dropdown."""
        transport.add_json(
            "GET", f"{NETLIFY_API}/sites/site-1/builds",
            [
                {"id": "b0", "deploy_id": "d0", "done": True, "error": "failed"},
                {"id": "b1", "deploy_id": "d1", "done": True, "sha": "abc"},
            ],
        )

        response = await service.handle(CallbackRoute.ROLLBACK_BUILDS, callback("site-1 docs"))

        assert message_of(response) == ":one: Fetching list of 5 most recent deploys of **docs** site."
        assert "| 1 | abc |" in mattermost.create_post.call_args.args[1]
        attachment = mattermost.send_ephemeral_post.call_args.kwargs["attachments"][0]
        dropdown = attachment.actions[0]
        assert dropdown.integration.url == f"{SERVICE_URL}/command/rollback"
        assert [option.value for option in dropdown.options] == ["site-1 docs d1"]

    async def test_rollback_builds_none_valid(self, service, mattermost, transport):
        """Should say when nothing can be rolled back to."""
        transport.add_json("GET", f"{NETLIFY_API}/sites/site-1/builds", [{"deploy_id": "d0", "done": False}])

        response = await service.handle(CallbackRoute.ROLLBACK_BUILDS, callback("site-1 docs"))

        assert message_of(response) == ":white_flag: There are no valid deploys with **docs** site."
        mattermost.create_post.assert_not_called()

    async def test_rollback(self, service, mattermost, transport):
        """Should restore the deploy and announce it."""
        url = f"{NETLIFY_API}/sites/site-1/deploys/d1/restore"
        transport.add_json("POST", url, {"id": "d1"})

        response = await service.handle(CallbackRoute.ROLLBACK, callback("site-1 docs d1"))

        assert message_of(response) == ":two: Rolling back docs site to d1 deploy id state"
        assert len(transport.sent("POST", url)) == 1
        assert mattermost.create_post.call_args.args[1].startswith(":satellite:")

    async def test_rollback_failure(self, service, transport):
        """Should report Netlify refusing the restore."""
        transport.add_json(
            "POST", f"{NETLIFY_API}/sites/site-1/deploys/d1/restore", {"message": "Deploy not found"}, status_code=404
        )

        response = await service.handle(CallbackRoute.ROLLBACK, callback("site-1 docs d1"))

        assert message_of(response) == (
            ":exclamation: Failed to rollback **docs** site to deploy d1.\n*Error : Deploy not found*"
        )


# ============================================================================
# Subscription Tests
# ============================================================================


class TestSubscriptions:
    """Tests for subscribe and unsubscribe callbacks."""

    @pytest.fixture(autouse=True)
    async def _connected(self, connected_user):
        return connected_user

    async def test_subscribe_creates_hooks(self, service, transport, subscription_repository):
        """Should create a hook per event and subscribe the channel."""
        transport.add_json("GET", f"{NETLIFY_API}/hooks", [])
        transport.add_json("POST", f"{NETLIFY_API}/hooks", {"id": "h"}, status_code=201)

        response = await service.handle(CallbackRoute.SUBSCRIBE, callback("site-1 docs"))

        created = transport.sent("POST", f"{NETLIFY_API}/hooks")
        assert [transport.json_body(request)["event"] for request in created] == [
            "deploy_building", "deploy_created", "deploy_failed"
        ]
        assert all(transport.json_body(request)["data"]["url"] == WEBHOOK_URL for request in created)
        assert await subscription_repository.get_channels("site-1") == [CHANNEL_ID]
        assert message_of(response).endswith(
            ":star2: Successfully subscribed **town-square** for build notifications from **docs** site."
        )
        assert message_of(response).count(":fishing_pole_and_fish:") == 3

    async def test_subscribe_signs_hooks(
            self, http_client, mattermost, token_repository, subscription_repository, transport
    ):
        """Should hand the webhook secret to Netlify."""
        service = ActionService(
            make_settings(WEBHOOK_SECRET="hook-secret"), http_client, mattermost, token_repository, subscription_repository
        )
        transport.add_json("GET", f"{NETLIFY_API}/hooks", [])
        transport.add_json("POST", f"{NETLIFY_API}/hooks", {"id": "h"}, status_code=201)

        await service.handle(CallbackRoute.SUBSCRIBE, callback("site-1 docs"))

        body = transport.json_body(transport.sent("POST", f"{NETLIFY_API}/hooks")[0])
        assert body["data"]["signature_secret"] == "hook-secret"

    async def test_subscribe_reuses_hooks(self, service, transport, subscription_repository):
        """Should not duplicate hooks that already exist."""
        transport.add_json(
            "GET", f"{NETLIFY_API}/hooks",
            [{"id": f"h{i}", "event": event, "data": {"url": WEBHOOK_URL}}
             for i, event in enumerate(["deploy_building", "deploy_created", "deploy_failed"])],
        )

        response = await service.handle(CallbackRoute.SUBSCRIBE, callback("site-1 docs"))

        assert transport.sent("POST", f"{NETLIFY_API}/hooks") == []
        assert message_of(response).startswith(":star2:")
        assert await subscription_repository.get_channels("site-1") == [CHANNEL_ID]

    async def test_subscribe_partial_failure(self, service, transport, subscription_repository):
        """Should report a partial failure and not subscribe."""
        responses = iter([201, 500])

        def create(request):
            status = next(responses)
            return httpx.Response(status, json={"id": "h"} if status == 201 else {"message": "boom"})

        transport.add_json("GET", f"{NETLIFY_API}/hooks", [])
        transport.add("POST", f"{NETLIFY_API}/hooks", create)

        response = await service.handle(CallbackRoute.SUBSCRIBE, callback("site-1 docs"))

        assert message_of(response).startswith(":grey_exclamation: Failed partially")
        assert await subscription_repository.get_channels("site-1") == []

    async def test_subscribe_first_hook_fails(self, service, transport):
        """Should name the event that could not be created."""
        transport.add_json("GET", f"{NETLIFY_API}/hooks", [])
        transport.add_json("POST", f"{NETLIFY_API}/hooks", {"message": "boom"}, status_code=422)

        response = await service.handle(CallbackRoute.SUBSCRIBE, callback("site-1 docs"))

        assert message_of(response).startswith(
            ":exclamation: Failed to create build notification of type `deploy_building` for **docs** site."
        )

    async def test_subscribe_without_service_url(
            self, http_client, mattermost, token_repository, subscription_repository
    ):
        """Should not create hooks without a public URL."""
        service = ActionService(
            make_settings(SERVICE_URL=None), http_client, mattermost, token_repository, subscription_repository
        )

        response = await service.handle(CallbackRoute.SUBSCRIBE, callback("site-1 docs"))

        assert message_of(response) == ":exclamation: Error! Site URL is not defined in the App"

    async def test_unsubscribe_keeps_hooks_for_others(self, service, transport, subscription_repository):
        """Should leave Netlify hooks while other channels follow the site."""
        await subscription_repository.add_channel("site-1", CHANNEL_ID)
        await subscription_repository.add_channel("site-1", "other-channel")

        response = await service.handle(CallbackRoute.UNSUBSCRIBE, callback("site-1 docs"))

        assert message_of(response) == (
            ":wave: **town-square** will no longer receive build notifications from **docs** site."
        )
        assert await subscription_repository.get_channels("site-1") == ["other-channel"]
        assert transport.requests == []

    async def test_unsubscribe_last_channel(self, service, transport, subscription_repository):
        """Should remove the bridge's hooks once nobody follows the site."""
        await subscription_repository.add_channel("site-1", CHANNEL_ID)
        transport.add_json(
            "GET", f"{NETLIFY_API}/hooks",
            [
                {"id": "mine", "event": "deploy_created", "data": {"url": WEBHOOK_URL}},
                {"id": "theirs", "event": "deploy_created", "data": {"url": "https://elsewhere"}},
            ],
        )
        transport.add("DELETE", f"{NETLIFY_API}/hooks/mine", httpx.Response(204))

        response = await service.handle(CallbackRoute.UNSUBSCRIBE, callback("site-1 docs"))

        assert len(transport.sent("DELETE", f"{NETLIFY_API}/hooks/mine")) == 1
        assert transport.sent("DELETE", f"{NETLIFY_API}/hooks/theirs") == []
        assert "build notifications were removed from Netlify" in message_of(response)
        assert await subscription_repository.get_channels("site-1") == []
