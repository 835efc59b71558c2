"""
Action Service

Handles the button and dropdown callbacks of the bot's interactive
messages. Each handler answers with an integration response that
replaces the ephemeral post the user interacted with.
"""

from typing import List, Optional, Tuple

import httpx

from netlify_bridge.config.constants import (
    AUTHENTICATION_FAILED_MESSAGE,
    EMPTY_SELECTION_MESSAGE,
    MAX_ROLLBACK_DEPLOYS,
    NOT_CONNECTED_MESSAGE,
    SITE_URL_MISSING_MESSAGE,
    SUBSCRIBED_EVENTS,
    ActionType,
    CallbackRoute,
)
from netlify_bridge.config.settings import Settings
from netlify_bridge.core.exceptions import MattermostAPIError, NetlifyAPIError
from netlify_bridge.core.mattermost_client import MattermostClient
from netlify_bridge.core.netlify_client import NetlifyClient
from netlify_bridge.models.mattermost import (
    PostAction,
    PostActionIntegration,
    PostActionIntegrationRequest,
    PostActionIntegrationResponse,
    SlackAttachment,
)
from netlify_bridge.repositories.exceptions import RepositoryError
from netlify_bridge.repositories.subscription_repository import SubscriptionRepository
from netlify_bridge.repositories.token_repository import TokenRepository
from netlify_bridge.services.base_service import NetlifyUserService
from netlify_bridge.services.deploy_service import DeployService, deploy_requested_message
from netlify_bridge.services.exceptions import (
    ConfigurationError,
    ExternalServiceError,
    UnauthorizedError,
    ValidationError,
)
from netlify_bridge.utils.encryption import constant_time_compare
from netlify_bridge.utils.formatters import format_rollback_candidates
from netlify_bridge.utils.metrics import record_callback

DISCONNECTED_MESSAGE = (
    ":zzz: Mattermost Netlify plugin is now disconnected\n"
    "If you ever want to connect again, just run `{command} connect`"
)
DISCONNECT_CANCELLED_MESSAGE = ":ok_hand: Your Netlify account stays connected"


class CallbackRejected(Exception):
    """Carries the response for a callback that stops before doing anything."""

    def __init__(self, response: PostActionIntegrationResponse):
        super().__init__(response.update.message if response.update else "")
        self.response = response


def _updated(message: str, attachments: Optional[List[SlackAttachment]] = None) -> PostActionIntegrationResponse:
    return PostActionIntegrationResponse.updated(message, attachments)


class ActionService(NetlifyUserService):
    """Interactive message callback handlers"""

    def __init__(
            self,
            settings: Settings,
            http_client: httpx.AsyncClient,
            mattermost: MattermostClient,
            token_repository: TokenRepository,
            subscription_repository: SubscriptionRepository,
            deploy_service: Optional[DeployService] = None
    ):
        super().__init__(settings, http_client, mattermost, token_repository)
        self.subscription_repository = subscription_repository
        self.deploy_service = deploy_service or DeployService()

    async def handle(self, route: CallbackRoute, request: PostActionIntegrationRequest) -> PostActionIntegrationResponse:
        """
        Dispatch a callback to its handler

        Raises:
            UnauthorizedError: If the request names no user
            ValidationError: If a disconnect callback carries an unknown action
        """
        if not request.user_id:
            record_callback(route.name.lower(), "unauthorized")
            raise UnauthorizedError("Not authorized", resource=route.value)

        handlers = {
            CallbackRoute.DISCONNECT: self.handle_disconnect,
            CallbackRoute.DEPLOY: self.handle_deploy,
            CallbackRoute.ROLLBACK_BUILDS: self.handle_rollback_builds,
            CallbackRoute.ROLLBACK: self.handle_rollback,
            CallbackRoute.SUBSCRIBE: self.handle_subscribe,
            CallbackRoute.UNSUBSCRIBE: self.handle_unsubscribe,
        }

        self.log_operation("handle_callback", user_id=request.user_id, route=route.value, channel_id=request.channel_id)

        try:
            self._check_action_secret(request)
            response = await handlers[route](request)
        except CallbackRejected as e:
            record_callback(route.name.lower(), "rejected")
            return e.response
        except ValidationError:
            record_callback(route.name.lower(), "invalid")
            raise
        except MattermostAPIError as e:
            record_callback(route.name.lower(), "failed")
            self.logger.error("Failed to post callback result", route=route.value, error=e.message)
            return _updated(f":exclamation: Failed to post to Mattermost\n*Error : {e.message}*")

        record_callback(route.name.lower(), "handled")
        return response

    def _check_action_secret(self, request: PostActionIntegrationRequest) -> None:
        if not constant_time_compare(request.action_secret, self.settings.ACTION_SECRET):
            self.logger.warning("Callback with invalid action secret", user_id=request.user_id)
            raise CallbackRejected(_updated(AUTHENTICATION_FAILED_MESSAGE))

    def _selection(self, request: PostActionIntegrationRequest, count: int) -> List[str]:
        try:
            return self.require_values(request.selected_values(), count)
        except ValidationError as e:
            raise CallbackRejected(_updated(EMPTY_SELECTION_MESSAGE)) from e

    def _require_service_url(self, path: str) -> str:
        try:
            return self.callback_url(path)
        except ConfigurationError as e:
            raise CallbackRejected(_updated(f":exclamation: {SITE_URL_MISSING_MESSAGE}")) from e

    async def _netlify(self, request: PostActionIntegrationRequest) -> NetlifyClient:
        try:
            netlify = await self.get_netlify_client(request.user_id)
        except UnauthorizedError as e:
            raise CallbackRejected(_updated(f"{AUTHENTICATION_FAILED_MESSAGE}\n*Error : {e.message}*")) from e

        if netlify is None:
            raise CallbackRejected(_updated(self.settings.command_message(NOT_CONNECTED_MESSAGE)))
        return netlify

    async def handle_disconnect(self, request: PostActionIntegrationRequest) -> PostActionIntegrationResponse:
        if request.action == ActionType.DISCONNECT.value:
            try:
                await self.token_repository.delete_token(request.user_id)
            except RepositoryError as e:
                self.logger.error("Failed to disconnect user", user_id=request.user_id, error=e.message)
                return _updated(f"Couldn't disconnect to Netlify services : {e.message}")

            self.log_operation("disconnect", user_id=request.user_id)
            return _updated(self.settings.command_message(DISCONNECTED_MESSAGE))

        if request.action == ActionType.CANCEL.value:
            return _updated(DISCONNECT_CANCELLED_MESSAGE)

        raise ValidationError("Unknown disconnect action", field="action", value=request.action)

    async def handle_deploy(self, request: PostActionIntegrationRequest) -> PostActionIntegrationResponse:
        site_id, site_name = self._selection(request, 2)
        # sites without a linked repository have no branch
        values = request.selected_values()
        branch = values[2] if len(values) > 2 else None
        netlify = await self._netlify(request)

        try:
            await self.deploy_service.deploy(netlify, site_id, site_name, branch)
        except ExternalServiceError as e:
            return _updated(e.message)

        await self.mattermost.create_post(request.channel_id, deploy_requested_message(branch, site_name))
        return _updated(
            f"{deploy_requested_message(branch, site_name)} "
            "If you have configured notifications, you should be seeing one soon."
        )

    async def handle_rollback_builds(self, request: PostActionIntegrationRequest) -> PostActionIntegrationResponse:
        site_id, site_name = self._selection(request, 2)
        rollback_url = self._require_service_url(CallbackRoute.ROLLBACK.value)
        netlify = await self._netlify(request)

        try:
            builds = await netlify.list_builds(site_id)
        except NetlifyAPIError as e:
            return _updated(f":exclamation: Failed to get **{site_name}** site recent deploys.\n*Error : {e.message}*")

        table, options = format_rollback_candidates(builds, site_id, site_name, MAX_ROLLBACK_DEPLOYS)
        if not options:
            return _updated(f":white_flag: There are no valid deploys with **{site_name}** site.")

        await self.mattermost.create_post(
            request.channel_id,
            f":chains: List of latest {MAX_ROLLBACK_DEPLOYS} releases of **{site_name}** Netlify site\n{table}"
        )

        dropdown = SlackAttachment(
            title=f"Rollback *{site_name}* sites to previous versions",
            text=f"Select a deploy version of {site_name} site which you would like to rollback to:\n",
            footer="Before proceeding refer the table of the most recent successful deploys posted above and then make your selection",
            actions=[
                PostAction(
                    type="select",
                    name="Select a deploy",
                    options=options,
                    integration=PostActionIntegration(
                        url=rollback_url,
                        context={"actionSecret": self.settings.ACTION_SECRET},
                    ),
                )
            ],
        )
        await self.mattermost.send_ephemeral_post(request.user_id, request.channel_id, attachments=[dropdown])

        return _updated(f":one: Fetching list of {MAX_ROLLBACK_DEPLOYS} most recent deploys of **{site_name}** site.")

    async def handle_rollback(self, request: PostActionIntegrationRequest) -> PostActionIntegrationResponse:
        site_id, site_name, deploy_id = self._selection(request, 3)
        netlify = await self._netlify(request)

        try:
            await netlify.restore_deploy(site_id, deploy_id)
        except NetlifyAPIError as e:
            return _updated(
                f":exclamation: Failed to rollback **{site_name}** site to deploy {deploy_id}.\n*Error : {e.message}*"
            )

        self.log_operation("rollback", user_id=request.user_id, site_id=site_id, deploy_id=deploy_id)
        await self.mattermost.create_post(
            request.channel_id,
            f":satellite: Mattermost Netlify Bot has successfully asked Netlify to rollback **{site_name}** site "
            f"to a previous version by ID {deploy_id}.\n"
            "*Since this is an update, you probably will not receive a build notification, "
            "You can visit the URL to see if its rolled back.*"
        )
        return _updated(f":two: Rolling back {site_name} site to {deploy_id} deploy id state")

    async def _ensure_hooks(
            self,
            netlify: NetlifyClient,
            site_id: str,
            webhook_url: str
    ) -> Tuple[List[str], Optional[Tuple[str, NetlifyAPIError]]]:
        """
        Create the missing notification hooks of a site.

        Returns:
            Events a hook was created for, and the event and error that
            stopped the loop, if any
        """
        hooks = await netlify.list_hooks(site_id)
        present = {hook.event for hook in hooks if hook.url == webhook_url}

        created: List[str] = []
        for event in SUBSCRIBED_EVENTS:
            if event.value in present:
                continue
            try:
                await netlify.create_hook(site_id, event.value, webhook_url, self.settings.WEBHOOK_SECRET)
            except NetlifyAPIError as e:
                return created, (event.value, e)
            created.append(event.value)

        return created, None

    async def handle_subscribe(self, request: PostActionIntegrationRequest) -> PostActionIntegrationResponse:
        site_id, site_name = self._selection(request, 2)
        webhook_url = self._require_service_url("/webhook")
        netlify = await self._netlify(request)
        channel_name = request.channel_name or request.channel_id

        try:
            created, failure = await self._ensure_hooks(netlify, site_id, webhook_url)
        except NetlifyAPIError as e:
            return _updated(f":exclamation: Failed to get **{site_name}** site subscriptions.\n*Error : {e.message}*")

        if failure is not None:
            event, error = failure
            if created:
                return _updated(
                    f":grey_exclamation: Failed partially to subscribe build notification for **{site_name}** site.\n"
                    f"*Error : {error.message}*"
                )
            return _updated(
                f":exclamation: Failed to create build notification of type `{event}` for **{site_name}** site.\n"
                f"*Error : {error.message}*"
            )

        try:
            await self.subscription_repository.add_channel(site_id, request.channel_id)
        except RepositoryError as e:
            return _updated(
                f":exclamation: Failed to subscribe build notification for **{site_name}** site.\n*Error : {e.message}*"
            )

        lines = [
            f":fishing_pole_and_fish: Created a new webhook on Netlify of `{event}` for **{site_name}** site."
            for event in created
        ]
        lines.append(f":star2: Successfully subscribed **{channel_name}** for build notifications from **{site_name}** site.")

        self.log_operation("subscribe", user_id=request.user_id, site_id=site_id, hooks_created=len(created))
        return _updated("\n".join(lines))

    async def handle_unsubscribe(self, request: PostActionIntegrationRequest) -> PostActionIntegrationResponse:
        site_id, site_name = self._selection(request, 2)
        netlify = await self._netlify(request)
        channel_name = request.channel_name or request.channel_id

        try:
            remaining = await self.subscription_repository.remove_channel(site_id, request.channel_id)
        except RepositoryError as e:
            return _updated(
                f":exclamation: Failed to unsubscribe build notification for **{site_name}** site.\n*Error : {e.message}*"
            )

        message = f":wave: **{channel_name}** will no longer receive build notifications from **{site_name}** site."
        self.log_operation("unsubscribe", user_id=request.user_id, site_id=site_id, remaining=len(remaining))

        webhook_url = self.settings.callback_url("/webhook")
        if remaining or webhook_url is None:
            return _updated(message)

        try:
            for hook in await netlify.list_hooks(site_id):
                if hook.url == webhook_url and hook.id:
                    await netlify.delete_hook(hook.id)
        except NetlifyAPIError as e:
            return _updated(
                f"{message}\n:grey_exclamation: Could not remove the build notifications on Netlify.\n*Error : {e.message}*"
            )

        return _updated(f"{message}\nNo channel follows **{site_name}** anymore, its build notifications were removed from Netlify.")
