"""
Command Service

Executes `/netlify` slash commands. Every reply is delivered by the bot
through the Mattermost API, either as an ephemeral post for the caller
or as a post in the channel.
"""

from typing import Dict, List, Optional

import httpx

from netlify_bridge.config.constants import (
    HELP_MESSAGE,
    NOT_CONNECTED_MESSAGE,
    SITE_URL_MISSING_MESSAGE,
    ActionType,
    CallbackRoute,
)
from netlify_bridge.config.settings import Settings
from netlify_bridge.core.command_parser import transform_command_to_action
from netlify_bridge.core.exceptions import MattermostAPIError, NetlifyAPIError
from netlify_bridge.core.mattermost_client import MattermostClient
from netlify_bridge.core.netlify_client import NetlifyClient
from netlify_bridge.models.mattermost import (
    PostAction,
    PostActionIntegration,
    PostActionOptions,
    SlackAttachment,
    SlashCommandRequest,
)
from netlify_bridge.models.netlify import Site
from netlify_bridge.repositories.exceptions import RepositoryError
from netlify_bridge.repositories.subscription_repository import SubscriptionRepository
from netlify_bridge.repositories.token_repository import TokenRepository
from netlify_bridge.services.base_service import NetlifyUserService
from netlify_bridge.services.deploy_service import (
    DeployService,
    deploy_requested_message,
    preparing_to_deploy_message,
)
from netlify_bridge.services.exceptions import ConfigurationError, ExternalServiceError, UnauthorizedError
from netlify_bridge.services.oauth_service import OAuthService
from netlify_bridge.utils.formatters import format_account_details, format_site_table
from netlify_bridge.utils.metrics import record_command


class CommandService(NetlifyUserService):
    """Slash command router and handlers"""

    def __init__(
            self,
            settings: Settings,
            http_client: httpx.AsyncClient,
            mattermost: MattermostClient,
            token_repository: TokenRepository,
            subscription_repository: SubscriptionRepository,
            oauth_service: OAuthService,
            deploy_service: Optional[DeployService] = None
    ):
        super().__init__(settings, http_client, mattermost, token_repository)
        self.subscription_repository = subscription_repository
        self.oauth_service = oauth_service
        self.deploy_service = deploy_service or DeployService()

    async def execute(self, request: SlashCommandRequest) -> None:
        """
        Run a slash command

        Commands for another trigger word are ignored. Failures are
        reported to the caller; only a Mattermost outage is logged and
        swallowed, as there is nobody left to tell.
        """
        base_command, action, parameters = transform_command_to_action(request.command_line)

        if base_command != self.settings.slash_command:
            self.logger.debug("Ignoring command for another trigger", command=base_command)
            return

        record_command(action)
        self.log_operation("execute_command", user_id=request.user_id, action=action, channel_id=request.channel_id)

        try:
            await self._dispatch(request, action, parameters)
        except MattermostAPIError as e:
            self.logger.error("Failed to reply to command", action=action, error=e.message, status_code=e.status_code)

    async def _dispatch(self, request: SlashCommandRequest, action: str, parameters: List[str]) -> None:
        if action in ("", "help"):
            await self.reply(request, self.settings.command_message(HELP_MESSAGE))
            return

        if action == "connect":
            await self.handle_connect(request)
            return

        try:
            netlify = await self.get_netlify_client(request.user_id)
        except UnauthorizedError as e:
            await self.reply(request, f":exclamation: Authentication failed\n*Error : {e.message}*")
            return

        if netlify is None:
            await self.reply(request, self.settings.command_message(NOT_CONNECTED_MESSAGE))
            return

        try:
            if action == "disconnect":
                await self.handle_disconnect(request)
            elif action == "list":
                if not parameters:
                    await self.handle_list(request, netlify, with_ids=False)
                elif parameters == ["id"]:
                    await self.handle_list(request, netlify, with_ids=True)
                else:
                    await self.handle_unknown(request, " ".join([action] + parameters))
            elif action == "me":
                await self.handle_me(request, netlify)
            elif action == "deploy":
                await self.handle_deploy(request, netlify, parameters)
            elif action == "rollback":
                await self.handle_site_selection(
                    request, netlify, CallbackRoute.ROLLBACK_BUILDS,
                    title="Rollback a Netlify site",
                    text="Select a site which you would like to rollback:",
                )
            elif action == "subscribe":
                await self.handle_site_selection(
                    request, netlify, CallbackRoute.SUBSCRIBE,
                    title="Subscribe to build notifications",
                    text=f"Select a site whose build notifications **{request.channel_name or 'this channel'}** should receive:",
                )
            elif action == "unsubscribe":
                await self.handle_unsubscribe(request, netlify)
            elif action == "subscriptions":
                await self.handle_subscriptions(request, netlify)
            else:
                await self.handle_unknown(request, " ".join([action] + parameters))
        except ConfigurationError:
            await self.reply(request, SITE_URL_MISSING_MESSAGE)
        except RepositoryError as e:
            self.logger.error("Storage failure while running command", action=action, error=e.message)
            await self.reply(request, f":exclamation: Something went wrong while reading subscriptions\n*Error : {e.message}*")

    async def reply(
            self,
            request: SlashCommandRequest,
            message: str = "",
            attachments: Optional[List[SlackAttachment]] = None
    ) -> None:
        """Ephemeral reply to the user who ran the command."""
        await self.mattermost.send_ephemeral_post(request.user_id, request.channel_id, message, attachments)

    async def post_to_channel(self, request: SlashCommandRequest, message: str) -> None:
        await self.mattermost.create_post(request.channel_id, message)

    async def handle_connect(self, request: SlashCommandRequest) -> None:
        try:
            url = self.oauth_service.connect_url(request.user_id)
        except ConfigurationError:
            await self.reply(request, SITE_URL_MISSING_MESSAGE)
            return

        await self.reply(request, f"[Click here to connect your Netlify account with Mattermost.]({url})")

    async def handle_unknown(self, request: SlashCommandRequest, action: str) -> None:
        await self.reply(
            request,
            f"Unknown command `{self.settings.slash_command} {action}`\n"
            f"To see list of commands type `{self.settings.slash_command} help`"
        )

    def _button(self, name: str, route: CallbackRoute, action: ActionType) -> PostAction:
        return PostAction(
            type="button",
            name=name,
            integration=PostActionIntegration(
                url=self.callback_url(route.value),
                context={"action": action.value, "actionSecret": self.settings.ACTION_SECRET},
            ),
        )

    def _dropdown(self, name: str, route: CallbackRoute, options: List[PostActionOptions]) -> PostAction:
        return PostAction(
            type="select",
            name=name,
            options=options,
            integration=PostActionIntegration(
                url=self.callback_url(route.value),
                context={"actionSecret": self.settings.ACTION_SECRET},
            ),
        )

    async def handle_disconnect(self, request: SlashCommandRequest) -> None:
        attachment = SlackAttachment(
            title="Disconnect Netlify plugin",
            text=":scissors: Are you sure you would like to disconnect Netlify from Mattermost?",
            actions=[
                self._button("Disconnect", CallbackRoute.DISCONNECT, ActionType.DISCONNECT),
                self._button("Cancel", CallbackRoute.DISCONNECT, ActionType.CANCEL),
            ],
        )
        await self.reply(request, attachments=[attachment])

    async def _list_sites(self, request: SlashCommandRequest, netlify: NetlifyClient) -> Optional[List[Site]]:
        try:
            sites = await netlify.list_sites()
        except NetlifyAPIError as e:
            await self.reply(request, f"Failed to receive sites list from Netlify : {e.message}")
            return None

        if not sites:
            await self.reply(request, "You don't seem to have any Netlify sites")
            return None

        return sites

    async def handle_list(self, request: SlashCommandRequest, netlify: NetlifyClient, with_ids: bool) -> None:
        sites = await self._list_sites(request, netlify)
        if sites is None:
            return

        await self.post_to_channel(request, format_site_table(sites, with_ids=with_ids))

    async def handle_me(self, request: SlashCommandRequest, netlify: NetlifyClient) -> None:
        try:
            account = await netlify.get_current_account()
        except NetlifyAPIError as e:
            await self.reply(request, f"Failed to get current user: {e.message}")
            return

        await self.post_to_channel(request, format_account_details(account))

    async def handle_deploy(self, request: SlashCommandRequest, netlify: NetlifyClient, parameters: List[str]) -> None:
        if not parameters:
            await self.handle_site_selection(
                request, netlify, CallbackRoute.DEPLOY,
                title="Deploy a Netlify site",
                text="Select a site which you would like to deploy:",
                include_branch=True,
            )
            return

        if len(parameters) > 1:
            await self.reply(
                request,
                ":warning: Please mention only one site id for a command.\n"
                f"Eg. `{self.settings.slash_command} deploy <site id>` , for more details run help command"
            )
            return

        site_id = parameters[0]
        try:
            site = await netlify.get_site(site_id)
        except NetlifyAPIError as e:
            await self.reply(request, f":exclamation: Failed to get site details\n*Error : {e.message}*")
            return

        site_name = site.name or site_id
        await self.reply(request, preparing_to_deploy_message(site.repo_branch, site_name))

        try:
            await self.deploy_service.deploy(netlify, site.id, site_name, site.repo_branch)
        except ExternalServiceError as e:
            await self.reply(request, e.message)
            return

        await self.post_to_channel(request, deploy_requested_message(site.repo_branch, site_name))

    @staticmethod
    def _site_option(site: Site, include_branch: bool) -> PostActionOptions:
        name = site.name or site.id
        value = f"{site.id} {name}"
        if include_branch:
            value = f"{value} {site.repo_branch or ''}".rstrip()
        return PostActionOptions(text=name, value=value)

    async def handle_site_selection(
            self,
            request: SlashCommandRequest,
            netlify: NetlifyClient,
            route: CallbackRoute,
            title: str,
            text: str,
            include_branch: bool = False
    ) -> None:
        """Ephemeral dropdown of the user's sites posting back to route."""
        if self.settings.SERVICE_URL is None:
            await self.reply(request, SITE_URL_MISSING_MESSAGE)
            return

        sites = await self._list_sites(request, netlify)
        if sites is None:
            return

        options = [self._site_option(site, include_branch) for site in sites]
        attachment = SlackAttachment(
            title=title,
            text=text,
            actions=[self._dropdown("Select a site", route, options)],
        )
        await self.reply(request, attachments=[attachment])

    async def _subscribed_site_names(self, netlify: NetlifyClient, channel_id: str) -> Dict[str, str]:
        """Site ID to display name for every site the channel follows."""
        site_ids = await self.subscription_repository.sites_for_channel(channel_id)
        if not site_ids:
            return {}

        names = {site_id: site_id for site_id in site_ids}
        try:
            for site in await netlify.list_sites():
                if site.id in names and site.name:
                    names[site.id] = site.name
        except NetlifyAPIError as e:
            self.logger.warning("Could not resolve site names", error=e.message)

        return names

    async def handle_unsubscribe(self, request: SlashCommandRequest, netlify: NetlifyClient) -> None:
        if self.settings.SERVICE_URL is None:
            await self.reply(request, SITE_URL_MISSING_MESSAGE)
            return

        names = await self._subscribed_site_names(netlify, request.channel_id)
        if not names:
            await self.reply(request, "This channel is not subscribed to build notifications of any site")
            return

        options = [PostActionOptions(text=name, value=f"{site_id} {name}") for site_id, name in names.items()]
        attachment = SlackAttachment(
            title="Unsubscribe from build notifications",
            text="Select a site whose build notifications this channel should no longer receive:",
            actions=[self._dropdown("Select a site", CallbackRoute.UNSUBSCRIBE, options)],
        )
        await self.reply(request, attachments=[attachment])

    async def handle_subscriptions(self, request: SlashCommandRequest, netlify: NetlifyClient) -> None:
        names = await self._subscribed_site_names(netlify, request.channel_id)
        if not names:
            await self.reply(request, "This channel is not subscribed to build notifications of any site")
            return

        lines = "\n".join(f"* **{name}** (`{site_id}`)" for site_id, name in names.items())
        await self.reply(request, f"This channel receives build notifications of:\n{lines}")
