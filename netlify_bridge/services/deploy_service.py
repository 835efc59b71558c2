"""
Deploy operation

Triggers a build of a site through the bridge's own build hook,
creating the hook on the site's branch the first time.
"""

from typing import Optional

from netlify_bridge.config.constants import (
    MATTERMOST_NETLIFY_BUILD_HOOK_MESSAGE,
    MATTERMOST_NETLIFY_BUILD_HOOK_TITLE,
)
from netlify_bridge.core.exceptions import NetlifyAPIError
from netlify_bridge.core.netlify_client import NetlifyClient
from netlify_bridge.services.base_service import BaseService
from netlify_bridge.services.exceptions import ExternalServiceError


def _deploy_target(branch: Optional[str], site_name: str) -> str:
    # sites without a linked repository have no branch to name
    if branch:
        return f"**{branch}** branch of **{site_name}** site"
    return f"**{site_name}** site"


def preparing_to_deploy_message(branch: Optional[str], site_name: str) -> str:
    return f":loudspeaker: Mattermost Netlify Bot is preparing to deploy {_deploy_target(branch, site_name)}."


def deploy_requested_message(branch: Optional[str], site_name: str) -> str:
    return f":satellite: Mattermost Netlify Bot has successfully asked Netlify to deploy {_deploy_target(branch, site_name)}."


class DeployService(BaseService):
    """Build hook based deploys"""

    async def deploy(
            self,
            netlify: NetlifyClient,
            site_id: str,
            site_name: str,
            branch: Optional[str]
    ) -> None:
        """
        Ask Netlify to build and publish a site.

        Raises:
            ExternalServiceError: With a message fit to show the user
        """
        try:
            build_hooks = await netlify.list_build_hooks(site_id)
        except NetlifyAPIError as e:
            raise ExternalServiceError(
                f":exclamation: Failed to get **{site_name}** site build hooks.\n*Error : {e.message}*",
                service_name="netlify",
                status_code=e.status_code,
                original_error=e
            ) from e

        hook_url = next(
            (hook.url for hook in build_hooks if hook.title == MATTERMOST_NETLIFY_BUILD_HOOK_TITLE),
            None
        )

        if hook_url is None:
            try:
                created = await netlify.create_build_hook(site_id, MATTERMOST_NETLIFY_BUILD_HOOK_TITLE, branch)
            except NetlifyAPIError as e:
                raise ExternalServiceError(
                    f":exclamation: Failed to create a deploy hook for **{site_name}** site.\n*Error : {e.message}*",
                    service_name="netlify",
                    status_code=e.status_code,
                    original_error=e
                ) from e
            hook_url = created.url
            self.logger.info("Created build hook", site_id=site_id, branch=branch)

        try:
            await netlify.trigger_build_hook(hook_url, branch, MATTERMOST_NETLIFY_BUILD_HOOK_MESSAGE)
        except NetlifyAPIError as e:
            raise ExternalServiceError(
                f":exclamation: Failed to deploy **{site_name}** site with Mattermost build hook.\n*Error : {e.message}*",
                service_name="netlify",
                status_code=e.status_code,
                original_error=e
            ) from e

        self.log_operation("deploy", site_id=site_id, branch=branch)
