"""
Slash Command Routes

Endpoint Mattermost calls when a user runs the custom slash command.
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, Request

from netlify_bridge.config.settings import Settings
from netlify_bridge.dependencies import get_app_settings, get_command_service
from netlify_bridge.exceptions.base_exceptions import AuthenticationError
from netlify_bridge.models.mattermost import SlashCommandRequest
from netlify_bridge.services.command_service import CommandService
from netlify_bridge.utils.encryption import constant_time_compare

logger = structlog.get_logger()
router = APIRouter(tags=["commands"])


@router.post(
    "/command",
    summary="Execute slash command",
    description="Receives form encoded Mattermost slash command requests"
)
async def execute_command(
        request: Request,
        background_tasks: BackgroundTasks,
        settings: Annotated[Settings, Depends(get_app_settings)],
        command_service: Annotated[CommandService, Depends(get_command_service)]
) -> dict:
    """
    Accept a slash command and run it after responding

    Mattermost gives up on slash command requests after a few seconds,
    so replies are posted by the bot once the command has run.
    """
    form = await request.form()
    command = SlashCommandRequest.model_validate({key: value for key, value in form.items() if isinstance(value, str)})

    expected_token = settings.MATTERMOST_COMMAND_TOKEN
    if expected_token and not constant_time_compare(command.token, expected_token):
        raise AuthenticationError("Invalid slash command token")

    logger.info(
        "Slash command received",
        user_id=command.user_id,
        channel_id=command.channel_id,
        command=command.command
    )

    background_tasks.add_task(command_service.execute, command)
    return {}
