"""
Interactive Action Routes

Endpoints receiving the button and dropdown callbacks of the bot's
interactive messages.
"""

from typing import Annotated, Any, Dict

from fastapi import APIRouter, Depends

from netlify_bridge.config.constants import CallbackRoute
from netlify_bridge.dependencies import get_action_service
from netlify_bridge.models.mattermost import PostActionIntegrationRequest
from netlify_bridge.services.action_service import ActionService

router = APIRouter(tags=["actions"])

ActionServiceDep = Annotated[ActionService, Depends(get_action_service)]


async def _respond(
        route: CallbackRoute,
        payload: PostActionIntegrationRequest,
        action_service: ActionService
) -> Dict[str, Any]:
    response = await action_service.handle(route, payload)
    return response.to_dict()


@router.post(CallbackRoute.DISCONNECT.value, summary="Confirm or cancel disconnecting Netlify")
async def disconnect(payload: PostActionIntegrationRequest, action_service: ActionServiceDep) -> Dict[str, Any]:
    return await _respond(CallbackRoute.DISCONNECT, payload, action_service)


@router.post(CallbackRoute.DEPLOY.value, summary="Deploy the selected site")
async def deploy(payload: PostActionIntegrationRequest, action_service: ActionServiceDep) -> Dict[str, Any]:
    return await _respond(CallbackRoute.DEPLOY, payload, action_service)


@router.post(CallbackRoute.ROLLBACK_BUILDS.value, summary="List deploys of the selected site")
async def rollback_builds(payload: PostActionIntegrationRequest, action_service: ActionServiceDep) -> Dict[str, Any]:
    return await _respond(CallbackRoute.ROLLBACK_BUILDS, payload, action_service)


@router.post(CallbackRoute.ROLLBACK.value, summary="Restore the selected deploy")
async def rollback(payload: PostActionIntegrationRequest, action_service: ActionServiceDep) -> Dict[str, Any]:
    return await _respond(CallbackRoute.ROLLBACK, payload, action_service)


@router.post(CallbackRoute.SUBSCRIBE.value, summary="Subscribe the channel to a site")
async def subscribe(payload: PostActionIntegrationRequest, action_service: ActionServiceDep) -> Dict[str, Any]:
    return await _respond(CallbackRoute.SUBSCRIBE, payload, action_service)


@router.post(CallbackRoute.UNSUBSCRIBE.value, summary="Unsubscribe the channel from a site")
async def unsubscribe(payload: PostActionIntegrationRequest, action_service: ActionServiceDep) -> Dict[str, Any]:
    return await _respond(CallbackRoute.UNSUBSCRIBE, payload, action_service)
