"""
OAuth Routes

Browser facing endpoints of the Netlify authorization code flow.
"""

from typing import Annotated, Optional

import structlog
from fastapi import APIRouter, Cookie, Depends, Query
from fastapi.responses import HTMLResponse, RedirectResponse

from netlify_bridge.config.constants import OAUTH_COOKIE_MAX_AGE, OAUTH_USER_COOKIE
from netlify_bridge.config.settings import Settings
from netlify_bridge.dependencies import get_app_settings, get_oauth_service
from netlify_bridge.services.oauth_service import OAuthService

logger = structlog.get_logger()
router = APIRouter(prefix="/auth", tags=["auth"])


@router.get(
    "/connect",
    summary="Start connecting a Netlify account",
    response_class=RedirectResponse,
    status_code=302
)
async def connect(
        oauth_service: Annotated[OAuthService, Depends(get_oauth_service)],
        settings: Annotated[Settings, Depends(get_app_settings)],
        user_id: Optional[str] = Query(default=None),
        signature: Optional[str] = Query(default=None)
) -> RedirectResponse:
    """
    Redirect the browser to Netlify's authorization page

    The link is only honoured when signed for the user, and the browser
    is bound to that user with a short lived cookie.
    """
    user_id = oauth_service.verify_connect_request(user_id, signature)
    authorize_url = await oauth_service.start_authorization(user_id)

    response = RedirectResponse(authorize_url, status_code=302)
    response.set_cookie(
        OAUTH_USER_COOKIE,
        oauth_service.browser_binding(user_id),
        max_age=min(OAUTH_COOKIE_MAX_AGE, settings.OAUTH_STATE_TTL_SECONDS),
        httponly=True,
        secure=settings.is_production(),
        samesite="lax",
    )
    return response


@router.get("/redirect", summary="Netlify OAuth callback", response_class=HTMLResponse)
async def oauth_redirect(
        oauth_service: Annotated[OAuthService, Depends(get_oauth_service)],
        code: Optional[str] = Query(default=None),
        state: Optional[str] = Query(default=None),
        bound_user: Optional[str] = Cookie(default=None, alias=OAUTH_USER_COOKIE)
) -> HTMLResponse:
    user_id = await oauth_service.complete_authorization(oauth_service.bound_user(bound_user), code, state)
    logger.info("Netlify account connected", user_id=user_id)

    response = HTMLResponse(oauth_service.redirect_page())
    response.delete_cookie(OAUTH_USER_COOKIE)
    return response
