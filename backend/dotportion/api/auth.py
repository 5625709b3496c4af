# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Auth API Routes

Handles OAuth sign-in:
- Redirect to the provider's consent screen
- Provider callback, user upsert and token hand-off to the frontend
- Username selection for new users
"""

from typing import Any, Dict, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse

from dotportion.core.config import Config
from dotportion.core.dependencies import (
    AuthContext,
    get_activity_logger,
    get_current_config,
    get_current_user,
    get_oauth_service,
)
from dotportion.core.errors import DotPortionError, InternalError, NotFoundError, ValidationError
from dotportion.core.logging import get_api_logger
from dotportion.models.user import SetUsernameRequest
from dotportion.services.activity_logger import ActivityLogger
from dotportion.services.oauth_service import OAuthService

router = APIRouter(prefix="/auth", tags=["auth"])
logger = get_api_logger()


@router.get("/oauth/{provider}")
async def oauth_redirect(
    provider: str,
    service: OAuthService = Depends(get_oauth_service)
) -> RedirectResponse:
    """Send the browser to the provider's authorize URL"""
    return RedirectResponse(service.get_auth_url(provider), status_code=302)


@router.get("/oauth/{provider}/callback")
async def oauth_callback(
    provider: str,
    code: Optional[str] = None,
    service: OAuthService = Depends(get_oauth_service),
    config: Config = Depends(get_current_config)
) -> RedirectResponse:
    """Exchange the authorization code and redirect to the frontend with a token"""
    try:
        result = await service.handle_callback(provider, code)
    except (ValidationError, NotFoundError):
        raise
    except DotPortionError as e:
        logger.error(f"OAuth callback for {provider} failed: {e.message}")
        raise InternalError("OAuth callback failed")

    query = urlencode({
        "token": result["token"],
        "new_user": str(result["isNewUser"]).lower(),
    })
    return RedirectResponse(f"{config.frontend_url.rstrip('/')}/auth/success?{query}", status_code=302)


@router.post("/set-username")
async def set_username(
    body: SetUsernameRequest,
    user: AuthContext = Depends(get_current_user),
    service: OAuthService = Depends(get_oauth_service),
    activity: ActivityLogger = Depends(get_activity_logger)
) -> Dict[str, Any]:
    """Choose a username and receive a refreshed token"""
    try:
        updated, token = await service.set_username(user.email or "", body.username)
    except DotPortionError as e:
        activity.create_log(user.user_id, "set-username", "error", {"request": body, "message": e.message})
        raise

    activity.create_log(user.user_id, "set-username", "info", {"request": body})
    return {"success": True, "user": updated, "token": token}
