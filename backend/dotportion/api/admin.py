# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""Admin API Routes"""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from dotportion.core.dependencies import (
    AuthContext,
    get_activity_logger,
    get_admin_service,
    get_current_user,
)
from dotportion.core.errors import DotPortionError
from dotportion.models.waitlist import InviteRequest
from dotportion.services.activity_logger import ActivityLogger
from dotportion.services.admin_service import AdminService

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/invite")
async def invite_user(
    body: InviteRequest,
    user: AuthContext = Depends(get_current_user),
    service: AdminService = Depends(get_admin_service),
    activity: ActivityLogger = Depends(get_activity_logger)
) -> Dict[str, Any]:
    """Invite an email address (admins only)"""
    try:
        result = await service.invite_user(user.role, body.email)
    except DotPortionError as e:
        activity.create_log(user.user_id, "admin-invite", "error", {
            "request": body,
            "message": e.message,
        })
        raise

    activity.create_log(user.user_id, "admin-invite", "info", {"request": body, "response": result})
    return result
