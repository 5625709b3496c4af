# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Access API Routes

Handles platform access requests from signed-in users.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from dotportion.core.dependencies import (
    AuthContext,
    get_access_service,
    get_activity_logger,
    get_current_user,
)
from dotportion.core.errors import DotPortionError
from dotportion.services.access_service import AccessService
from dotportion.services.activity_logger import ActivityLogger

router = APIRouter(prefix="/access", tags=["access"])


@router.post("/request")
async def request_access(
    user: AuthContext = Depends(get_current_user),
    service: AccessService = Depends(get_access_service),
    activity: ActivityLogger = Depends(get_activity_logger)
) -> Dict[str, Any]:
    """Request access to the platform for the current user"""
    try:
        result = await service.request_access(user.user_id)
    except DotPortionError as e:
        activity.create_log(user.user_id, "request-access", "error", {"message": e.message})
        raise

    activity.create_log(user.user_id, "request-access", "info", {"response": result})
    return result
