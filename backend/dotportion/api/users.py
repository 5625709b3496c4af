# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
User API Routes

Handles the signed-in user's own account:
- Profile read and update
- Theme preference
- Product tour progress
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends

from dotportion.core.dependencies import (
    AuthContext,
    get_activity_logger,
    get_current_user,
    get_user_service,
)
from dotportion.core.errors import DotPortionError
from dotportion.models.user import ProfileUpdateRequest, ThemeUpdateRequest, TourUpdateRequest
from dotportion.services.activity_logger import ActivityLogger
from dotportion.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me")
async def get_me(
    user: AuthContext = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
) -> Dict[str, Any]:
    """Get the current user"""
    return await service.get_user(user.user_id)


@router.patch("/me")
async def update_profile(
    body: Optional[ProfileUpdateRequest] = Body(default=None),
    user: AuthContext = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
    activity: ActivityLogger = Depends(get_activity_logger)
) -> Dict[str, Any]:
    """Update name and profile fields"""
    try:
        updated = await service.update_profile(user.user_id, body)
    except DotPortionError as e:
        activity.create_log(user.user_id, "update-profile", "error", {"request": body, "message": e.message})
        raise

    activity.create_log(user.user_id, "update-profile", "info", {"request": body})
    return {"message": "Profile updated successfully.", "user": updated}


@router.put("/me/theme", status_code=201)
async def update_theme(
    body: ThemeUpdateRequest,
    user: AuthContext = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
) -> Dict[str, Any]:
    """Set the UI theme"""
    return await service.update_theme(user.user_id, body.theme)


@router.get("/me/tours")
async def get_tours(
    user: AuthContext = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
) -> Dict[str, Any]:
    return await service.get_tours(user.user_id)


@router.put("/me/tours")
async def update_tour(
    body: TourUpdateRequest,
    user: AuthContext = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
) -> Dict[str, Any]:
    """Mark a product tour as completed (or not)"""
    return await service.update_tour(user.user_id, body.tourKey, body.completed)
