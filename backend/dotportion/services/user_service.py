# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
User Service

Profile, theme and product-tour state for the signed-in user.
"""

from typing import Any, Dict, Optional

from dotportion.core.errors import NotFoundError, ValidationError
from dotportion.core.logging import get_service_logger
from dotportion.db.collections import USERS, get_collection
from dotportion.db.store import DocumentStore
from dotportion.models.user import ProfileUpdateRequest, public_user

logger = get_service_logger("user")


class UserService:
    def __init__(self, store: DocumentStore):
        self.users = get_collection(store, USERS)

    async def get_user(self, user_id: str) -> Dict[str, Any]:
        user = await self.users.get(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return public_user(user)

    async def _update(self, user_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        user = await self.users.update_one({"_id": user_id}, changes)
        if user is None:
            raise NotFoundError("User", user_id)
        return public_user(user)

    async def update_profile(self, user_id: str, data: Optional[ProfileUpdateRequest]) -> Dict[str, Any]:
        """
        Merge profile fields into the user document.

        Profile keys are applied individually so unspecified keys keep
        their stored values.
        """
        changes: Dict[str, Any] = {}
        if data is not None:
            if data.full_name:
                changes["full_name"] = data.full_name
            for key, value in (data.profile or {}).items():
                changes[f"profile.{key}"] = value

        if not changes:
            raise ValidationError("Profile data is required.", field="profile")

        user = await self._update(user_id, changes)
        logger.info(f"Updated profile for user {user_id}: {sorted(changes)}")
        return user

    async def update_theme(self, user_id: str, theme: str) -> Dict[str, Any]:
        user = await self._update(user_id, {"theme": theme})
        logger.info(f"Theme for user {user_id} set to {theme}")
        return user

    async def get_tours(self, user_id: str) -> Dict[str, Any]:
        user = await self.get_user(user_id)
        return {"tours": user.get("tours") or {}, "isNewUser": user.get("is_new_user", False)}

    async def update_tour(self, user_id: str, tour_key: Optional[str], completed: bool = True) -> Dict[str, Any]:
        if not tour_key:
            raise ValidationError("tourKey is required", field="tourKey")
        user = await self._update(user_id, {f"tours.{tour_key}": completed})
        return {"tours": user.get("tours") or {}, "isNewUser": user.get("is_new_user", False)}
