# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Access Service

Handles platform access requests against the waitlist.
"""

from typing import Any, Dict, Optional

from dotportion.core.errors import NotFoundError
from dotportion.core.logging import get_service_logger
from dotportion.db.collections import USERS, WAITLISTS, get_collection
from dotportion.db.store import DocumentStore, utc_now
from dotportion.models.user import AccessInfo
from dotportion.models.waitlist import WaitlistEntry

logger = get_service_logger("access")


class AccessService:
    """
    Resolves a user's access request.

    The user's `access` block mirrors the status of their waitlist entry;
    a missing entry is created as a fresh request.
    """

    def __init__(self, store: DocumentStore):
        self.users = get_collection(store, USERS)
        self.waitlists = get_collection(store, WAITLISTS)

    async def request_access(self, user_id: str) -> Dict[str, Any]:
        user = await self.users.get(user_id)
        if user is None:
            logger.info(f"User not found with id: {user_id}")
            raise NotFoundError("User", user_id)

        waitlist = await self.waitlists.find_one({"email": user["email"]})

        if (user.get("access") or {}).get("status") == "requested":
            return self._result("Access already requested", user["access"], waitlist)

        if waitlist is None:
            waitlist = await self.waitlists.insert_one(
                WaitlistEntry(email=user["email"], status="requested").to_document()
            )
            access = AccessInfo(status="requested", source="waitlist", requested_at=utc_now())
            message = "Access request submitted"
        elif waitlist.get("status") == "approved":
            access = AccessInfo(
                status="approved",
                source="waitlist",
                requested_at=waitlist.get("created_at"),
                approved_at=utc_now()
            )
            message = "Access approved"
        elif waitlist.get("status") == "rejected":
            access = AccessInfo(
                status="rejected",
                source="waitlist",
                requested_at=waitlist.get("created_at"),
                rejected_at=utc_now()
            )
            message = "Access rejected"
        else:
            access = AccessInfo(
                status="requested",
                source="waitlist",
                requested_at=waitlist.get("created_at")
            )
            message = "Access request submitted"

        updated = await self.users.update_one({"_id": user_id}, {"access": access.model_dump()})
        logger.info(f"Access for user {user_id}: {access.status}")
        return self._result(message, updated["access"], waitlist)

    @staticmethod
    def _result(message: str, access: Dict[str, Any], waitlist: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        return {"message": message, "access": access, "waitlist": waitlist}
