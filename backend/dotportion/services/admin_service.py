# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Admin Service

Invitations bypass the waitlist: an invited email is approved up front and
receives a sign-in link.
"""

from typing import Any, Dict, Optional

from dotportion.core.config import Config
from dotportion.core.errors import DotPortionError, ForbiddenError, InternalError, ValidationError
from dotportion.core.logging import get_service_logger
from dotportion.db.collections import WAITLISTS, get_collection
from dotportion.db.store import DocumentStore
from dotportion.models.waitlist import WaitlistEntry
from dotportion.services.email_service import EmailService

logger = get_service_logger("admin")

INVITE_SUBJECT = "You are invited to DotPortion!"

INVITE_TEMPLATE = """
<div style="font-family: Arial; padding: 16px;">
  <h2>You are invited to DotPortion</h2>
  <p>You have been granted immediate access to the platform.</p>
  <p>Click below to create your account:</p>
  <a href="{link}"
     style="padding:12px 18px; background:#000; color:#fff; text-decoration:none; border-radius:6px;">
     Accept Invite
  </a>
  <p>This link is exclusive to you. Please do not share it.</p>
</div>
"""


class AdminService:
    def __init__(self, store: DocumentStore, email_service: EmailService, config: Config):
        self.waitlists = get_collection(store, WAITLISTS)
        self.email_service = email_service
        self.frontend_url = config.frontend_url.rstrip("/")

    async def invite_user(self, role: str, email: Optional[str]) -> Dict[str, Any]:
        """
        Invite an email address to the platform.

        Raises:
            ForbiddenError: Caller is not an admin
            ValidationError: No email given
            InternalError: Invite could not be stored or sent
        """
        if role != "admin":
            raise ForbiddenError("You are not authorized. Admin only.")
        if not email or not email.strip():
            raise ValidationError("Email is required.", field="email")

        email = email.strip().lower()

        try:
            existing = await self.waitlists.find_one({"email": email})
            if existing and existing.get("invited"):
                return {"alreadyInvited": True, "message": "This email is already invited."}

            invite = WaitlistEntry(
                email=email,
                status="approved",
                type="invite",
                invited=True,
                invite_used=False
            ).to_document()

            if existing is None:
                waitlist = await self.waitlists.insert_one(invite)
            else:
                waitlist = await self.waitlists.update_one({"_id": existing["_id"]}, invite)

            invite_link = f"{self.frontend_url}/auth/signin"
            await self.email_service.send(email, INVITE_SUBJECT, INVITE_TEMPLATE.format(link=invite_link))
        except DotPortionError as e:
            logger.error(f"Admin invite error for {email}: {e.message}")
            raise InternalError("Failed to send invite.")

        logger.info(f"Invited {email}")
        return {"success": True, "inviteLink": invite_link, "waitlist": waitlist}

    async def mark_invite_used(self, email: str) -> None:
        """Flag an invitation as consumed; no-op for non-invited entries."""
        waitlist = await self.waitlists.find_one({"email": email.strip().lower()})
        if waitlist and waitlist.get("invited"):
            await self.waitlists.update_one({"_id": waitlist["_id"]}, {"invite_used": True})
            logger.info(f"Invite used by {email}")
