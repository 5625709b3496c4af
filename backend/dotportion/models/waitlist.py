# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""Waitlist Models"""

from typing import Literal, Optional
from pydantic import BaseModel


WaitlistStatus = Literal["pending", "requested", "approved", "rejected"]
WaitlistType = Literal["waitlist", "invite"]


class WaitlistEntry(BaseModel):
    email: str
    status: WaitlistStatus = "pending"
    type: WaitlistType = "waitlist"
    invited: bool = False
    invite_used: bool = False

    def to_document(self) -> dict:
        document = self.model_dump()
        document["email"] = document["email"].strip().lower()
        return document


class InviteRequest(BaseModel):
    email: Optional[str] = None
