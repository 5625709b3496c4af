# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
User Models

Pydantic models for user documents and profile requests.
"""

from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


AccessStatus = Literal["none", "requested", "approved", "rejected"]
Theme = Literal["light", "dark", "system"]

# Never returned to clients
SENSITIVE_USER_FIELDS = ("cognito_sub", "password")


class AccessInfo(BaseModel):
    """Platform access state, mirrored from the waitlist"""
    status: AccessStatus = "none"
    source: Optional[str] = None  # waitlist | invite
    requested_at: Optional[str] = None
    approved_at: Optional[str] = None
    rejected_at: Optional[str] = None
    approved_by: Optional[str] = None


class Profile(BaseModel):
    name: Optional[str] = None
    contact_number: Optional[str] = None
    experience_level: Optional[str] = None
    tools: List[str] = []
    subscription_tutorials: bool = False
    subscription_newsletter: bool = False


class Onboarding(BaseModel):
    role: Optional[str] = None
    company_size: Optional[str] = None
    referral_source: Optional[str] = None
    goals: List[str] = []
    experience_level: Optional[str] = None


class User(BaseModel):
    """User document"""
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(default=None, alias="_id")
    cognito_sub: Optional[str] = None
    email: str
    name: str  # username, lower-cased and unique
    full_name: str
    role: Literal["user", "admin"] = "user"
    auth_provider: str = "cognito"
    picture: Optional[str] = None
    is_verified: bool = False
    is_new_user: bool = True
    theme: Theme = "system"
    tours: Dict[str, bool] = {}
    access: AccessInfo = AccessInfo()
    profile: Profile = Profile()
    onboarding: Onboarding = Onboarding()

    def to_document(self) -> dict:
        """Dump for insertion, leaving _id to the store."""
        document = self.model_dump(exclude={"id"})
        document["email"] = document["email"].strip().lower()
        document["name"] = document["name"].strip().lower()
        return document


class ProfileUpdateRequest(BaseModel):
    full_name: Optional[str] = None
    profile: Optional[Dict[str, object]] = None


class ThemeUpdateRequest(BaseModel):
    theme: Theme


class TourUpdateRequest(BaseModel):
    tourKey: Optional[str] = None
    completed: bool = True


class SetUsernameRequest(BaseModel):
    username: Optional[str] = None


def public_user(document: Optional[dict]) -> Optional[dict]:
    """Strip sensitive fields from a user document."""
    if document is None:
        return None
    return {k: v for k, v in document.items() if k not in SENSITIVE_USER_FIELDS}
