# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Cognito Service

Post-confirmation trigger: creates the user document once Cognito has
confirmed a sign-up. The event is always handed back to Cognito; database
failures are logged, never raised.
"""

from typing import Any, Dict

from dotportion.core.logging import get_service_logger
from dotportion.db.collections import USERS, get_collection
from dotportion.db.store import DocumentStore, DuplicateKeyError
from dotportion.models.user import User

logger = get_service_logger("cognito")

CONFIRM_SIGN_UP = "PostConfirmation_ConfirmSignUp"


class CognitoService:
    def __init__(self, store: DocumentStore):
        self.users = get_collection(store, USERS)

    async def post_confirmation(self, event: Dict[str, Any]) -> Dict[str, Any]:
        trigger_source = event.get("triggerSource")
        if trigger_source != CONFIRM_SIGN_UP:
            logger.info(f"Event source is {trigger_source}, not {CONFIRM_SIGN_UP}. Exiting.")
            return event

        attributes = (event.get("request") or {}).get("userAttributes") or {}
        email = attributes.get("email", "")

        try:
            user = User(
                cognito_sub=attributes.get("sub"),
                email=email,
                name=attributes.get("name") or email.split("@")[0],
                full_name=f"{attributes.get('family_name', '')} {attributes.get('given_name', '')}".strip(),
                auth_provider="cognito",
                is_verified=True
            )
            await self.users.insert_one(user.to_document())
            logger.info(f"Created user profile for {email}")
        except DuplicateKeyError as e:
            logger.info(f"User with email {email} already exists ({e.field}). Skipping creation.")
        except Exception as e:
            logger.error(f"Error creating user for {email}: {e}", exc_info=True)

        return event
