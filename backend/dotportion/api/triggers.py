# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Identity Provider Trigger Routes

Receives Cognito lifecycle events. The event is always echoed back so the
provider's sign-up flow continues even when the profile write fails.
"""

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from dotportion.core.dependencies import get_cognito_service
from dotportion.services.cognito_service import CognitoService

router = APIRouter(prefix="/triggers", tags=["triggers"])


@router.post("/cognito/post-confirmation")
async def cognito_post_confirmation(
    event: Dict[str, Any] = Body(...),
    service: CognitoService = Depends(get_cognito_service)
) -> Dict[str, Any]:
    """Create the user profile after sign-up confirmation"""
    return await service.post_confirmation(event)
