# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""Feedback API Routes"""

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from dotportion.core.dependencies import (
    AuthContext,
    get_activity_logger,
    get_current_user,
    get_feedback_service,
)
from dotportion.core.errors import DotPortionError
from dotportion.services.activity_logger import ActivityLogger
from dotportion.services.feedback_service import FeedbackService

router = APIRouter(prefix="/feedback", tags=["feedback"])


@router.post("", status_code=201)
async def create_feedback(
    body: Any = Body(default=None),
    user: AuthContext = Depends(get_current_user),
    service: FeedbackService = Depends(get_feedback_service),
    activity: ActivityLogger = Depends(get_activity_logger)
) -> Dict[str, Any]:
    """
    Submit an idea or an issue report.

    The body is validated by the service so errors come back as a
    400 with per-field details.
    """
    try:
        feedback = await service.create_feedback(body, user.user_id)
    except DotPortionError as e:
        activity.create_log(user.user_id, "create-feedback", "error", {
            "request": body,
            "message": e.message,
        })
        raise

    activity.create_log(user.user_id, "create-feedback", "info", {"feedbackId": feedback["_id"]})
    return {"message": "Feedback submitted successfully.", "data": feedback}
