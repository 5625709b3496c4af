# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""Feedback Service"""

from typing import Any, Dict

from pydantic import ValidationError as PydanticValidationError

from dotportion.core.errors import ValidationError
from dotportion.core.logging import get_service_logger
from dotportion.db.collections import FEEDBACK, get_collection
from dotportion.db.store import DocumentStore
from dotportion.models.feedback import feedback_adapter

logger = get_service_logger("feedback")


def _format_errors(error: PydanticValidationError) -> list:
    return [
        {"path": list(e["loc"]), "message": e["msg"], "code": e["type"]}
        for e in error.errors()
    ]


class FeedbackService:
    def __init__(self, store: DocumentStore):
        self.feedback = get_collection(store, FEEDBACK)

    async def create_feedback(self, data: Any, user_id: str) -> Dict[str, Any]:
        """
        Validate and store a feedback submission.

        Raises:
            ValidationError: Body is not a valid idea or issue
        """
        try:
            feedback = feedback_adapter.validate_python(data)
        except PydanticValidationError as e:
            errors = _format_errors(e)
            logger.warning(f"Feedback validation failed: {errors}")
            raise ValidationError("Validation failed", details={"errors": errors})

        document = {
            **feedback.model_dump(),
            "user": user_id,
            "status": "open",
        }
        document.setdefault("severity", "medium")

        stored = await self.feedback.insert_one(document)
        logger.info(f"Feedback {stored['_id']} ({stored['type']}) from user {user_id}")
        return stored
