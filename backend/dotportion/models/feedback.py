# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Feedback Models

A feedback submission is either an idea or an issue report, discriminated
on `type`.
"""

from typing import Annotated, Literal, Optional, Union
from pydantic import BaseModel, Field, TypeAdapter


Severity = Literal["low", "medium", "high", "critical"]
FeedbackStatus = Literal["open", "triaged", "in_progress", "resolved", "closed"]


class IdeaFeedback(BaseModel):
    type: Literal["idea"]
    message: str = Field(min_length=1)
    title: Optional[str] = None


class IssueFeedback(BaseModel):
    type: Literal["issue"]
    message: str = Field(min_length=1)
    title: Optional[str] = None
    project: str = Field(min_length=1)
    service: str = Field(min_length=1)
    severity: Severity
    subject: str = Field(min_length=1)


FeedbackRequest = Annotated[
    Union[IdeaFeedback, IssueFeedback],
    Field(discriminator="type")
]

feedback_adapter = TypeAdapter(FeedbackRequest)
