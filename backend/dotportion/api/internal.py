# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Internal Orchestrator Routes

Target of the HTTP dispatcher: accepts a handoff payload and runs it on
this instance in the background.
"""

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Request
from pydantic import ValidationError as PydanticValidationError

from dotportion.core.errors import InvalidStructureError
from dotportion.workflow.dispatch import LocalDispatcher
from dotportion.workflow.models import HandoffPayload
from dotportion.workflow.validation import validate_workflow_graph

router = APIRouter(prefix="/internal/orchestrator", tags=["internal"])


def get_local_dispatcher(request: Request) -> LocalDispatcher:
    return request.app.state.local_dispatcher


@router.post("/executions", status_code=202)
async def accept_execution(
    body: Dict[str, Any] = Body(...),
    dispatcher: LocalDispatcher = Depends(get_local_dispatcher)
) -> Dict[str, Any]:
    """Queue a handoff payload for execution"""
    try:
        payload = HandoffPayload.model_validate(body)
    except PydanticValidationError as e:
        raise InvalidStructureError("Invalid handoff payload", details={"errors": e.errors(include_url=False, include_context=False)})

    validate_workflow_graph(payload.workflow)
    await dispatcher.dispatch(payload)
    return {"executionId": payload.executionId, "status": "accepted"}
