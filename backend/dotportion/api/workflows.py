# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow API Routes

Starts workflow executions. Progress is delivered over the WebSocket
returned in the response, not in this request.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from dotportion.core.dependencies import get_request_context, get_workflow_trigger
from dotportion.core.errors import InvalidInputError
from dotportion.workflow.models import RequestContext
from dotportion.workflow.trigger import WorkflowTrigger

router = APIRouter(prefix="/workflows", tags=["workflows"])


async def _read_body(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        raise InvalidInputError("Request body must be valid JSON.")


async def _start(request: Request, request_context: RequestContext, trigger: WorkflowTrigger) -> Dict[str, Any]:
    body = await _read_body(request)
    request_context.body = body
    response = await trigger.start(body, request_context)
    return response.model_dump()


@router.post("/start", status_code=202)
async def start_workflow(
    request: Request,
    request_context: RequestContext = Depends(get_request_context),
    trigger: WorkflowTrigger = Depends(get_workflow_trigger)
) -> Dict[str, Any]:
    """Validate the workflow and start it in the background"""
    return await _start(request, request_context, trigger)


@router.post("/{tenant}/{projectId}/start", status_code=202)
async def start_project_workflow(
    tenant: str,
    projectId: str,
    request: Request,
    request_context: RequestContext = Depends(get_request_context),
    trigger: WorkflowTrigger = Depends(get_workflow_trigger)
) -> Dict[str, Any]:
    """Start a workflow with tenant and project path params available to nodes"""
    return await _start(request, request_context, trigger)
