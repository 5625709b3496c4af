# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Trigger

Validates a start request, assigns an execution id and hands the run to
the step engine without waiting for it.
"""

from typing import Any

from dotportion.core.config import Config
from dotportion.core.errors import InternalError
from dotportion.core.logging import get_workflow_logger
from dotportion.workflow.dispatch import Dispatcher, DispatchError
from dotportion.workflow.ids import generate_execution_id
from dotportion.workflow.models import HandoffPayload, RequestContext, StartWorkflowResponse
from dotportion.workflow.validation import validate_start_request

logger = get_workflow_logger("trigger")


def websocket_url_for(base: str, execution_id: str) -> str:
    separator = "&" if "?" in base else "?"
    return f"{base}{separator}executionId={execution_id}"


class WorkflowTrigger:
    def __init__(self, dispatcher: Dispatcher, config: Config):
        self.dispatcher = dispatcher
        self.config = config

    async def start(self, body: Any, request_context: RequestContext) -> StartWorkflowResponse:
        """
        Start a workflow execution.

        Raises:
            WorkflowNotFoundError: workflow, nodes or edges missing
            InvalidInputError: body or input is not a JSON object
            InvalidStructureError: graph is not executable
            InternalError: the run could not be handed off
        """
        initial_input, workflow = validate_start_request(body)
        execution_id = generate_execution_id()

        payload = HandoffPayload(
            executionId=execution_id,
            workflow=workflow,
            initialInput=initial_input,
            requestContext=request_context,
        )

        try:
            await self.dispatcher.dispatch(payload)
        except DispatchError as e:
            logger.error(f"Failed to dispatch {execution_id}: {e}")
            raise InternalError("Failed to start workflow execution.")

        logger.info(f"Started execution {execution_id} ({len(workflow.nodes)} nodes)")
        return StartWorkflowResponse(
            executionId=execution_id,
            websocketUrl=websocket_url_for(self.config.websocket_url, execution_id),
        )
