# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Models

Pydantic models for workflow graphs, the orchestrator handoff and live
update events. Field names follow the editor's camelCase wire format.
"""

from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

from dotportion.workflow.ids import EXECUTION_ID_PATTERN


ExecutionStatus = Literal["pending", "started", "running", "succeeded", "failed", "cancelled"]

EventName = Literal[
    "execution_pending",
    "execution_started",
    "node_started",
    "node_completed",
    "node_failed",
    "execution_completed",
    "execution_failed",
    "execution_cancelled",
]

TERMINAL_EVENTS = ("execution_completed", "execution_failed", "execution_cancelled")


class WorkflowNode(BaseModel):
    """One unit of work; `data` holds type-specific configuration"""
    model_config = ConfigDict(extra="allow")  # editor fields such as position

    id: str
    type: str
    data: Dict[str, Any] = Field(default_factory=dict)


class WorkflowEdge(BaseModel):
    """Directed connection between node ports (handles)"""
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    source: str
    target: str
    sourceHandle: Optional[str] = None
    targetHandle: Optional[str] = None


class Workflow(BaseModel):
    model_config = ConfigDict(extra="allow")

    nodes: List[WorkflowNode]
    edges: List[WorkflowEdge]


class RequestContext(BaseModel):
    """Request data handed to node handlers"""
    params: Dict[str, Any] = Field(default_factory=dict)
    headers: Dict[str, Any] = Field(default_factory=dict)
    body: Any = None
    query: Dict[str, Any] = Field(default_factory=dict)


class HandoffPayload(BaseModel):
    """Message from the trigger to the step engine"""
    executionId: str = Field(pattern=EXECUTION_ID_PATTERN)
    workflow: Workflow
    initialInput: Dict[str, Any]
    requestContext: RequestContext = Field(default_factory=RequestContext)


class StartWorkflowResponse(BaseModel):
    executionId: str
    status: Literal["started"] = "started"
    message: str = "Workflow execution started."
    websocketUrl: str


class UpdateEvent(BaseModel):
    """Live update pushed to subscribers and kept in the event log"""
    event: EventName
    data: Dict[str, Any] = Field(default_factory=dict)
    executionId: str
    seq: int
    timestamp: str
