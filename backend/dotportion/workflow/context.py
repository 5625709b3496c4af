# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Execution Context

Tracks execution state for a workflow run.
"""

import asyncio
import copy
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from dotportion.workflow.models import ExecutionStatus, RequestContext


class ExecutionContext:
    """
    Execution context for a workflow run.

    Tracks:
    - Initial input and request data
    - Node results (node id -> {"result": output})
    - Output of the most recent node, which feeds the next one
    - Per-loop-node cursors
    - Status and cancellation signal
    """

    def __init__(
        self,
        execution_id: str,
        initial_input: Dict[str, Any],
        request: Optional[RequestContext] = None,
        workflow_id: Optional[str] = None
    ):
        self.execution_id = execution_id
        self.workflow_id = workflow_id
        self.input: Dict[str, Any] = dict(initial_input)
        self.request = request or RequestContext()
        self.status: ExecutionStatus = "started"
        self.started_at = datetime.now(timezone.utc).isoformat()
        self.completed_at: Optional[str] = None

        self.node_results: Dict[str, Dict[str, Any]] = {}
        self.last_output: Any = None
        self.loop_state: Dict[str, Dict[str, Any]] = {}
        self.cancel_event = asyncio.Event()

    @property
    def current_input(self) -> Any:
        """Value handed to the next node: the previous output, else the initial input."""
        return self.input if self.last_output is None else self.last_output

    def record(self, node_id: str, output: Any) -> None:
        """Store a node's output. Entries of other nodes are never touched."""
        self.node_results[node_id] = {"result": output}
        self.last_output = output

    def is_completed(self, node_id: str) -> bool:
        return node_id in self.node_results

    def get_result(self, node_id: str) -> Any:
        entry = self.node_results.get(node_id)
        return entry["result"] if entry else None

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def cancel(self) -> None:
        self.cancel_event.set()

    def mark_running(self) -> None:
        self.status = "running"

    def finalize(self, status: ExecutionStatus) -> None:
        """Mark execution as complete"""
        self.status = status
        self.completed_at = datetime.now(timezone.utc).isoformat()

    def to_dict(self) -> Dict[str, Any]:
        """Snapshot exposed to templates: {"input": ..., <node_id>: {"result": ...}}"""
        snapshot = {"input": self.input}
        snapshot.update(self.node_results)
        return copy.deepcopy(snapshot)
