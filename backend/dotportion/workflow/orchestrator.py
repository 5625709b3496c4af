# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Orchestrator

The step engine: receives a handoff payload, waits briefly for a live
subscriber, then walks the graph one node at a time from the entry node.

Branch nodes (condition, loop) choose the next edge by id; every other
node continues along its first outgoing edge. A node with nowhere to go
ends the run.
"""

import time
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from dotportion.core.config import Config
from dotportion.core.logging import ExecutionLogger, get_workflow_logger, log_event
from dotportion.db.collections import EXECUTIONS, get_collection
from dotportion.db.store import DocumentStore
from dotportion.workflow.connections import ConnectionManager
from dotportion.workflow.context import ExecutionContext
from dotportion.workflow.emitter import UpdateEmitter
from dotportion.workflow.exceptions import ExecutionCancelledError, WorkflowExecutionError
from dotportion.workflow.executor import NodeExecutor, error_payload
from dotportion.workflow.models import HandoffPayload, Workflow, WorkflowEdge, WorkflowNode
from dotportion.workflow.validation import BRANCH_NODE_TYPES, find_entry_node, validate_workflow_graph

logger = get_workflow_logger("orchestrator")

DEFAULT_WORKFLOW_ID = "default-workflow"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def workflow_id_for(payload: HandoffPayload) -> str:
    params = payload.requestContext.params
    if params.get("tenant") and params.get("projectId"):
        return f"{params['tenant']}/{params['projectId']}"
    return DEFAULT_WORKFLOW_ID


class _Graph:
    """Lookup tables for walking a workflow"""

    def __init__(self, workflow: Workflow):
        self.workflow = workflow
        self.nodes: Dict[str, WorkflowNode] = {n.id: n for n in workflow.nodes}
        self.edges_by_id: Dict[str, WorkflowEdge] = {e.id: e for e in workflow.edges if e.id}
        self.outgoing: Dict[str, List[WorkflowEdge]] = defaultdict(list)
        for edge in workflow.edges:
            self.outgoing[edge.source].append(edge)

    def next_node(self, node: WorkflowNode, output: Any) -> Optional[WorkflowNode]:
        if node.type in BRANCH_NODE_TYPES:
            edge_id = output.get("nextEdgeId") if isinstance(output, dict) else None
            edge = self.edges_by_id.get(edge_id)
            if edge is None:
                raise WorkflowExecutionError(f"No edge found with ID: {edge_id}")
            return self.nodes[edge.target]

        edges = self.outgoing.get(node.id, [])
        if not edges:
            return None
        if len(edges) > 1:
            logger.warning(
                f"Node {node.id} has {len(edges)} outgoing edges, following {edges[0].target}"
            )
        return self.nodes[edges[0].target]


class Orchestrator:
    """
    Runs workflow executions.

    Each run persists a record in the executions collection and streams
    its progress through the update emitter.
    """

    def __init__(
        self,
        store: DocumentStore,
        executor: NodeExecutor,
        emitter: UpdateEmitter,
        connections: ConnectionManager,
        config: Config
    ):
        self.executions = get_collection(store, EXECUTIONS)
        self.executor = executor
        self.emitter = emitter
        self.connections = connections
        self.config = config
        self._active: Dict[str, ExecutionContext] = {}

    def is_active(self, execution_id: str) -> bool:
        return execution_id in self._active

    def cancel(self, execution_id: str) -> bool:
        """Signal a running execution to stop. False if it isn't running here."""
        context = self._active.get(execution_id)
        if context is None:
            return False
        ExecutionLogger(logger, execution_id, workflow_id=context.workflow_id).info("Cancellation requested")
        context.cancel()
        return True

    async def _update_record(self, execution_id: str, changes: Dict[str, Any]) -> None:
        await self.executions.update_one({"_id": execution_id}, changes)

    async def run(self, payload: HandoffPayload) -> ExecutionContext:
        """
        Execute a workflow to completion.

        Raises whatever failed the run after execution_failed has been
        emitted and the record persisted. Cancellation is a normal outcome.
        """
        execution_id = payload.executionId
        validate_workflow_graph(payload.workflow)

        context = ExecutionContext(
            execution_id,
            payload.initialInput,
            request=payload.requestContext,
            workflow_id=workflow_id_for(payload),
        )
        await self.executions.insert_one({
            "_id": execution_id,
            "execution_id": execution_id,
            "workflow_id": context.workflow_id,
            "status": "pending",
            "input": payload.initialInput,
            "nodes": {},
            "output": None,
            "error": None,
            "started_at": None,
            "completed_at": None,
        })
        self._active[execution_id] = context
        log = ExecutionLogger(logger, execution_id, workflow_id=context.workflow_id)
        started = time.monotonic()

        try:
            wait = self.config.connection_wait_timeout
            await self.emitter.emit(execution_id, "execution_pending", {
                "message": "Waiting for WebSocket connection...",
                "timeout": wait,
            })
            if not await self.connections.wait_for_connection(execution_id, wait):
                log.warning("No subscriber, running without live updates")

            context.mark_running()
            await self._update_record(execution_id, {"status": "running", "started_at": context.started_at})
            await self.emitter.emit(execution_id, "execution_started", {
                "workflow": context.workflow_id,
                "startedAt": context.started_at,
            })

            output = await self._walk(_Graph(payload.workflow), context)

        except ExecutionCancelledError:
            context.finalize("cancelled")
            log.info("Execution cancelled")
            await self._update_record(execution_id, {
                "status": "cancelled",
                "completed_at": context.completed_at,
            })
            await self.emitter.emit(execution_id, "execution_cancelled", {"timestamp": _now()})
            return context

        except Exception as e:
            context.finalize("failed")
            error = error_payload(e)
            log.error(f"Execution failed: {error['message']}", extra={"error_type": error.get("type")})
            await self._update_record(execution_id, {
                "status": "failed",
                "error": error,
                "completed_at": context.completed_at,
            })
            await self.emitter.emit(execution_id, "execution_failed", {
                "error": error,
                "timestamp": _now(),
            })
            raise

        else:
            context.finalize("succeeded")
            duration = int((time.monotonic() - started) * 1000)
            await self._update_record(execution_id, {
                "status": "succeeded",
                "output": output,
                "completed_at": context.completed_at,
            })
            await self.emitter.emit(execution_id, "execution_completed", {
                "output": output,
                "timestamp": _now(),
                "duration": duration,
            })
            log.info(f"Execution completed in {duration}ms", extra={"duration_ms": duration})
            return context

        finally:
            log_event(log, "execution_finished", status=context.status)
            self._active.pop(execution_id, None)
            await self.connections.close(execution_id)
            self.emitter.event_log.forget(execution_id)

    async def _walk(self, graph: _Graph, context: ExecutionContext) -> Any:
        """Visit nodes from the entry node until one has no successor."""
        node = find_entry_node(graph.workflow)
        node_states: Dict[str, Dict[str, Any]] = {}
        steps = 0

        while node is not None:
            steps += 1
            if steps > self.config.max_steps:
                raise WorkflowExecutionError(
                    f"Execution exceeded {self.config.max_steps} steps",
                    error_type="MAX_STEPS_EXCEEDED",
                )

            node_states[node.id] = {"type": node.type, "status": "running", "started_at": _now()}
            await self._update_record(context.execution_id, {"nodes": node_states})

            try:
                output = await self.executor.process_node(node, context)
            except Exception as e:
                status = "cancelled" if isinstance(e, ExecutionCancelledError) else "failed"
                node_states[node.id].update(status=status, error=error_payload(e), completed_at=_now())
                await self._update_record(context.execution_id, {"nodes": node_states})
                raise

            node_states[node.id].update(status="completed", output=output, completed_at=_now())
            await self._update_record(context.execution_id, {"nodes": node_states})

            node = graph.next_node(node, output)

        return context.last_output
