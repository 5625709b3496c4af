# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Node Executor

Runs a single workflow node through its registered handler and reports
the outcome as live updates.
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from dotportion.core.errors import sanitize_error_for_user
from dotportion.core.logging import ExecutionLogger, get_workflow_logger
from dotportion.workflow.context import ExecutionContext
from dotportion.workflow.emitter import UpdateEmitter
from dotportion.workflow.exceptions import (
    ExecutionCancelledError,
    NodeTimeoutError,
    WorkflowException,
)
from dotportion.workflow.models import RequestContext, WorkflowNode
from dotportion.workflow.nodes import NodeHandler, NodeRegistry

logger = get_workflow_logger("executor")


def error_payload(error: BaseException) -> Dict[str, Any]:
    """`{type, message}` for node_failed / execution_failed events"""
    if isinstance(error, WorkflowException):
        return error.to_dict()
    if isinstance(error, asyncio.CancelledError):
        return {"type": "EXECUTION_CANCELLED", "message": "Node execution was cancelled"}
    return {"type": type(error).__name__, "message": sanitize_error_for_user(error, include_type=False)}


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


class NodeExecutor:
    """
    Executes nodes for the step engine.

    Every node that starts gets exactly one node_started followed by
    exactly one node_completed or node_failed.
    """

    def __init__(
        self,
        registry: NodeRegistry,
        emitter: UpdateEmitter,
        node_timeout: Optional[float] = None
    ):
        self.registry = registry
        self.emitter = emitter
        self.node_timeout = node_timeout

    async def process_node(
        self,
        node: WorkflowNode,
        context: ExecutionContext,
        request_context: Optional[RequestContext] = None
    ) -> Any:
        """
        Run one node and return its output.

        Raises:
            ExecutionCancelledError: execution was cancelled before the node ran
            WorkflowException: handler failure, re-raised after node_failed
        """
        if context.cancelled:
            raise ExecutionCancelledError(context.execution_id)

        request = request_context or context.request
        execution_id = context.execution_id
        started = time.monotonic()
        log = ExecutionLogger(logger, execution_id, workflow_id=context.workflow_id).for_node(node.id, node.type)

        log.info("Executing node")
        await self.emitter.emit(execution_id, "node_started", {
            "nodeId": node.id,
            "nodeType": node.type,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

        try:
            handler = self.registry.get(node.type)
            output = await self._run_handler(handler, node, context, request)
        except (Exception, asyncio.CancelledError) as e:
            duration = _elapsed_ms(started)
            log.error(f"Node failed after {duration}ms: {e}", extra={"duration_ms": duration})
            await self.emitter.emit(execution_id, "node_failed", {
                "nodeId": node.id,
                "nodeType": node.type,
                "error": error_payload(e),
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "duration": duration,
            })
            raise

        context.record(node.id, output)
        duration = _elapsed_ms(started)
        await self.emitter.emit(execution_id, "node_completed", {
            "nodeId": node.id,
            "nodeType": node.type,
            "output": output,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "duration": duration,
        })
        log.info(f"Node completed in {duration}ms", extra={"duration_ms": duration})
        return output

    async def _run_handler(
        self,
        handler: NodeHandler,
        node: WorkflowNode,
        context: ExecutionContext,
        request: RequestContext
    ) -> Any:
        """Race the handler against its timeout and the cancellation signal."""
        timeout = node.data.get("timeout", self.node_timeout)

        node_task = asyncio.ensure_future(handler.execute(node, context.current_input, context, request))
        cancel_task = asyncio.ensure_future(context.cancel_event.wait())
        try:
            done, _ = await asyncio.wait(
                {node_task, cancel_task},
                timeout=timeout,
                return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            cancel_task.cancel()
            if not node_task.done():
                node_task.cancel()

        if node_task in done:
            return node_task.result()
        if context.cancelled:
            raise ExecutionCancelledError(context.execution_id)
        raise NodeTimeoutError(node.id, timeout)
