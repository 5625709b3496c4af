# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Exceptions

Raised while an execution is running. Request-time validation uses the
HTTP-facing errors in dotportion.core.errors instead.
"""

from typing import Any, Dict, List, Optional


class WorkflowException(Exception):
    """Base exception for workflow execution"""

    error_type = "EXECUTION_FAILED"

    def __init__(self, message: str, error_type: Optional[str] = None, details: Any = None):
        self.message = message
        if error_type is not None:
            self.error_type = error_type
        self.details = details
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Error payload carried by node_failed / execution_failed"""
        error = {"type": self.error_type, "message": self.message}
        if self.details is not None:
            error["details"] = self.details
        return error


class NodeExecutionError(WorkflowException):
    """A node handler failed"""
    pass


class UnknownNodeTypeError(NodeExecutionError):
    """No handler registered for the node's type"""

    error_type = "UNKNOWN_NODE_TYPE"

    def __init__(self, node_type: str):
        super().__init__(f"No handler for node type {node_type}")
        self.node_type = node_type


class ParameterProcessingError(NodeExecutionError):
    """Request parameters missing, unexpected or invalid"""

    error_type = "PARAMETER_PROCESSING_FAILED"

    def __init__(self, errors: List[Dict[str, Any]], received_params: List[str]):
        super().__init__("Parameter validation failed", details=errors)
        self.received_params = received_params


class NodeTimeoutError(NodeExecutionError):
    """Node exceeded its time budget"""

    error_type = "NODE_TIMEOUT"

    def __init__(self, node_id: str, timeout: float):
        super().__init__(f"Node '{node_id}' exceeded timeout ({timeout}s)")
        self.node_id = node_id
        self.timeout = timeout


class ExecutionCancelledError(WorkflowException):
    """Execution was cancelled before the node ran"""

    error_type = "EXECUTION_CANCELLED"

    def __init__(self, execution_id: str):
        super().__init__(f"Execution {execution_id} was cancelled")
        self.execution_id = execution_id


class WorkflowExecutionError(WorkflowException):
    """Step engine could not continue (bad branch edge, step limit)"""
    pass
