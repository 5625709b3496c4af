# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Validation

Checks a start request and its workflow graph before any execution begins.
Graphs may contain cycles (loop nodes revisit their body), so validation
covers references and entry points rather than topological order.
"""

from typing import Any, Dict, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from dotportion.core.errors import InvalidInputError, InvalidStructureError, WorkflowNotFoundError
from dotportion.workflow.models import Workflow, WorkflowNode

BRANCH_NODE_TYPES = ("condition", "loop")


def validate_start_request(body: Any) -> Tuple[Dict[str, Any], Workflow]:
    """
    Validate a workflow start request body.

    The workflow check runs before the input check.

    Returns:
        (input, parsed workflow)

    Raises:
        InvalidInputError: Body or input is not a plain object
        WorkflowNotFoundError: Workflow, nodes or edges missing
        InvalidStructureError: Graph is malformed
    """
    if not isinstance(body, dict):
        raise InvalidInputError("Request body must be a JSON object.")

    workflow = body.get("workflow")
    if not isinstance(workflow, dict) or workflow.get("nodes") is None or workflow.get("edges") is None:
        raise WorkflowNotFoundError("A valid workflow object with nodes and edges is required.")

    initial_input = body.get("input")
    if not isinstance(initial_input, dict):
        raise InvalidInputError("Input must be a plain object.")

    parsed = parse_workflow(workflow)
    validate_workflow_graph(parsed)
    return initial_input, parsed


def parse_workflow(workflow: Dict[str, Any]) -> Workflow:
    try:
        return Workflow.model_validate(workflow)
    except PydanticValidationError as e:
        errors = [
            {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
            for err in e.errors()
        ]
        raise InvalidStructureError("Workflow graph is malformed.", details={"errors": errors})


def validate_workflow_graph(workflow: Workflow) -> None:
    """
    Validate graph references.

    Raises InvalidStructureError if validation fails.
    """
    # 1. Empty workflow check
    if len(workflow.nodes) == 0:
        raise InvalidStructureError("Workflow must have at least one node", field="nodes")

    # 2. Duplicate node IDs
    node_ids = [node.id for node in workflow.nodes]
    if len(node_ids) != len(set(node_ids)):
        duplicates = sorted({nid for nid in node_ids if node_ids.count(nid) > 1})
        raise InvalidStructureError(f"Duplicate node IDs found: {duplicates}", field="nodes")

    # 3. Duplicate edge IDs
    edge_ids = [edge.id for edge in workflow.edges if edge.id is not None]
    if len(edge_ids) != len(set(edge_ids)):
        duplicates = sorted({eid for eid in edge_ids if edge_ids.count(eid) > 1})
        raise InvalidStructureError(f"Duplicate edge IDs found: {duplicates}", field="edges")

    # 4. Invalid edge references
    node_id_set = set(node_ids)
    for edge in workflow.edges:
        for endpoint in (edge.source, edge.target):
            if endpoint not in node_id_set:
                raise InvalidStructureError(
                    f"Edge references non-existent node: {endpoint}",
                    field="edges"
                )

    # 5. Entry node
    if find_entry_node(workflow) is None:
        raise InvalidStructureError(
            "No entry node found (all nodes have incoming edges)",
            field="edges"
        )

    # 6. Branch targets
    edge_id_set = set(edge_ids)
    for node in workflow.nodes:
        if node.type not in BRANCH_NODE_TYPES:
            continue
        for key in ("trueEdgeId", "falseEdgeId"):
            edge_id = node.data.get(key)
            if edge_id is not None and edge_id not in edge_id_set:
                raise InvalidStructureError(
                    f"Node '{node.id}' {key} references non-existent edge: {edge_id}",
                    field=f"nodes[{node.id}].data.{key}"
                )


def find_entry_node(workflow: Workflow) -> Optional[WorkflowNode]:
    """First node, in node order, with no incoming edges."""
    targets = {edge.target for edge in workflow.edges}
    return next((node for node in workflow.nodes if node.id not in targets), None)
