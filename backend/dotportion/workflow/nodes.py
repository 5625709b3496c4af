# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Node Handlers

One handler per known node type, all sharing `execute(node, input,
context, request)`. The registry maps a node's type tag to its handler
and rejects unknown tags with UnknownNodeTypeError.
"""

import copy
import re
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

import jwt

from dotportion.core.logging import get_workflow_logger
from dotportion.services.secret_service import SecretService
from dotportion.workflow.conditions import evaluate_template_condition
from dotportion.workflow.context import ExecutionContext
from dotportion.workflow.exceptions import (
    NodeExecutionError,
    ParameterProcessingError,
    UnknownNodeTypeError,
)
from dotportion.workflow.models import RequestContext, WorkflowNode
from dotportion.workflow.templates import resolve_templates

logger = get_workflow_logger("nodes")


class NodeType(str, Enum):
    """
    Supported workflow node types.

    Entry:
        API_START - Merge node configuration into the request input
        PARAMETERS - Collect and validate request parameters

    Control Flow:
        CONDITION - Branch on a boolean expression (true/false edge)
        LOOP - Iterate over items (body edge / done edge)

    Auth:
        JWT_GENERATE - Sign a token with the project's secret
        JWT_VERIFY - Verify a bearer token with the project's secret

    Exit:
        RESPONSE - Shape the execution output
    """
    API_START = "apiStart"
    PARAMETERS = "parameters"
    CONDITION = "condition"
    LOOP = "loop"
    JWT_GENERATE = "jwtGenerate"
    JWT_VERIFY = "jwtVerify"
    RESPONSE = "response"


DEFAULT_MERGE_PRIORITY = ["params", "body", "query", "headers"]

_DURATION = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration(value: Any) -> timedelta:
    """Accepts seconds or strings like "30m", "1h", "7d"."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return timedelta(seconds=value)
    match = _DURATION.match(str(value))
    if not match:
        raise NodeExecutionError(f"Invalid expiresIn value: {value}")
    amount, unit = match.groups()
    return timedelta(seconds=int(amount) * _DURATION_UNITS[unit])


def _require_edges(node: WorkflowNode) -> tuple:
    true_edge, false_edge = node.data.get("trueEdgeId"), node.data.get("falseEdgeId")
    if not true_edge or not false_edge:
        raise NodeExecutionError(
            f"Missing edge IDs in {node.type} node. trueEdgeId: {true_edge}, falseEdgeId: {false_edge}"
        )
    return true_edge, false_edge


class NodeHandler:
    """Base class for node handlers"""

    node_type: NodeType

    async def execute(
        self,
        node: WorkflowNode,
        input: Any,
        context: ExecutionContext,
        request: RequestContext
    ) -> Any:
        raise NotImplementedError


class ApiStartHandler(NodeHandler):
    node_type = NodeType.API_START

    async def execute(self, node, input, context, request):
        base = input if isinstance(input, dict) else {}
        return {**base, **node.data}


class ParametersHandler(NodeHandler):
    """
    Collects parameters from request sources.

    Without configured sources the node passes its input through, flagged
    as processed. With sources, each configured source (in mergePriority
    order) contributes its declared keys; later sources override earlier
    ones. All problems are gathered into one ParameterProcessingError.
    """

    node_type = NodeType.PARAMETERS

    async def execute(self, node, input, context, request):
        sources = node.data.get("sources") or []
        if not sources:
            base = input if isinstance(input, dict) else {}
            return {"processed": True, **base}

        options = node.data.get("options") or {}
        strict_mode = options.get("strictMode", False)
        case_sensitive = options.get("caseSensitive", False)
        merge_priority = options.get("mergePriority") or DEFAULT_MERGE_PRIORITY

        input_sources = self._input_sources(request, case_sensitive)
        by_name = {source.get("from"): source for source in sources}

        merged: Dict[str, Any] = {}
        errors: List[Dict[str, Any]] = []

        for name in merge_priority:
            config = by_name.get(name)
            source_input = input_sources.get(name)
            if config is None or source_input is None:
                continue

            required = config.get("required") or []
            validation = config.get("validation") or {}
            mapping = config.get("mapping") or {}
            fold = name == "headers" and not case_sensitive

            def source_key(key: str) -> str:
                key = mapping.get(key, key)
                return key.lower() if fold else key

            allowed = list(dict.fromkeys([*required, *validation.keys(), *mapping.keys()]))
            processed = {
                key: source_input[source_key(key)]
                for key in allowed
                if source_key(key) in source_input
            }

            missing = [key for key in required if source_key(key) not in source_input]
            if missing:
                errors.append({
                    "source": name,
                    "type": "MISSING_PARAMS",
                    "params": missing,
                    "message": f"Missing in {name}: {', '.join(missing)}",
                })

            validation_errors = self._validate(processed, validation)
            if validation_errors:
                errors.append({"source": name, "type": "VALIDATION_FAILED", "errors": validation_errors})

            # Headers always carry transport fields, so strict mode skips them
            if strict_mode and name != "headers":
                declared = {source_key(key) for key in allowed}
                unexpected = [key for key in source_input if key not in declared]
                if unexpected:
                    errors.append({
                        "source": name,
                        "type": "UNEXPECTED_PARAMS",
                        "params": unexpected,
                        "message": f"Unexpected parameters: {', '.join(unexpected)}",
                    })

            merged.update(processed)

        if errors:
            raise ParameterProcessingError(errors, received_params=list(merged))
        return merged

    @staticmethod
    def _input_sources(request: RequestContext, case_sensitive: bool) -> Dict[str, Dict[str, Any]]:
        body = request.body
        if isinstance(body, dict) and isinstance(body.get("input"), dict):
            body = body["input"]
        headers = request.headers or {}
        if not case_sensitive:
            headers = {str(k).lower(): v for k, v in headers.items()}
        return {
            "body": body if isinstance(body, dict) else {},
            "params": request.params or {},
            "query": request.query or {},
            "headers": headers,
        }

    @staticmethod
    def _validate(values: Dict[str, Any], validation: Dict[str, Dict[str, Any]]) -> List[Dict[str, Any]]:
        errors = []
        for param, rules in validation.items():
            if param not in values:
                continue
            value = values[param]

            regex = rules.get("regex")
            if regex and not re.search(regex, str(value)):
                errors.append({
                    "param": param,
                    "value": value,
                    "rule": "regex",
                    "message": rules.get("message") or f"{param} failed format validation",
                })

            for rule, fails in (("min", lambda n, bound: n < bound), ("max", lambda n, bound: n > bound)):
                bound = rules.get(rule)
                if not isinstance(bound, (int, float)) or isinstance(bound, bool):
                    continue
                try:
                    failed = fails(float(value), bound)
                except (TypeError, ValueError):
                    failed = True
                if failed:
                    symbol = ">=" if rule == "min" else "<="
                    errors.append({
                        "param": param,
                        "value": value,
                        "rule": rule,
                        "message": f"{param} must be {symbol} {bound}",
                    })

            allowed_values = rules.get("enum")
            if isinstance(allowed_values, list) and value not in allowed_values:
                errors.append({
                    "param": param,
                    "value": value,
                    "rule": "enum",
                    "message": f"{param} must be one of: {', '.join(str(v) for v in allowed_values)}",
                })
        return errors


class ConditionHandler(NodeHandler):
    """
    Evaluates `data.condition` and picks the edge to follow.

    Inside the condition, `{{input.x}}` refers to the value flowing into
    this node; other paths resolve against the execution context.
    """

    node_type = NodeType.CONDITION

    async def execute(self, node, input, context, request):
        condition = node.data.get("condition")
        if not condition:
            raise NodeExecutionError("Missing condition in condition node")
        true_edge, false_edge = _require_edges(node)

        scope = {**context.to_dict(), "input": input}
        try:
            result = evaluate_template_condition(str(condition), scope, input)
        except ValueError as e:
            raise NodeExecutionError(
                "Error evaluating condition",
                details={"condition": condition, "reason": str(e)}
            )

        return {"conditionResult": result, "nextEdgeId": true_edge if result else false_edge}


class LoopHandler(NodeHandler):
    """
    Steps through `data.items`, one item per visit.

    The cursor lives in the execution context under the loop node's id and
    resets once the items are exhausted, so re-entering the loop starts
    over.
    """

    node_type = NodeType.LOOP

    async def execute(self, node, input, context, request):
        items = node.data.get("items")
        if items is None:
            raise NodeExecutionError("Missing items in loop node")
        true_edge, false_edge = _require_edges(node)

        resolved = resolve_templates(items, context.to_dict(), input)
        if resolved is None:
            items_list = []
        elif isinstance(resolved, list):
            items_list = resolved
        else:
            items_list = [resolved]

        state = context.loop_state.get(node.id, {})
        index = state.get("currentIndex", 0)
        has_more = index < len(items_list)
        current_item = items_list[index] if has_more else None

        loop_context = {
            "currentIndex": index + 1,
            "totalItems": len(items_list),
            "currentItem": current_item,
            "isLast": index == len(items_list) - 1,
        }
        if has_more:
            context.loop_state[node.id] = loop_context
        else:
            context.loop_state.pop(node.id, None)

        return {
            "hasMoreItems": has_more,
            "nextEdgeId": true_edge if has_more else false_edge,
            "currentItem": current_item,
            "loopContext": copy.deepcopy(loop_context),
        }


class _ProjectSecretHandler(NodeHandler):
    """Shared secret lookup for the JWT nodes"""

    def __init__(self, secrets: Optional[SecretService]):
        self.secrets = secrets

    async def _jwt_secret(self, request: RequestContext, provider: str) -> str:
        tenant = request.params.get("tenant")
        project_id = request.params.get("projectId")
        if not tenant:
            raise NodeExecutionError("Missing tenant in request context")
        if not project_id:
            raise NodeExecutionError("Missing projectId in request context")
        if self.secrets is None:
            raise NodeExecutionError("Secret storage is not configured")

        secret = await self.secrets.get_secret_by_provider(tenant, project_id, provider)
        value = ((secret or {}).get("data") or {}).get("secret")
        if not value:
            raise NodeExecutionError("Missing jwt secret for project")
        return value


class JwtGenerateHandler(_ProjectSecretHandler):
    node_type = NodeType.JWT_GENERATE

    async def execute(self, node, input, context, request):
        payload = node.data.get("payload")
        provider = node.data.get("type", "jwt")
        if not payload:
            raise NodeExecutionError("Missing payload in jwtGenerate node")

        secret = await self._jwt_secret(request, provider)
        claims = resolve_templates(payload, context.to_dict(), input)
        if not isinstance(claims, dict):
            raise NodeExecutionError("jwtGenerate payload must resolve to an object")

        claims["exp"] = datetime.now(timezone.utc) + parse_duration(node.data.get("expiresIn", "1h"))
        token = jwt.encode(claims, secret, algorithm="HS256")
        return {"token": f"Bearer {token}"}


class JwtVerifyHandler(_ProjectSecretHandler):
    """
    Verifies a bearer token.

    Token source, first match wins: `data.token` (template), the request's
    Authorization header, then `authorization` in the node input.
    """

    node_type = NodeType.JWT_VERIFY

    def _find_token(self, node, input, context, request) -> Optional[str]:
        if node.data.get("token"):
            token = resolve_templates(node.data["token"], context.to_dict(), input)
            if token:
                return str(token)
        for key, value in (request.headers or {}).items():
            if str(key).lower() == "authorization" and value:
                return str(value)
        if isinstance(input, dict) and input.get("authorization"):
            return str(input["authorization"])
        return None

    async def execute(self, node, input, context, request):
        token = self._find_token(node, input, context, request)
        if not token:
            raise NodeExecutionError("Access Denied", error_type="ACCESS_DENIED")

        secret = await self._jwt_secret(request, node.data.get("type", "jwt"))
        if token.startswith("Bearer "):
            token = token[len("Bearer "):].strip()

        try:
            decoded = jwt.decode(token, secret, algorithms=["HS256"])
        except jwt.InvalidTokenError as e:
            raise NodeExecutionError(f"Invalid token: {e}", error_type="ACCESS_DENIED")
        return {"isAuthenticated": True, "data": decoded}


class ResponseHandler(NodeHandler):
    """
    Final response. When the run holds a result for the node with id
    "jwtGenerate", its token is returned alongside the data.
    """

    node_type = NodeType.RESPONSE
    token_node_id = "jwtGenerate"

    async def execute(self, node, input, context, request):
        response = {"status": node.data.get("status", 200), "data": input}
        generated = context.get_result(self.token_node_id)
        if generated:
            response["token"] = generated.get("token") if isinstance(generated, dict) else generated
        return response


class NodeRegistry:
    """Node type tag -> handler"""

    def __init__(self, secrets: Optional[SecretService] = None):
        self._handlers: Dict[str, NodeHandler] = {}
        for handler in (
            ApiStartHandler(),
            ParametersHandler(),
            ConditionHandler(),
            LoopHandler(),
            JwtGenerateHandler(secrets),
            JwtVerifyHandler(secrets),
            ResponseHandler(),
        ):
            self.register(handler)

    def register(self, handler: NodeHandler) -> None:
        node_type = getattr(handler.node_type, "value", handler.node_type)
        self._handlers[node_type] = handler

    def get(self, node_type: str) -> NodeHandler:
        handler = self._handlers.get(node_type)
        if handler is None:
            logger.warning(f"No handler registered for node type: {node_type}")
            raise UnknownNodeTypeError(node_type)
        return handler

    @property
    def types(self) -> List[str]:
        return list(self._handlers)
