# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for workflow node handlers and the node registry
"""

import jwt
import pytest
from unittest.mock import AsyncMock

from dotportion.workflow.context import ExecutionContext
from dotportion.workflow.exceptions import (
    NodeExecutionError,
    ParameterProcessingError,
    UnknownNodeTypeError,
)
from dotportion.workflow.models import RequestContext, WorkflowNode
from dotportion.workflow.nodes import NodeRegistry, NodeType, parse_duration


SECRET = "project-secret"


@pytest.fixture
def secrets():
    """Mock SecretService returning a project JWT secret"""
    service = AsyncMock()
    service.get_secret_by_provider = AsyncMock(return_value={"data": {"secret": SECRET}})
    return service


@pytest.fixture
def registry(secrets):
    return NodeRegistry(secrets)


@pytest.fixture
def context():
    return ExecutionContext("exec_1_abcdef12", {"x": 1})


def node(type_, data=None, node_id="n1"):
    return WorkflowNode(id=node_id, type=type_, data=data or {})


async def execute(registry, node_, input_, context, request=None):
    handler = registry.get(node_.type)
    return await handler.execute(node_, input_, context, request or RequestContext())


class TestRegistry:
    """Test NodeRegistry"""

    def test_known_types(self, registry):
        assert set(registry.types) == {t.value for t in NodeType}

    @pytest.mark.parametrize("node_type", ["logic", "database", "mystery"])
    def test_unknown_type(self, registry, node_type):
        """Unsupported types fail explicitly"""
        with pytest.raises(UnknownNodeTypeError) as exc:
            registry.get(node_type)
        assert exc.value.error_type == "UNKNOWN_NODE_TYPE"


class TestApiStartAndResponse:

    @pytest.mark.asyncio
    async def test_api_start_merges_data(self, registry, context):
        output = await execute(registry, node("apiStart", {"source": "web"}), {"x": 1}, context)
        assert output == {"x": 1, "source": "web"}

    @pytest.mark.asyncio
    async def test_response_wraps_input(self, registry, context):
        output = await execute(registry, node("response", {"status": 201}), {"ok": True}, context)
        assert output == {"status": 201, "data": {"ok": True}}

    @pytest.mark.asyncio
    async def test_response_defaults_to_200(self, registry, context):
        output = await execute(registry, node("response"), {}, context)
        assert output["status"] == 200
        assert "token" not in output

    @pytest.mark.asyncio
    async def test_response_includes_generated_token(self, registry, context):
        context.record("jwtGenerate", {"token": "Bearer abc"})

        output = await execute(registry, node("response"), {"ok": True}, context)

        assert output == {"status": 200, "token": "Bearer abc", "data": {"ok": True}}


class TestParametersNode:
    """Test parameters handler"""

    @pytest.mark.asyncio
    async def test_passthrough_without_sources(self, registry, context):
        """No sources: the input is passed on, flagged as processed"""
        output = await execute(registry, node("parameters"), {"x": 1}, context)
        assert output == {"processed": True, "x": 1}

    @pytest.mark.asyncio
    async def test_collects_from_sources_in_priority_order(self, registry, context):
        data = {
            "sources": [
                {"from": "body", "required": ["name", "page"]},
                {"from": "query", "required": ["page"]},
            ],
            "options": {"mergePriority": ["body", "query"]},
        }
        request = RequestContext(body={"input": {"name": "ada", "page": "1"}}, query={"page": "2"})

        output = await execute(registry, node("parameters", data), {}, context, request)

        assert output == {"name": "ada", "page": "2"}

    @pytest.mark.asyncio
    async def test_mapping(self, registry, context):
        """Mapped keys read a differently named request field"""
        data = {"sources": [{"from": "query", "mapping": {"userId": "uid"}}]}
        request = RequestContext(query={"uid": "42"})

        output = await execute(registry, node("parameters", data), {}, context, request)

        assert output == {"userId": "42"}

    @pytest.mark.asyncio
    async def test_headers_case_insensitive_by_default(self, registry, context):
        data = {"sources": [{"from": "headers", "required": ["X-Api-Key"]}]}
        request = RequestContext(headers={"x-api-key": "k"})

        output = await execute(registry, node("parameters", data), {}, context, request)

        assert output == {"X-Api-Key": "k"}

    @pytest.mark.asyncio
    async def test_errors_are_aggregated(self, registry, context):
        """Missing, invalid and unexpected parameters are reported together"""
        data = {
            "sources": [{
                "from": "body",
                "required": ["email", "age"],
                "validation": {
                    "email": {"regex": "^[^@]+@[^@]+$"},
                    "plan": {"enum": ["free", "pro"]},
                },
            }],
            "options": {"strictMode": True},
        }
        request = RequestContext(body={"email": "nope", "plan": "gold", "extra": 1})

        with pytest.raises(ParameterProcessingError) as exc:
            await execute(registry, node("parameters", data), {}, context, request)

        error = exc.value
        assert error.error_type == "PARAMETER_PROCESSING_FAILED"
        kinds = {e["type"] for e in error.details}
        assert kinds == {"MISSING_PARAMS", "VALIDATION_FAILED", "UNEXPECTED_PARAMS"}
        missing = next(e for e in error.details if e["type"] == "MISSING_PARAMS")
        assert missing["params"] == ["age"]
        invalid = next(e for e in error.details if e["type"] == "VALIDATION_FAILED")
        assert {e["rule"] for e in invalid["errors"]} == {"regex", "enum"}
        unexpected = next(e for e in error.details if e["type"] == "UNEXPECTED_PARAMS")
        assert unexpected["params"] == ["extra"]

    @pytest.mark.asyncio
    async def test_min_max(self, registry, context):
        data = {"sources": [{"from": "query", "validation": {"limit": {"min": 1, "max": 100}}}]}

        with pytest.raises(ParameterProcessingError) as exc:
            await execute(registry, node("parameters", data), {}, context, RequestContext(query={"limit": "500"}))

        assert exc.value.details[0]["errors"][0]["rule"] == "max"


class TestConditionNode:
    """Test condition handler"""

    @pytest.mark.asyncio
    async def test_true_branch(self, registry, context):
        data = {"condition": "{{input.age}} >= 18", "trueEdgeId": "yes", "falseEdgeId": "no"}
        output = await execute(registry, node("condition", data), {"age": 21}, context)
        assert output == {"conditionResult": True, "nextEdgeId": "yes"}

    @pytest.mark.asyncio
    async def test_false_branch_uses_previous_results(self, registry, context):
        context.record("check", {"allowed": False})
        data = {"condition": "{{check.result.allowed}}", "trueEdgeId": "yes", "falseEdgeId": "no"}
        output = await execute(registry, node("condition", data, node_id="c"), {}, context)
        assert output == {"conditionResult": False, "nextEdgeId": "no"}

    @pytest.mark.asyncio
    async def test_missing_edges(self, registry, context):
        with pytest.raises(NodeExecutionError, match="Missing edge IDs"):
            await execute(registry, node("condition", {"condition": "true"}), {}, context)

    @pytest.mark.asyncio
    async def test_bad_expression(self, registry, context):
        data = {"condition": "import os", "trueEdgeId": "yes", "falseEdgeId": "no"}
        with pytest.raises(NodeExecutionError, match="Error evaluating condition"):
            await execute(registry, node("condition", data), {}, context)


class TestLoopNode:
    """Test loop handler"""

    @pytest.mark.asyncio
    async def test_iterates_then_resets(self, registry, context):
        """One item per visit; the cursor resets after the last item"""
        loop = node("loop", {"items": ["a", "b"], "trueEdgeId": "body", "falseEdgeId": "done"}, node_id="loop")

        first = await execute(registry, loop, {}, context)
        second = await execute(registry, loop, {}, context)
        third = await execute(registry, loop, {}, context)

        assert (first["currentItem"], first["nextEdgeId"]) == ("a", "body")
        assert (second["currentItem"], second["loopContext"]["isLast"]) == ("b", True)
        assert third == {
            "hasMoreItems": False,
            "nextEdgeId": "done",
            "currentItem": None,
            "loopContext": {"currentIndex": 3, "totalItems": 2, "currentItem": None, "isLast": False},
        }
        assert "loop" not in context.loop_state

    @pytest.mark.asyncio
    async def test_items_from_template(self, registry):
        context = ExecutionContext("exec_1_abcdef12", {"users": [{"id": 1}]})
        loop = node("loop", {"items": "{{input.users}}", "trueEdgeId": "body", "falseEdgeId": "done"})

        output = await execute(registry, loop, {}, context)

        assert output["currentItem"] == {"id": 1}


class TestJwtNodes:
    """Test jwtGenerate and jwtVerify handlers"""

    REQUEST = RequestContext(params={"tenant": "acme", "projectId": "p1"})

    @pytest.mark.asyncio
    async def test_generate_signs_with_project_secret(self, registry, context, secrets):
        data = {"payload": {"userId": "{{input.x}}"}, "expiresIn": "30m"}

        output = await execute(registry, node("jwtGenerate", data), {}, context, self.REQUEST)

        assert output["token"].startswith("Bearer ")
        claims = jwt.decode(output["token"][7:], SECRET, algorithms=["HS256"])
        assert claims["userId"] == 1
        secrets.get_secret_by_provider.assert_awaited_once_with("acme", "p1", "jwt")

    @pytest.mark.asyncio
    async def test_verify_from_header(self, registry, context):
        token = jwt.encode({"sub": "u1"}, SECRET, algorithm="HS256")
        request = RequestContext(params=self.REQUEST.params, headers={"authorization": f"Bearer {token}"})

        output = await execute(registry, node("jwtVerify"), {}, context, request)

        assert output == {"isAuthenticated": True, "data": {"sub": "u1"}}

    @pytest.mark.asyncio
    async def test_verify_without_token(self, registry, context):
        with pytest.raises(NodeExecutionError) as exc:
            await execute(registry, node("jwtVerify"), {}, context, self.REQUEST)
        assert exc.value.error_type == "ACCESS_DENIED"

    @pytest.mark.asyncio
    async def test_verify_rejects_foreign_signature(self, registry, context):
        token = jwt.encode({"sub": "u1"}, "someone-else", algorithm="HS256")
        with pytest.raises(NodeExecutionError, match="Invalid token"):
            await execute(registry, node("jwtVerify"), {"authorization": token}, context, self.REQUEST)

    @pytest.mark.asyncio
    async def test_requires_tenant(self, registry, context):
        with pytest.raises(NodeExecutionError, match="Missing tenant"):
            await execute(registry, node("jwtGenerate", {"payload": {"a": 1}}), {}, context)

    def test_parse_duration(self):
        assert parse_duration("1h").total_seconds() == 3600
        assert parse_duration(90).total_seconds() == 90
        with pytest.raises(NodeExecutionError):
            parse_duration("soon")
