# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Test node handlers and graph builders
"""

import asyncio

from dotportion.workflow.models import Workflow
from dotportion.workflow.nodes import NodeHandler


class SlowHandler(NodeHandler):
    """Blocks until cancelled; `started` is set once it is running"""

    node_type = "slow"

    def __init__(self):
        self.started = asyncio.Event()

    async def execute(self, node, input, context, request):
        self.started.set()
        await asyncio.sleep(30)
        return input


class BrokenHandler(NodeHandler):
    node_type = "broken"

    async def execute(self, node, input, context, request):
        raise ValueError("boom")


def build_workflow(nodes, edges):
    """
    Workflow from shorthand.

    nodes: (id, type, data) tuples
    edges: (id, source, target) tuples
    """
    return Workflow(
        nodes=[{"id": node_id, "type": type_, "data": data or {}} for node_id, type_, data in nodes],
        edges=[{"id": edge_id, "source": source, "target": target} for edge_id, source, target in edges],
    )
