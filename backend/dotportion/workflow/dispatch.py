# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Execution dispatch.

The trigger hands a payload to a Dispatcher and returns immediately; the
step engine runs either as a background task on this instance or on a
remote orchestrator reached over HTTP.
"""

import asyncio
from typing import Optional, Set

import httpx

from dotportion.core.logging import get_workflow_logger
from dotportion.workflow.models import HandoffPayload

logger = get_workflow_logger("dispatch")

ORCHESTRATOR_PATH = "/internal/orchestrator/executions"


class DispatchError(Exception):
    """The payload could not be handed to the step engine"""
    pass


class Dispatcher:
    """One-way handoff to the step engine."""

    async def dispatch(self, payload: HandoffPayload) -> None:
        raise NotImplementedError

    async def shutdown(self) -> None:
        pass


class LocalDispatcher(Dispatcher):
    """Runs the orchestrator as a tracked background task."""

    def __init__(self, orchestrator):
        self.orchestrator = orchestrator
        self._tasks: Set[asyncio.Task] = set()

    async def dispatch(self, payload: HandoffPayload) -> None:
        try:
            task = asyncio.create_task(self.orchestrator.run(payload))
        except RuntimeError as e:
            raise DispatchError(str(e)) from e

        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        logger.info(f"Dispatched execution {payload.executionId} locally")

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Background execution ended with error: {error}")

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every in-flight execution"""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        await self.drain()


class HttpDispatcher(Dispatcher):
    """POSTs the payload to a remote orchestrator."""

    def __init__(self, base_url: str, timeout: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.url = base_url.rstrip("/") + ORCHESTRATOR_PATH
        self.timeout = timeout
        self.transport = transport

    async def dispatch(self, payload: HandoffPayload) -> None:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.url, json=payload.model_dump())
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise DispatchError(f"Orchestrator handoff failed: {e}") from e

        logger.info(f"Dispatched execution {payload.executionId} to {self.url}")
