# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""WebSocket endpoint for live execution updates."""

from typing import Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status
from fastapi.websockets import WebSocketState

from dotportion.core.logging import get_api_logger
from dotportion.workflow.ids import is_execution_id
from dotportion.workflow.models import TERMINAL_EVENTS

router = APIRouter()
logger = get_api_logger()


def _parse_since(value: Optional[str]) -> int:
    try:
        return max(int(value), 0) if value is not None else 0
    except ValueError:
        return 0


@router.websocket("/ws")
async def execution_updates(websocket: WebSocket):
    """
    Subscribe to an execution: `/ws?executionId=<id>[&since=N]`.

    Logged events after `since` are replayed first, then live events
    follow on the same socket. Client messages are ignored.
    """
    execution_id = websocket.query_params.get("executionId")
    if not is_execution_id(execution_id):
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    state = websocket.app.state
    manager = state.connections
    since = _parse_since(websocket.query_params.get("since"))

    finished = False

    async def fetch(after: int):
        nonlocal finished
        events = await state.event_log.read(execution_id)
        finished = bool(events) and events[-1]["event"] in TERMINAL_EVENTS
        return [e for e in events if e["seq"] > after]

    try:
        await manager.connect(execution_id, websocket, since=since, fetch=fetch)
        if finished:
            # Nothing more will be emitted for this execution
            await manager.close(execution_id)
            return
        while websocket.application_state == WebSocketState.CONNECTED:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info(f"Client left execution {execution_id}")
    finally:
        manager.disconnect_websocket(execution_id, websocket)
