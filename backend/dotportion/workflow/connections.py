# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""WebSocket connection directory, keyed by execution id."""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from fastapi import WebSocket

from dotportion.core.logging import get_workflow_logger

logger = get_workflow_logger("connections")


@dataclass
class Connection:
    """One subscriber. `last_seq` is the highest event sequence delivered."""
    websocket: WebSocket
    last_seq: int = 0
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class ConnectionManager:
    """
    Manages WebSocket connections for live execution updates.

    Each execution touches only its own entry; lookups never lock the
    directory. Per-connection locks order replayed and live messages.
    """

    def __init__(self):
        self.active_connections: Dict[str, Connection] = {}
        self._arrivals: Dict[str, asyncio.Event] = {}

    def _arrival(self, execution_id: str) -> asyncio.Event:
        if execution_id not in self._arrivals:
            self._arrivals[execution_id] = asyncio.Event()
        return self._arrivals[execution_id]

    async def connect(
        self,
        execution_id: str,
        websocket: WebSocket,
        since: int = 0,
        fetch: Optional[Callable[[int], Awaitable[List[Dict[str, Any]]]]] = None
    ) -> Connection:
        """
        Accept and register a client. A newer client replaces an older one.

        With `fetch`, events logged after `since` are replayed before any
        live update reaches the client: registration and `fetch(since)`
        both happen under the connection lock, so live sends queue behind
        the replay and nothing is sent twice.
        """
        await websocket.accept()
        connection = Connection(websocket=websocket, last_seq=since)

        async with connection.lock:
            self.active_connections[execution_id] = connection
            self._arrival(execution_id).set()
            logger.info(f"WebSocket connected: {execution_id}")

            if fetch is not None:
                replayed = 0
                for message in await fetch(connection.last_seq):
                    if not await self._deliver(execution_id, connection, message):
                        break
                    replayed += 1
                if replayed:
                    logger.info(f"Replayed {replayed} events to {execution_id}")

        return connection

    def disconnect(self, execution_id: str) -> None:
        """Forget the client for an execution"""
        if self.active_connections.pop(execution_id, None) is not None:
            logger.info(f"WebSocket disconnected: {execution_id}")
        self._arrivals.pop(execution_id, None)

    def disconnect_websocket(self, execution_id: str, websocket: WebSocket) -> None:
        """Forget the client only if it is still the registered one"""
        connection = self.active_connections.get(execution_id)
        if connection is not None and connection.websocket is websocket:
            self.disconnect(execution_id)

    def get(self, execution_id: str) -> Optional[Connection]:
        return self.active_connections.get(execution_id)

    def is_connected(self, execution_id: str) -> bool:
        return execution_id in self.active_connections

    async def wait_for_connection(self, execution_id: str, timeout: float) -> bool:
        """Wait up to `timeout` seconds for a client to subscribe."""
        if self.is_connected(execution_id):
            return True
        try:
            await asyncio.wait_for(self._arrival(execution_id).wait(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Timed out waiting for WebSocket connection for {execution_id}")
            return False
        return self.is_connected(execution_id)

    async def _deliver(self, execution_id: str, connection: Connection, message: Dict[str, Any]) -> bool:
        seq = message.get("seq")
        if seq is not None and seq <= connection.last_seq:
            return True
        try:
            await connection.websocket.send_json(message)
        except Exception as e:
            logger.warning(f"Error sending to {execution_id}: {e}")
            self.disconnect_websocket(execution_id, connection.websocket)
            return False
        if seq is not None:
            connection.last_seq = seq
        return True

    async def send(self, execution_id: str, message: Dict[str, Any]) -> bool:
        """
        Send one update to the execution's client.

        Returns False when nobody is connected or delivery failed; a
        failed connection is dropped.
        """
        connection = self.active_connections.get(execution_id)
        if connection is None:
            return False
        async with connection.lock:
            return await self._deliver(execution_id, connection, message)

    async def close(self, execution_id: str, code: int = 1000) -> None:
        """Release the execution's client at the end of a run"""
        connection = self.active_connections.get(execution_id)
        self.disconnect(execution_id)
        if connection is None:
            return
        try:
            await connection.websocket.close(code=code)
        except Exception as e:
            logger.debug(f"WebSocket for {execution_id} already closed: {e}")
