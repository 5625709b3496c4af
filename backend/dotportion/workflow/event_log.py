# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Execution Event Log - append-only per-execution update history.

Storage structure:
    executions/
    └── {execution_id}/
        └── events.jsonl

Every event gets a sequence number, starting at 1 and increasing by one
per append, so a reconnecting client can ask for "events after N".
"""

import asyncio
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiofiles

from dotportion.core.logging import get_workflow_logger
from dotportion.db.store import check_document_id
from dotportion.workflow.models import UpdateEvent

logger = get_workflow_logger("event_log")

EVENTS_FILE = "events.jsonl"


class EventLog:
    """
    Disk-backed event history.

    Appends for one execution are serialized by that execution's lock;
    executions never contend with each other.
    """

    def __init__(self, base_dir: Path):
        self.base_dir = Path(base_dir)
        self._locks: Dict[str, asyncio.Lock] = {}
        self._last_seq: Dict[str, int] = {}

    def _get_lock(self, execution_id: str) -> asyncio.Lock:
        """Get or create lock for a specific execution"""
        if execution_id not in self._locks:
            self._locks[execution_id] = asyncio.Lock()
        return self._locks[execution_id]

    def _events_file(self, execution_id: str) -> Path:
        return self.base_dir / check_document_id(execution_id) / EVENTS_FILE

    async def _load(self, execution_id: str) -> List[Dict[str, Any]]:
        events_file = self._events_file(execution_id)
        exists = await asyncio.to_thread(events_file.exists)
        if not exists:
            return []

        async with aiofiles.open(events_file, "r") as f:
            content = await f.read()

        lines = content.split("\n")
        # Last piece is empty for a complete log, or a record still being written
        return [json.loads(line) for line in lines[:-1] if line.strip()]

    async def append(self, execution_id: str, event: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Append an event and return it with its sequence number."""
        async with self._get_lock(execution_id):
            if execution_id not in self._last_seq:
                existing = await self._load(execution_id)
                self._last_seq[execution_id] = existing[-1]["seq"] if existing else 0

            seq = self._last_seq[execution_id] + 1
            record = UpdateEvent(
                event=event,
                data=data or {},
                executionId=execution_id,
                seq=seq,
                timestamp=datetime.now(timezone.utc).isoformat()
            ).model_dump()

            events_file = self._events_file(execution_id)
            await asyncio.to_thread(events_file.parent.mkdir, parents=True, exist_ok=True)
            async with aiofiles.open(events_file, "a") as f:
                await f.write(json.dumps(record, default=str) + "\n")

            self._last_seq[execution_id] = seq

        logger.debug(f"Logged {event} #{seq} for execution {execution_id}")
        return record

    async def read(self, execution_id: str, since: int = 0) -> List[Dict[str, Any]]:
        """Events with seq greater than `since`, in order."""
        return [e for e in await self._load(execution_id) if e["seq"] > since]

    async def last_seq(self, execution_id: str) -> int:
        if execution_id in self._last_seq:
            return self._last_seq[execution_id]
        events = await self._load(execution_id)
        return events[-1]["seq"] if events else 0

    async def exists(self, execution_id: str) -> bool:
        return await asyncio.to_thread(self._events_file(execution_id).exists)

    def forget(self, execution_id: str) -> None:
        """Drop in-memory bookkeeping once an execution has finished."""
        self._locks.pop(execution_id, None)
        self._last_seq.pop(execution_id, None)
