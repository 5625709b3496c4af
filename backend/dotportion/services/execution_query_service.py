# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Execution Query Service

Read side of workflow executions:
- Persisted execution records
- Event history for replay
- Cancellation requests
"""

from typing import Any, Dict, List

from dotportion.core.errors import ConflictError, NotFoundError
from dotportion.core.logging import get_service_logger
from dotportion.db.collections import EXECUTIONS, get_collection
from dotportion.db.store import DocumentStore
from dotportion.workflow.event_log import EventLog
from dotportion.workflow.orchestrator import Orchestrator

logger = get_service_logger("executions")

FINISHED_STATUSES = ("succeeded", "failed", "cancelled")


class ExecutionQueryService:
    def __init__(self, store: DocumentStore, event_log: EventLog, orchestrator: Orchestrator):
        self.executions = get_collection(store, EXECUTIONS)
        self.event_log = event_log
        self.orchestrator = orchestrator

    async def get_execution(self, execution_id: str) -> Dict[str, Any]:
        record = await self.executions.get(execution_id)
        if record is None:
            raise NotFoundError("Execution", execution_id)
        record.pop("_id", None)
        return record

    async def get_events(self, execution_id: str, since: int = 0) -> List[Dict[str, Any]]:
        """Logged events after `since`. Unknown executions are a 404."""
        if not await self.event_log.exists(execution_id):
            raise NotFoundError("Execution", execution_id)
        return await self.event_log.read(execution_id, since)

    async def cancel(self, execution_id: str) -> Dict[str, Any]:
        if self.orchestrator.cancel(execution_id):
            return {"executionId": execution_id, "status": "cancelling"}

        record = await self.executions.get(execution_id)
        if record is None:
            raise NotFoundError("Execution", execution_id)
        if record.get("status") in FINISHED_STATUSES:
            raise ConflictError(
                f"Execution already {record['status']}",
                resource="Execution",
            )

        # Known record that isn't running on this instance
        logger.warning(f"Execution {execution_id} is {record.get('status')} but not active here")
        raise ConflictError("Execution is not running on this instance", resource="Execution")
