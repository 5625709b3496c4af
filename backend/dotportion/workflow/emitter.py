# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""Live update emitter: log the event, then push it to the subscriber."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from dotportion.core.logging import get_workflow_logger
from dotportion.workflow.connections import ConnectionManager
from dotportion.workflow.event_log import EventLog

logger = get_workflow_logger("emitter")


class UpdateEmitter:
    def __init__(self, event_log: EventLog, connections: ConnectionManager):
        self.event_log = event_log
        self.connections = connections

    async def emit(self, execution_id: str, event: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Record and deliver one update.

        Delivery is best effort: with no subscriber the event only lands in
        the log, and a failed send drops the subscriber. Nothing here raises
        into the caller's execution.
        """
        try:
            message = await self.event_log.append(execution_id, event, data)
        except OSError as e:
            logger.error(f"Failed to log {event} for {execution_id}: {e}")
            message = {"event": event, "data": data or {}, "executionId": execution_id, "seq": None,
                       "timestamp": datetime.now(timezone.utc).isoformat()}

        delivered = await self.connections.send(execution_id, message)
        if not delivered:
            logger.debug(f"No live subscriber for {execution_id}, {event} kept in log only")
        return message
