# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Activity Logger

Per-user audit trail stored in the `user_activity_logs` collection.
Writes are scheduled in the background and never raise into the caller.
"""

import asyncio
from typing import Any, Dict, Literal, Optional, Set

from dotportion.core.logging import get_service_logger
from dotportion.db.collections import ACTIVITY_LOGS, get_collection
from dotportion.db.store import DocumentStore
from dotportion.utils.sanitizer import sanitize_data

logger = get_service_logger("activity")

LogType = Literal["info", "warn", "error"]


def _safe_serialize(data: Any) -> Any:
    try:
        return sanitize_data(data)
    except Exception as e:
        logger.error(f"Activity metadata serialization failed: {e}")
        return {"notice": "serialization_failed"}


class ActivityLogger:
    """Non-blocking writer for audit records."""

    def __init__(self, store: DocumentStore):
        self.collection = get_collection(store, ACTIVITY_LOGS)
        self._pending: Set[asyncio.Task] = set()

    def create_log(
        self,
        user_id: Optional[str],
        action: str,
        type: LogType = "info",
        metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Schedule an audit record write.

        All metadata is sanitized. `request` and `response` are always
        present, null when not given.
        """
        try:
            metadata = dict(metadata or {})
            request = metadata.pop("request", None)
            response = metadata.pop("response", None)

            document = {
                "user_id": user_id,
                "action": action,
                "type": type,
                "metadata": {
                    **_safe_serialize(metadata),
                    "request": _safe_serialize(request),
                    "response": _safe_serialize(response),
                },
            }

            task = asyncio.get_running_loop().create_task(self._write(document))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
        except Exception as e:
            logger.error(f"Activity logger failed: {e}")

    async def _write(self, document: Dict[str, Any]) -> None:
        try:
            await self.collection.insert_one(document)
        except Exception as e:
            logger.error(f"DB activity log error: {e}")

    async def flush(self) -> None:
        """Wait for scheduled writes (shutdown and tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
