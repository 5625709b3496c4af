# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Execution API Routes

Handles execution tracking:
- Retrieve persisted execution state
- Replay logged events
- Cancel a running execution
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Query

from dotportion.core.dependencies import get_execution_query_service
from dotportion.services.execution_query_service import ExecutionQueryService

router = APIRouter(prefix="/executions", tags=["executions"])


@router.get("/{execution_id}")
async def get_execution(
    execution_id: str,
    service: ExecutionQueryService = Depends(get_execution_query_service)
) -> Dict[str, Any]:
    """Status, node states, output and error of an execution"""
    return await service.get_execution(execution_id)


@router.get("/{execution_id}/events")
async def get_execution_events(
    execution_id: str,
    since: int = Query(default=0, ge=0),
    service: ExecutionQueryService = Depends(get_execution_query_service)
) -> List[Dict[str, Any]]:
    """Logged events with seq greater than `since`"""
    return await service.get_events(execution_id, since)


@router.post("/{execution_id}/cancel", status_code=202)
async def cancel_execution(
    execution_id: str,
    service: ExecutionQueryService = Depends(get_execution_query_service)
) -> Dict[str, Any]:
    return await service.cancel(execution_id)
