# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Secret Service

Read-only lookup of per-project provider secrets used by workflow nodes.
"""

from typing import Any, Dict, Optional

from dotportion.core.logging import get_service_logger
from dotportion.db.collections import SECRETS, get_collection
from dotportion.db.store import DocumentStore

logger = get_service_logger("secrets")


class SecretService:
    def __init__(self, store: DocumentStore):
        self.secrets = get_collection(store, SECRETS)

    async def get_secret_by_provider(
        self,
        tenant: str,
        project_id: str,
        provider: str
    ) -> Optional[Dict[str, Any]]:
        secret = await self.secrets.find_one({
            "tenant": tenant,
            "project": project_id,
            "provider": provider,
        })
        if secret is None:
            logger.warning(
                f"No secret found for tenant: {tenant}, project: {project_id}, provider: {provider}"
            )
        return secret
