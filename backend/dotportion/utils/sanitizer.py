# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Deep sanitizer for audit metadata.

Masks credential-like fields and reduces arbitrary objects to JSON-safe
values before they are written to the activity log.
"""

import base64
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel

SENSITIVE_FIELDS = {
    "password",
    "newpassword",
    "new_password",
    "otp",
    "token",
    "accesstoken",
    "access_token",
    "refreshtoken",
    "refresh_token",
    "secret",
    "apikey",
    "api_key",
    "secretkey",
    "secret_key",
    "authorization",
}

MASK = "***"


def _is_sensitive(key: Any) -> bool:
    return isinstance(key, str) and key.lower() in SENSITIVE_FIELDS


def sanitize_data(value: Any) -> Any:
    """
    Deep-sanitize a value.

    - Masks sensitive fields in mappings
    - Converts models, dates and bytes to JSON-safe values
    - Replaces circular references with "[Circular]"
    """
    seen = set()

    def _sanitize(item: Any) -> Any:
        if item is None or isinstance(item, (str, int, float, bool)):
            return item
        if isinstance(item, (datetime, date)):
            return item.isoformat()
        if isinstance(item, (bytes, bytearray)):
            return base64.b64encode(bytes(item)).decode("ascii")
        if isinstance(item, BaseModel):
            item = item.model_dump()

        marker = id(item)
        if marker in seen:
            return "[Circular]"

        if isinstance(item, dict):
            seen.add(marker)
            result = {
                str(k): MASK if _is_sensitive(k) else _sanitize(v)
                for k, v in item.items()
            }
            seen.discard(marker)
            return result
        if isinstance(item, (list, tuple, set)):
            seen.add(marker)
            result = [_sanitize(v) for v in item]
            seen.discard(marker)
            return result

        return str(item)

    return _sanitize(value)
