# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Token issuing and verification.

HS256 JWTs carrying userId, email, name and role claims.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from dotportion.core.config import get_config
from dotportion.core.errors import UnauthorizedError


def create_access_token(
    payload: Dict[str, Any],
    secret: Optional[str] = None,
    expires_in_hours: Optional[int] = None
) -> str:
    """Sign a token for the given claims."""
    config = get_config()
    hours = expires_in_hours if expires_in_hours is not None else config.jwt_expiry_hours
    claims = {
        **payload,
        "exp": datetime.now(timezone.utc) + timedelta(hours=hours),
    }
    return jwt.encode(
        claims,
        secret or config.get_jwt_secret(),
        algorithm=config.jwt_algorithm
    )


def decode_token(token: str, secret: Optional[str] = None) -> Dict[str, Any]:
    """
    Verify a token and return its claims.

    Accepts an optional "Bearer " prefix.

    Raises:
        UnauthorizedError: If the token is missing, expired or invalid
    """
    if not token:
        raise UnauthorizedError("No token provided")

    if token.startswith("Bearer "):
        token = token[len("Bearer "):].strip()

    config = get_config()
    try:
        return jwt.decode(
            token,
            secret or config.get_jwt_secret(),
            algorithms=[config.jwt_algorithm]
        )
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Token expired")
    except jwt.InvalidTokenError as e:
        raise UnauthorizedError(f"Invalid token: {e}")
