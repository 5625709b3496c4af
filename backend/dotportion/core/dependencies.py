# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Dependency injection for DotPortion backend.

Provides FastAPI dependencies for services and the authenticated caller.
Long-lived components live on app.state (initialized at startup); request
scoped services are built around them.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request

from dotportion.core.config import Config, get_config
from dotportion.core.errors import UnauthorizedError
from dotportion.core.logging import get_logger
from dotportion.core.security import decode_token
from dotportion.db.store import DocumentStore
from dotportion.workflow.models import RequestContext

logger = get_logger(__name__)


# Configuration dependency
def get_current_config(request: Request) -> Config:
    """Get the configuration the app was created with."""
    return getattr(request.app.state, "config", None) or get_config()


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_activity_logger(request: Request):
    return request.app.state.activity


# Service dependencies

def get_access_service(store: DocumentStore = Depends(get_store)):
    """Get AccessService instance."""
    from dotportion.services.access_service import AccessService
    return AccessService(store)


def get_admin_service(
    request: Request,
    store: DocumentStore = Depends(get_store),
    config: Config = Depends(get_current_config)
):
    """Get AdminService instance."""
    from dotportion.services.admin_service import AdminService
    return AdminService(store, request.app.state.email_service, config)


def get_oauth_service(
    request: Request,
    store: DocumentStore = Depends(get_store),
    config: Config = Depends(get_current_config),
    admin_service=Depends(get_admin_service)
):
    """Get OAuthService instance."""
    from dotportion.services.oauth_service import OAuthService
    return OAuthService(
        store,
        config,
        admin_service,
        request.app.state.activity,
        transport=getattr(request.app.state, "oauth_transport", None)
    )


def get_cognito_service(store: DocumentStore = Depends(get_store)):
    """Get CognitoService instance."""
    from dotportion.services.cognito_service import CognitoService
    return CognitoService(store)


def get_feedback_service(store: DocumentStore = Depends(get_store)):
    """Get FeedbackService instance."""
    from dotportion.services.feedback_service import FeedbackService
    return FeedbackService(store)


def get_user_service(store: DocumentStore = Depends(get_store)):
    """Get UserService instance."""
    from dotportion.services.user_service import UserService
    return UserService(store)


def get_execution_query_service(request: Request, store: DocumentStore = Depends(get_store)):
    """Get ExecutionQueryService instance."""
    from dotportion.services.execution_query_service import ExecutionQueryService
    return ExecutionQueryService(store, request.app.state.event_log, request.app.state.orchestrator)


def get_workflow_trigger(request: Request):
    """Get WorkflowTrigger (initialized at startup)."""
    return request.app.state.trigger


# Authentication

@dataclass
class AuthContext:
    """Claims of the authenticated caller"""
    user_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    role: str = "user"


def get_current_user(request: Request) -> AuthContext:
    """
    Resolve the caller from the Authorization bearer token.

    Raises:
        UnauthorizedError: Missing, expired or invalid token
    """
    authorization = request.headers.get("Authorization", "")
    if not authorization.startswith("Bearer "):
        raise UnauthorizedError("No token provided")

    claims = decode_token(authorization)
    user_id = claims.get("userId")
    if not user_id:
        raise UnauthorizedError("Invalid token: missing userId")

    return AuthContext(
        user_id=user_id,
        email=claims.get("email"),
        name=claims.get("name"),
        role=claims.get("role") or "user",
    )


def get_request_context(request: Request) -> RequestContext:
    """Path params, headers and query string for workflow nodes; body is added by the route."""
    return RequestContext(
        params=dict(request.path_params),
        headers={k.lower(): v for k, v in request.headers.items()},
        query=dict(request.query_params),
    )
