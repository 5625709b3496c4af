# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Custom exceptions for DotPortion backend.

All exceptions inherit from DotPortionError for consistent error handling.
The error code is the machine-readable value returned as "error" in API
responses.
"""

from typing import Optional


class DotPortionError(Exception):
    """Base exception for all DotPortion errors."""

    status_code: int = 500
    error_code: str = "INTERNAL_SERVER_ERROR"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        details: Optional[dict] = None
    ):
        """
        Initialize DotPortion error.

        Args:
            message: Human-readable error message
            status_code: HTTP status code (defaults to the class value)
            error_code: Machine-readable error code (defaults to the class value)
            details: Additional error details merged into the response body
        """
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if error_code is not None:
            self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert error to dictionary for API response."""
        return {
            "error": self.error_code,
            "message": self.message,
            **self.details
        }


class ValidationError(DotPortionError):
    """Validation failed."""

    status_code = 400
    error_code = "VALIDATION_FAILED"

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, details=details)
        self.field = field


class InvalidInputError(ValidationError):
    """Request body or input payload is malformed."""

    error_code = "INVALID_INPUT"


class WorkflowNotFoundError(ValidationError):
    """Submitted workflow is missing or lacks nodes/edges."""

    error_code = "WORKFLOW_NOT_FOUND"


class InvalidStructureError(WorkflowNotFoundError):
    """Workflow graph is structurally invalid; reported as WORKFLOW_NOT_FOUND."""


class UnauthorizedError(DotPortionError):
    """Unauthorized access."""

    status_code = 401
    error_code = "UNAUTHORIZED"

    def __init__(self, message: str = "Unauthorized", details: Optional[dict] = None):
        super().__init__(message, details=details)


class ForbiddenError(DotPortionError):
    """Forbidden access."""

    status_code = 403
    error_code = "FORBIDDEN"

    def __init__(self, message: str = "Forbidden", resource: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, details=details)
        self.resource = resource


class NotFoundError(DotPortionError):
    """Resource not found."""

    status_code = 404
    error_code = "NOT_FOUND"

    def __init__(self, resource: str, identifier: str, details: Optional[dict] = None):
        """
        Initialize not found error.

        Args:
            resource: Type of resource (e.g., "User", "Execution")
            identifier: Resource identifier
            details: Additional error details
        """
        super().__init__(f"{resource} not found: {identifier}", details=details)
        self.resource = resource
        self.identifier = identifier


class ConflictError(DotPortionError):
    """Resource conflict."""

    status_code = 409
    error_code = "CONFLICT"

    def __init__(self, message: str, resource: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, details=details)
        self.resource = resource


class InternalError(DotPortionError):
    """Unexpected server-side failure."""

    status_code = 500
    error_code = "INTERNAL_SERVER_ERROR"


class ServiceUnavailableError(DotPortionError):
    """Service unavailable."""

    status_code = 503
    error_code = "SERVICE_UNAVAILABLE"

    def __init__(self, message: str, service: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, details=details)
        self.service = service


# Error Message Utilities

def sanitize_error_for_user(error: Exception, include_type: bool = True) -> str:
    """
    Sanitize error messages for user display.
    Removes stack traces and sensitive information.

    Args:
        error: The exception to sanitize
        include_type: Whether to include exception type

    Returns:
        User-friendly error message without stack trace
    """
    error_msg = str(error).strip()

    # Remove common sensitive paths
    error_msg = error_msg.replace("/app/", "")
    error_msg = error_msg.replace("/volumes/", "")

    # Limit message length
    if len(error_msg) > 500:
        error_msg = error_msg[:500] + "..."

    if include_type:
        return f"{error.__class__.__name__}: {error_msg}"

    return error_msg
