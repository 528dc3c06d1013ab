"""
Yote — Custom Exception Hierarchy
==================================

What:  Application-specific exceptions for the server side of the scaffold.
How:   Each exception carries a message and optional context dict. Global
       exception handlers (registered in main.py) render them as the
       standard envelope: {"success": false, "error": ..., "message": ...}.
Who:   Raised by services and the auth collaborator; caught by global handlers.

Exception Hierarchy:
    YoteError (base)
    ├── ValidationError     → 400 Bad Request
    ├── UnauthorizedError   → 401 Unauthorized
    ├── ForbiddenError      → 403 Forbidden
    ├── NotFoundError       → 404 Not Found
    └── UpstreamError       → 500 Internal Server Error (store message verbatim)

The cache client never raises these: failures reach it as envelopes and are
recorded on the selected slot or list descriptor.
"""

from typing import Any, Dict, Optional


class YoteError(Exception):
    """
    Base exception for all Yote application errors.

    Attributes:
        message:  User-facing error description (returned in the envelope)
        context:  Additional debug info (logged, returned only where noted)
    """

    status_code = 500
    error_code = "server_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(YoteError):
    """
    Raised when client input cannot be turned into a query.

    When:    Missing ref query param, odd ref path length, unknown field name,
             value that cannot be coerced to the column type.
    HTTP:    400 Bad Request
    """

    status_code = 400
    error_code = "validation_error"

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class NotFoundError(YoteError):
    """
    Raised when a requested document does not exist.

    The message defaults to "<Resource> not found." which is what clients
    store on the selected slot.
    """

    status_code = 404
    error_code = "not_found"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message or f"{resource.capitalize()} not found.", context=ctx)


class UpstreamError(YoteError):
    """
    Raised when the document store fails.

    The store's own message is surfaced verbatim so the client can show it;
    the exception type is kept in context for logs.
    """

    status_code = 500
    error_code = "upstream_error"


class UnauthorizedError(YoteError):
    """No (or an unknown) user id accompanied a request that requires login."""

    status_code = 401
    error_code = "unauthorized"

    def __init__(self, message: str = "Login required", context: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, context=context)


class ForbiddenError(YoteError):
    """The calling user lacks the role a route requires."""

    status_code = 403
    error_code = "forbidden"

    def __init__(
        self,
        role: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["role"] = role
        super().__init__(message=f"Requires role '{role}'", context=ctx)
        self.role = role
