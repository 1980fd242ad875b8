"""
SubTrack Backend: Error Types
===============================

What:  The exceptions services and dependencies raise instead of returning
       HTTP responses themselves.
How:   Each carries a client-safe `message` and a `context` dict for logs.
       main.register_exception_handlers() turns them into the common error
       body `{error, message, details?, request_id}`.

Status mapping:
    SubTrackError (base)
    ├── ValidationError          → 400  bad or missing parameter, non-PDF upload
    ├── AuthenticationError      → 401  missing, expired or forged bearer token
    ├── PermissionDeniedError    → 403  admin-only delete by a regular user
    ├── NotFoundError            → 404  unknown subscription, invoice, vendor...
    ├── DocumentConversionError  → 422  PDF accepted but not renderable
    └── DatabaseError            → 500  driver/query failure, generic message only
"""

from typing import Any, Dict, Optional


class SubTrackError(Exception):
    """
    Base exception for all SubTrack application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged; only returned for 4xx errors)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(SubTrackError):
    """
    Raised when client input fails validation.

    When:    Missing required query/body parameters, malformed payloads,
             non-PDF uploads, undecodable export data.
    HTTP:    400 Bad Request

    Example response:
        {
            "error": "validation_error",
            "message": "Subscription ID required",
            "details": {"field": "subscriptionId"}
        }
    """

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


class AuthenticationError(SubTrackError):
    """
    Raised when a request carries no usable bearer token.

    HTTP:    401 Unauthorized
    """

    def __init__(
        self,
        message: str = "Unauthorized",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PermissionDeniedError(SubTrackError):
    """
    Raised when an authenticated user lacks the role an operation needs.

    When:    Non-admin deleting a subscription or vendor.
    HTTP:    403 Forbidden
    """

    def __init__(
        self,
        message: str = "Forbidden: Admin access required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(SubTrackError):
    """
    Raised when a requested resource does not exist.

    When:    GET /api/subscriptions/{id} with a non-existent UUID.
    HTTP:    404 Not Found

    SQLAlchemy returns None for missing records; services convert that
    None into NotFoundError so routes stay free of HTTP branching.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        label = resource.replace("_", " ").capitalize()
        message = f"{label} not found"
        if resource_id:
            message = f"{label} {resource_id} not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class DocumentConversionError(SubTrackError):
    """
    Raised when an uploaded PDF passes validation but cannot be rendered.

    When:    Corrupt or encrypted PDF, renderer failure.
    HTTP:    422 Unprocessable Entity
    """

    def __init__(
        self,
        message: str = "The document could not be converted",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(SubTrackError):
    """
    Raised when database operations fail unexpectedly.

    When:    Connection lost mid-query, constraint violation, deadlock, etc.
    HTTP:    500 Internal Server Error

    Security Note:
        The message returned to the client is always generic. The detailed
        error (SQL, constraint name) is logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
