"""
SealNote Backend — Custom Exception Hierarchy
===============================================

What:  Application-specific exceptions for the failure modes of the service.
Why:   The data-access layer has to tell callers apart "the store refused
       this write" from "the store could not be reached", and the HTTP layer
       maps each to a different status without leaking driver details.
How:   Each exception carries a user-safe message and a context dict that is
       logged but never returned to the client.
Who:   Raised by the database helpers, services and routes; caught by the
       global handlers registered in main.py.

Exception Hierarchy:
    SealNoteError (base)
    ├── ValidationError              → 400 Bad Request
    ├── NotFoundError                → 404 Not Found (HTTP layer only)
    └── StorageError                 → 500 Internal Server Error
        ├── ConstraintViolationError → 500 Internal Server Error
        └── TransientStorageError    → 503 Service Unavailable

A missing note is NOT an exception below the HTTP layer: the services
return None and the route decides to raise NotFoundError.
"""

from typing import Any, Dict, Optional


class SealNoteError(Exception):
    """
    Base exception for all SealNote application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(SealNoteError):
    """
    Raised when a request breaks a business rule the schema cannot express.

    When:    Expiry in the past or beyond the allowed lifetime.
    HTTP:    400 Bad Request
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


class NotFoundError(SealNoteError):
    """
    Raised by routes when a note or embed does not exist.

    The services return None for absence; converting that to an exception
    happens at the HTTP boundary only.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class StorageError(SealNoteError):
    """
    Raised when a storage operation fails for a reason we do not classify.

    The message returned to the client is always generic. The original
    SQLAlchemy exception is chained as __cause__ for the server-side log.
    """

    def __init__(
        self,
        message: str = "A storage error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ConstraintViolationError(StorageError):
    """
    Raised when the store rejects a write on a uniqueness or referential rule.

    When:    Two embeds with the same embed_id in one create call, or any
             other integrity violation reported by the database.
    State:   The surrounding transaction has been rolled back; nothing from
             the failed call is persisted.
    """

    def __init__(
        self,
        message: str = "The note could not be stored because it violates a storage constraint.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class TransientStorageError(StorageError):
    """
    Raised when the store is unreachable or timed out.

    Callers may retry reads. The data-access layer never retries a failed
    write on its own.
    """

    def __init__(
        self,
        message: str = "The storage backend is temporarily unavailable.",
        retry_after: int = 5,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        self.retry_after = retry_after
