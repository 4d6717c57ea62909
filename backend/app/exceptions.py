"""
Ebook Shelf Backend — Custom Exception Hierarchy
==================================================

What:  Defines application-specific exceptions for different error scenarios.
Why:   Custom exceptions enable targeted error handling with appropriate HTTP
       status codes and user-friendly messages. They replace raw driver and
       HTTP-client exceptions that would leak internal details to the client.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by services and stores; caught by global handlers.

Exception Hierarchy:
    EbookShelfError (base)
    ├── ValidationError          → 400 Bad Request (client can fix)
    ├── NotFoundError            → 404 Not Found
    └── ServerError              → 500 Internal Server Error
        ├── DatabaseError        (record store failure)
        └── ImageStoreError      (image host failure)
"""

from typing import Any, Dict, Optional


class EbookShelfError(Exception):
    """
    Base exception for all application errors.

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


class ValidationError(EbookShelfError):
    """
    Raised when client input fails validation.

    When:    Missing title/bookLink, malformed record id, unsupported or oversized image.
    HTTP:    400 Bad Request

    Example response:
        {
            "error": "validation_error",
            "message": "Please provide title and bookLink",
            "details": {"field": "title"}
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


class NotFoundError(EbookShelfError):
    """
    Raised when a requested resource does not exist.

    When:    GET/PUT/DELETE /api/ebooks/{id} with an id that has no record.
    HTTP:    404 Not Found

    The record store returns None for missing rows; the service converts
    that into this exception so routes never deal with None.
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


class ServerError(EbookShelfError):
    """
    Raised when an external collaborator (database, image host) fails.

    HTTP:    500 Internal Server Error

    The original cause is attached as ``__cause__`` and summarized in
    ``context`` for logging; the client only ever sees ``message``.
    """

    def __init__(
        self,
        message: str = "Server error. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(ServerError):
    """
    Raised when record store operations fail unexpectedly.

    When:    Connection lost mid-query, constraint violation, deadlock, etc.

    Security Note:
        The message returned to the client is always generic. SQL text and
        driver errors go to the server log only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ImageStoreError(ServerError):
    """
    Raised when the image host rejects or fails an upload/delete call.

    When:    Network error, timeout, non-2xx response, malformed response body,
             or missing credentials.
    """

    def __init__(
        self,
        message: str = "The image service is unavailable. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
