"""
Ebook Shelf Backend — Pydantic Request/Response Schemas
=========================================================

What:  Pydantic models defining the API contract between frontend and backend.
Why:   Strict validation, automatic serialization, and OpenAPI doc generation.
How:   FastAPI serializes these by alias, so the wire format is camelCase
       (`bookLink`, `imageUrl`, `imageRef`) while Python code uses snake_case.
Who:   Used by the service layer as its record type and by routes as response models.

Design Decision:
    Schemas are separate from SQLAlchemy models so that the service layer and
    its tests never touch the ORM. The record store converts rows to
    EbookRecord at the boundary.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


_RECORD_CONFIG = ConfigDict(populate_by_name=True, from_attributes=True)


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


# ══════════════════════════════════════════════════════════════════════════
# Domain / Response Models
# ══════════════════════════════════════════════════════════════════════════


class EbookRecord(BaseModel):
    """
    What:  A single e-book record as stored and as returned by the API.
    Who:   Returned by every /api/ebooks endpoint except DELETE.

    Invariant:
        image_ref is set if and only if image_url points to an uploaded cover
        (not the placeholder).
    """
    id: Optional[uuid.UUID] = Field(
        default=None,
        description="Record identifier (assigned by the record store on insert)",
    )
    title: str = Field(description="Book title")
    book_link: str = Field(alias="bookLink", description="Download URL of the e-book")
    image_url: str = Field(alias="imageUrl", description="Cover image URL")
    image_ref: Optional[str] = Field(
        default=None,
        alias="imageRef",
        description="Image host reference of the uploaded cover (null for placeholder)",
    )
    created_at: Optional[datetime] = Field(
        default=None,
        alias="createdAt",
        description="When the record was created (UTC ISO 8601)",
    )

    model_config = _RECORD_CONFIG


class EbookUpdate(BaseModel):
    """
    What:  Text fields of a partial update.

    Presence rules:
        None            → not supplied, keep the stored value
        "" or "   "     → treated as not supplied (never blanks a field)
        any other text  → replaces the stored value (surrounding whitespace trimmed)
    """
    title: Optional[str] = None
    book_link: Optional[str] = None

    @field_validator("title", "book_link")
    @classmethod
    def normalize_blank(cls, v: Optional[str]) -> Optional[str]:
        return _blank_to_none(v)

    @property
    def is_empty(self) -> bool:
        return self.title is None and self.book_link is None


class DeleteResponse(BaseModel):
    """
    What:  Confirmation returned by DELETE /api/ebooks/{id}.

    image_deleted:
        None  → the record had no uploaded cover
        True  → the cover was removed from the image host (or was already gone)
        False → the record is gone but the cover could not be removed;
                `warning` explains and the failure is in the server log
    """
    message: str = Field(description="Human-readable confirmation")
    id: uuid.UUID = Field(description="Identifier of the deleted record")
    image_deleted: Optional[bool] = Field(default=None, alias="imageDeleted")
    warning: Optional[str] = Field(default=None)

    model_config = ConfigDict(populate_by_name=True)


# ══════════════════════════════════════════════════════════════════════════
# Error / Health Models
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    What:  Standardized error response format for all API errors.

    Example:
        {
            "error": "not_found",
            "message": "ebook with ID '...' was not found",
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Health check response showing service and dependency status."""
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    image_store: str = Field(description="Image host status: available, unavailable, unconfigured")
    uptime_seconds: float = Field(description="Seconds since service started")
