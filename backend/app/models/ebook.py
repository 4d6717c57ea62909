"""
Ebook Shelf Backend — Ebook SQLAlchemy Model
==============================================

What:  ORM model representing the `ebooks` table.
Why:   Maps Python objects to database rows for type-safe database operations.
How:   Inherits from SQLAlchemy's DeclarativeBase; Alembic reads this for migrations.
Who:   Used by SqlAlchemyRecordStore only. Services work with EbookRecord schemas.

Table Design Rationale:
    - UUID primary key: assigned at insert, never exposed for mutation
    - image_url: always populated (placeholder URL when no cover was uploaded)
    - image_ref: image host reference, NULL exactly when image_url is the placeholder
    - created_at: UTC with timezone; defines the natural listing order
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Index, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Ebook(Base):
    """
    A stored e-book record.

    Lifecycle:
        1. Inserted on a validated create request
        2. title / book_link / image columns change only through update requests
        3. Deleted on a delete request (its cover is removed from the image host)
    """

    __tablename__ = "ebooks"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        comment="Record identifier assigned on insert",
    )

    title: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Book title",
    )

    book_link: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Download URL of the e-book file",
    )

    image_url: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Public URL of the cover (placeholder when no cover was uploaded)",
    )

    # What: Opaque reference used to delete the cover from the image host
    # NULL means the record shows the placeholder
    image_ref: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        default=None,
        comment="Image host reference (Cloudinary public_id) of the uploaded cover",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
        comment="When this record was created (UTC)",
    )

    __table_args__ = (
        Index("idx_ebooks_created_at", created_at),
    )

    def __repr__(self) -> str:
        return f"<Ebook(id={self.id}, title='{self.title}')>"
