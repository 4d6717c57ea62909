"""
Ebook Shelf Backend — Ebook Service (Business Logic Orchestrator)
===================================================================

What:  Validates e-book requests and orchestrates the image host and record store.
Why:   Encapsulates all business logic in one place, independent of HTTP concerns.
How:   Composes an injected RecordStore and ImageStore; one instance per request.
Who:   Called by route handlers in app/routes/ebooks.py.

Orchestration (PUT /api/ebooks/{id} with a new cover):
    ┌──────────┐   ┌──────────┐   ┌─────────────┐   ┌──────────┐   ┌──────────────┐
    │ Validate │──▶│  Lookup  │──▶│ Upload new  │──▶│  Save    │──▶│ Delete old   │
    │  input   │   │  record  │   │ (ImageStore)│   │ (Record) │   │ (best effort)│
    └──────────┘   └──────────┘   └─────────────┘   └──────────┘   └──────────────┘

    The old cover is removed only after the record points at the new one, so a
    failed upload or save can never leave the record referencing a deleted image.

Partial Failure Policy:
    - Upload fails            → nothing changed, ImageStoreError propagates
    - Save/insert fails       → the just-uploaded cover is deleted (best effort),
                                the original error propagates
    - Old/removed cover delete fails → logged at WARNING, never undoes the write;
                                delete requests report it in the response
    - Nothing is retried
"""

import logging
import uuid
from contextlib import contextmanager
from typing import Iterator, List, Optional

from app.config import settings
from app.exceptions import (
    EbookShelfError,
    NotFoundError,
    ServerError,
    ValidationError,
)
from app.schemas.ebook import DeleteResponse, EbookRecord, EbookUpdate
from app.services.image_store import ImageStore, ImageUpload, StoredImage
from app.services.record_store import RecordStore
from app.services.upload_service import UploadValidator

logger = logging.getLogger(__name__)


@contextmanager
def _operation(name: str) -> Iterator[None]:
    """
    Operation boundary: application errors pass through, anything else
    becomes a ServerError with the cause attached for logging.
    """
    try:
        yield
    except EbookShelfError:
        raise
    except Exception as e:
        logger.error("Unexpected error in %s: %s", name, str(e), exc_info=True)
        raise ServerError(
            context={"operation": name, "error_type": type(e).__name__},
        ) from e


class EbookService:
    """
    Business logic layer for e-book records.

    Responsibilities:
        - list_ebooks():  all records in store order
        - get_ebook():    single record with malformed-id and not-found handling
        - create_ebook(): validate → optional cover upload → insert
        - update_ebook(): partial update with safe cover replacement
        - delete_ebook(): remove record, then its cover (best effort)

    Args:
        records:          Record store bound to the current request.
        images:           Shared image host client.
        validator:        Cover validator (defaults to configured limits).
        namespace:        Image host folder for covers.
        placeholder_url:  imageUrl used when a record has no uploaded cover.
    """

    def __init__(
        self,
        records: RecordStore,
        images: ImageStore,
        validator: Optional[UploadValidator] = None,
        namespace: Optional[str] = None,
        placeholder_url: Optional[str] = None,
    ):
        self.records = records
        self.images = images
        self.validator = validator or UploadValidator()
        self.namespace = namespace or settings.image_namespace
        self.placeholder_url = placeholder_url or settings.placeholder_image_url

    # ── Helpers ───────────────────────────────────────────────────────────

    @staticmethod
    def parse_id(ebook_id: str) -> uuid.UUID:
        """Raises ValidationError for ids that are not UUIDs."""
        try:
            return uuid.UUID(str(ebook_id))
        except ValueError:
            raise ValidationError(
                message=f"'{ebook_id}' is not a valid ebook id.",
                field="id",
            ) from None

    async def _require(self, record_id: uuid.UUID) -> EbookRecord:
        record = await self.records.find_by_id(record_id)
        if record is None:
            raise NotFoundError(resource="ebook", resource_id=str(record_id))
        return record

    async def _discard_image(self, ref: str) -> Optional[str]:
        """
        Best-effort removal of a stored cover.

        Returns:
            None on success (including "already gone"), otherwise a warning
            message describing the failure. Never raises.
        """
        try:
            deleted = await self.images.delete(ref)
        except Exception as e:
            logger.warning("Failed to delete cover image %s: %s", ref, str(e))
            return f"The cover image '{ref}' could not be removed from image storage."

        if not deleted:
            logger.info("Cover image %s was already removed", ref)
        return None

    # ── Operations ────────────────────────────────────────────────────────

    async def list_ebooks(self) -> List[EbookRecord]:
        with _operation("list_ebooks"):
            return await self.records.find_all()

    async def get_ebook(self, ebook_id: str) -> EbookRecord:
        """
        Raises:
            ValidationError: malformed id (→ 400)
            NotFoundError:   no such record (→ 404)
            ServerError:     store failure (→ 500)
        """
        record_id = self.parse_id(ebook_id)
        with _operation("get_ebook"):
            return await self._require(record_id)

    async def create_ebook(
        self,
        title: Optional[str],
        book_link: Optional[str],
        image: Optional[ImageUpload] = None,
    ) -> EbookRecord:
        """
        Create a record, uploading its cover first when one is supplied.

        Validation runs before any external call: a missing title or bookLink,
        or an unacceptable image, uploads nothing and writes nothing.
        """
        fields = EbookUpdate(title=title, book_link=book_link)
        if fields.title is None or fields.book_link is None:
            raise ValidationError(
                message="Please provide title and bookLink",
                field="title" if fields.title is None else "bookLink",
            )
        if image is not None:
            self.validator.validate(image)

        with _operation("create_ebook"):
            stored: Optional[StoredImage] = None
            if image is not None:
                stored = await self.images.upload(image, self.namespace)

            record = EbookRecord(
                title=fields.title,
                book_link=fields.book_link,
                image_url=stored.url if stored else self.placeholder_url,
                image_ref=stored.ref if stored else None,
            )

            try:
                saved = await self.records.insert(record)
            except Exception:
                if stored is not None:
                    await self._discard_image(stored.ref)
                raise

            logger.info("Ebook %s created (cover=%s)", saved.id, saved.image_ref or "placeholder")
            return saved

    async def update_ebook(
        self,
        ebook_id: str,
        changes: EbookUpdate,
        image: Optional[ImageUpload] = None,
    ) -> EbookRecord:
        """
        Apply a partial update.

        Text fields that are not supplied (None or blank) keep their stored
        value. A new cover is uploaded before the record is saved; the old
        cover is deleted only after the save succeeded.
        """
        record_id = self.parse_id(ebook_id)
        if image is not None:
            self.validator.validate(image)

        with _operation("update_ebook"):
            existing = await self._require(record_id)
            if changes.is_empty and image is None:
                return existing

            updates = {}
            if changes.title is not None:
                updates["title"] = changes.title
            if changes.book_link is not None:
                updates["book_link"] = changes.book_link

            stored: Optional[StoredImage] = None
            if image is not None:
                stored = await self.images.upload(image, self.namespace)
                updates["image_url"] = stored.url
                updates["image_ref"] = stored.ref

            try:
                saved = await self.records.save(existing.model_copy(update=updates))
            except Exception:
                if stored is not None:
                    await self._discard_image(stored.ref)
                raise

            if stored is not None and existing.image_ref:
                await self._discard_image(existing.image_ref)

            logger.info("Ebook %s updated (%s)", record_id, ", ".join(sorted(updates)))
            return saved

    async def delete_ebook(self, ebook_id: str) -> DeleteResponse:
        """
        Delete a record and then its cover.

        The record deletion stands even when the cover cannot be removed; the
        response then carries image_deleted=False and a warning.
        """
        record_id = self.parse_id(ebook_id)

        with _operation("delete_ebook"):
            removed = await self.records.delete_by_id(record_id)
            if removed is None:
                raise NotFoundError(resource="ebook", resource_id=str(record_id))

            logger.info("Ebook %s deleted", record_id)

            if not removed.image_ref:
                return DeleteResponse(message="Ebook deleted successfully", id=record_id)

            warning = await self._discard_image(removed.image_ref)
            if warning:
                return DeleteResponse(
                    message="Ebook deleted, but its cover image could not be removed",
                    id=record_id,
                    image_deleted=False,
                    warning=warning,
                )
            return DeleteResponse(
                message="Ebook and its image deleted successfully",
                id=record_id,
                image_deleted=True,
            )
