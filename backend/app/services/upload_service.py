"""
Ebook Shelf Backend — Cover Upload Validation
===============================================

What:  Validates uploaded cover images before anything is sent to the image host.
Why:   Rejecting bad input early means a 400 costs no network call and no
       orphaned upload.
How:   Checks emptiness, declared content type, the actual content type
       (libmagic on the file header bytes), filename extension and size.
Who:   Called by EbookService at the start of create and update; the route
       calls validate_declared_size() before the part is read at all.

Validation order (cheapest first):
    1. Empty file       — O(1)
    2. Size             — O(1), bytes are already in memory
    3. Declared type    — O(1), sent by the client in the multipart part
    4. Detected type    — libmagic reads the header bytes; must be an allowed
                          image type and agree with the declared type
    5. Extension        — O(1), only when the client sent a filename with a suffix

    A declared type alone is trivially spoofed: a shell script sent as
    "image/png" is caught by step 4.
"""

import logging
from pathlib import Path
from typing import Optional

import magic

from app.config import settings
from app.exceptions import ServerError, ValidationError
from app.services.image_store import ImageUpload

logger = logging.getLogger(__name__)

# What: Image types accepted as covers and the extensions that may carry them
ALLOWED_MIME_TYPES = {
    "image/png": {".png"},
    "image/jpeg": {".jpg", ".jpeg"},
    "image/jpg": {".jpg", ".jpeg"},
    "image/gif": {".gif"},
    "image/webp": {".webp"},
}

ALLOWED_EXTENSIONS = set().union(*ALLOWED_MIME_TYPES.values())

# "image/jpg" is a common client spelling of "image/jpeg"
_CANONICAL_TYPES = {"image/jpg": "image/jpeg"}


def _canonical(mime_type: str) -> str:
    return _CANONICAL_TYPES.get(mime_type, mime_type)


class UploadValidator:
    """
    Validates cover images against type and size limits.

    Args:
        max_size: Override the configured maximum size in bytes (used in tests).
    """

    def __init__(self, max_size: Optional[int] = None):
        self.max_size = max_size or settings.max_image_size

    def validate_not_empty(self, image: ImageUpload) -> None:
        if image.size == 0:
            raise ValidationError(
                message="The uploaded image is empty.",
                field="ebookImage",
            )

    def validate_content_type(self, image: ImageUpload) -> str:
        """
        Returns:
            Normalized declared content type (lowercase, parameters stripped).
        """
        mime_type = (image.content_type or "").split(";")[0].strip().lower()
        if mime_type not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message=(
                    f"File type '{mime_type or 'unknown'}' is not supported. "
                    "The cover must be a PNG, JPEG, GIF or WebP image."
                ),
                field="ebookImage",
                context={"content_type": mime_type, "allowed": sorted(ALLOWED_MIME_TYPES)},
            )
        return mime_type

    def detect_content_type(self, image: ImageUpload, declared: str) -> str:
        """
        Identify the real type from the file header bytes.

        Raises:
            ValidationError: the bytes are not an allowed image, or are a
                             different image type than the one declared
            ServerError:     libmagic itself failed
        """
        try:
            detected = magic.from_buffer(image.content, mime=True)
        except Exception as e:
            logger.error("MIME type detection failed: %s", str(e))
            raise ServerError(
                message="Could not verify the image type. Please try again.",
                context={"error_type": type(e).__name__},
            ) from e

        if detected not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message=(
                    f"File content type '{detected}' is not supported. "
                    "The cover must be a PNG, JPEG, GIF or WebP image."
                ),
                field="ebookImage",
                context={"detected_type": detected, "declared_type": declared},
            )
        if _canonical(detected) != _canonical(declared):
            raise ValidationError(
                message=(
                    f"File content ({detected}) does not match the declared type ({declared})."
                ),
                field="ebookImage",
                context={"detected_type": detected, "declared_type": declared},
            )
        return detected

    def validate_extension(self, image: ImageUpload, mime_type: str) -> None:
        """A filename without a suffix is accepted; a mismatching suffix is not."""
        if not image.filename:
            return
        ext = Path(image.filename).suffix.lower()
        if not ext:
            return
        if ext not in ALLOWED_EXTENSIONS or ext not in ALLOWED_MIME_TYPES[mime_type]:
            raise ValidationError(
                message=(
                    f"File extension '{ext}' does not match an allowed image type. "
                    f"Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="ebookImage",
                context={"extension": ext, "content_type": mime_type},
            )

    def validate_declared_size(self, size: Optional[int]) -> None:
        """
        Reject on the size reported for the multipart part, before its bytes
        are read into memory. Unknown sizes are left to validate_size().
        """
        if size is not None and size > self.max_size:
            self._raise_too_large(size)

    def validate_size(self, image: ImageUpload) -> None:
        if image.size > self.max_size:
            self._raise_too_large(image.size)

    def _raise_too_large(self, size: int) -> None:
        max_mb = self.max_size / (1024 * 1024)
        raise ValidationError(
            message=(
                f"Image size ({size / (1024 * 1024):.1f}MB) exceeds "
                f"maximum of {max_mb:.0f}MB."
            ),
            field="ebookImage",
            context={"max_size": self.max_size, "actual_size": size},
        )

    def validate(self, image: ImageUpload) -> None:
        """Runs every check; raises ValidationError on the first failure."""
        self.validate_not_empty(image)
        self.validate_size(image)
        declared = self.validate_content_type(image)
        detected = self.detect_content_type(image, declared)
        self.validate_extension(image, declared)
        logger.debug("Cover accepted: %s (%s, %d bytes)", image.filename, detected, image.size)
