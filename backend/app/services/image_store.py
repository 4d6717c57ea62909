"""
Ebook Shelf Backend — Abstract Image Store Interface
======================================================

What:  Abstract base class defining the contract for remote cover image hosting.
Why:   The ebook service only needs "upload bytes, get a URL and a reference back"
       and "delete by reference". Hiding the provider behind this interface lets
       tests use an in-memory store and keeps provider details out of the service.
How:   Concrete implementations inherit from ImageStore (see cloudinary_service.py).
Who:   Called by EbookService during create, update and delete.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ImageUpload:
    """Raw cover image taken from a multipart request."""

    content: bytes
    content_type: str
    filename: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class StoredImage:
    """
    What the image host returns after an upload.

    url: public (https) URL of the stored image
    ref: opaque reference needed to delete it later
    """

    url: str
    ref: str


class ImageStore(ABC):
    """
    Abstract interface for a remote image host.

    Contract:
        - upload() stores the image under a logical namespace (folder) and
          returns its public URL and reference
        - delete() returns True when the image was removed and False when the
          host reports it does not exist; "not found" is never an error
        - Provider failures are wrapped in ImageStoreError; nothing is retried
    """

    @abstractmethod
    async def upload(self, image: ImageUpload, namespace: str) -> StoredImage:
        """
        Upload an image.

        Raises:
            ImageStoreError: the host rejected the upload or was unreachable.
        """
        ...

    @abstractmethod
    async def delete(self, ref: str) -> bool:
        """
        Delete a previously uploaded image.

        Returns:
            True if deleted, False if the host had no such image.

        Raises:
            ImageStoreError: the host failed to process the request.
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Lightweight reachability test. Returns True if the host answers."""
        ...
