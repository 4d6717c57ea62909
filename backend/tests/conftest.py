"""
Ebook Shelf Backend — Test Configuration (conftest.py)
========================================================

What:  Shared pytest fixtures for the entire test suite.
Why:   Tests run without PostgreSQL or Cloudinary: the service is exercised
       against in-memory stores, the HTTP layer through dependency overrides.

Fixture Hierarchy:
    ├── record_store:       InMemoryRecordStore (RecordStore fake)
    ├── image_store:        FakeImageStore (ImageStore fake)
    ├── ebook_service:      EbookService wired to the two fakes
    ├── sample_image:       Minimal JPEG as an ImageUpload
    ├── sample_image_bytes: The same JPEG as raw bytes (for multipart requests)
    ├── test_app:           Fresh FastAPI app with the fakes as dependency overrides
    └── test_client:        HTTPX AsyncClient against test_app
"""

import os
import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

# Must be set before app.config is imported anywhere
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CLOUDINARY_CLOUD_NAME"] = "test-cloud"
os.environ["CLOUDINARY_API_KEY"] = "test-key"
os.environ["CLOUDINARY_API_SECRET"] = "test-secret"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.config import PLACEHOLDER_IMAGE_URL
from app.exceptions import NotFoundError
from app.schemas.ebook import EbookRecord
from app.services.ebook_service import EbookService
from app.services.image_store import ImageStore, ImageUpload, StoredImage
from app.services.record_store import RecordStore
from app.services.upload_service import UploadValidator


# Minimal JPEG: SOI marker + JFIF header + EOI marker
JPEG_BYTES = (
    b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
    b'\xff\xd9'
)


# ══════════════════════════════════════════════════════════════════════════
# In-memory stores
# ══════════════════════════════════════════════════════════════════════════

class InMemoryRecordStore(RecordStore):
    """
    RecordStore kept in a dict.

    `fail_with` maps an operation name ("find_all", "insert", ...) to the
    exception that operation should raise.
    """

    def __init__(self):
        self.rows: Dict[uuid.UUID, EbookRecord] = {}
        self.fail_with: Dict[str, Exception] = {}
        self.calls: List[str] = []
        self._clock = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def _enter(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.fail_with:
            raise self.fail_with[operation]

    async def find_all(self) -> List[EbookRecord]:
        self._enter("find_all")
        return [r.model_copy() for r in self.rows.values()]

    async def find_by_id(self, record_id: uuid.UUID) -> Optional[EbookRecord]:
        self._enter("find_by_id")
        record = self.rows.get(record_id)
        return record.model_copy() if record else None

    async def insert(self, record: EbookRecord) -> EbookRecord:
        self._enter("insert")
        self._clock += timedelta(seconds=1)
        stored = record.model_copy(update={"id": uuid.uuid4(), "created_at": self._clock})
        self.rows[stored.id] = stored
        return stored.model_copy()

    async def save(self, record: EbookRecord) -> EbookRecord:
        self._enter("save")
        if record.id not in self.rows:
            raise NotFoundError(resource="ebook", resource_id=str(record.id))
        self.rows[record.id] = record.model_copy()
        return record.model_copy()

    async def delete_by_id(self, record_id: uuid.UUID) -> Optional[EbookRecord]:
        self._enter("delete_by_id")
        return self.rows.pop(record_id, None)


class FakeImageStore(ImageStore):
    """
    ImageStore holding "uploaded" images in a dict of ref → url.

    `fail_with` maps "upload" / "delete" to the exception to raise.
    """

    def __init__(self):
        self.objects: Dict[str, str] = {}
        self.namespaces: List[str] = []
        self.deleted: List[str] = []
        self.fail_with: Dict[str, Exception] = {}
        self.healthy = True
        self._counter = 0

    async def upload(self, image: ImageUpload, namespace: str) -> StoredImage:
        if "upload" in self.fail_with:
            raise self.fail_with["upload"]
        self._counter += 1
        ref = f"{namespace}/cover-{self._counter}"
        url = f"https://res.example.com/image/upload/{ref}.jpg"
        self.objects[ref] = url
        self.namespaces.append(namespace)
        return StoredImage(url=url, ref=ref)

    async def delete(self, ref: str) -> bool:
        if "delete" in self.fail_with:
            raise self.fail_with["delete"]
        self.deleted.append(ref)
        return self.objects.pop(ref, None) is not None

    async def health_check(self) -> bool:
        return self.healthy


# ══════════════════════════════════════════════════════════════════════════
# Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def record_store():
    return InMemoryRecordStore()


@pytest.fixture
def image_store():
    return FakeImageStore()


@pytest.fixture
def ebook_service(record_store, image_store):
    return EbookService(
        records=record_store,
        images=image_store,
        validator=UploadValidator(max_size=1024 * 1024),
        namespace="ebook_covers",
        placeholder_url=PLACEHOLDER_IMAGE_URL,
    )


@pytest.fixture
def sample_image_bytes():
    return JPEG_BYTES


@pytest.fixture
def sample_image():
    return ImageUpload(content=JPEG_BYTES, content_type="image/jpeg", filename="cover.jpg")


@pytest.fixture
def test_app(record_store, image_store):
    """
    A fresh app whose stores are the fakes.

    The lifespan does not run under ASGITransport, so no database or
    Cloudinary store is created and app.state starts empty.
    """
    from app.dependencies import get_image_store, get_record_store
    from app.main import create_app

    app = create_app()
    app.dependency_overrides[get_record_store] = lambda: record_store
    app.dependency_overrides[get_image_store] = lambda: image_store
    return app


@pytest_asyncio.fixture
async def test_client(test_app):
    """HTTPX AsyncClient talking to test_app in-process."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
