"""
Ebook Shelf Backend — FastAPI Dependencies
============================================

What:  Builds the per-request store handles and the EbookService.
Why:   Store handles are injected, never imported as globals, so tests swap
       them through `app.dependency_overrides`.
How:   The database and image store live on `app.state` (created in the
       lifespan); each request gets its own session-bound record store.
"""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.services.ebook_service import EbookService
from app.services.image_store import ImageStore
from app.services.record_store import RecordStore, SqlAlchemyRecordStore


def get_record_store(session: AsyncSession = Depends(get_db_session)) -> RecordStore:
    return SqlAlchemyRecordStore(session)


def get_image_store(request: Request) -> ImageStore:
    store = getattr(request.app.state, "image_store", None)
    if store is None:
        raise RuntimeError("Image store is not initialized")
    return store


def get_ebook_service(
    records: RecordStore = Depends(get_record_store),
    images: ImageStore = Depends(get_image_store),
) -> EbookService:
    return EbookService(records=records, images=images)
