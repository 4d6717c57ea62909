"""
Ebook Shelf Backend — Record Store
====================================

What:  Persistence interface for e-book records and its SQLAlchemy implementation.
Why:   EbookService talks to an abstract RecordStore handed to it per request,
       so the service can be tested against an in-memory store and never sees
       ORM rows or driver exceptions.
How:   SqlAlchemyRecordStore wraps one AsyncSession. Each write commits before
       returning, so a successful call means the change is durable before the
       service moves on to image host cleanup.

Error Translation:
    Any SQLAlchemyError → DatabaseError (context carries the operation and the
    error type; the driver message goes to the log only).
"""

import logging
import uuid
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import DatabaseError, NotFoundError
from app.models.ebook import Ebook
from app.schemas.ebook import EbookRecord

logger = logging.getLogger(__name__)


class RecordStore(ABC):
    """
    Abstract persistent store of EbookRecords keyed by generated id.

    Contract:
        - find_by_id / delete_by_id return None for unknown ids
        - insert ignores any id on the given record and returns the record
          with the id the store assigned
        - save replaces title, book_link, image_url and image_ref of an
          existing record; it raises NotFoundError if the record vanished
    """

    @abstractmethod
    async def find_all(self) -> List[EbookRecord]:
        ...

    @abstractmethod
    async def find_by_id(self, record_id: uuid.UUID) -> Optional[EbookRecord]:
        ...

    @abstractmethod
    async def insert(self, record: EbookRecord) -> EbookRecord:
        ...

    @abstractmethod
    async def save(self, record: EbookRecord) -> EbookRecord:
        ...

    @abstractmethod
    async def delete_by_id(self, record_id: uuid.UUID) -> Optional[EbookRecord]:
        ...


def _to_record(row: Ebook) -> EbookRecord:
    return EbookRecord(
        id=row.id,
        title=row.title,
        book_link=row.book_link,
        image_url=row.image_url,
        image_ref=row.image_ref,
        created_at=row.created_at,
    )


class SqlAlchemyRecordStore(RecordStore):
    """RecordStore over an async SQLAlchemy session (one per request)."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @asynccontextmanager
    async def _translate_errors(self, operation: str, write: bool = False) -> AsyncIterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            logger.error("Database error during %s: %s", operation, str(e))
            if write:
                await self.session.rollback()
            raise DatabaseError(
                context={"operation": operation, "error_type": type(e).__name__},
            ) from e

    async def find_all(self) -> List[EbookRecord]:
        async with self._translate_errors("find_all"):
            result = await self.session.execute(
                select(Ebook).order_by(Ebook.created_at.asc())
            )
            return [_to_record(row) for row in result.scalars().all()]

    async def find_by_id(self, record_id: uuid.UUID) -> Optional[EbookRecord]:
        async with self._translate_errors("find_by_id"):
            row = await self.session.get(Ebook, record_id)
            return _to_record(row) if row is not None else None

    async def insert(self, record: EbookRecord) -> EbookRecord:
        async with self._translate_errors("insert", write=True):
            row = Ebook(
                title=record.title,
                book_link=record.book_link,
                image_url=record.image_url,
                image_ref=record.image_ref,
            )
            self.session.add(row)
            await self.session.flush()
            await self.session.commit()
            return _to_record(row)

    async def save(self, record: EbookRecord) -> EbookRecord:
        if record.id is None:
            raise ValueError("Cannot save a record that has no id")

        async with self._translate_errors("save", write=True):
            row = await self.session.get(Ebook, record.id)
            if row is None:
                raise NotFoundError(resource="ebook", resource_id=str(record.id))
            row.title = record.title
            row.book_link = record.book_link
            row.image_url = record.image_url
            row.image_ref = record.image_ref
            await self.session.flush()
            await self.session.commit()
            return _to_record(row)

    async def delete_by_id(self, record_id: uuid.UUID) -> Optional[EbookRecord]:
        async with self._translate_errors("delete_by_id", write=True):
            row = await self.session.get(Ebook, record_id)
            if row is None:
                return None
            removed = _to_record(row)
            await self.session.delete(row)
            await self.session.flush()
            await self.session.commit()
            return removed
