"""
Ebook Shelf Backend — Ebook Route Handlers
============================================

What:  CRUD endpoints for e-book records under /api/ebooks.
Why:   Entry point for the frontend's list, detail, add, edit and delete views.
How:   Extracts form fields and the optional cover file, delegates to
       EbookService, returns JSON. Errors are formatted by the global handlers.

Request Format:
    POST and PUT take multipart/form-data:
        title       (text)
        bookLink    (text)
        ebookImage  (file, optional)
    A file part with no filename and no bytes (a form submitted without
    choosing a file) counts as "no image".
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from app.dependencies import get_ebook_service
from app.schemas.ebook import DeleteResponse, EbookRecord, EbookUpdate, ErrorResponse
from app.services.ebook_service import EbookService
from app.services.image_store import ImageUpload
from app.services.upload_service import UploadValidator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Ebooks"])


async def read_image(upload: Optional[UploadFile]) -> Optional[ImageUpload]:
    """
    Reads the cover part into memory and closes it.

    The part's reported size is checked first, so an oversized file is
    rejected while it is still spooled outside application memory.
    """
    if upload is None:
        return None
    try:
        UploadValidator().validate_declared_size(upload.size)
        content = await upload.read()
    finally:
        await upload.close()

    if not upload.filename and not content:
        return None

    return ImageUpload(
        content=content,
        content_type=upload.content_type or "application/octet-stream",
        filename=upload.filename or None,
    )


@router.get(
    "/ebooks",
    response_model=List[EbookRecord],
    responses={500: {"description": "Server error", "model": ErrorResponse}},
    summary="List all ebooks",
)
async def list_ebooks(
    service: EbookService = Depends(get_ebook_service),
) -> List[EbookRecord]:
    return await service.list_ebooks()


@router.get(
    "/ebooks/{ebook_id}",
    response_model=EbookRecord,
    responses={
        400: {"description": "Malformed id", "model": ErrorResponse},
        404: {"description": "Ebook not found", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Get a single ebook by ID",
)
async def get_ebook(
    ebook_id: str,
    service: EbookService = Depends(get_ebook_service),
) -> EbookRecord:
    return await service.get_ebook(ebook_id)


@router.post(
    "/ebooks",
    status_code=201,
    response_model=EbookRecord,
    responses={
        201: {"description": "Ebook created", "model": EbookRecord},
        400: {"description": "Missing title/bookLink or invalid image", "model": ErrorResponse},
        500: {"description": "Database or image service failure", "model": ErrorResponse},
    },
    summary="Create an ebook",
    description=(
        "Creates an ebook from multipart form data. When `ebookImage` is supplied it is "
        "uploaded to the image host; otherwise the placeholder cover URL is used."
    ),
)
async def create_ebook(
    title: Optional[str] = Form(default=None),
    book_link: Optional[str] = Form(default=None, alias="bookLink"),
    ebook_image: Optional[UploadFile] = File(default=None, alias="ebookImage"),
    service: EbookService = Depends(get_ebook_service),
) -> EbookRecord:
    image = await read_image(ebook_image)

    logger.info(
        "Received create request: title=%r, image=%s",
        title,
        f"{image.filename or 'unnamed'} ({image.size} bytes)" if image else "none",
    )

    return await service.create_ebook(title=title, book_link=book_link, image=image)


@router.put(
    "/ebooks/{ebook_id}",
    response_model=EbookRecord,
    responses={
        400: {"description": "Malformed id or invalid image", "model": ErrorResponse},
        404: {"description": "Ebook not found", "model": ErrorResponse},
        500: {"description": "Database or image service failure", "model": ErrorResponse},
    },
    summary="Update an ebook",
    description=(
        "Partial update. Omitted or empty `title`/`bookLink` keep their current value. "
        "A new `ebookImage` replaces the stored cover."
    ),
)
async def update_ebook(
    ebook_id: str,
    title: Optional[str] = Form(default=None),
    book_link: Optional[str] = Form(default=None, alias="bookLink"),
    ebook_image: Optional[UploadFile] = File(default=None, alias="ebookImage"),
    service: EbookService = Depends(get_ebook_service),
) -> EbookRecord:
    image = await read_image(ebook_image)
    changes = EbookUpdate(title=title, book_link=book_link)
    return await service.update_ebook(ebook_id, changes, image=image)


@router.delete(
    "/ebooks/{ebook_id}",
    response_model=DeleteResponse,
    responses={
        400: {"description": "Malformed id", "model": ErrorResponse},
        404: {"description": "Ebook not found", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Delete an ebook and its cover",
    description=(
        "Deletes the record, then its uploaded cover. If the cover cannot be removed the "
        "record stays deleted and the response carries `imageDeleted: false` and a warning."
    ),
)
async def delete_ebook(
    ebook_id: str,
    service: EbookService = Depends(get_ebook_service),
) -> DeleteResponse:
    return await service.delete_ebook(ebook_id)
