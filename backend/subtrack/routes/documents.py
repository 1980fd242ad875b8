"""
SubTrack Backend: Document Conversion Route Handler
======================================================

What:  POST /api/documents/pdf-to-images renders an uploaded invoice PDF
       into page images for the invoice analyser.

Request Flow:
    1. Client sends multipart/form-data with a `file` field
       (plus optional `maxPages` and `format` fields)
    2. We read at most max_upload_size + 1 bytes, enough for PdfService
       to tell an oversized upload apart without buffering all of it
    3. PdfService validates and renders in a worker thread, since
       pdfium is synchronous and CPU-bound
    4. The upload is always closed
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from starlette.concurrency import run_in_threadpool

from subtrack.auth import get_current_user
from subtrack.config import settings
from subtrack.schemas.common import ErrorResponse, PdfConversionResponse
from subtrack.services.pdf_service import pdf_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/documents",
    tags=["Documents"],
    dependencies=[Depends(get_current_user)],
)


@router.post(
    "/pdf-to-images",
    response_model=PdfConversionResponse,
    responses={
        400: {"description": "Not a PDF, too large, or bad options", "model": ErrorResponse},
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
        422: {"description": "PDF could not be rendered", "model": ErrorResponse},
    },
    summary="Render PDF pages to images",
    description="Returns the first pages of the uploaded PDF as base64 data URLs.",
)
async def pdf_to_images(
    file: UploadFile = File(..., description="PDF document"),
    max_pages: Optional[int] = Form(default=None, alias="maxPages"),
    image_format: str = Form(default="png", alias="format"),
) -> PdfConversionResponse:
    content = await file.read(settings.max_upload_size + 1)
    logger.info(
        "Received PDF conversion request: filename=%s, size=%d bytes",
        file.filename or "unknown",
        len(content),
    )
    try:
        return await run_in_threadpool(
            pdf_service.convert,
            content,
            file.filename,
            max_pages,
            image_format,
        )
    finally:
        await file.close()
