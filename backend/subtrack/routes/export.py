"""
SubTrack Backend: CSV Export Route Handlers
==============================================

What:  CSV file downloads.
       - GET /api/export/subscriptions.csv: server-rendered subscription list
       - GET /api/export/csv?data=&filename=: returns browser-built CSV
         (base64 in `data`) as an attachment

Caching:
    Exports reflect live data, so responses are `no-store`.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from subtrack.auth import get_current_user
from subtrack.database import get_db_session
from subtrack.schemas.common import ErrorResponse
from subtrack.services.export_service import (
    SUBSCRIPTIONS_FILENAME,
    attachment_headers,
    export_service,
)

logger = logging.getLogger(__name__)

CSV_MEDIA_TYPE = "text/csv; charset=utf-8"

router = APIRouter(
    prefix="/api/export",
    tags=["Export"],
    dependencies=[Depends(get_current_user)],
    responses={401: {"description": "Missing or invalid token", "model": ErrorResponse}},
)


@router.get(
    "/subscriptions.csv",
    response_class=Response,
    responses={200: {"content": {"text/csv": {}}, "description": "CSV attachment"}},
    summary="Export subscriptions as CSV",
)
async def export_subscriptions(db: AsyncSession = Depends(get_db_session)) -> Response:
    content = await export_service.subscriptions_csv(db)
    return Response(
        content=content,
        media_type=CSV_MEDIA_TYPE,
        headers=attachment_headers(SUBSCRIPTIONS_FILENAME),
    )


@router.get(
    "/csv",
    response_class=Response,
    responses={
        200: {"content": {"text/csv": {}}, "description": "CSV attachment"},
        400: {"description": "Missing or undecodable data parameter", "model": ErrorResponse},
    },
    summary="Download browser-built CSV",
    description="Decodes the base64 `data` parameter and returns it as a CSV attachment.",
)
async def export_csv(
    data: Optional[str] = Query(default=None, description="Base64-encoded CSV text"),
    filename: Optional[str] = Query(default=None, description="Download filename"),
) -> Response:
    content = export_service.decode_csv_payload(data)
    logger.info("CSV download: %d bytes as %s", len(content), filename or "export.csv")
    return Response(
        content=content,
        media_type=CSV_MEDIA_TYPE,
        headers=attachment_headers(filename),
    )
