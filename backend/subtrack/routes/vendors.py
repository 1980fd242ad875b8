"""
SubTrack Backend: Vendor Route Handlers
==========================================

What:  /api/vendors listing with spend roll-ups, edits, deletion, and merging
       duplicates (/merge is declared before /{vendor_id} so it is not
       parsed as an id).

Deletion is two-step: DELETE without `?confirm=true` only reports what
would be removed; the frontend shows that and repeats the call with
`confirm=true`. Both steps require an admin.
"""

import logging
from typing import List, Union
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from subtrack.auth import CurrentUser, get_current_user, require_admin
from subtrack.database import get_db_session
from subtrack.schemas.common import ErrorResponse
from subtrack.schemas.vendor import (
    VendorDeletePreview,
    VendorDeleteResult,
    VendorMergePreview,
    VendorMergeRequest,
    VendorMergeResult,
    VendorResponse,
    VendorUpdate,
)
from subtrack.services.vendor_service import vendor_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/vendors",
    tags=["Vendors"],
    dependencies=[Depends(get_current_user)],
    responses={
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
)


@router.get(
    "",
    response_model=List[VendorResponse],
    summary="List vendors",
    description="Vendors ordered by name with subscription count, invoice count and total spend.",
)
async def list_vendors(db: AsyncSession = Depends(get_db_session)) -> List[VendorResponse]:
    return await vendor_service.list_vendors(db)


@router.get(
    "/merge",
    response_model=VendorMergePreview,
    responses={
        403: {"description": "Admin access required", "model": ErrorResponse},
        404: {"description": "Source vendor not found", "model": ErrorResponse},
    },
    summary="Preview a vendor merge",
)
async def preview_vendor_merge(
    source_vendor_id: UUID = Query(..., alias="sourceVendorId"),
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> VendorMergePreview:
    return await vendor_service.merge_preview(db, source_vendor_id)


@router.post(
    "/merge",
    response_model=VendorMergeResult,
    responses={
        400: {"description": "Missing ids or source equals target", "model": ErrorResponse},
        403: {"description": "Admin access required", "model": ErrorResponse},
        404: {"description": "Source or target vendor not found", "model": ErrorResponse},
    },
    summary="Merge one vendor into another",
    description=(
        "Moves the source vendor's invoices and services onto the target "
        "(optionally renamed), then deletes the source vendor and its subscriptions."
    ),
)
async def merge_vendors(
    payload: VendorMergeRequest,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> VendorMergeResult:
    logger.info(
        "Vendor merge %s -> %s requested by %s",
        payload.source_vendor_id, payload.target_vendor_id, user.id,
    )
    return await vendor_service.merge_vendors(db, payload)


@router.get(
    "/{vendor_id}",
    response_model=VendorResponse,
    responses={404: {"description": "Vendor not found", "model": ErrorResponse}},
    summary="Get a vendor",
)
async def get_vendor(vendor_id: UUID, db: AsyncSession = Depends(get_db_session)) -> VendorResponse:
    return await vendor_service.get_vendor(db, vendor_id)


@router.put(
    "/{vendor_id}",
    response_model=VendorResponse,
    responses={404: {"description": "Vendor not found", "model": ErrorResponse}},
    summary="Update a vendor",
)
async def update_vendor(
    vendor_id: UUID,
    payload: VendorUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> VendorResponse:
    return await vendor_service.update_vendor(db, vendor_id, payload)


@router.delete(
    "/{vendor_id}",
    response_model=Union[VendorDeleteResult, VendorDeletePreview],
    responses={
        403: {"description": "Admin access required", "model": ErrorResponse},
        404: {"description": "Vendor not found", "model": ErrorResponse},
    },
    summary="Delete a vendor and everything billed by it",
)
async def delete_vendor(
    vendor_id: UUID,
    confirm: bool = Query(default=False, description="Actually delete; otherwise preview the impact"),
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> Union[VendorDeleteResult, VendorDeletePreview]:
    logger.info("Vendor %s deletion requested by %s (confirm=%s)", vendor_id, user.id, confirm)
    return await vendor_service.delete_vendor(db, vendor_id, confirm=confirm)
