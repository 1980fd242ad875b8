"""
SubTrack Backend: Line Item Route Handlers
=============================================

What:  /api/line-items for manual corrections to ingested invoices, and
       /api/line-items/move-period for re-assigning billing months
       (declared before /{line_item_id}).
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from subtrack.auth import get_current_user
from subtrack.database import get_db_session
from subtrack.schemas.common import ErrorResponse, SuccessResponse
from subtrack.schemas.invoice import (
    ClearOverrideResponse,
    LineItemCreate,
    LineItemResponse,
    LineItemUpdate,
    MovePeriodRequest,
    MovePeriodResponse,
)
from subtrack.services.line_item_service import line_item_service

router = APIRouter(
    prefix="/api/line-items",
    tags=["Line Items"],
    dependencies=[Depends(get_current_user)],
    responses={
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
        404: {"description": "Line item, invoice or service not found", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
)


@router.post(
    "",
    status_code=201,
    response_model=LineItemResponse,
    responses={400: {"description": "Invalid body", "model": ErrorResponse}},
    summary="Add a line item to an invoice",
)
async def create_line_item(
    payload: LineItemCreate,
    db: AsyncSession = Depends(get_db_session),
) -> LineItemResponse:
    return await line_item_service.create_line_item(db, payload)


@router.post(
    "/move-period",
    response_model=MovePeriodResponse,
    responses={400: {"description": "Bad month or missing filter for the level", "model": ErrorResponse}},
    summary="Move line items to another billing month",
    description=(
        "Sets billingMonthOverride on one line item, every item of an invoice, "
        "or items whose description names a service (optionally only those "
        "currently billed in sourceMonth)."
    ),
)
async def move_period(
    payload: MovePeriodRequest,
    db: AsyncSession = Depends(get_db_session),
) -> MovePeriodResponse:
    return await line_item_service.move_period(db, payload)


@router.delete(
    "/move-period",
    response_model=ClearOverrideResponse,
    responses={400: {"description": "Neither lineItemId nor invoiceId given", "model": ErrorResponse}},
    summary="Clear manual billing months",
)
async def clear_billing_override(
    line_item_id: Optional[UUID] = Query(default=None, alias="lineItemId"),
    invoice_id: Optional[UUID] = Query(default=None, alias="invoiceId"),
    db: AsyncSession = Depends(get_db_session),
) -> ClearOverrideResponse:
    return await line_item_service.clear_override(db, line_item_id=line_item_id, invoice_id=invoice_id)


@router.get("/{line_item_id}", response_model=LineItemResponse, summary="Get a line item")
async def get_line_item(
    line_item_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> LineItemResponse:
    return await line_item_service.get_line_item(db, line_item_id)


@router.put("/{line_item_id}", response_model=LineItemResponse, summary="Update a line item")
async def update_line_item(
    line_item_id: UUID,
    payload: LineItemUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> LineItemResponse:
    return await line_item_service.update_line_item(db, line_item_id, payload)


@router.delete("/{line_item_id}", response_model=SuccessResponse, summary="Delete a line item")
async def delete_line_item(
    line_item_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> SuccessResponse:
    return await line_item_service.delete_line_item(db, line_item_id)
