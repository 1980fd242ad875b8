"""
SubTrack Backend: Invoice Route Handlers
===========================================

What:  /api/invoices listing, ingestion of analysed invoices, edits,
       deletion, and an invoice's line items.
Who:   Called by the invoice upload flow (after PDF → image → analysis)
       and the invoices table.

Ingestion is idempotent on the invoice number: posting the same analysis
twice updates the first invoice instead of creating a duplicate.
"""

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from subtrack.auth import get_current_user
from subtrack.database import get_db_session
from subtrack.schemas.common import ErrorResponse
from subtrack.schemas.invoice import (
    InvoiceDeleteResponse,
    InvoiceIngestRequest,
    InvoiceIngestResponse,
    InvoiceResponse,
    InvoiceUpdate,
    LineItemResponse,
)
from subtrack.services.invoice_service import invoice_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/invoices",
    tags=["Invoices"],
    dependencies=[Depends(get_current_user)],
    responses={
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
)


@router.get(
    "",
    response_model=List[InvoiceResponse],
    summary="List invoices",
    description="All invoices, newest invoice date first, with the vendor name.",
)
async def list_invoices(db: AsyncSession = Depends(get_db_session)) -> List[InvoiceResponse]:
    return await invoice_service.list_invoices(db)


# Declared before /{invoice_id} so "list" is not parsed as an ID
@router.get(
    "/list",
    response_model=List[InvoiceResponse],
    summary="List invoices (alias)",
)
async def list_invoices_alias(db: AsyncSession = Depends(get_db_session)) -> List[InvoiceResponse]:
    return await invoice_service.list_invoices(db)


@router.post(
    "",
    response_model=InvoiceIngestResponse,
    responses={400: {"description": "Vendor or invoice section missing", "model": ErrorResponse}},
    summary="Ingest an analysed invoice",
    description=(
        "Stores the output of the invoice analyser: finds or creates the vendor "
        "and its master agreement, upserts the invoice by number, aggregates "
        "line items into services, and stores each line item."
    ),
)
async def ingest_invoice(
    payload: InvoiceIngestRequest,
    db: AsyncSession = Depends(get_db_session),
) -> InvoiceIngestResponse:
    return await invoice_service.ingest_analysis(db, payload.analysis)


@router.get(
    "/{invoice_id}",
    response_model=InvoiceResponse,
    responses={404: {"description": "Invoice not found", "model": ErrorResponse}},
    summary="Get an invoice",
)
async def get_invoice(
    invoice_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> InvoiceResponse:
    return await invoice_service.get_invoice(db, invoice_id)


@router.put(
    "/{invoice_id}",
    response_model=InvoiceResponse,
    responses={404: {"description": "Invoice not found", "model": ErrorResponse}},
    summary="Update an invoice",
)
async def update_invoice(
    invoice_id: UUID,
    payload: InvoiceUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> InvoiceResponse:
    return await invoice_service.update_invoice(db, invoice_id, payload)


@router.delete(
    "/{invoice_id}",
    response_model=InvoiceDeleteResponse,
    responses={404: {"description": "Invoice not found", "model": ErrorResponse}},
    summary="Delete an invoice and its line items",
)
async def delete_invoice(
    invoice_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> InvoiceDeleteResponse:
    return await invoice_service.delete_invoice(db, invoice_id)


@router.get(
    "/{invoice_id}/line-items",
    response_model=List[LineItemResponse],
    responses={404: {"description": "Invoice not found", "model": ErrorResponse}},
    summary="Line items of an invoice",
)
async def list_invoice_line_items(
    invoice_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> List[LineItemResponse]:
    return await invoice_service.list_line_items(db, invoice_id)
