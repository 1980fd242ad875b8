"""
SubTrack Backend: Invoice & Line Item Schemas
================================================

What:  API contract for invoices, line items, invoice ingestion, and
       moving line items to another billing month.

Ingestion payload:
    POST /api/invoices receives the output of the invoice analyser, which is
    snake_case and loosely typed: amounts arrive as strings such as
    "$1,234.56" or "(63.02)". Those fields are typed `Any` here and go
    through `sanitize_number` in the service layer.
"""

import datetime as dt
import uuid
from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from subtrack.schemas.common import CamelModel

InvoiceStatus = Literal["Paid", "Pending", "Overdue"]


# ══════════════════════════════════════════════════════════════════════════
# Invoices
# ══════════════════════════════════════════════════════════════════════════


class InvoiceResponse(CamelModel):
    id: uuid.UUID
    vendor_id: Optional[uuid.UUID] = None
    vendor_name: Optional[str] = None
    subscription_id: Optional[uuid.UUID] = None
    invoice_number: Optional[str] = None
    invoice_date: date
    due_date: Optional[date] = None
    total_amount: float
    currency: str
    status: str
    file_url: Optional[str] = None
    created_at: datetime


class InvoiceUpdate(CamelModel):
    """Only these fields of an invoice are editable after ingestion."""
    invoice_date: Optional[date] = None
    total_amount: Optional[float] = None
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    status: Optional[InvoiceStatus] = None
    due_date: Optional[date] = None


class InvoiceDeleteResponse(CamelModel):
    success: bool = True
    deleted_counts: Dict[str, int]


# ── Ingestion payload (snake_case, analyser output) ──────────────────────


class AnalysisVendor(BaseModel):
    name: str = Field(min_length=1)
    contact_email: Optional[str] = None
    website: Optional[str] = None


class AnalysisInvoice(BaseModel):
    # `date` shadows the type inside this class body, hence dt.date
    number: Optional[str] = None
    date: Optional[dt.date] = None
    due_date: Optional[dt.date] = None
    total_amount: Any = None
    currency: Optional[str] = None


class AnalysisLineItem(BaseModel):
    description: Optional[str] = None
    quantity: Any = None
    unit_price: Any = None
    total_amount: Any = None
    service_name: Optional[str] = None
    period_start: Optional[date] = None
    period_end: Optional[date] = None


class InvoiceAnalysis(BaseModel):
    vendor: Optional[AnalysisVendor] = None
    invoice: Optional[AnalysisInvoice] = None
    line_items: List[AnalysisLineItem] = Field(default_factory=list)


class InvoiceIngestRequest(BaseModel):
    analysis: InvoiceAnalysis


class InvoiceIngestResponse(CamelModel):
    success: bool = True
    invoice: InvoiceResponse


# ══════════════════════════════════════════════════════════════════════════
# Line Items
# ══════════════════════════════════════════════════════════════════════════


class LineItemCreate(CamelModel):
    invoice_id: uuid.UUID
    service_id: Optional[uuid.UUID] = None
    description: str = Field(min_length=1)
    quantity: float = 1
    unit_price: float = 0
    total_amount: float = 0
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    billing_month_override: Optional[date] = None


class LineItemUpdate(CamelModel):
    service_id: Optional[uuid.UUID] = None
    description: Optional[str] = Field(default=None, min_length=1)
    quantity: Optional[float] = None
    unit_price: Optional[float] = None
    total_amount: Optional[float] = None
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    billing_month_override: Optional[date] = None


class LineItemResponse(CamelModel):
    id: uuid.UUID
    invoice_id: uuid.UUID
    service_id: Optional[uuid.UUID] = None
    service_name: Optional[str] = None
    invoice_number: Optional[str] = None
    invoice_date: Optional[date] = None
    description: str
    quantity: float
    unit_price: float
    total_amount: float
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    billing_month_override: Optional[date] = None
    created_at: datetime


# ── Billing period moves ─────────────────────────────────────────────────

MoveLevel = Literal["lineItem", "invoice", "service"]


class MovePeriodFilter(CamelModel):
    """Which line items to move; the field required depends on the level."""
    line_item_id: Optional[uuid.UUID] = None
    invoice_id: Optional[uuid.UUID] = None
    service_name: Optional[str] = None
    source_month: Optional[str] = Field(
        default=None, description="Service level only: move items currently billed in this month"
    )


class MovePeriodRequest(CamelModel):
    level: MoveLevel
    target_month: str = Field(description="yyyy-MM-dd; stored as the first of that month")
    filter: MovePeriodFilter = Field(default_factory=MovePeriodFilter)


class MovePeriodResponse(CamelModel):
    success: bool = True
    level: MoveLevel
    target_month: date
    affected_count: int
    affected_ids: List[uuid.UUID]


class ClearOverrideResponse(CamelModel):
    success: bool = True
    cleared: int
