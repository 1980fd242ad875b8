"""
SubTrack Backend: Subscription Schemas
=========================================

What:  API contract for subscriptions and their services, including the
       service edit, confirm-first delete and merge flows.
How:   Owner and seat columns are flat in the database but nested on the
       wire (`owner {name, email}`, `seats {total, used}`), matching what
       the dashboard table and the subscription form send and expect.
"""

import uuid
from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import Field

from subtrack.schemas.common import CamelModel

BillingCycle = Literal["Monthly", "Annual", "Quarterly", "As Needed"]
PaymentMethod = Literal["Credit Card", "PO", "Invoice", "ACH"]
SubscriptionStatus = Literal["Active", "Review", "Cancelled"]


class Owner(CamelModel):
    name: str = Field(default="Unknown")
    email: str = Field(default="")


class Seats(CamelModel):
    total: int = Field(default=0, ge=0)
    used: int = Field(default=0, ge=0)


class CostItem(CamelModel):
    """Hand-entered cost breakdown entry (e.g. "EC2", 120.0, "usage")."""
    id: Optional[str] = None
    name: str
    cost: float = 0
    type: Optional[str] = None


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class SubscriptionCreate(CamelModel):
    name: str = Field(min_length=1, max_length=255)
    vendor_id: Optional[uuid.UUID] = None
    category: Optional[str] = None
    logo: Optional[str] = None
    renewal_date: Optional[date] = None
    cost: float = Field(default=0)
    billing_cycle: BillingCycle = "Monthly"
    payment_method: PaymentMethod = "Credit Card"
    payment_details: Optional[str] = None
    auto_renewal: bool = True
    owner: Owner = Field(default_factory=Owner)
    seats: Seats = Field(default_factory=Seats)
    status: SubscriptionStatus = "Active"
    description: Optional[str] = None
    agreement_type: str = "Subscription"
    line_items: List[CostItem] = Field(default_factory=list)


class SubscriptionUpdate(CamelModel):
    """Partial update: only fields present in the request body are written."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    vendor_id: Optional[uuid.UUID] = None
    category: Optional[str] = None
    logo: Optional[str] = None
    renewal_date: Optional[date] = None
    cost: Optional[float] = None
    billing_cycle: Optional[BillingCycle] = None
    payment_method: Optional[PaymentMethod] = None
    payment_details: Optional[str] = None
    auto_renewal: Optional[bool] = None
    owner: Optional[Owner] = None
    seats: Optional[Seats] = None
    status: Optional[SubscriptionStatus] = None
    description: Optional[str] = None
    agreement_type: Optional[str] = None
    line_items: Optional[List[CostItem]] = None


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class SubscriptionResponse(CamelModel):
    id: uuid.UUID
    vendor_id: Optional[uuid.UUID] = None
    vendor_name: Optional[str] = None
    name: str
    category: Optional[str] = None
    logo: Optional[str] = Field(
        default=None, description="Vendor logo when available, else the subscription's own"
    )
    renewal_date: Optional[date] = None
    cost: float
    billing_cycle: str
    payment_method: str
    payment_details: Optional[str] = None
    auto_renewal: bool
    owner: Owner
    seats: Seats
    status: str
    description: Optional[str] = None
    agreement_type: str
    line_items: List[CostItem] = Field(default_factory=list)
    created_at: datetime


class ServiceResponse(CamelModel):
    id: uuid.UUID
    subscription_id: uuid.UUID
    name: str
    category: Optional[str] = None
    status: str
    current_quantity: float
    current_unit_price: float
    currency: str
    updated_at: datetime


# ══════════════════════════════════════════════════════════════════════════
# Service Management
# ══════════════════════════════════════════════════════════════════════════


class ServiceUpdate(CamelModel):
    """Partial update of a billed service; sent fields only."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    category: Optional[str] = None
    status: Optional[str] = Field(default=None, max_length=20)
    current_quantity: Optional[float] = None
    current_unit_price: Optional[float] = None
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)


class ServiceDeleteImpact(CamelModel):
    line_items: int = 0


class ServiceDeletePreview(CamelModel):
    requires_confirmation: bool = True
    impact: ServiceDeleteImpact
    message: str


class ServiceDeleteResult(CamelModel):
    success: bool = True
    message: str
    deleted_line_items: int


class ServiceMergePreview(CamelModel):
    line_items: int = 0
    total_amount: float = Field(default=0, description="Sum of the source's line item totals")


class ServiceMergeRequest(CamelModel):
    source_service_id: uuid.UUID
    target_service_id: uuid.UUID


class ServiceMergeResult(CamelModel):
    success: bool = True
    message: str
    moved_line_items: int
