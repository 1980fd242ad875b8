"""
SubTrack Backend: Vendor Schemas
===================================

What:  API contract for vendors, including the two-step delete flow.

Delete flow:
    DELETE /api/vendors/{id}               → VendorDeletePreview (nothing deleted)
    DELETE /api/vendors/{id}?confirm=true  → VendorDeleteResult

Merge flow:
    GET  /api/vendors/merge?sourceVendorId=  → VendorMergePreview
    POST /api/vendors/merge                   → VendorMergeResult
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field

from subtrack.schemas.common import CamelModel


class VendorUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    website: Optional[str] = None
    contact_email: Optional[str] = None
    logo_url: Optional[str] = None
    category: Optional[str] = None


class VendorResponse(CamelModel):
    id: uuid.UUID
    name: str
    website: Optional[str] = None
    contact_email: Optional[str] = None
    logo_url: Optional[str] = None
    category: Optional[str] = None
    created_at: datetime
    subscription_count: int = 0
    invoice_count: int = 0
    total_spend: float = Field(default=0, description="Sum of the vendor's invoice totals")


class VendorDeleteImpact(CamelModel):
    subscriptions: int = 0
    invoices: int = 0
    line_items: int = 0
    services: int = 0
    assignments: int = 0


class VendorDeletePreview(CamelModel):
    requires_confirmation: bool = True
    impact: VendorDeleteImpact
    message: str


class VendorDeleteResult(CamelModel):
    success: bool = True
    message: str
    deleted_counts: VendorDeleteImpact


# ══════════════════════════════════════════════════════════════════════════
# Merge
# ══════════════════════════════════════════════════════════════════════════


class VendorMergePreview(CamelModel):
    """What a merge would move off the source vendor."""
    subscriptions: int = 0
    invoices: int = 0
    services: int = 0
    line_items: int = 0


class VendorMergeRequest(CamelModel):
    source_vendor_id: uuid.UUID
    target_vendor_id: uuid.UUID
    new_name: Optional[str] = Field(default=None, max_length=255, description="Rename the target")


class VendorMergeCounts(CamelModel):
    subscriptions: int = 0
    invoices: int = 0
    services: int = 0


class VendorMergeResult(CamelModel):
    success: bool = True
    message: str
    merged: VendorMergeCounts
