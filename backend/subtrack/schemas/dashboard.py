"""
SubTrack Backend: Dashboard Schemas
======================================

What:  Headline figures shown in the dashboard's stat cards.
"""

import uuid
from datetime import date
from typing import List, Literal

from pydantic import Field

from subtrack.schemas.common import CamelModel


class UpcomingRenewal(CamelModel):
    id: uuid.UUID
    name: str
    renewal_date: date
    cost: float


class DashboardSummary(CamelModel):
    total_annual_spend: float = Field(
        description="Invoiced spend over the trailing 13 months, or projected annual cost"
    )
    spend_source: Literal["invoices", "projection"]
    active_subscriptions: int
    review_subscriptions: int
    active_vendors: int = Field(description="Vendors with at least one Active subscription")
    pending_invoices: int
    upcoming_renewals: int = Field(description="Renewals due within the window")
    renewal_window_days: int
    renewals: List[UpcomingRenewal] = Field(default_factory=list)
