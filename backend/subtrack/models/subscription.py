"""
SubTrack Backend: Subscription Models
========================================

What:  ORM models for `sub_subscriptions` and `sub_subscription_services`.
Why:   A subscription is the contract with a vendor (what the dashboard
       lists); its services are the billable products found on invoices
       (e.g. "EC2", "S3" under one AWS agreement).

Column notes:
    - cost: current periodic cost in the subscription's billing cycle
    - seats_total / seats_used: licence utilisation shown on the dashboard
    - line_items: legacy JSON array of `{id, name, cost, type}` entries kept
      for subscriptions created by hand before invoice ingestion existed
    - status: 'Active' | 'Review' | 'Cancelled'

There are no ORM relationships; services issue explicit joins so no lazy
load ever runs on the async session.
"""

import uuid
from datetime import date
from typing import Any, List, Optional

from sqlalchemy import (
    Boolean,
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from subtrack.database import Base
from subtrack.models.mixins import JSONType, TimestampMixin, UUIDPrimaryKeyMixin

BILLING_CYCLES = ("Monthly", "Annual", "Quarterly", "As Needed")
PAYMENT_METHODS = ("Credit Card", "PO", "Invoice", "ACH")
SUBSCRIPTION_STATUSES = ("Active", "Review", "Cancelled")


class Subscription(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A recurring agreement with a vendor."""

    __tablename__ = "sub_subscriptions"

    vendor_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("sub_vendors.id"), nullable=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    logo: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    renewal_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    cost: Mapped[float] = mapped_column(
        Numeric(12, 2, asdecimal=False), nullable=False, default=0, server_default=text("0")
    )
    billing_cycle: Mapped[str] = mapped_column(
        String(20), nullable=False, default="Monthly", server_default=text("'Monthly'")
    )
    payment_method: Mapped[str] = mapped_column(
        String(20), nullable=False, default="Credit Card", server_default=text("'Credit Card'")
    )
    payment_details: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    auto_renewal: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )
    owner_name: Mapped[str] = mapped_column(
        String(255), nullable=False, default="Unknown", server_default=text("'Unknown'")
    )
    owner_email: Mapped[str] = mapped_column(
        String(255), nullable=False, default="", server_default=text("''")
    )
    seats_total: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    seats_used: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="Active", server_default=text("'Active'")
    )
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    agreement_type: Mapped[str] = mapped_column(
        String(50), nullable=False, default="Subscription", server_default=text("'Subscription'")
    )
    line_items: Mapped[List[Any]] = mapped_column(
        JSONType, nullable=False, default=list, server_default=text("'[]'")
    )

    __table_args__ = (
        Index("idx_sub_subscriptions_vendor", vendor_id),
        Index("idx_sub_subscriptions_renewal", renewal_date),
    )

    def __repr__(self) -> str:
        return f"<Subscription(id={self.id}, name='{self.name}', status='{self.status}')>"


class SubscribedService(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """
    A billable product under a subscription.

    current_quantity / current_unit_price reflect the most recent invoice
    that mentioned the service; `updated_at` is set to that invoice's date
    so older invoices ingested later never overwrite newer prices.
    """

    __tablename__ = "sub_subscription_services"

    subscription_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("sub_subscriptions.id"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="Active", server_default=text("'Active'")
    )
    current_quantity: Mapped[float] = mapped_column(
        Numeric(12, 2, asdecimal=False), nullable=False, default=1, server_default=text("1")
    )
    current_unit_price: Mapped[float] = mapped_column(
        Numeric(12, 2, asdecimal=False), nullable=False, default=0, server_default=text("0")
    )
    currency: Mapped[str] = mapped_column(
        String(3), nullable=False, default="USD", server_default=text("'USD'")
    )

    __table_args__ = (
        Index("idx_sub_services_subscription", subscription_id),
    )

    def __repr__(self) -> str:
        return f"<SubscribedService(id={self.id}, name='{self.name}')>"
