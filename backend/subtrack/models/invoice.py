"""
SubTrack Backend: Invoice Models
===================================

What:  ORM models for `sub_invoices` and `sub_invoice_line_items`.
Why:   Invoices are the source of truth for spend; each line item links an
       amount to the subscription service it paid for.

Integrity:
    invoice_number is unique when present, which is what makes invoice
    ingestion idempotent (re-uploading an invoice updates it in place).
    Line items must be deleted before their invoice (FK without cascade).
"""

import uuid
from datetime import date
from typing import Optional

from sqlalchemy import Date, ForeignKey, Index, Numeric, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from subtrack.database import Base
from subtrack.models.mixins import TimestampMixin, UUIDPrimaryKeyMixin

INVOICE_STATUSES = ("Paid", "Pending", "Overdue")


class Invoice(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "sub_invoices"

    vendor_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("sub_vendors.id"), nullable=True
    )
    subscription_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("sub_subscriptions.id"), nullable=True
    )
    invoice_number: Mapped[Optional[str]] = mapped_column(
        String(100), nullable=True, unique=True
    )
    invoice_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    total_amount: Mapped[float] = mapped_column(
        Numeric(12, 2, asdecimal=False), nullable=False, default=0, server_default=text("0")
    )
    currency: Mapped[str] = mapped_column(
        String(3), nullable=False, default="USD", server_default=text("'USD'")
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="Pending", server_default=text("'Pending'")
    )
    file_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("idx_sub_invoices_subscription", subscription_id),
        Index("idx_sub_invoices_date", invoice_date.desc()),
    )

    def __repr__(self) -> str:
        return f"<Invoice(id={self.id}, number='{self.invoice_number}')>"


class LineItem(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """
    One row of an invoice.

    billing_month_override lets a user move a charge to a different
    reporting month than its invoice date (e.g. annual prepayments).
    """

    __tablename__ = "sub_invoice_line_items"

    invoice_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("sub_invoices.id"), nullable=False
    )
    service_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("sub_subscription_services.id"), nullable=True
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[float] = mapped_column(
        Numeric(12, 2, asdecimal=False), nullable=False, default=1, server_default=text("1")
    )
    unit_price: Mapped[float] = mapped_column(
        Numeric(12, 2, asdecimal=False), nullable=False, default=0, server_default=text("0")
    )
    total_amount: Mapped[float] = mapped_column(
        Numeric(12, 2, asdecimal=False), nullable=False, default=0, server_default=text("0")
    )
    period_start: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    period_end: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    billing_month_override: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    __table_args__ = (
        Index("idx_sub_line_items_invoice", invoice_id),
        Index("idx_sub_line_items_service", service_id),
    )

    def __repr__(self) -> str:
        return f"<LineItem(id={self.id}, description='{self.description}')>"
