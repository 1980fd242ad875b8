"""
SubTrack Backend: Vendor Model
=================================

What:  ORM model for the `sub_vendors` table.
Who:   Referenced by subscriptions and invoices; created on demand by
       invoice ingestion when an unknown vendor name appears.

Lookups by name are case-insensitive (see InvoiceService).
"""

from typing import Optional

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from subtrack.database import Base
from subtrack.models.mixins import TimestampMixin, UUIDPrimaryKeyMixin


class Vendor(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A company that bills us: AWS, Slack, Adobe..."""

    __tablename__ = "sub_vendors"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    website: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    contact_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    logo_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    def __repr__(self) -> str:
        return f"<Vendor(id={self.id}, name='{self.name}')>"
