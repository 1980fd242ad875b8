"""
SubTrack Backend: Asset Models
=================================

What:  ORM models for employees, devices, and subscription assignments.
Why:   Licences are assigned either to a person (`sub_employees`) or to a
       machine (`sub_devices`); `sub_assignments` records who holds a seat
       of which subscription.

An assignment references exactly one subscription and at most one of
employee/device. An assignment with neither is shown as "Unknown".
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column

from subtrack.database import Base
from subtrack.models.mixins import TimestampMixin, UUIDPrimaryKeyMixin, utcnow


class Employee(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "sub_employees"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    department: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    job_title: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="Active", server_default=text("'Active'")
    )

    def __repr__(self) -> str:
        return f"<Employee(id={self.id}, name='{self.name}')>"


class Device(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "sub_devices"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    model: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    serial_number: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    assigned_to: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("sub_employees.id"), nullable=True
    )

    def __repr__(self) -> str:
        return f"<Device(id={self.id}, name='{self.name}', type='{self.type}')>"


class Assignment(UUIDPrimaryKeyMixin, Base):
    __tablename__ = "sub_assignments"

    subscription_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("sub_subscriptions.id"), nullable=False
    )
    employee_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("sub_employees.id"), nullable=True
    )
    device_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("sub_devices.id"), nullable=True
    )
    assigned_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_sub_assignments_subscription", subscription_id),
    )

    def __repr__(self) -> str:
        return f"<Assignment(id={self.id}, subscription_id={self.subscription_id})>"
