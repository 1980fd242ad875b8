"""
SubTrack Backend: Team, Device & Assignment Schemas
======================================================

What:  API contract for employees, devices, and subscription assignments.

Naming on the wire:
    Device responses carry both `assignedToId` (employee UUID) and
    `assignedTo` (that employee's display name, or null), because the
    device table shows the name while the edit form posts the ID.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field

from subtrack.schemas.common import CamelModel


# ══════════════════════════════════════════════════════════════════════════
# Employees
# ══════════════════════════════════════════════════════════════════════════


class EmployeeCreate(CamelModel):
    name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3, max_length=255)
    department: Optional[str] = None
    job_title: Optional[str] = None
    status: str = "Active"


class EmployeeResponse(CamelModel):
    id: uuid.UUID
    name: str
    email: str
    department: Optional[str] = None
    job_title: Optional[str] = None
    status: str
    created_at: datetime


# ══════════════════════════════════════════════════════════════════════════
# Devices
# ══════════════════════════════════════════════════════════════════════════


class DeviceCreate(CamelModel):
    name: str = Field(min_length=1, max_length=255)
    type: str = Field(min_length=1, max_length=50, description="Laptop, Phone, Server...")
    model: Optional[str] = None
    serial_number: Optional[str] = None
    assigned_to_id: Optional[uuid.UUID] = None


class DeviceUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    type: Optional[str] = Field(default=None, min_length=1, max_length=50)
    model: Optional[str] = None
    serial_number: Optional[str] = None
    assigned_to_id: Optional[uuid.UUID] = None


class DeviceResponse(CamelModel):
    id: uuid.UUID
    name: str
    type: str
    model: Optional[str] = None
    serial_number: Optional[str] = None
    assigned_to_id: Optional[uuid.UUID] = None
    assigned_to: Optional[str] = Field(default=None, description="Assigned employee's name")
    created_at: datetime


# ══════════════════════════════════════════════════════════════════════════
# Assignments
# ══════════════════════════════════════════════════════════════════════════


class AssignmentCreate(CamelModel):
    subscription_id: uuid.UUID
    employee_id: Optional[uuid.UUID] = None
    device_id: Optional[uuid.UUID] = None


class AssignmentResponse(CamelModel):
    id: uuid.UUID
    subscription_id: uuid.UUID
    employee_id: Optional[uuid.UUID] = None
    device_id: Optional[uuid.UUID] = None
    assignee_name: str = Field(description="Employee name, else device name, else 'Unknown'")
    assigned_date: datetime
