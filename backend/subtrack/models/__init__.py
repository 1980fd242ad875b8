# Models package init
"""
SubTrack Backend: ORM Models
===============================

Importing this package registers every table with `Base.metadata`, which
Alembic (`alembic/env.py`) and the test suite rely on.

Table inventory (all prefixed `sub_`):
    vendors, subscriptions, subscription_services, invoices,
    invoice_line_items, employees, devices, assignments, profiles
"""

from subtrack.models.asset import Assignment, Device, Employee
from subtrack.models.invoice import Invoice, LineItem
from subtrack.models.profile import Profile
from subtrack.models.subscription import SubscribedService, Subscription
from subtrack.models.vendor import Vendor

__all__ = [
    "Assignment",
    "Device",
    "Employee",
    "Invoice",
    "LineItem",
    "Profile",
    "Subscription",
    "SubscribedService",
    "Vendor",
]
