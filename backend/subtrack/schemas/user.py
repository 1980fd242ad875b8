"""
SubTrack Backend: User Schemas
=================================

What:  Admin view of `sub_profiles` and the role change request.
"""

import uuid
from datetime import datetime
from typing import Literal, Optional

from subtrack.schemas.common import CamelModel

UserRole = Literal["user", "admin", "super_admin"]


class UserResponse(CamelModel):
    id: uuid.UUID
    email: Optional[str] = None
    full_name: Optional[str] = None
    role: str
    created_at: datetime
    updated_at: datetime


class RoleUpdate(CamelModel):
    role: UserRole
