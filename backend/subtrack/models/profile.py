"""
SubTrack Backend: Profile Model
==================================

What:  ORM model for `sub_profiles`, one row per authenticated user.
Why:   The auth provider's token proves identity; the role that gates
       destructive operations lives here.

`id` equals the `sub` claim of the user's access token, so it has no
Python-side default.
"""

import uuid
from typing import Optional

from sqlalchemy import String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from subtrack.database import Base
from subtrack.models.mixins import TimestampMixin

ADMIN_ROLES = frozenset({"admin", "super_admin"})


class Profile(TimestampMixin, Base):
    __tablename__ = "sub_profiles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    full_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default="user", server_default=text("'user'")
    )

    def __repr__(self) -> str:
        return f"<Profile(id={self.id}, role='{self.role}')>"
