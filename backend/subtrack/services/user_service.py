"""
SubTrack Backend: User Service
=================================

What:  Lists profiles and changes their roles.
Who:   Called by routes/users.py, which already requires an admin.

Role rules:
    - granting super_admin needs a super_admin
    - only a super_admin may change a super_admin's role
    - nobody changes their own role
"""

import logging
from typing import List
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from subtrack.auth import CurrentUser
from subtrack.exceptions import (
    DatabaseError,
    NotFoundError,
    PermissionDeniedError,
    SubTrackError,
    ValidationError,
)
from subtrack.models import Profile
from subtrack.schemas.user import UserResponse, UserRole

logger = logging.getLogger(__name__)

SUPER_ADMIN = "super_admin"


class UserService:

    async def list_users(self, db: AsyncSession) -> List[UserResponse]:
        """Newest profiles first."""
        try:
            result = await db.execute(select(Profile).order_by(Profile.created_at.desc()))
            return [UserResponse.model_validate(p) for p in result.scalars().all()]
        except Exception as e:
            logger.error("Database error listing users: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve users. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def get_user(self, db: AsyncSession, user_id: UUID) -> UserResponse:
        try:
            profile = await db.get(Profile, user_id)
            if profile is None:
                raise NotFoundError(resource="user", resource_id=str(user_id))
            return UserResponse.model_validate(profile)
        except NotFoundError:
            raise
        except Exception as e:
            logger.error("Database error fetching user %s: %s", user_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the user. Please try again.",
                context={"user_id": str(user_id)},
            )

    async def update_role(
        self, db: AsyncSession, user_id: UUID, role: UserRole, actor: CurrentUser
    ) -> UserResponse:
        """
        Raises:
            PermissionDeniedError: super_admin rules above (→ 403)
            ValidationError: actor targets themselves (→ 400)
            NotFoundError: no such profile (→ 404)
        """
        actor_is_super = actor.role == SUPER_ADMIN
        if role == SUPER_ADMIN and not actor_is_super:
            raise PermissionDeniedError(
                message="Forbidden: Super admin access required",
                context={"user_id": str(actor.id), "role": actor.role},
            )
        if actor.id == user_id:
            raise ValidationError(message="Cannot change your own role", field="id")

        try:
            profile = await db.get(Profile, user_id)
            if profile is None:
                raise NotFoundError(resource="user", resource_id=str(user_id))
            if profile.role == SUPER_ADMIN and not actor_is_super:
                raise PermissionDeniedError(
                    message="Only super admins can modify super admin users",
                    context={"user_id": str(actor.id), "target": str(user_id)},
                )

            previous = profile.role
            profile.role = role
            await db.flush()
            await db.refresh(profile)
            logger.info("User %s role changed %s -> %s by %s", user_id, previous, role, actor.id)
            return UserResponse.model_validate(profile)
        except SubTrackError:
            raise
        except Exception as e:
            logger.error("Database error updating role of %s: %s", user_id, str(e))
            raise DatabaseError(
                message="Could not update the user role. Please try again.",
                context={"user_id": str(user_id)},
            )


# ── Singleton Instance ────────────────────────────────────────────────────
user_service = UserService()
