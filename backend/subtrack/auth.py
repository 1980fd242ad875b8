"""
SubTrack Backend: Authentication & Authorization Dependencies
================================================================

What:  FastAPI dependencies that gate the /api routes.
Why:   Every API call must come from a signed-in user; destructive
       operations (deleting subscriptions or vendors) need an admin.
How:   The frontend forwards the auth provider's access token as
       `Authorization: Bearer <jwt>`. We verify it with the shared HS256
       secret (PyJWT), then read the caller's role from `sub_profiles`.

Dependency chain:
    get_current_user  → 401 when the token is missing, invalid or expired
    require_admin     → 403 unless role is admin or super_admin

With AUTH_ENABLED=false (local development) a fixed admin user is
returned and no token is required.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from subtrack.config import settings
from subtrack.database import get_db_session
from subtrack.exceptions import AuthenticationError, DatabaseError, PermissionDeniedError
from subtrack.models.profile import ADMIN_ROLES, Profile

logger = logging.getLogger(__name__)

AUTH_SCHEME = HTTPBearer(auto_error=False)

# Identity used when authentication is switched off
ANONYMOUS_USER_ID = uuid.UUID(int=0)


@dataclass(frozen=True)
class CurrentUser:
    id: uuid.UUID
    email: Optional[str]
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES


def create_access_token(
    user_id: uuid.UUID,
    email: Optional[str] = None,
    expires_in: timedelta = timedelta(hours=1),
) -> str:
    """Issue a token shaped like the auth provider's (used by tests and local tooling)."""
    now = datetime.now(timezone.utc)
    payload: Dict[str, Any] = {
        "sub": str(user_id),
        "aud": settings.jwt_audience,
        "iat": int(now.timestamp()),
        "exp": int((now + expires_in).timestamp()),
    }
    if email:
        payload["email"] = email
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Dict[str, Any]:
    return jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[settings.jwt_algorithm],
        audience=settings.jwt_audience,
    )


async def get_current_user(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(AUTH_SCHEME),
    db: AsyncSession = Depends(get_db_session),
) -> CurrentUser:
    """
    Resolve the caller from the bearer token.

    Raises:
        AuthenticationError: No token, bad signature, expired, wrong audience,
                             or a `sub` claim that is not a UUID (→ 401)
        DatabaseError: Profile lookup failed (→ 500)
    """
    if not settings.auth_enabled:
        return CurrentUser(id=ANONYMOUS_USER_ID, email=None, role="super_admin")

    if creds is None or not creds.credentials:
        raise AuthenticationError()
    if not settings.jwt_secret:
        # Misconfigured server: refuse rather than accept unsigned tokens
        logger.error("JWT_SECRET is empty; rejecting authenticated request")
        raise AuthenticationError()

    try:
        payload = decode_token(creds.credentials)
        user_id = uuid.UUID(str(payload.get("sub", "")))
    except (jwt.PyJWTError, ValueError) as e:
        logger.info("Rejected bearer token: %s", type(e).__name__)
        raise AuthenticationError(context={"reason": type(e).__name__})

    try:
        result = await db.execute(select(Profile).where(Profile.id == user_id))
        profile = result.scalar_one_or_none()
    except Exception as e:
        logger.error("Profile lookup failed for %s: %s", user_id, str(e))
        raise DatabaseError(context={"error_type": type(e).__name__})

    return CurrentUser(
        id=user_id,
        email=payload.get("email") or (profile.email if profile else None),
        role=profile.role if profile else "user",
    )


async def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """Allow only admin and super_admin profiles through (→ 403 otherwise)."""
    if not user.is_admin:
        raise PermissionDeniedError(context={"user_id": str(user.id), "role": user.role})
    return user
