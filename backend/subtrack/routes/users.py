"""
SubTrack Backend: User Route Handlers
========================================

What:  /api/users, admin-only profile listing and role changes.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from subtrack.auth import CurrentUser, require_admin
from subtrack.database import get_db_session
from subtrack.schemas.common import ErrorResponse
from subtrack.schemas.user import RoleUpdate, UserResponse
from subtrack.services.user_service import user_service

router = APIRouter(
    prefix="/api/users",
    tags=["Users"],
    dependencies=[Depends(require_admin)],
    responses={
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
        403: {"description": "Admin access required", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
)


@router.get("", response_model=List[UserResponse], summary="List users")
async def list_users(db: AsyncSession = Depends(get_db_session)) -> List[UserResponse]:
    return await user_service.list_users(db)


@router.get(
    "/{user_id}",
    response_model=UserResponse,
    responses={404: {"description": "User not found", "model": ErrorResponse}},
    summary="Get a user",
)
async def get_user(user_id: UUID, db: AsyncSession = Depends(get_db_session)) -> UserResponse:
    return await user_service.get_user(db, user_id)


@router.patch(
    "/{user_id}",
    response_model=UserResponse,
    responses={
        400: {"description": "Invalid role, or changing your own role", "model": ErrorResponse},
        404: {"description": "User not found", "model": ErrorResponse},
    },
    summary="Change a user's role",
    description="Granting super_admin, or touching a super_admin, needs a super_admin.",
)
async def update_user_role(
    user_id: UUID,
    payload: RoleUpdate,
    actor: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    return await user_service.update_role(db, user_id, payload.role, actor)
