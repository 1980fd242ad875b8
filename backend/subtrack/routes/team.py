"""
SubTrack Backend: Team Route Handlers
========================================

What:  /api/team employee directory.
"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from subtrack.auth import get_current_user
from subtrack.database import get_db_session
from subtrack.schemas.asset import EmployeeCreate, EmployeeResponse
from subtrack.schemas.common import ErrorResponse
from subtrack.services.team_service import team_service

router = APIRouter(
    prefix="/api/team",
    tags=["Team"],
    dependencies=[Depends(get_current_user)],
    responses={401: {"description": "Missing or invalid token", "model": ErrorResponse}},
)


@router.get("", response_model=List[EmployeeResponse], summary="List team members")
async def list_employees(db: AsyncSession = Depends(get_db_session)) -> List[EmployeeResponse]:
    return await team_service.list_employees(db)


@router.post(
    "",
    status_code=201,
    response_model=EmployeeResponse,
    responses={400: {"description": "Invalid body", "model": ErrorResponse}},
    summary="Add a team member",
)
async def create_employee(
    payload: EmployeeCreate,
    db: AsyncSession = Depends(get_db_session),
) -> EmployeeResponse:
    return await team_service.create_employee(db, payload)
