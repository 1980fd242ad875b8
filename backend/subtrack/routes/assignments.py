"""
SubTrack Backend: Assignment Route Handlers
==============================================

What:  /api/assignments: who or what holds a subscription seat.
How:   The frontend addresses assignments by query string
       (`?subscriptionId=` to list, `?id=` to delete) rather than by path.
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from subtrack.auth import get_current_user
from subtrack.database import get_db_session
from subtrack.exceptions import ValidationError
from subtrack.schemas.asset import AssignmentCreate, AssignmentResponse
from subtrack.schemas.common import ErrorResponse, SuccessResponse
from subtrack.services.assignment_service import assignment_service

router = APIRouter(
    prefix="/api/assignments",
    tags=["Assignments"],
    dependencies=[Depends(get_current_user)],
    responses={
        400: {"description": "Missing query parameter or invalid body", "model": ErrorResponse},
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
)


@router.get(
    "",
    response_model=List[AssignmentResponse],
    summary="List assignments of a subscription",
)
async def list_assignments(
    subscription_id: Optional[UUID] = Query(default=None, alias="subscriptionId"),
    db: AsyncSession = Depends(get_db_session),
) -> List[AssignmentResponse]:
    if subscription_id is None:
        raise ValidationError(message="Subscription ID required", field="subscriptionId")
    return await assignment_service.list_assignments(db, subscription_id)


@router.post(
    "",
    status_code=201,
    response_model=AssignmentResponse,
    responses={404: {"description": "Subscription, employee or device not found", "model": ErrorResponse}},
    summary="Assign a seat",
)
async def create_assignment(
    payload: AssignmentCreate,
    db: AsyncSession = Depends(get_db_session),
) -> AssignmentResponse:
    return await assignment_service.create_assignment(db, payload)


@router.delete(
    "",
    response_model=SuccessResponse,
    responses={404: {"description": "Assignment not found", "model": ErrorResponse}},
    summary="Remove an assignment",
)
async def delete_assignment(
    assignment_id: Optional[UUID] = Query(default=None, alias="id"),
    db: AsyncSession = Depends(get_db_session),
) -> SuccessResponse:
    if assignment_id is None:
        raise ValidationError(message="ID required", field="id")
    return await assignment_service.delete_assignment(db, assignment_id)
