"""
SubTrack Backend: Dashboard Route Handler
============================================

What:  GET /api/dashboard/summary for the home page stat cards.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from subtrack.auth import get_current_user
from subtrack.database import get_db_session
from subtrack.schemas.common import ErrorResponse
from subtrack.schemas.dashboard import DashboardSummary
from subtrack.services.dashboard_service import dashboard_service

router = APIRouter(
    prefix="/api/dashboard",
    tags=["Dashboard"],
    dependencies=[Depends(get_current_user)],
)


@router.get(
    "/summary",
    response_model=DashboardSummary,
    responses={
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Dashboard summary",
    description=(
        "Annual spend (trailing invoices, or projected from subscription costs "
        "when there are none), subscription and vendor counts, pending invoices "
        "and renewals due in the next 30 days."
    ),
)
async def dashboard_summary(db: AsyncSession = Depends(get_db_session)) -> DashboardSummary:
    return await dashboard_service.summary(db)
