"""
SubTrack Backend: Report Route Handlers
==========================================

What:  GET /api/reports/aggregated?startDate=&endDate=&groupBy=
       Spend by billing month, grouped by vendor or service.

Both dates are required (YYYY-MM-DD); only their months matter.
"""

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from subtrack.auth import get_current_user
from subtrack.database import get_db_session
from subtrack.schemas.common import ErrorResponse
from subtrack.schemas.report import AggregatedReport, GroupBy
from subtrack.services.report_service import report_service

router = APIRouter(
    prefix="/api/reports",
    tags=["Reports"],
    dependencies=[Depends(get_current_user)],
    responses={
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
)


@router.get(
    "/aggregated",
    response_model=AggregatedReport,
    responses={400: {"description": "Missing or invalid dates", "model": ErrorResponse}},
    summary="Aggregated spend report",
    description=(
        "Line item spend between the months of startDate and endDate. A line "
        "item counts in its billing month: manual override, then its period "
        "start, then a period in its description, then the invoice date."
    ),
)
async def aggregated_report(
    start_date: date = Query(..., alias="startDate"),
    end_date: date = Query(..., alias="endDate"),
    group_by: GroupBy = Query(default="vendor", alias="groupBy"),
    db: AsyncSession = Depends(get_db_session),
) -> AggregatedReport:
    return await report_service.aggregated(db, start_date, end_date, group_by)
