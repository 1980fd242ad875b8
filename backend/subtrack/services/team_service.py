"""
SubTrack Backend: Team Service
=================================

What:  Employee directory used for licence and device assignment.
"""

import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from subtrack.exceptions import DatabaseError
from subtrack.models import Employee
from subtrack.schemas.asset import EmployeeCreate, EmployeeResponse

logger = logging.getLogger(__name__)


class TeamService:

    async def list_employees(self, db: AsyncSession) -> List[EmployeeResponse]:
        try:
            result = await db.execute(select(Employee).order_by(Employee.name))
            return [EmployeeResponse.model_validate(emp) for emp in result.scalars().all()]
        except Exception as e:
            logger.error("Database error listing employees: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve team members. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def create_employee(self, db: AsyncSession, payload: EmployeeCreate) -> EmployeeResponse:
        try:
            employee = Employee(**payload.model_dump())
            db.add(employee)
            await db.flush()
            logger.info("Employee created: %s", employee.id)
            return EmployeeResponse.model_validate(employee)
        except Exception as e:
            logger.error("Database error creating employee: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not add the team member. Please try again.",
                context={"error_type": type(e).__name__},
            )


# ── Singleton Instance ────────────────────────────────────────────────────
team_service = TeamService()
