"""
SubTrack Backend: Assignment Service
=======================================

What:  Who (employee) or what (device) holds a seat of a subscription.
"""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from subtrack.exceptions import DatabaseError, NotFoundError, SubTrackError, ValidationError
from subtrack.models import Assignment, Device, Employee, Subscription
from subtrack.schemas.asset import AssignmentCreate, AssignmentResponse
from subtrack.schemas.common import SuccessResponse

logger = logging.getLogger(__name__)


class AssignmentService:

    @staticmethod
    def _to_response(
        assignment: Assignment,
        employee_name: Optional[str],
        device_name: Optional[str],
    ) -> AssignmentResponse:
        return AssignmentResponse(
            id=assignment.id,
            subscription_id=assignment.subscription_id,
            employee_id=assignment.employee_id,
            device_id=assignment.device_id,
            assignee_name=employee_name or device_name or "Unknown",
            assigned_date=assignment.assigned_date,
        )

    async def list_assignments(
        self, db: AsyncSession, subscription_id: UUID
    ) -> List[AssignmentResponse]:
        """Assignments of one subscription, most recent first."""
        employee = aliased(Employee)
        device = aliased(Device)
        try:
            result = await db.execute(
                select(Assignment, employee.name, device.name)
                .outerjoin(employee, employee.id == Assignment.employee_id)
                .outerjoin(device, device.id == Assignment.device_id)
                .where(Assignment.subscription_id == subscription_id)
                .order_by(Assignment.assigned_date.desc())
            )
            return [self._to_response(*row) for row in result.all()]
        except Exception as e:
            logger.error("Database error listing assignments of %s: %s", subscription_id, str(e))
            raise DatabaseError(
                message="Could not retrieve assignments. Please try again.",
                context={"subscription_id": str(subscription_id)},
            )

    async def create_assignment(
        self, db: AsyncSession, payload: AssignmentCreate
    ) -> AssignmentResponse:
        if payload.employee_id and payload.device_id:
            raise ValidationError(
                message="Assign to an employee or a device, not both",
                field="employeeId",
            )
        try:
            if await db.get(Subscription, payload.subscription_id) is None:
                raise NotFoundError(resource="subscription", resource_id=str(payload.subscription_id))

            employee = await db.get(Employee, payload.employee_id) if payload.employee_id else None
            if payload.employee_id and employee is None:
                raise NotFoundError(resource="employee", resource_id=str(payload.employee_id))
            device = await db.get(Device, payload.device_id) if payload.device_id else None
            if payload.device_id and device is None:
                raise NotFoundError(resource="device", resource_id=str(payload.device_id))

            assignment = Assignment(
                subscription_id=payload.subscription_id,
                employee_id=payload.employee_id,
                device_id=payload.device_id,
            )
            db.add(assignment)
            await db.flush()
            logger.info("Assignment %s created for subscription %s", assignment.id, assignment.subscription_id)
            return self._to_response(
                assignment,
                employee.name if employee else None,
                device.name if device else None,
            )
        except SubTrackError:
            raise
        except Exception as e:
            logger.error("Database error creating assignment: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not create the assignment. Please try again.",
                context={"subscription_id": str(payload.subscription_id)},
            )

    async def delete_assignment(self, db: AsyncSession, assignment_id: UUID) -> SuccessResponse:
        try:
            assignment = await db.get(Assignment, assignment_id)
            if assignment is None:
                raise NotFoundError(resource="assignment", resource_id=str(assignment_id))
            await db.delete(assignment)
            await db.flush()
            return SuccessResponse(success=True)
        except NotFoundError:
            raise
        except Exception as e:
            logger.error("Database error deleting assignment %s: %s", assignment_id, str(e))
            raise DatabaseError(
                message="Could not delete the assignment. Please try again.",
                context={"assignment_id": str(assignment_id)},
            )


# ── Singleton Instance ────────────────────────────────────────────────────
assignment_service = AssignmentService()
