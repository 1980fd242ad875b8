"""
SubTrack Backend: Device Service
===================================

What:  CRUD for hardware assets (laptops, phones, servers).
How:   Every read joins `sub_employees` so responses carry the assignee's
       name next to the `assignedToId` foreign key.

Deleting a device also removes the licence assignments that point at it.
"""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from subtrack.exceptions import DatabaseError, NotFoundError, SubTrackError
from subtrack.models import Assignment, Device, Employee
from subtrack.schemas.asset import DeviceCreate, DeviceResponse, DeviceUpdate
from subtrack.schemas.common import SuccessResponse

logger = logging.getLogger(__name__)


class DeviceService:
    """
    Responsibilities:
        - list_devices(): ordered by name, with assignee names
        - get/create/update/delete a single device
    """

    @staticmethod
    def _to_response(device: Device, employee_name: Optional[str]) -> DeviceResponse:
        return DeviceResponse(
            id=device.id,
            name=device.name,
            type=device.type,
            model=device.model,
            serial_number=device.serial_number,
            assigned_to_id=device.assigned_to,
            assigned_to=employee_name,
            created_at=device.created_at,
        )

    def _query(self):
        return select(Device, Employee.name).outerjoin(Employee, Employee.id == Device.assigned_to)

    async def _check_employee(self, db: AsyncSession, employee_id: Optional[UUID]) -> None:
        if employee_id is not None and await db.get(Employee, employee_id) is None:
            raise NotFoundError(resource="employee", resource_id=str(employee_id))

    async def list_devices(self, db: AsyncSession) -> List[DeviceResponse]:
        try:
            result = await db.execute(self._query().order_by(Device.name))
            return [self._to_response(device, name) for device, name in result.all()]
        except Exception as e:
            logger.error("Database error listing devices: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve devices. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def get_device(self, db: AsyncSession, device_id: UUID) -> DeviceResponse:
        try:
            result = await db.execute(self._query().where(Device.id == device_id))
            row = result.first()
            if row is None:
                raise NotFoundError(resource="device", resource_id=str(device_id))
            return self._to_response(*row)
        except NotFoundError:
            raise
        except Exception as e:
            logger.error("Database error fetching device %s: %s", device_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the device. Please try again.",
                context={"device_id": str(device_id)},
            )

    async def create_device(self, db: AsyncSession, payload: DeviceCreate) -> DeviceResponse:
        try:
            await self._check_employee(db, payload.assigned_to_id)
            device = Device(
                name=payload.name,
                type=payload.type,
                model=payload.model,
                serial_number=payload.serial_number,
                assigned_to=payload.assigned_to_id,
            )
            db.add(device)
            await db.flush()
            logger.info("Device created: %s (%s)", device.id, device.name)
            return await self.get_device(db, device.id)
        except SubTrackError:
            raise
        except Exception as e:
            logger.error("Database error creating device: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not create the device. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def update_device(
        self, db: AsyncSession, device_id: UUID, payload: DeviceUpdate
    ) -> DeviceResponse:
        try:
            device = await db.get(Device, device_id)
            if device is None:
                raise NotFoundError(resource="device", resource_id=str(device_id))
            changes = payload.model_dump(exclude_unset=True)
            if "assigned_to_id" in changes:
                assignee = changes.pop("assigned_to_id")
                await self._check_employee(db, assignee)
                device.assigned_to = assignee
            for key, value in changes.items():
                if value is None and key in ("name", "type"):
                    continue
                setattr(device, key, value)
            await db.flush()
            return await self.get_device(db, device_id)
        except SubTrackError:
            raise
        except Exception as e:
            logger.error("Database error updating device %s: %s", device_id, str(e))
            raise DatabaseError(
                message="Could not update the device. Please try again.",
                context={"device_id": str(device_id)},
            )

    async def delete_device(self, db: AsyncSession, device_id: UUID) -> SuccessResponse:
        try:
            device = await db.get(Device, device_id)
            if device is None:
                raise NotFoundError(resource="device", resource_id=str(device_id))
            await db.execute(
                delete(Assignment)
                .where(Assignment.device_id == device_id)
                .execution_options(synchronize_session=False)
            )
            await db.delete(device)
            await db.flush()
            return SuccessResponse(success=True, message="Device deleted")
        except NotFoundError:
            raise
        except Exception as e:
            logger.error("Database error deleting device %s: %s", device_id, str(e))
            raise DatabaseError(
                message="Could not delete the device. Please try again.",
                context={"device_id": str(device_id)},
            )


# ── Singleton Instance ────────────────────────────────────────────────────
device_service = DeviceService()
