"""
SubTrack Backend: Device Route Handlers
==========================================

What:  /api/devices hardware inventory CRUD.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from subtrack.auth import get_current_user
from subtrack.database import get_db_session
from subtrack.schemas.asset import DeviceCreate, DeviceResponse, DeviceUpdate
from subtrack.schemas.common import ErrorResponse, SuccessResponse
from subtrack.services.device_service import device_service

router = APIRouter(
    prefix="/api/devices",
    tags=["Devices"],
    dependencies=[Depends(get_current_user)],
    responses={
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
)


@router.get(
    "",
    response_model=List[DeviceResponse],
    summary="List devices",
    description="Devices ordered by name, with the assigned employee's name.",
)
async def list_devices(db: AsyncSession = Depends(get_db_session)) -> List[DeviceResponse]:
    return await device_service.list_devices(db)


@router.post(
    "",
    status_code=201,
    response_model=DeviceResponse,
    responses={
        400: {"description": "Invalid body", "model": ErrorResponse},
        404: {"description": "Assigned employee not found", "model": ErrorResponse},
    },
    summary="Register a device",
)
async def create_device(
    payload: DeviceCreate,
    db: AsyncSession = Depends(get_db_session),
) -> DeviceResponse:
    return await device_service.create_device(db, payload)


@router.get(
    "/{device_id}",
    response_model=DeviceResponse,
    responses={404: {"description": "Device not found", "model": ErrorResponse}},
    summary="Get a device",
)
async def get_device(device_id: UUID, db: AsyncSession = Depends(get_db_session)) -> DeviceResponse:
    return await device_service.get_device(db, device_id)


@router.put(
    "/{device_id}",
    response_model=DeviceResponse,
    responses={404: {"description": "Device or employee not found", "model": ErrorResponse}},
    summary="Update a device",
)
async def update_device(
    device_id: UUID,
    payload: DeviceUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> DeviceResponse:
    return await device_service.update_device(db, device_id, payload)


@router.delete(
    "/{device_id}",
    response_model=SuccessResponse,
    responses={404: {"description": "Device not found", "model": ErrorResponse}},
    summary="Delete a device",
)
async def delete_device(device_id: UUID, db: AsyncSession = Depends(get_db_session)) -> SuccessResponse:
    return await device_service.delete_device(db, device_id)
