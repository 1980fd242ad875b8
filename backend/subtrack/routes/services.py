"""
SubTrack Backend: Service Route Handlers
===========================================

What:  /api/services for the billed services found on invoices: read and
       edit one, delete it (confirm-first), or merge duplicates.

Permissions:
    GET / PUT need a signed-in user; DELETE and both /merge calls need an
    admin. /merge is declared before /{service_id}.
"""

import logging
from typing import Union
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from subtrack.auth import CurrentUser, get_current_user, require_admin
from subtrack.database import get_db_session
from subtrack.schemas.common import ErrorResponse
from subtrack.schemas.subscription import (
    ServiceDeletePreview,
    ServiceDeleteResult,
    ServiceMergePreview,
    ServiceMergeRequest,
    ServiceMergeResult,
    ServiceResponse,
    ServiceUpdate,
)
from subtrack.services.subscribed_service_service import subscribed_service_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/services",
    tags=["Services"],
    dependencies=[Depends(get_current_user)],
    responses={
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
)

_ADMIN_ONLY = {403: {"description": "Admin access required", "model": ErrorResponse}}


@router.get(
    "/merge",
    response_model=ServiceMergePreview,
    responses={**_ADMIN_ONLY, 404: {"description": "Source service not found", "model": ErrorResponse}},
    summary="Preview a service merge",
)
async def preview_service_merge(
    source_service_id: UUID = Query(..., alias="sourceServiceId"),
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> ServiceMergePreview:
    return await subscribed_service_service.merge_preview(db, source_service_id)


@router.post(
    "/merge",
    response_model=ServiceMergeResult,
    responses={
        **_ADMIN_ONLY,
        400: {"description": "Missing ids or source equals target", "model": ErrorResponse},
        404: {"description": "Source or target service not found", "model": ErrorResponse},
    },
    summary="Merge one service into another",
)
async def merge_services(
    payload: ServiceMergeRequest,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> ServiceMergeResult:
    logger.info(
        "Service merge %s -> %s requested by %s",
        payload.source_service_id, payload.target_service_id, user.id,
    )
    return await subscribed_service_service.merge_services(db, payload)


@router.get(
    "/{service_id}",
    response_model=ServiceResponse,
    responses={404: {"description": "Service not found", "model": ErrorResponse}},
    summary="Get a service",
)
async def get_service(service_id: UUID, db: AsyncSession = Depends(get_db_session)) -> ServiceResponse:
    return await subscribed_service_service.get_service(db, service_id)


@router.put(
    "/{service_id}",
    response_model=ServiceResponse,
    responses={404: {"description": "Service not found", "model": ErrorResponse}},
    summary="Update a service",
)
async def update_service(
    service_id: UUID,
    payload: ServiceUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> ServiceResponse:
    return await subscribed_service_service.update_service(db, service_id, payload)


@router.delete(
    "/{service_id}",
    response_model=Union[ServiceDeleteResult, ServiceDeletePreview],
    responses={**_ADMIN_ONLY, 404: {"description": "Service not found", "model": ErrorResponse}},
    summary="Delete a service and its line items",
)
async def delete_service(
    service_id: UUID,
    confirm: bool = Query(default=False, description="Actually delete; otherwise preview the impact"),
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> Union[ServiceDeleteResult, ServiceDeletePreview]:
    logger.info("Service %s deletion requested by %s (confirm=%s)", service_id, user.id, confirm)
    return await subscribed_service_service.delete_service(db, service_id, confirm=confirm)
