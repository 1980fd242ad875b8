"""
SubTrack Backend: Subscription Route Handlers
================================================

What:  /api/subscriptions CRUD, CSV bulk import, and the per-subscription
       invoice, line item and service listings.
Who:   Called by the frontend subscriptions table and detail page.

Permissions:
    Every endpoint needs a signed-in user; DELETE needs an admin.
"""

import logging
from typing import Any, List
from uuid import UUID

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from subtrack.auth import CurrentUser, get_current_user, require_admin
from subtrack.database import get_db_session
from subtrack.schemas.common import CountResponse, ErrorResponse, SuccessResponse
from subtrack.schemas.invoice import InvoiceResponse, LineItemResponse
from subtrack.schemas.subscription import (
    ServiceResponse,
    SubscriptionCreate,
    SubscriptionResponse,
    SubscriptionUpdate,
)
from subtrack.services.subscription_service import subscription_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/subscriptions",
    tags=["Subscriptions"],
    dependencies=[Depends(get_current_user)],
    responses={
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
)


@router.get(
    "",
    response_model=List[SubscriptionResponse],
    summary="List subscriptions",
    description="All subscriptions, most expensive first, with vendor name and logo.",
)
async def list_subscriptions(
    db: AsyncSession = Depends(get_db_session),
) -> List[SubscriptionResponse]:
    return await subscription_service.list_subscriptions(db)


@router.post(
    "",
    status_code=201,
    response_model=SubscriptionResponse,
    responses={400: {"description": "Invalid body", "model": ErrorResponse}},
    summary="Create a subscription",
)
async def create_subscription(
    payload: SubscriptionCreate,
    db: AsyncSession = Depends(get_db_session),
) -> SubscriptionResponse:
    return await subscription_service.create_subscription(db, payload)


@router.post(
    "/bulk",
    status_code=201,
    response_model=CountResponse,
    responses={400: {"description": "Body is not an array or an item is invalid", "model": ErrorResponse}},
    summary="Bulk import subscriptions",
    description=(
        "Creates every subscription in the JSON array in one transaction. "
        "A single invalid element rejects the whole batch."
    ),
)
async def bulk_create_subscriptions(
    payload: Any = Body(...),
    db: AsyncSession = Depends(get_db_session),
) -> CountResponse:
    return await subscription_service.bulk_create(db, payload)


@router.get(
    "/{subscription_id}",
    response_model=SubscriptionResponse,
    responses={404: {"description": "Subscription not found", "model": ErrorResponse}},
    summary="Get a subscription",
)
async def get_subscription(
    subscription_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> SubscriptionResponse:
    return await subscription_service.get_subscription(db, subscription_id)


@router.put(
    "/{subscription_id}",
    response_model=SubscriptionResponse,
    responses={404: {"description": "Subscription not found", "model": ErrorResponse}},
    summary="Update a subscription",
    description="Partial update: only fields present in the body are changed.",
)
async def update_subscription(
    subscription_id: UUID,
    payload: SubscriptionUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> SubscriptionResponse:
    return await subscription_service.update_subscription(db, subscription_id, payload)


@router.delete(
    "/{subscription_id}",
    response_model=SuccessResponse,
    responses={
        403: {"description": "Admin access required", "model": ErrorResponse},
        404: {"description": "Subscription not found", "model": ErrorResponse},
    },
    summary="Delete a subscription and its dependents",
)
async def delete_subscription(
    subscription_id: UUID,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> SuccessResponse:
    logger.info("Subscription %s deletion requested by %s", subscription_id, user.id)
    return await subscription_service.delete_subscription(db, subscription_id)


@router.get(
    "/{subscription_id}/invoices",
    response_model=List[InvoiceResponse],
    responses={404: {"description": "Subscription not found", "model": ErrorResponse}},
    summary="Invoices of a subscription",
)
async def list_subscription_invoices(
    subscription_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> List[InvoiceResponse]:
    return await subscription_service.list_invoices(db, subscription_id)


@router.get(
    "/{subscription_id}/line-items",
    response_model=List[LineItemResponse],
    responses={404: {"description": "Subscription not found", "model": ErrorResponse}},
    summary="Line items across a subscription's invoices",
)
async def list_subscription_line_items(
    subscription_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> List[LineItemResponse]:
    return await subscription_service.list_line_items(db, subscription_id)


@router.get(
    "/{subscription_id}/services",
    response_model=List[ServiceResponse],
    responses={404: {"description": "Subscription not found", "model": ErrorResponse}},
    summary="Services billed under a subscription",
)
async def list_subscription_services(
    subscription_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> List[ServiceResponse]:
    return await subscription_service.list_services(db, subscription_id)
