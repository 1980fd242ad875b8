"""
SubTrack Backend: Subscription Service
=========================================

What:  CRUD for subscriptions plus the per-subscription invoice, line item
       and service listings.
Who:   Called by routes/subscriptions.py; `delete_subscription_tree` is also
       used by VendorService when a vendor is removed.

Cascade order (no ON DELETE CASCADE in the schema):
    line items of the subscription's services
    → line items of the subscription's invoices
    → invoices → services → assignments → subscription

Error Handling Strategy:
    NotFoundError / ValidationError propagate as-is. Anything else raised by
    the driver is logged and wrapped in DatabaseError (generic 500).
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Set
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from subtrack.exceptions import DatabaseError, NotFoundError, SubTrackError, ValidationError
from subtrack.models import (
    Assignment,
    Invoice,
    LineItem,
    SubscribedService,
    Subscription,
    Vendor,
)
from subtrack.schemas.common import CountResponse, SuccessResponse
from subtrack.schemas.invoice import InvoiceResponse, LineItemResponse
from subtrack.schemas.subscription import (
    Owner,
    Seats,
    ServiceResponse,
    SubscriptionCreate,
    SubscriptionResponse,
    SubscriptionUpdate,
)

logger = logging.getLogger(__name__)

# Columns a partial update may not null out
_REQUIRED_COLUMNS = frozenset({
    "name", "cost", "billing_cycle", "payment_method",
    "auto_renewal", "status", "agreement_type",
})


def summarize_validation_errors(exc: PydanticValidationError) -> List[Dict[str, Any]]:
    """Reduce pydantic errors to JSON-safe `{loc, msg}` pairs."""
    return [
        {"loc": [str(part) for part in err["loc"]], "msg": err["msg"]}
        for err in exc.errors()
    ]


class SubscriptionService:
    """
    Business logic layer for subscription operations.

    Responsibilities:
        - list/get/create/bulk_create/update/delete subscriptions
        - list_invoices / list_line_items / list_services for one subscription
        - delete_subscription_tree(): FK-safe cascade shared with vendors
    """

    # ── Mapping helpers ───────────────────────────────────────────────────

    @staticmethod
    def to_response(
        sub: Subscription,
        vendor_name: Optional[str] = None,
        vendor_logo: Optional[str] = None,
    ) -> SubscriptionResponse:
        return SubscriptionResponse(
            id=sub.id,
            vendor_id=sub.vendor_id,
            vendor_name=vendor_name,
            name=sub.name,
            category=sub.category,
            logo=vendor_logo or sub.logo,
            renewal_date=sub.renewal_date,
            cost=float(sub.cost or 0),
            billing_cycle=sub.billing_cycle,
            payment_method=sub.payment_method,
            payment_details=sub.payment_details,
            auto_renewal=sub.auto_renewal,
            owner=Owner(name=sub.owner_name, email=sub.owner_email),
            seats=Seats(total=sub.seats_total or 0, used=sub.seats_used or 0),
            status=sub.status,
            description=sub.description,
            agreement_type=sub.agreement_type,
            line_items=sub.line_items or [],
            created_at=sub.created_at,
        )

    @staticmethod
    def _apply(sub: Subscription, payload: SubscriptionCreate | SubscriptionUpdate, partial: bool) -> None:
        """Copy request fields onto the row, flattening owner/seats."""
        data = payload.model_dump(exclude_unset=partial)

        owner = data.pop("owner", None)
        if owner:
            if "name" in owner:
                sub.owner_name = owner["name"]
            if "email" in owner:
                sub.owner_email = owner["email"]

        seats = data.pop("seats", None)
        if seats:
            if "total" in seats:
                sub.seats_total = seats["total"]
            if "used" in seats:
                sub.seats_used = seats["used"]

        if "line_items" in data:
            data.pop("line_items")
            if payload.line_items is not None:
                sub.line_items = [item.model_dump() for item in payload.line_items]

        for key, value in data.items():
            if value is None and key in _REQUIRED_COLUMNS:
                continue
            setattr(sub, key, value)

    async def _vendor_for(self, db: AsyncSession, vendor_id: Optional[UUID]) -> Optional[Vendor]:
        if vendor_id is None:
            return None
        vendor = await db.get(Vendor, vendor_id)
        if vendor is None:
            raise NotFoundError(resource="vendor", resource_id=str(vendor_id))
        return vendor

    async def _check_vendors(self, db: AsyncSession, vendor_ids: Set[UUID]) -> None:
        if not vendor_ids:
            return
        result = await db.execute(select(Vendor.id).where(Vendor.id.in_(vendor_ids)))
        missing = sorted(vendor_ids - set(result.scalars().all()), key=str)
        if missing:
            raise NotFoundError(resource="vendor", resource_id=str(missing[0]))

    async def _require(self, db: AsyncSession, subscription_id: UUID) -> Subscription:
        sub = await db.get(Subscription, subscription_id)
        if sub is None:
            raise NotFoundError(resource="subscription", resource_id=str(subscription_id))
        return sub

    # ── Queries ───────────────────────────────────────────────────────────

    async def list_subscriptions(self, db: AsyncSession) -> List[SubscriptionResponse]:
        """All subscriptions, most expensive first, with vendor name and logo."""
        try:
            result = await db.execute(
                select(Subscription, Vendor.name, Vendor.logo_url)
                .outerjoin(Vendor, Vendor.id == Subscription.vendor_id)
                .order_by(Subscription.cost.desc(), Subscription.name)
            )
            return [
                self.to_response(sub, vendor_name, vendor_logo)
                for sub, vendor_name, vendor_logo in result.all()
            ]
        except Exception as e:
            logger.error("Database error listing subscriptions: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve subscriptions. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def get_subscription(self, db: AsyncSession, subscription_id: UUID) -> SubscriptionResponse:
        try:
            result = await db.execute(
                select(Subscription, Vendor.name, Vendor.logo_url)
                .outerjoin(Vendor, Vendor.id == Subscription.vendor_id)
                .where(Subscription.id == subscription_id)
            )
            row = result.first()
            if row is None:
                raise NotFoundError(resource="subscription", resource_id=str(subscription_id))
            sub, vendor_name, vendor_logo = row
            return self.to_response(sub, vendor_name, vendor_logo)
        except NotFoundError:
            raise
        except Exception as e:
            logger.error("Database error fetching subscription %s: %s", subscription_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the subscription. Please try again.",
                context={"subscription_id": str(subscription_id)},
            )

    # ── Mutations ─────────────────────────────────────────────────────────

    async def create_subscription(
        self, db: AsyncSession, payload: SubscriptionCreate
    ) -> SubscriptionResponse:
        try:
            vendor = await self._vendor_for(db, payload.vendor_id)
            sub = Subscription()
            self._apply(sub, payload, partial=False)
            db.add(sub)
            await db.flush()
            logger.info("Subscription created: %s (%s)", sub.id, sub.name)
            return self.to_response(
                sub,
                vendor.name if vendor else None,
                vendor.logo_url if vendor else None,
            )
        except SubTrackError:
            raise
        except Exception as e:
            logger.error("Database error creating subscription: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not create the subscription. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def bulk_create(self, db: AsyncSession, payload: Any) -> CountResponse:
        """
        Create many subscriptions in one transaction (CSV import).

        The body must be a JSON array; one invalid element rejects the
        whole batch with 400 and nothing is written.
        """
        if not isinstance(payload, list):
            raise ValidationError(
                message="Request body must be an array of subscriptions",
                field="body",
            )
        try:
            items = [SubscriptionCreate.model_validate(item) for item in payload]
        except PydanticValidationError as e:
            raise ValidationError(
                message="One or more subscriptions are invalid",
                field="body",
                context={"errors": summarize_validation_errors(e)},
            )

        try:
            await self._check_vendors(db, {item.vendor_id for item in items if item.vendor_id})
            for item in items:
                sub = Subscription()
                self._apply(sub, item, partial=False)
                db.add(sub)
            await db.flush()
            logger.info("Bulk created %d subscriptions", len(items))
            return CountResponse(success=True, count=len(items))
        except SubTrackError:
            raise
        except Exception as e:
            logger.error("Database error in bulk subscription create: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not import subscriptions. Please try again.",
                context={"error_type": type(e).__name__, "count": len(items)},
            )

    async def update_subscription(
        self, db: AsyncSession, subscription_id: UUID, payload: SubscriptionUpdate
    ) -> SubscriptionResponse:
        try:
            sub = await self._require(db, subscription_id)
            # Before _apply: a lookup after it would autoflush a dangling vendor_id
            if "vendor_id" in payload.model_fields_set:
                await self._vendor_for(db, payload.vendor_id)
            self._apply(sub, payload, partial=True)
            vendor = await self._vendor_for(db, sub.vendor_id)
            await db.flush()
            return self.to_response(
                sub,
                vendor.name if vendor else None,
                vendor.logo_url if vendor else None,
            )
        except SubTrackError:
            raise
        except Exception as e:
            logger.error("Database error updating subscription %s: %s", subscription_id, str(e))
            raise DatabaseError(
                message="Could not update the subscription. Please try again.",
                context={"subscription_id": str(subscription_id)},
            )

    async def delete_subscription(self, db: AsyncSession, subscription_id: UUID) -> SuccessResponse:
        try:
            await self._require(db, subscription_id)
            counts = await self.delete_subscription_tree(db, [subscription_id])
            logger.info("Subscription %s deleted with dependents %s", subscription_id, counts)
            return SuccessResponse(success=True)
        except NotFoundError:
            raise
        except Exception as e:
            logger.error("Database error deleting subscription %s: %s", subscription_id, str(e))
            raise DatabaseError(
                message="Could not delete the subscription. Please try again.",
                context={"subscription_id": str(subscription_id)},
            )

    async def delete_subscription_tree(
        self, db: AsyncSession, subscription_ids: Sequence[UUID]
    ) -> Dict[str, int]:
        """
        Delete subscriptions and everything hanging off them.

        Returns row counts keyed by: line_items, invoices, services,
        assignments, subscriptions. Runs inside the caller's transaction.
        """
        if not subscription_ids:
            return {"line_items": 0, "invoices": 0, "services": 0,
                    "assignments": 0, "subscriptions": 0}

        ids = list(subscription_ids)
        service_ids = select(SubscribedService.id).where(SubscribedService.subscription_id.in_(ids))
        invoice_ids = select(Invoice.id).where(Invoice.subscription_id.in_(ids))
        opts = {"synchronize_session": False}

        by_service = await db.execute(
            delete(LineItem).where(LineItem.service_id.in_(service_ids)).execution_options(**opts)
        )
        by_invoice = await db.execute(
            delete(LineItem).where(LineItem.invoice_id.in_(invoice_ids)).execution_options(**opts)
        )
        invoices = await db.execute(
            delete(Invoice).where(Invoice.subscription_id.in_(ids)).execution_options(**opts)
        )
        services = await db.execute(
            delete(SubscribedService)
            .where(SubscribedService.subscription_id.in_(ids))
            .execution_options(**opts)
        )
        assignments = await db.execute(
            delete(Assignment).where(Assignment.subscription_id.in_(ids)).execution_options(**opts)
        )
        subscriptions = await db.execute(
            delete(Subscription).where(Subscription.id.in_(ids)).execution_options(**opts)
        )
        return {
            "line_items": by_service.rowcount + by_invoice.rowcount,
            "invoices": invoices.rowcount,
            "services": services.rowcount,
            "assignments": assignments.rowcount,
            "subscriptions": subscriptions.rowcount,
        }

    # ── Per-subscription listings ─────────────────────────────────────────

    async def list_invoices(self, db: AsyncSession, subscription_id: UUID) -> List[InvoiceResponse]:
        """Invoices billed against the subscription, newest first."""
        try:
            await self._require(db, subscription_id)
            result = await db.execute(
                select(Invoice, Vendor.name)
                .outerjoin(Vendor, Vendor.id == Invoice.vendor_id)
                .where(Invoice.subscription_id == subscription_id)
                .order_by(Invoice.invoice_date.desc())
            )
            return [
                InvoiceResponse.model_validate(inv).model_copy(update={"vendor_name": vendor_name})
                for inv, vendor_name in result.all()
            ]
        except NotFoundError:
            raise
        except Exception as e:
            logger.error("Database error listing invoices of %s: %s", subscription_id, str(e))
            raise DatabaseError(
                message="Could not retrieve invoices. Please try again.",
                context={"subscription_id": str(subscription_id)},
            )

    async def list_line_items(
        self, db: AsyncSession, subscription_id: UUID
    ) -> List[LineItemResponse]:
        """Every line item on the subscription's invoices, with service and invoice labels."""
        try:
            await self._require(db, subscription_id)
            result = await db.execute(
                select(LineItem, SubscribedService.name, Invoice.invoice_number, Invoice.invoice_date)
                .join(Invoice, Invoice.id == LineItem.invoice_id)
                .outerjoin(SubscribedService, SubscribedService.id == LineItem.service_id)
                .where(Invoice.subscription_id == subscription_id)
                .order_by(Invoice.invoice_date.desc(), LineItem.created_at)
            )
            return [
                LineItemResponse.model_validate(item).model_copy(update={
                    "service_name": service_name,
                    "invoice_number": invoice_number,
                    "invoice_date": invoice_date,
                })
                for item, service_name, invoice_number, invoice_date in result.all()
            ]
        except NotFoundError:
            raise
        except Exception as e:
            logger.error("Database error listing line items of %s: %s", subscription_id, str(e))
            raise DatabaseError(
                message="Could not retrieve line items. Please try again.",
                context={"subscription_id": str(subscription_id)},
            )

    async def list_services(self, db: AsyncSession, subscription_id: UUID) -> List[ServiceResponse]:
        try:
            await self._require(db, subscription_id)
            result = await db.execute(
                select(SubscribedService)
                .where(SubscribedService.subscription_id == subscription_id)
                .order_by(SubscribedService.name)
            )
            return [ServiceResponse.model_validate(svc) for svc in result.scalars().all()]
        except NotFoundError:
            raise
        except Exception as e:
            logger.error("Database error listing services of %s: %s", subscription_id, str(e))
            raise DatabaseError(
                message="Could not retrieve services. Please try again.",
                context={"subscription_id": str(subscription_id)},
            )


# ── Singleton Instance ────────────────────────────────────────────────────
subscription_service = SubscriptionService()
