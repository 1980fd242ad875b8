"""
SubTrack Backend: Vendor Service
===================================

What:  Vendor listing with spend roll-ups, edits, the confirm-first
       cascade delete, and merging duplicate vendors.
Who:   Called by routes/vendors.py.

Cascade delete:
    1. Every subscription of the vendor goes through
       SubscriptionService.delete_subscription_tree()
    2. Invoices billed by the vendor but not tied to one of those
       subscriptions are removed with their line items
    3. The vendor row itself
"""

import logging
from typing import List
from uuid import UUID

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from subtrack.exceptions import DatabaseError, NotFoundError, ValidationError
from subtrack.models import Assignment, Invoice, LineItem, SubscribedService, Subscription, Vendor
from subtrack.schemas.vendor import (
    VendorDeleteImpact,
    VendorDeletePreview,
    VendorDeleteResult,
    VendorMergeCounts,
    VendorMergePreview,
    VendorMergeRequest,
    VendorMergeResult,
    VendorResponse,
    VendorUpdate,
)
from subtrack.services.subscription_service import subscription_service

logger = logging.getLogger(__name__)


class VendorService:

    def _rollup_query(self):
        subscription_count = (
            select(func.count(Subscription.id))
            .where(Subscription.vendor_id == Vendor.id)
            .correlate(Vendor)
            .scalar_subquery()
        )
        invoice_count = (
            select(func.count(Invoice.id))
            .where(Invoice.vendor_id == Vendor.id)
            .correlate(Vendor)
            .scalar_subquery()
        )
        total_spend = (
            select(func.coalesce(func.sum(Invoice.total_amount), 0))
            .where(Invoice.vendor_id == Vendor.id)
            .correlate(Vendor)
            .scalar_subquery()
        )
        return select(Vendor, subscription_count, invoice_count, total_spend)

    @staticmethod
    def _to_response(vendor: Vendor, subscriptions: int, invoices: int, spend) -> VendorResponse:
        return VendorResponse.model_validate(vendor).model_copy(update={
            "subscription_count": int(subscriptions or 0),
            "invoice_count": int(invoices or 0),
            "total_spend": float(spend or 0),
        })

    async def list_vendors(self, db: AsyncSession) -> List[VendorResponse]:
        try:
            result = await db.execute(self._rollup_query().order_by(Vendor.name))
            return [self._to_response(*row) for row in result.all()]
        except Exception as e:
            logger.error("Database error listing vendors: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve vendors. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def get_vendor(self, db: AsyncSession, vendor_id: UUID) -> VendorResponse:
        try:
            result = await db.execute(self._rollup_query().where(Vendor.id == vendor_id))
            row = result.first()
            if row is None:
                raise NotFoundError(resource="vendor", resource_id=str(vendor_id))
            return self._to_response(*row)
        except NotFoundError:
            raise
        except Exception as e:
            logger.error("Database error fetching vendor %s: %s", vendor_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the vendor. Please try again.",
                context={"vendor_id": str(vendor_id)},
            )

    async def update_vendor(
        self, db: AsyncSession, vendor_id: UUID, payload: VendorUpdate
    ) -> VendorResponse:
        try:
            vendor = await db.get(Vendor, vendor_id)
            if vendor is None:
                raise NotFoundError(resource="vendor", resource_id=str(vendor_id))
            for key, value in payload.model_dump(exclude_unset=True).items():
                if value is None and key == "name":
                    continue
                setattr(vendor, key, value)
            await db.flush()
            return await self.get_vendor(db, vendor_id)
        except NotFoundError:
            raise
        except Exception as e:
            logger.error("Database error updating vendor %s: %s", vendor_id, str(e))
            raise DatabaseError(
                message="Could not update the vendor. Please try again.",
                context={"vendor_id": str(vendor_id)},
            )

    async def delete_impact(self, db: AsyncSession, vendor_id: UUID) -> VendorDeleteImpact:
        """Count what a cascade delete of the vendor would remove."""
        subscription_ids = select(Subscription.id).where(Subscription.vendor_id == vendor_id)
        service_ids = select(SubscribedService.id).where(
            SubscribedService.subscription_id.in_(subscription_ids)
        )
        invoice_ids = select(Invoice.id).where(
            or_(Invoice.vendor_id == vendor_id, Invoice.subscription_id.in_(subscription_ids))
        )

        async def count(stmt) -> int:
            return int((await db.execute(stmt)).scalar() or 0)

        return VendorDeleteImpact(
            subscriptions=await count(
                select(func.count()).select_from(Subscription).where(Subscription.vendor_id == vendor_id)
            ),
            services=await count(
                select(func.count()).select_from(SubscribedService)
                .where(SubscribedService.subscription_id.in_(subscription_ids))
            ),
            invoices=await count(
                select(func.count()).select_from(Invoice).where(Invoice.id.in_(invoice_ids))
            ),
            line_items=await count(
                select(func.count()).select_from(LineItem).where(
                    or_(LineItem.invoice_id.in_(invoice_ids), LineItem.service_id.in_(service_ids))
                )
            ),
            assignments=await count(
                select(func.count()).select_from(Assignment)
                .where(Assignment.subscription_id.in_(subscription_ids))
            ),
        )

    async def delete_vendor(
        self, db: AsyncSession, vendor_id: UUID, confirm: bool = False
    ) -> VendorDeletePreview | VendorDeleteResult:
        """
        Without `confirm`, only report the impact. With it, delete the
        vendor and everything that references it.
        """
        try:
            vendor = await db.get(Vendor, vendor_id)
            if vendor is None:
                raise NotFoundError(resource="vendor", resource_id=str(vendor_id))

            if not confirm:
                impact = await self.delete_impact(db, vendor_id)
                return VendorDeletePreview(
                    requires_confirmation=True,
                    impact=impact,
                    message=(
                        f"This will delete {impact.subscriptions} subscription(s), "
                        f"{impact.services} service(s), {impact.invoices} invoice(s), "
                        f"and {impact.line_items} line item(s)."
                    ),
                )

            result = await db.execute(
                select(Subscription.id).where(Subscription.vendor_id == vendor_id)
            )
            subscription_ids = list(result.scalars().all())
            counts = await subscription_service.delete_subscription_tree(db, subscription_ids)

            # Invoices billed by this vendor but filed under another subscription
            stray_invoices = select(Invoice.id).where(Invoice.vendor_id == vendor_id)
            stray_lines = await db.execute(
                delete(LineItem)
                .where(LineItem.invoice_id.in_(stray_invoices))
                .execution_options(synchronize_session=False)
            )
            stray = await db.execute(
                delete(Invoice)
                .where(Invoice.vendor_id == vendor_id)
                .execution_options(synchronize_session=False)
            )
            await db.delete(vendor)
            await db.flush()

            deleted = VendorDeleteImpact(
                subscriptions=counts["subscriptions"],
                services=counts["services"],
                invoices=counts["invoices"] + stray.rowcount,
                line_items=counts["line_items"] + stray_lines.rowcount,
                assignments=counts["assignments"],
            )
            logger.info("Vendor %s deleted: %s", vendor_id, deleted.model_dump())
            return VendorDeleteResult(
                success=True,
                message="Vendor and all related data deleted",
                deleted_counts=deleted,
            )
        except NotFoundError:
            raise
        except Exception as e:
            logger.error("Database error deleting vendor %s: %s", vendor_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not delete the vendor. Please try again.",
                context={"vendor_id": str(vendor_id)},
            )

    # ── Merge ─────────────────────────────────────────────────────────────

    async def merge_preview(self, db: AsyncSession, source_vendor_id: UUID) -> VendorMergePreview:
        try:
            if await db.get(Vendor, source_vendor_id) is None:
                raise NotFoundError(resource="source vendor", resource_id=str(source_vendor_id))

            subscription_ids = select(Subscription.id).where(
                Subscription.vendor_id == source_vendor_id
            )
            invoice_ids = select(Invoice.id).where(Invoice.vendor_id == source_vendor_id)

            async def count(stmt) -> int:
                return int((await db.execute(stmt)).scalar() or 0)

            return VendorMergePreview(
                subscriptions=await count(
                    select(func.count()).select_from(Subscription)
                    .where(Subscription.vendor_id == source_vendor_id)
                ),
                invoices=await count(
                    select(func.count()).select_from(Invoice)
                    .where(Invoice.vendor_id == source_vendor_id)
                ),
                services=await count(
                    select(func.count()).select_from(SubscribedService)
                    .where(SubscribedService.subscription_id.in_(subscription_ids))
                ),
                line_items=await count(
                    select(func.count()).select_from(LineItem)
                    .where(LineItem.invoice_id.in_(invoice_ids))
                ),
            )
        except NotFoundError:
            raise
        except Exception as e:
            logger.error("Database error previewing merge of %s: %s", source_vendor_id, str(e))
            raise DatabaseError(
                message="Could not preview the merge. Please try again.",
                context={"vendor_id": str(source_vendor_id)},
            )

    async def _merge_target_subscription(self, db: AsyncSession, target: Vendor) -> Subscription:
        """The target's newest subscription, or a new master agreement."""
        result = await db.execute(
            select(Subscription)
            .where(Subscription.vendor_id == target.id)
            .order_by(Subscription.created_at.desc())
            .limit(1)
        )
        subscription = result.scalar_one_or_none()
        if subscription is None:
            subscription = Subscription(
                vendor_id=target.id,
                name=f"{target.name} Master Agreement",
                status="Active",
                billing_cycle="Monthly",
                payment_method="Invoice",
                logo=target.logo_url,
            )
            db.add(subscription)
            await db.flush()
            logger.info("Created merge target subscription %s for vendor %s", subscription.id, target.id)
        return subscription

    async def merge_vendors(self, db: AsyncSession, payload: VendorMergeRequest) -> VendorMergeResult:
        """
        Fold the source vendor into the target.

        Invoices move to the target vendor and its newest subscription,
        services are re-parented to that subscription, the source's
        assignments and subscriptions are dropped, and finally the source
        vendor itself. All of it happens in the request's transaction.

        Raises:
            ValidationError: source and target are the same vendor (→ 400)
            NotFoundError: either vendor is missing (→ 404)
        """
        source_id, target_id = payload.source_vendor_id, payload.target_vendor_id
        if source_id == target_id:
            raise ValidationError(
                message="Cannot merge vendor into itself",
                field="targetVendorId",
            )

        try:
            source = await db.get(Vendor, source_id)
            if source is None:
                raise NotFoundError(resource="source vendor", resource_id=str(source_id))
            target = await db.get(Vendor, target_id)
            if target is None:
                raise NotFoundError(resource="target vendor", resource_id=str(target_id))

            source_name = source.name
            new_name = (payload.new_name or "").strip()
            if new_name:
                target.name = new_name

            destination = await self._merge_target_subscription(db, target)
            result = await db.execute(
                select(Subscription.id).where(Subscription.vendor_id == source_id)
            )
            source_subscription_ids = list(result.scalars().all())
            opts = {"synchronize_session": False}

            invoices = await db.execute(
                update(Invoice)
                .where(Invoice.vendor_id == source_id)
                .values(vendor_id=target_id, subscription_id=destination.id)
                .execution_options(**opts)
            )
            services_moved = 0
            if source_subscription_ids:
                # Invoices of another vendor filed under a source subscription
                await db.execute(
                    update(Invoice)
                    .where(Invoice.subscription_id.in_(source_subscription_ids))
                    .values(subscription_id=destination.id)
                    .execution_options(**opts)
                )
                services = await db.execute(
                    update(SubscribedService)
                    .where(SubscribedService.subscription_id.in_(source_subscription_ids))
                    .values(subscription_id=destination.id)
                    .execution_options(**opts)
                )
                services_moved = services.rowcount
                await db.execute(
                    delete(Assignment)
                    .where(Assignment.subscription_id.in_(source_subscription_ids))
                    .execution_options(**opts)
                )
                await db.execute(
                    delete(Subscription)
                    .where(Subscription.id.in_(source_subscription_ids))
                    .execution_options(**opts)
                )

            await db.delete(source)
            await db.flush()

            merged = VendorMergeCounts(
                subscriptions=len(source_subscription_ids),
                invoices=invoices.rowcount,
                services=services_moved,
            )
            logger.info("Vendor %s merged into %s: %s", source_id, target_id, merged.model_dump())
            return VendorMergeResult(
                success=True,
                message=f'Successfully merged "{source_name}" into "{target.name}"',
                merged=merged,
            )
        except NotFoundError:
            raise
        except Exception as e:
            logger.error("Database error merging vendor %s into %s: %s", source_id, target_id, str(e),
                         exc_info=True)
            raise DatabaseError(
                message="Could not merge the vendors. Please try again.",
                context={"source_vendor_id": str(source_id), "target_vendor_id": str(target_id)},
            )


# ── Singleton Instance ────────────────────────────────────────────────────
vendor_service = VendorService()
