"""
SubTrack Backend: Billed Service Management
==============================================

What:  Edit, delete and merge the services (`sub_subscription_services`)
       that invoice ingestion creates under a subscription.
Who:   Called by routes/services.py.

Merging exists because the analyser sometimes names one product two ways
("EC2" / "Amazon EC2"): every line item of the source moves to the target
and the emptied source is deleted.
"""

import logging
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from subtrack.exceptions import DatabaseError, NotFoundError, SubTrackError, ValidationError
from subtrack.models import LineItem, SubscribedService
from subtrack.schemas.subscription import (
    ServiceDeleteImpact,
    ServiceDeletePreview,
    ServiceDeleteResult,
    ServiceMergePreview,
    ServiceMergeRequest,
    ServiceMergeResult,
    ServiceResponse,
    ServiceUpdate,
)

logger = logging.getLogger(__name__)

_REQUIRED_COLUMNS = frozenset({
    "name", "status", "current_quantity", "current_unit_price", "currency",
})


class SubscribedServiceService:

    async def _require(
        self, db: AsyncSession, service_id: UUID, resource: str = "service"
    ) -> SubscribedService:
        service = await db.get(SubscribedService, service_id)
        if service is None:
            raise NotFoundError(resource=resource, resource_id=str(service_id))
        return service

    async def _line_item_count(self, db: AsyncSession, service_id: UUID) -> int:
        result = await db.execute(
            select(func.count()).select_from(LineItem).where(LineItem.service_id == service_id)
        )
        return int(result.scalar() or 0)

    async def get_service(self, db: AsyncSession, service_id: UUID) -> ServiceResponse:
        try:
            return ServiceResponse.model_validate(await self._require(db, service_id))
        except NotFoundError:
            raise
        except Exception as e:
            logger.error("Database error fetching service %s: %s", service_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the service. Please try again.",
                context={"service_id": str(service_id)},
            )

    async def update_service(
        self, db: AsyncSession, service_id: UUID, payload: ServiceUpdate
    ) -> ServiceResponse:
        try:
            service = await self._require(db, service_id)
            for key, value in payload.model_dump(exclude_unset=True).items():
                if value is None and key in _REQUIRED_COLUMNS:
                    continue
                setattr(service, key, value)
            await db.flush()
            await db.refresh(service)
            return ServiceResponse.model_validate(service)
        except NotFoundError:
            raise
        except Exception as e:
            logger.error("Database error updating service %s: %s", service_id, str(e))
            raise DatabaseError(
                message="Could not update the service. Please try again.",
                context={"service_id": str(service_id)},
            )

    async def delete_service(
        self, db: AsyncSession, service_id: UUID, confirm: bool = False
    ) -> ServiceDeletePreview | ServiceDeleteResult:
        """Without `confirm`, report how many line items would go with it."""
        try:
            service = await self._require(db, service_id)

            if not confirm:
                line_items = await self._line_item_count(db, service_id)
                return ServiceDeletePreview(
                    requires_confirmation=True,
                    impact=ServiceDeleteImpact(line_items=line_items),
                    message=f"This will delete {line_items} line item(s) linked to this service.",
                )

            deleted = await db.execute(
                delete(LineItem)
                .where(LineItem.service_id == service_id)
                .execution_options(synchronize_session=False)
            )
            await db.delete(service)
            await db.flush()
            logger.info("Service %s deleted with %d line items", service_id, deleted.rowcount)
            return ServiceDeleteResult(
                success=True,
                message="Service and related line items deleted",
                deleted_line_items=deleted.rowcount,
            )
        except NotFoundError:
            raise
        except Exception as e:
            logger.error("Database error deleting service %s: %s", service_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not delete the service. Please try again.",
                context={"service_id": str(service_id)},
            )

    async def merge_preview(self, db: AsyncSession, source_service_id: UUID) -> ServiceMergePreview:
        try:
            await self._require(db, source_service_id, resource="source service")
            result = await db.execute(
                select(func.count(LineItem.id), func.coalesce(func.sum(LineItem.total_amount), 0))
                .where(LineItem.service_id == source_service_id)
            )
            line_items, total = result.one()
            return ServiceMergePreview(line_items=int(line_items or 0), total_amount=float(total or 0))
        except NotFoundError:
            raise
        except Exception as e:
            logger.error("Database error previewing merge of service %s: %s", source_service_id, str(e))
            raise DatabaseError(
                message="Could not preview the merge. Please try again.",
                context={"service_id": str(source_service_id)},
            )

    async def merge_services(self, db: AsyncSession, payload: ServiceMergeRequest) -> ServiceMergeResult:
        """
        Move every line item of the source service to the target, then
        delete the source.

        Raises:
            ValidationError: source and target are the same (→ 400)
            NotFoundError: either service is missing (→ 404)
        """
        source_id, target_id = payload.source_service_id, payload.target_service_id
        if source_id == target_id:
            raise ValidationError(message="Cannot merge service into itself", field="targetServiceId")

        try:
            source = await self._require(db, source_id, resource="source service")
            target = await self._require(db, target_id, resource="target service")
            source_name = source.name

            moved = await db.execute(
                update(LineItem)
                .where(LineItem.service_id == source_id)
                .values(service_id=target_id)
                .execution_options(synchronize_session=False)
            )
            await db.delete(source)
            await db.flush()

            logger.info("Service %s merged into %s (%d line items)", source_id, target_id, moved.rowcount)
            return ServiceMergeResult(
                success=True,
                message=f'Successfully merged "{source_name}" into "{target.name}"',
                moved_line_items=moved.rowcount,
            )
        except SubTrackError:
            raise
        except Exception as e:
            logger.error("Database error merging service %s into %s: %s", source_id, target_id, str(e),
                         exc_info=True)
            raise DatabaseError(
                message="Could not merge the services. Please try again.",
                context={"source_service_id": str(source_id), "target_service_id": str(target_id)},
            )


# ── Singleton Instance ────────────────────────────────────────────────────
subscribed_service_service = SubscribedServiceService()
