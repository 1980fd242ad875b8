"""
SubTrack Backend: Line Item Service
======================================

What:  Direct CRUD on invoice line items (manual corrections after ingestion)
       and moving items to another billing month.
Who:   Called by routes/line_items.py.
"""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from subtrack.exceptions import DatabaseError, NotFoundError, SubTrackError, ValidationError
from subtrack.models import Invoice, LineItem, SubscribedService
from subtrack.schemas.common import SuccessResponse
from subtrack.schemas.invoice import (
    ClearOverrideResponse,
    LineItemCreate,
    LineItemResponse,
    LineItemUpdate,
    MovePeriodRequest,
    MovePeriodResponse,
)
from subtrack.services.billing_period import billing_month, month_start, parse_month

logger = logging.getLogger(__name__)

# Non-nullable columns a partial update skips when sent as null
_REQUIRED_COLUMNS = frozenset({"description", "quantity", "unit_price", "total_amount"})


class LineItemService:
    """CRUD for `sub_invoice_line_items`, returned with service and invoice labels."""

    async def _load(self, db: AsyncSession, line_item_id: UUID) -> LineItemResponse:
        result = await db.execute(
            select(LineItem, SubscribedService.name, Invoice.invoice_number, Invoice.invoice_date)
            .join(Invoice, Invoice.id == LineItem.invoice_id)
            .outerjoin(SubscribedService, SubscribedService.id == LineItem.service_id)
            .where(LineItem.id == line_item_id)
        )
        row = result.first()
        if row is None:
            raise NotFoundError(resource="line item", resource_id=str(line_item_id))
        item, service_name, invoice_number, invoice_date = row
        return LineItemResponse.model_validate(item).model_copy(update={
            "service_name": service_name,
            "invoice_number": invoice_number,
            "invoice_date": invoice_date,
        })

    async def _check_service(self, db: AsyncSession, service_id: Optional[UUID]) -> None:
        if service_id is not None and await db.get(SubscribedService, service_id) is None:
            raise NotFoundError(resource="service", resource_id=str(service_id))

    async def get_line_item(self, db: AsyncSession, line_item_id: UUID) -> LineItemResponse:
        try:
            return await self._load(db, line_item_id)
        except NotFoundError:
            raise
        except Exception as e:
            logger.error("Database error fetching line item %s: %s", line_item_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the line item. Please try again.",
                context={"line_item_id": str(line_item_id)},
            )

    async def create_line_item(self, db: AsyncSession, payload: LineItemCreate) -> LineItemResponse:
        try:
            if await db.get(Invoice, payload.invoice_id) is None:
                raise NotFoundError(resource="invoice", resource_id=str(payload.invoice_id))
            await self._check_service(db, payload.service_id)
            item = LineItem(**payload.model_dump())
            db.add(item)
            await db.flush()
            logger.info("Line item %s added to invoice %s", item.id, item.invoice_id)
            return await self._load(db, item.id)
        except SubTrackError:
            raise
        except Exception as e:
            logger.error("Database error creating line item: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not create the line item. Please try again.",
                context={"invoice_id": str(payload.invoice_id)},
            )

    async def update_line_item(
        self, db: AsyncSession, line_item_id: UUID, payload: LineItemUpdate
    ) -> LineItemResponse:
        try:
            item = await db.get(LineItem, line_item_id)
            if item is None:
                raise NotFoundError(resource="line item", resource_id=str(line_item_id))
            changes = payload.model_dump(exclude_unset=True)
            await self._check_service(db, changes.get("service_id"))
            for key, value in changes.items():
                if value is None and key in _REQUIRED_COLUMNS:
                    continue
                setattr(item, key, value)
            await db.flush()
            return await self._load(db, line_item_id)
        except SubTrackError:
            raise
        except Exception as e:
            logger.error("Database error updating line item %s: %s", line_item_id, str(e))
            raise DatabaseError(
                message="Could not update the line item. Please try again.",
                context={"line_item_id": str(line_item_id)},
            )

    async def delete_line_item(self, db: AsyncSession, line_item_id: UUID) -> SuccessResponse:
        try:
            item = await db.get(LineItem, line_item_id)
            if item is None:
                raise NotFoundError(resource="line item", resource_id=str(line_item_id))
            await db.delete(item)
            await db.flush()
            return SuccessResponse(success=True, message="Line item deleted")
        except NotFoundError:
            raise
        except Exception as e:
            logger.error("Database error deleting line item %s: %s", line_item_id, str(e))
            raise DatabaseError(
                message="Could not delete the line item. Please try again.",
                context={"line_item_id": str(line_item_id)},
            )

    # ── Billing period moves ──────────────────────────────────────────────

    async def _ids_for_move(self, db: AsyncSession, payload: MovePeriodRequest) -> List[UUID]:
        criteria = payload.filter

        if payload.level == "lineItem":
            if criteria.line_item_id is None:
                raise ValidationError(message="lineItemId is required for lineItem level",
                                      field="filter.lineItemId")
            if await db.get(LineItem, criteria.line_item_id) is None:
                raise NotFoundError(resource="line item", resource_id=str(criteria.line_item_id))
            return [criteria.line_item_id]

        if payload.level == "invoice":
            if criteria.invoice_id is None:
                raise ValidationError(message="invoiceId is required for invoice level",
                                      field="filter.invoiceId")
            if await db.get(Invoice, criteria.invoice_id) is None:
                raise NotFoundError(resource="invoice", resource_id=str(criteria.invoice_id))
            result = await db.execute(
                select(LineItem.id).where(LineItem.invoice_id == criteria.invoice_id)
            )
            return list(result.scalars().all())

        if not (criteria.service_name or "").strip():
            raise ValidationError(message="serviceName is required for service level",
                                  field="filter.serviceName")
        source_month = None
        if criteria.source_month:
            source_month = month_start(parse_month(criteria.source_month, "sourceMonth"))

        result = await db.execute(
            select(LineItem.id, LineItem.billing_month_override, LineItem.period_start,
                   LineItem.description, Invoice.invoice_date)
            .join(Invoice, Invoice.id == LineItem.invoice_id)
            .where(LineItem.description.icontains(criteria.service_name.strip(), autoescape=True))
        )
        return [
            row.id
            for row in result.all()
            if source_month is None
            or billing_month(row.billing_month_override, row.period_start,
                             row.description, row.invoice_date) == source_month
        ]

    async def move_period(self, db: AsyncSession, payload: MovePeriodRequest) -> MovePeriodResponse:
        """
        Pin line items to another billing month via billing_month_override.

        Levels:
            lineItem  one item (filter.lineItemId)
            invoice   every item of an invoice (filter.invoiceId)
            service   items whose description contains filter.serviceName,
                      optionally only those currently in filter.sourceMonth

        Raises:
            ValidationError: bad targetMonth/sourceMonth or missing filter (→ 400)
            NotFoundError: the named line item or invoice is missing (→ 404)
        """
        target = month_start(parse_month(payload.target_month, "targetMonth"))
        try:
            ids = await self._ids_for_move(db, payload)
            if ids:
                await db.execute(
                    update(LineItem)
                    .where(LineItem.id.in_(ids))
                    .values(billing_month_override=target)
                    .execution_options(synchronize_session=False)
                )
                await db.flush()
            logger.info("Moved %d line items to %s (%s level)", len(ids), target, payload.level)
            return MovePeriodResponse(
                success=True,
                level=payload.level,
                target_month=target,
                affected_count=len(ids),
                affected_ids=ids,
            )
        except SubTrackError:
            raise
        except Exception as e:
            logger.error("Database error moving line items: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not move the line items. Please try again.",
                context={"level": payload.level},
            )

    async def clear_override(
        self,
        db: AsyncSession,
        line_item_id: Optional[UUID] = None,
        invoice_id: Optional[UUID] = None,
    ) -> ClearOverrideResponse:
        """Drop manual billing months so items fall back to automatic resolution."""
        if line_item_id is None and invoice_id is None:
            raise ValidationError(message="Either lineItemId or invoiceId is required")
        try:
            if line_item_id is not None:
                if await db.get(LineItem, line_item_id) is None:
                    raise NotFoundError(resource="line item", resource_id=str(line_item_id))
                condition = LineItem.id == line_item_id
            else:
                if await db.get(Invoice, invoice_id) is None:
                    raise NotFoundError(resource="invoice", resource_id=str(invoice_id))
                condition = LineItem.invoice_id == invoice_id

            result = await db.execute(
                update(LineItem)
                .where(condition)
                .values(billing_month_override=None)
                .execution_options(synchronize_session=False)
            )
            await db.flush()
            return ClearOverrideResponse(success=True, cleared=result.rowcount)
        except NotFoundError:
            raise
        except Exception as e:
            logger.error("Database error clearing billing overrides: %s", str(e))
            raise DatabaseError(
                message="Could not clear the override. Please try again.",
                context={"line_item_id": str(line_item_id), "invoice_id": str(invoice_id)},
            )


# ── Singleton Instance ────────────────────────────────────────────────────
line_item_service = LineItemService()
