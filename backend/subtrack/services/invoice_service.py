"""
SubTrack Backend: Invoice Service (Ingestion Orchestrator)
=============================================================

What:  Invoice CRUD plus ingestion of analysed invoices into vendors,
       subscriptions, services and line items.
Who:   Called by routes/invoices.py.

Ingestion Flow (POST /api/invoices):
    ┌──────────┐   ┌──────────────┐   ┌──────────────┐   ┌───────────────┐
    │  Vendor  │──▶│ Subscription │──▶│   Invoice    │──▶│ Services +    │
    │ find/new │   │ latest / new │   │ upsert by no.│   │ line items    │
    └──────────┘   └──────────────┘   └──────────────┘   └───────────────┘

    Re-ingesting an invoice number updates the invoice in place and rebuilds
    its line items, so uploading the same PDF twice never double-counts spend.

    Services are aggregated per invoice: several lines for "EC2" become one
    service priced at their summed total (quantity 1). A service is only
    repriced by an invoice at least as recent as its last update.
"""

import logging
import math
import re
from collections import OrderedDict
from datetime import date, datetime, time, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from subtrack.exceptions import DatabaseError, NotFoundError, SubTrackError, ValidationError
from subtrack.models import Invoice, LineItem, SubscribedService, Subscription, Vendor
from subtrack.schemas.invoice import (
    AnalysisLineItem,
    InvoiceAnalysis,
    InvoiceDeleteResponse,
    InvoiceIngestResponse,
    InvoiceResponse,
    InvoiceUpdate,
    LineItemResponse,
)

logger = logging.getLogger(__name__)

FAVICON_URL = "https://www.google.com/s2/favicons?domain={domain}&sz=128"
UNKNOWN_SERVICE = "Unknown Service"

# Containment matching only kicks in for names longer than this
_FUZZY_MATCH_MIN_LENGTH = 10


# ══════════════════════════════════════════════════════════════════════════
# Normalisation helpers
# ══════════════════════════════════════════════════════════════════════════


def sanitize_number(value: Any) -> float:
    """
    Coerce an analyser amount into a float.

        None / non-string garbage → 0.0
        "$1,234.56"               → 1234.56
        "(63.02)" or "-63.02"     → -63.02
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return 0.0 if math.isnan(value) else float(value)
    if not isinstance(value, str):
        return 0.0

    text = value.strip()
    negative = (text.startswith("(") and text.endswith(")")) or text.startswith("-")
    cleaned = re.sub(r"[($)\s,]", "", text)
    if cleaned.startswith("-"):
        cleaned = cleaned[1:]

    match = re.match(r"\d*\.?\d+(?:[eE][-+]?\d+)?|\d+\.", cleaned)
    if not match:
        return 0.0
    number = float(match.group(0))
    return -abs(number) if negative else number


def generate_logo_url(website: Optional[str] = None, name: Optional[str] = None) -> str:
    """
    Favicon URL for a vendor: from its website's host when known, else
    guessed as `<name without spaces>.com`. Empty string when neither is given.
    """
    if website:
        candidate = website if website.startswith("http") else f"https://{website}"
        host = urlsplit(candidate).hostname
        if host:
            return FAVICON_URL.format(domain=host)
    if name:
        domain = re.sub(r"\s+", "", name).lower() + ".com"
        return FAVICON_URL.format(domain=domain)
    return ""


def normalize_service_name(name: str) -> str:
    """Lowercase alphanumerics only: "Amazon EC2 (Compute)" → "amazonec2compute"."""
    return re.sub(r"[^a-z0-9]", "", name.lower())


def _service_name_for(item: AnalysisLineItem) -> str:
    return item.service_name or item.description or UNKNOWN_SERVICE


def _amounts_for(item: AnalysisLineItem) -> tuple[float, float, float]:
    """(quantity, unit_price, total) with quantity defaulting to 1 and total to unit × qty."""
    quantity = sanitize_number(item.quantity) or 1.0
    unit_price = sanitize_number(item.unit_price)
    total = sanitize_number(item.total_amount) or unit_price * quantity
    return quantity, unit_price, total


def _as_utc_datetime(value: date) -> datetime:
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def _as_aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class InvoiceService:
    """
    Business logic layer for invoices.

    Responsibilities:
        - list/get/update/delete invoices
        - list_line_items(): rows of one invoice with service names
        - ingest_analysis(): analyser payload → persisted invoice
    """

    # ── Queries ───────────────────────────────────────────────────────────

    def _invoice_query(self):
        return select(Invoice, Vendor.name).outerjoin(Vendor, Vendor.id == Invoice.vendor_id)

    @staticmethod
    def _to_response(invoice: Invoice, vendor_name: Optional[str]) -> InvoiceResponse:
        return InvoiceResponse.model_validate(invoice).model_copy(
            update={"vendor_name": vendor_name}
        )

    async def list_invoices(self, db: AsyncSession) -> List[InvoiceResponse]:
        try:
            result = await db.execute(
                self._invoice_query().order_by(Invoice.invoice_date.desc(), Invoice.created_at.desc())
            )
            return [self._to_response(inv, vendor_name) for inv, vendor_name in result.all()]
        except Exception as e:
            logger.error("Database error listing invoices: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve invoices. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def get_invoice(self, db: AsyncSession, invoice_id: UUID) -> InvoiceResponse:
        try:
            result = await db.execute(self._invoice_query().where(Invoice.id == invoice_id))
            row = result.first()
            if row is None:
                raise NotFoundError(resource="invoice", resource_id=str(invoice_id))
            return self._to_response(*row)
        except NotFoundError:
            raise
        except Exception as e:
            logger.error("Database error fetching invoice %s: %s", invoice_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the invoice. Please try again.",
                context={"invoice_id": str(invoice_id)},
            )

    async def list_line_items(self, db: AsyncSession, invoice_id: UUID) -> List[LineItemResponse]:
        try:
            invoice = await db.get(Invoice, invoice_id)
            if invoice is None:
                raise NotFoundError(resource="invoice", resource_id=str(invoice_id))
            result = await db.execute(
                select(LineItem, SubscribedService.name)
                .outerjoin(SubscribedService, SubscribedService.id == LineItem.service_id)
                .where(LineItem.invoice_id == invoice_id)
                .order_by(LineItem.created_at.asc())
            )
            return [
                LineItemResponse.model_validate(item).model_copy(update={
                    "service_name": service_name,
                    "invoice_number": invoice.invoice_number,
                    "invoice_date": invoice.invoice_date,
                })
                for item, service_name in result.all()
            ]
        except NotFoundError:
            raise
        except Exception as e:
            logger.error("Database error listing line items of invoice %s: %s", invoice_id, str(e))
            raise DatabaseError(
                message="Could not retrieve line items. Please try again.",
                context={"invoice_id": str(invoice_id)},
            )

    # ── Mutations ─────────────────────────────────────────────────────────

    async def update_invoice(
        self, db: AsyncSession, invoice_id: UUID, payload: InvoiceUpdate
    ) -> InvoiceResponse:
        try:
            invoice = await db.get(Invoice, invoice_id)
            if invoice is None:
                raise NotFoundError(resource="invoice", resource_id=str(invoice_id))
            for key, value in payload.model_dump(exclude_unset=True).items():
                if value is None and key != "due_date":
                    continue
                setattr(invoice, key, value)
            await db.flush()
            vendor = await db.get(Vendor, invoice.vendor_id) if invoice.vendor_id else None
            return self._to_response(invoice, vendor.name if vendor else None)
        except NotFoundError:
            raise
        except Exception as e:
            logger.error("Database error updating invoice %s: %s", invoice_id, str(e))
            raise DatabaseError(
                message="Could not update the invoice. Please try again.",
                context={"invoice_id": str(invoice_id)},
            )

    async def delete_invoice(self, db: AsyncSession, invoice_id: UUID) -> InvoiceDeleteResponse:
        """Delete an invoice after its line items; reports how many lines went with it."""
        try:
            invoice = await db.get(Invoice, invoice_id)
            if invoice is None:
                raise NotFoundError(resource="invoice", resource_id=str(invoice_id))
            lines = await db.execute(
                delete(LineItem)
                .where(LineItem.invoice_id == invoice_id)
                .execution_options(synchronize_session=False)
            )
            await db.delete(invoice)
            await db.flush()
            logger.info("Invoice %s deleted with %d line items", invoice_id, lines.rowcount)
            return InvoiceDeleteResponse(success=True, deleted_counts={"lineItems": lines.rowcount})
        except NotFoundError:
            raise
        except Exception as e:
            logger.error("Database error deleting invoice %s: %s", invoice_id, str(e))
            raise DatabaseError(
                message="Could not delete the invoice. Please try again.",
                context={"invoice_id": str(invoice_id)},
            )

    # ── Ingestion ─────────────────────────────────────────────────────────

    async def ingest_analysis(
        self, db: AsyncSession, analysis: InvoiceAnalysis
    ) -> InvoiceIngestResponse:
        """
        Persist an analysed invoice.

        Raises:
            ValidationError: vendor or invoice section missing (→ 400)
            DatabaseError: any persistence failure (→ 500)
        """
        if analysis.vendor is None or analysis.invoice is None:
            raise ValidationError(
                message="Invalid invoice data: vendor and invoice are required",
                field="analysis",
            )

        vendor_data = analysis.vendor
        invoice_data = analysis.invoice
        invoice_date = invoice_data.date or datetime.now(timezone.utc).date()
        currency = (invoice_data.currency or "USD").upper()[:3]
        total = sanitize_number(invoice_data.total_amount)

        logger.info("Ingesting invoice %s for vendor %s", invoice_data.number, vendor_data.name)

        try:
            vendor = await self._find_or_create_vendor(db, vendor_data.name,
                                                       vendor_data.website,
                                                       vendor_data.contact_email)
            subscription = await self._find_or_create_agreement(db, vendor)

            invoice = None
            if invoice_data.number:
                result = await db.execute(
                    select(Invoice).where(Invoice.invoice_number == invoice_data.number)
                )
                invoice = result.scalar_one_or_none()

            if invoice is not None:
                logger.info("Invoice %s already exists (%s); re-importing", invoice_data.number, invoice.id)
                invoice.invoice_date = invoice_date
                invoice.total_amount = total
                invoice.currency = currency
                invoice.status = "Paid"
                if invoice_data.due_date:
                    invoice.due_date = invoice_data.due_date
                await db.execute(
                    delete(LineItem)
                    .where(LineItem.invoice_id == invoice.id)
                    .execution_options(synchronize_session=False)
                )
                await self._clear_services(db, subscription.id)
            else:
                invoice = Invoice(
                    vendor_id=vendor.id,
                    subscription_id=subscription.id,
                    invoice_number=invoice_data.number,
                    invoice_date=invoice_date,
                    due_date=invoice_data.due_date,
                    total_amount=total,
                    currency=currency,
                    status="Paid",
                )
                db.add(invoice)
            await db.flush()

            if analysis.line_items:
                await self._store_line_items(
                    db, invoice, subscription.id, analysis.line_items, invoice_date, currency
                )

            return InvoiceIngestResponse(success=True, invoice=self._to_response(invoice, vendor.name))
        except SubTrackError:
            raise
        except Exception as e:
            logger.error("Invoice ingestion failed: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not save the invoice. Please try again.",
                context={"error_type": type(e).__name__, "invoice_number": invoice_data.number},
            )

    async def _find_or_create_vendor(
        self,
        db: AsyncSession,
        name: str,
        website: Optional[str],
        contact_email: Optional[str],
    ) -> Vendor:
        logo_url = generate_logo_url(website, name)
        result = await db.execute(
            select(Vendor).where(func.lower(Vendor.name) == name.strip().lower()).limit(1)
        )
        vendor = result.scalar_one_or_none()
        if vendor is None:
            vendor = Vendor(
                name=name.strip(),
                website=website,
                contact_email=contact_email,
                logo_url=logo_url or None,
            )
            db.add(vendor)
            await db.flush()
            logger.info("Created vendor %s (%s)", vendor.id, vendor.name)
        elif not vendor.logo_url and logo_url:
            vendor.logo_url = logo_url
        return vendor

    async def _find_or_create_agreement(self, db: AsyncSession, vendor: Vendor) -> Subscription:
        result = await db.execute(
            select(Subscription)
            .where(Subscription.vendor_id == vendor.id)
            .order_by(Subscription.created_at.desc())
            .limit(1)
        )
        subscription = result.scalar_one_or_none()
        if subscription is None:
            subscription = Subscription(
                vendor_id=vendor.id,
                name=f"{vendor.name} Master Agreement",
                status="Active",
                billing_cycle="Monthly",
                payment_method="Invoice",
                logo=vendor.logo_url,
            )
            db.add(subscription)
            await db.flush()
            logger.info("Created master agreement %s for vendor %s", subscription.id, vendor.name)
        return subscription

    async def _clear_services(self, db: AsyncSession, subscription_id: UUID) -> None:
        """Drop a subscription's services before re-import, detaching other invoices' lines."""
        service_ids = select(SubscribedService.id).where(
            SubscribedService.subscription_id == subscription_id
        )
        await db.execute(
            update(LineItem)
            .where(LineItem.service_id.in_(service_ids))
            .values(service_id=None)
            .execution_options(synchronize_session=False)
        )
        await db.execute(
            delete(SubscribedService)
            .where(SubscribedService.subscription_id == subscription_id)
            .execution_options(synchronize_session=False)
        )

    async def _store_line_items(
        self,
        db: AsyncSession,
        invoice: Invoice,
        subscription_id: UUID,
        items: List[AnalysisLineItem],
        invoice_date: date,
        currency: str,
    ) -> None:
        # Aggregate totals per service name, preserving first-seen order
        totals: "OrderedDict[str, float]" = OrderedDict()
        for item in items:
            _, _, total = _amounts_for(item)
            name = _service_name_for(item)
            totals[name] = totals.get(name, 0.0) + total

        existing = list((await db.execute(
            select(SubscribedService).where(SubscribedService.subscription_id == subscription_id)
        )).scalars().all())

        service_ids: Dict[str, UUID] = {}
        for name, total in totals.items():
            service = await self._upsert_service(
                db, existing, subscription_id, name, total, invoice_date, currency
            )
            service_ids[name] = service.id

        for item in items:
            quantity, unit_price, total = _amounts_for(item)
            db.add(LineItem(
                invoice_id=invoice.id,
                service_id=service_ids.get(_service_name_for(item)),
                description=item.description or "Line Item",
                quantity=quantity,
                unit_price=unit_price or total,
                total_amount=total,
                period_start=item.period_start,
                period_end=item.period_end,
            ))
        await db.flush()
        logger.info("Stored %d line items across %d services for invoice %s",
                    len(items), len(totals), invoice.id)

    async def _upsert_service(
        self,
        db: AsyncSession,
        existing: List[SubscribedService],
        subscription_id: UUID,
        name: str,
        total: float,
        invoice_date: date,
        currency: str,
    ) -> SubscribedService:
        service = self._match_service(existing, name)
        billed_at = _as_utc_datetime(invoice_date)

        if service is None:
            service = SubscribedService(
                subscription_id=subscription_id,
                name=name,
                current_quantity=1,
                current_unit_price=total,
                currency=currency,
                created_at=billed_at,
                updated_at=billed_at,
            )
            db.add(service)
            await db.flush()
            existing.append(service)
        elif service.updated_at is None or billed_at >= _as_aware(service.updated_at):
            service.current_quantity = 1
            service.current_unit_price = total
            service.currency = currency
            service.updated_at = billed_at
        else:
            logger.info("Service %s kept: invoice dated %s is older than last update",
                        service.name, invoice_date)
        return service

    @staticmethod
    def _match_service(
        existing: List[SubscribedService], name: str
    ) -> Optional[SubscribedService]:
        wanted = normalize_service_name(name)
        for service in existing:
            if normalize_service_name(service.name) == wanted:
                return service
        if len(wanted) > _FUZZY_MATCH_MIN_LENGTH:
            for service in existing:
                candidate = normalize_service_name(service.name)
                if len(candidate) > _FUZZY_MATCH_MIN_LENGTH and (
                    candidate in wanted or wanted in candidate
                ):
                    return service
        return None


# ── Singleton Instance ────────────────────────────────────────────────────
invoice_service = InvoiceService()
