"""
SubTrack Backend: Report Service
===================================

What:  Aggregates line item spend by billing month and by vendor or
       service for the Reports page.
How:   One joined query over every line item; the billing month of each
       row is resolved in Python (see billing_period) because it depends
       on overrides, stored periods and description text together.

Grouping:
    vendor   the invoice's vendor name, "Unknown Vendor" when unset
    service  the linked service's name, else a name cleaned from the
             line item description
"""

import logging
from collections import defaultdict
from datetime import date
from typing import Dict, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from subtrack.exceptions import DatabaseError, ValidationError
from subtrack.models import Invoice, LineItem, SubscribedService, Vendor
from subtrack.schemas.report import (
    AggregatedReport,
    BreakdownEntry,
    GroupBy,
    ReportFilters,
    ReportMeta,
)
from subtrack.services.billing_period import billing_month, extract_service_name, month_start

logger = logging.getLogger(__name__)

UNKNOWN_VENDOR = "Unknown Vendor"


class ReportService:

    async def aggregated(
        self,
        db: AsyncSession,
        start_date: date,
        end_date: date,
        group_by: GroupBy = "vendor",
    ) -> AggregatedReport:
        """
        Spend per month and per group between the months of `start_date`
        and `end_date`, both inclusive.

        Raises:
            ValidationError: start_date after end_date (→ 400)
            DatabaseError: query failed (→ 500)
        """
        if start_date > end_date:
            raise ValidationError(
                message="startDate must not be after endDate",
                field="startDate",
                context={"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
            )

        try:
            result = await db.execute(
                select(
                    LineItem.total_amount,
                    LineItem.description,
                    LineItem.period_start,
                    LineItem.billing_month_override,
                    Invoice.invoice_date,
                    Vendor.name,
                    SubscribedService.name,
                )
                .join(Invoice, Invoice.id == LineItem.invoice_id)
                .outerjoin(Vendor, Vendor.id == Invoice.vendor_id)
                .outerjoin(SubscribedService, SubscribedService.id == LineItem.service_id)
            )
            rows = result.all()
        except Exception as e:
            logger.error("Database error building aggregated report: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not build the report. Please try again.",
                context={"error_type": type(e).__name__},
            )

        first_month, last_month = month_start(start_date), month_start(end_date)
        monthly: Dict[date, Dict[str, float]] = defaultdict(lambda: defaultdict(float))
        totals: Dict[str, float] = defaultdict(float)
        vendors, services = set(), set()
        counted = 0

        for amount, description, period_start, override, invoice_date, vendor_name, service_name in rows:
            amount = float(amount or 0)
            if amount == 0:
                continue
            month = billing_month(override, period_start, description, invoice_date)
            if month is None or not first_month <= month <= last_month:
                continue

            counted += 1
            vendor_key = vendor_name or UNKNOWN_VENDOR
            service_key = service_name or extract_service_name(description)
            vendors.add(vendor_key)
            services.add(service_key)

            key = service_key if group_by == "service" else vendor_key
            monthly[month][key] += amount
            totals[key] += amount

        ranked = sorted(totals.items(), key=lambda kv: (-kv[1], kv[0]))
        grand_total = sum(totals.values())
        breakdown = [
            BreakdownEntry(
                name=name,
                cost=round(cost, 2),
                percentage=round(cost / grand_total * 100, 2) if grand_total else 0,
                color_index=index,
            )
            for index, (name, cost) in enumerate(ranked)
        ]

        trend: List[dict] = []
        for month in sorted(monthly):
            point = {"month": month.strftime("%Y-%m"), "label": month.strftime("%b %y")}
            point.update({key: round(value, 2) for key, value in monthly[month].items()})
            point["total"] = round(sum(monthly[month].values()), 2)
            trend.append(point)

        logger.info(
            "Aggregated report %s..%s by %s: %d of %d line items, total %.2f",
            start_date, end_date, group_by, counted, len(rows), grand_total,
        )
        return AggregatedReport(
            monthly_trend=trend,
            breakdown=breakdown,
            stack_keys=[name for name, _ in ranked],
            grand_total=round(grand_total, 2),
            filters=ReportFilters(
                available_months=sorted((m.strftime("%Y-%m") for m in monthly), reverse=True),
                available_vendors=sorted(vendors),
                available_services=sorted(services),
            ),
            meta=ReportMeta(
                start_date=start_date,
                end_date=end_date,
                group_by=group_by,
                line_item_count=counted,
                total_line_items=len(rows),
            ),
        )


# ── Singleton Instance ────────────────────────────────────────────────────
report_service = ReportService()
