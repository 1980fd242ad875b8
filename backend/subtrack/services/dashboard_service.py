"""
SubTrack Backend: Dashboard Service
======================================

What:  Computes the stat cards on the dashboard home page.

Annual spend:
    Prefer what was actually invoiced over the trailing 13 months (up to
    today; future-dated invoices are ignored). When no invoices exist yet,
    project from subscription costs by billing cycle.

Active vendors are the distinct vendors of Active subscriptions.
"""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from subtrack.exceptions import DatabaseError
from subtrack.models import Invoice, Subscription
from subtrack.schemas.dashboard import DashboardSummary, UpcomingRenewal

logger = logging.getLogger(__name__)

RENEWAL_WINDOW_DAYS = 30
TRAILING_MONTHS = 13

# Periods per year for projecting annual cost
_CYCLE_MULTIPLIER = {"Monthly": 12, "Quarterly": 4}


def months_ago(today: date, months: int) -> date:
    """Same day `months` calendar months earlier, clamped to the month's length."""
    year, month = divmod(today.year * 12 + (today.month - 1) - months, 12)
    month += 1
    for day in (today.day, 30, 29, 28):
        try:
            return date(year, month, day)
        except ValueError:
            continue
    return date(year, month, 28)


def projected_annual_cost(cost: float, billing_cycle: str) -> float:
    return float(cost or 0) * _CYCLE_MULTIPLIER.get(billing_cycle, 1)


class DashboardService:

    async def summary(self, db: AsyncSession, today: Optional[date] = None) -> DashboardSummary:
        today = today or datetime.now(timezone.utc).date()
        horizon = today + timedelta(days=RENEWAL_WINDOW_DAYS)
        try:
            trailing = (await db.execute(
                select(func.coalesce(func.sum(Invoice.total_amount), 0))
                .where(Invoice.invoice_date >= months_ago(today, TRAILING_MONTHS))
                .where(Invoice.invoice_date <= today)
            )).scalar() or 0

            subscriptions = (await db.execute(
                select(Subscription.id, Subscription.name, Subscription.cost,
                       Subscription.billing_cycle, Subscription.status,
                       Subscription.renewal_date)
            )).all()

            active_vendors = (await db.execute(
                select(func.count(func.distinct(Subscription.vendor_id)))
                .where(Subscription.status == "Active")
                .where(Subscription.vendor_id.is_not(None))
            )).scalar() or 0
            pending_invoices = (await db.execute(
                select(func.count(Invoice.id)).where(Invoice.status == "Pending")
            )).scalar() or 0
        except Exception as e:
            logger.error("Database error building dashboard summary: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not load the dashboard. Please try again.",
                context={"error_type": type(e).__name__},
            )

        live = [s for s in subscriptions if s.status != "Cancelled"]
        if float(trailing) > 0:
            total, source = float(trailing), "invoices"
        else:
            total = sum(projected_annual_cost(s.cost, s.billing_cycle) for s in live)
            source = "projection"

        renewals = sorted(
            (s for s in live if s.renewal_date and today <= s.renewal_date <= horizon),
            key=lambda s: s.renewal_date,
        )

        return DashboardSummary(
            total_annual_spend=round(total, 2),
            spend_source=source,
            active_subscriptions=sum(1 for s in subscriptions if s.status == "Active"),
            review_subscriptions=sum(1 for s in subscriptions if s.status == "Review"),
            active_vendors=int(active_vendors),
            pending_invoices=int(pending_invoices),
            upcoming_renewals=len(renewals),
            renewal_window_days=RENEWAL_WINDOW_DAYS,
            renewals=[
                UpcomingRenewal(id=s.id, name=s.name, renewal_date=s.renewal_date,
                                cost=float(s.cost or 0))
                for s in renewals
            ],
        )


# ── Singleton Instance ────────────────────────────────────────────────────
dashboard_service = DashboardService()
