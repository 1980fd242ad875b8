"""
SubTrack Backend: CSV Export Service
=======================================

What:  Builds CSV downloads.
How:   Two flavours:
       - subscriptions_csv(): server-side export of the subscription table
       - decode_csv_payload(): the browser already rendered a CSV (filtered
         table view) and sends it base64-encoded; we only decode it so it
         can be returned as a real file download

Download headers:
    Content-Disposition carries both a plain `filename="..."` and the
    RFC 5987 `filename*=UTF-8''...` form. The filename is restricted to
    `[A-Za-z0-9_.-]`, anything else becomes `_`.
"""

import base64
import binascii
import csv
import logging
import re
from io import StringIO
from typing import Dict
from urllib.parse import quote

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from subtrack.exceptions import DatabaseError, ValidationError
from subtrack.models import Subscription

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "export.csv"
SUBSCRIPTIONS_FILENAME = "subscriptions_export.csv"

SUBSCRIPTION_COLUMNS = [
    "Name",
    "Category",
    "Cost",
    "Renewal Date",
    "Billing Cycle",
    "Payment Method",
    "Owner Name",
    "Owner Email",
]


def sanitize_filename(filename: str | None) -> str:
    if not filename:
        return DEFAULT_FILENAME
    return re.sub(r"[^a-zA-Z0-9_.-]", "_", filename)


def attachment_headers(filename: str) -> Dict[str, str]:
    """Headers for an uncached CSV attachment."""
    safe = sanitize_filename(filename)
    return {
        "Content-Disposition": f"attachment; filename=\"{safe}\"; filename*=UTF-8''{quote(safe)}",
        "Cache-Control": "no-store, no-cache, must-revalidate",
        "Pragma": "no-cache",
        "Expires": "0",
        "X-Content-Type-Options": "nosniff",
    }


class ExportService:

    def decode_csv_payload(self, data: str | None) -> str:
        """
        Decode base64 CSV text sent by the browser.

        Accepts standard and URL-safe alphabets, missing padding, and '+'
        turned into ' ' by query-string encoding.

        Raises:
            ValidationError: data missing, not base64, or not UTF-8 (→ 400)
        """
        if not data:
            raise ValidationError(message="Missing data parameter", field="data")

        normalized = data.strip().replace(" ", "+").replace("-", "+").replace("_", "/")
        normalized += "=" * (-len(normalized) % 4)
        try:
            return base64.b64decode(normalized, validate=True).decode("utf-8")
        except (binascii.Error, ValueError) as e:
            raise ValidationError(
                message="The data parameter is not valid base64-encoded UTF-8 text",
                field="data",
                context={"error_type": type(e).__name__},
            )

    def render_csv(self, columns: list, rows: list) -> str:
        buffer = StringIO()
        writer = csv.writer(buffer)
        writer.writerow(columns)
        for row in rows:
            writer.writerow(["" if value is None else value for value in row])
        return buffer.getvalue()

    async def subscriptions_csv(self, db: AsyncSession) -> str:
        try:
            result = await db.execute(
                select(Subscription).order_by(Subscription.cost.desc(), Subscription.name)
            )
            subscriptions = result.scalars().all()
        except Exception as e:
            logger.error("Database error exporting subscriptions: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not export subscriptions. Please try again.",
                context={"error_type": type(e).__name__},
            )

        rows = [
            [
                sub.name,
                sub.category,
                f"{float(sub.cost or 0):.2f}",
                sub.renewal_date.isoformat() if sub.renewal_date else None,
                sub.billing_cycle,
                sub.payment_method,
                sub.owner_name,
                sub.owner_email,
            ]
            for sub in subscriptions
        ]
        logger.info("Exporting %d subscriptions to CSV", len(rows))
        return self.render_csv(SUBSCRIPTION_COLUMNS, rows)


# ── Singleton Instance ────────────────────────────────────────────────────
export_service = ExportService()
