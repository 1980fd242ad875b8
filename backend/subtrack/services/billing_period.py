"""
SubTrack Backend: Billing Period Resolution
==============================================

What:  Decides which month a line item's spend belongs to, and derives a
       readable service name from a raw invoice description.
Who:   ReportService (monthly aggregation) and LineItemService (moving
       items between periods by their current month).

Billing month precedence (first match wins):
    1. billing_month_override   set by a user via /api/line-items/move-period
    2. period_start             stored at ingestion
    3. a period in the description ("8/1/2025-8/31/2025", "August 2025")
    4. invoice_date

Every billing month is normalised to the first day of its month.
"""

import re
from datetime import date
from typing import Optional, Tuple

from subtrack.exceptions import ValidationError

# US, dashed and ISO ranges, in that order of preference
_DATE_RANGES = (
    re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4})\s*[-–]\s*\n?\s*(\d{1,2})/(\d{1,2})/(\d{4})"),
    re.compile(r"(\d{1,2})-(\d{1,2})-(\d{4})\s*(?:to|[-–])\s*(\d{1,2})-(\d{1,2})-(\d{4})", re.I),
    re.compile(r"(\d{4})-(\d{2})-(\d{2})\s*(?:to|[-–])\s*(\d{4})-(\d{2})-(\d{2})", re.I),
)

_MONTH_NAME = re.compile(
    r"(January|February|March|April|May|June|July|August|September|October|November|December"
    r"|Jan|Feb|Mar|Apr|Jun|Jul|Aug|Sep|Oct|Nov|Dec)\s+(\d{4})",
    re.I,
)

_MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}

# Trailing "1/1/2025-1/31/2025" or "1/31/2025" stripped from service names
_TRAILING_RANGE = re.compile(r"\s+\d{1,2}/\d{1,2}/\d{2,4}-\d{1,2}/\d{1,2}/\d{2,4}\s*$")
_TRAILING_DATE = re.compile(r"\s+\d{1,2}/\d{1,2}/\d{2,4}\s*$")

_ISO_DAY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def month_start(value: date) -> date:
    return value.replace(day=1)


def parse_month(value: str, field: str) -> date:
    """Parse a yyyy-MM-dd request value (ValidationError → 400 otherwise)."""
    try:
        if not _ISO_DAY.match(value or ""):
            raise ValueError(value)
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError(
            message=f"Invalid {field} format. Use yyyy-MM-dd.",
            field=field,
            context={"value": value},
        )


def _range_dates(match: "re.Match[str]") -> Tuple[date, date]:
    parts = [int(g) for g in match.groups()]
    if len(match.group(1)) == 4:
        return date(parts[0], parts[1], parts[2]), date(parts[3], parts[4], parts[5])
    return date(parts[2], parts[0], parts[1]), date(parts[5], parts[3], parts[4])


def period_from_description(description: Optional[str]) -> Optional[date]:
    """First day of the service period mentioned in a description, if any."""
    if not description:
        return None

    for pattern in _DATE_RANGES:
        match = pattern.search(description)
        if match:
            try:
                start, _end = _range_dates(match)
            except ValueError:
                # 13/45/2025 and friends: try the next pattern
                continue
            return month_start(start)

    match = _MONTH_NAME.search(description)
    if match:
        return date(int(match.group(2)), _MONTHS[match.group(1)[:3].lower()], 1)
    return None


def billing_month(
    override: Optional[date],
    period_start: Optional[date],
    description: Optional[str],
    invoice_date: Optional[date],
) -> Optional[date]:
    if override:
        return month_start(override)
    if period_start:
        return month_start(period_start)
    parsed = period_from_description(description)
    if parsed:
        return parsed
    if invoice_date:
        return month_start(invoice_date)
    return None


def extract_service_name(description: Optional[str]) -> str:
    """'Adobe Acrobat Pro 8/1/2025-8/31/2025' → 'Adobe Acrobat Pro'."""
    if not description:
        return "Other"
    cleaned = _TRAILING_RANGE.sub("", description.strip())
    cleaned = _TRAILING_DATE.sub("", cleaned)
    cleaned = " ".join(cleaned.split())
    return cleaned or "Other"
