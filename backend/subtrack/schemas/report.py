"""
SubTrack Backend: Report Schemas
===================================

What:  Shape of GET /api/reports/aggregated, the data behind the Reports
       page's stacked monthly chart and spend breakdown.

monthlyTrend points are open-ended dicts: besides `month`, `label` and
`total`, every group key (vendor or service name) present that month
becomes its own property, which is what the chart library stacks on.
"""

from datetime import date
from typing import Any, Dict, List, Literal

from pydantic import Field

from subtrack.schemas.common import CamelModel

GroupBy = Literal["vendor", "service"]


class BreakdownEntry(CamelModel):
    name: str
    cost: float
    percentage: float = Field(description="Share of the grand total, 0-100")
    color_index: int = Field(description="Rank by spend, used to pick a chart colour")


class ReportFilters(CamelModel):
    available_months: List[str] = Field(description="YYYY-MM, newest first")
    available_vendors: List[str]
    available_services: List[str]


class ReportMeta(CamelModel):
    start_date: date
    end_date: date
    group_by: GroupBy
    line_item_count: int = Field(description="Line items that fell inside the range")
    total_line_items: int = Field(description="Line items examined")


class AggregatedReport(CamelModel):
    monthly_trend: List[Dict[str, Any]]
    breakdown: List[BreakdownEntry]
    stack_keys: List[str] = Field(description="Group keys ordered by total spend")
    grand_total: float
    filters: ReportFilters
    meta: ReportMeta
