"""
SubTrack Backend: Report API Contract Tests
==============================================

What:  /api/reports/aggregated: billing month resolution, vendor and
       service grouping, and date validation.
"""

from datetime import date

import pytest

from subtrack.models import Invoice, LineItem, SubscribedService, Subscription, Vendor


async def _seed_spend(session):
    aws = Vendor(name="AWS")
    zoom = Vendor(name="Zoom")
    session.add_all([aws, zoom])
    await session.flush()
    zoom_plan = Subscription(name="Zoom", vendor_id=zoom.id, cost=60)
    session.add(zoom_plan)
    await session.flush()
    meetings = SubscribedService(subscription_id=zoom_plan.id, name="Zoom Meetings")
    aws_july = Invoice(vendor_id=aws.id, invoice_number="A-7", invoice_date=date(2025, 7, 5),
                       total_amount=175)
    zoom_june = Invoice(vendor_id=zoom.id, subscription_id=zoom_plan.id, invoice_number="Z-6",
                        invoice_date=date(2025, 6, 20), total_amount=60)
    unfiled = Invoice(invoice_number="M-1", invoice_date=date(2025, 7, 1), total_amount=7)
    session.add_all([meetings, aws_july, zoom_june, unfiled])
    await session.flush()
    session.add_all([
        LineItem(invoice_id=aws_july.id, description="EC2 usage", total_amount=100),
        LineItem(invoice_id=aws_july.id, description="S3 June 2025", total_amount=40),
        LineItem(invoice_id=aws_july.id, description="Support", total_amount=10,
                 period_start=date(2025, 5, 10)),
        LineItem(invoice_id=aws_july.id, description="EC2 credits", total_amount=20,
                 billing_month_override=date(2025, 6, 15)),
        LineItem(invoice_id=aws_july.id, description="Reserved instances", total_amount=5,
                 billing_month_override=date(2025, 1, 1)),
        LineItem(invoice_id=aws_july.id, description="Free tier", total_amount=0),
        LineItem(invoice_id=zoom_june.id, service_id=meetings.id,
                 description="Zoom Business 6/1/2025-6/30/2025", total_amount=60),
        LineItem(invoice_id=unfiled.id, description="Misc", total_amount=7),
    ])
    await session.commit()


def _params(**extra):
    return {"startDate": "2025-05-01", "endDate": "2025-07-31", **extra}


class TestAggregatedReport:

    @pytest.mark.asyncio
    async def test_grouped_by_vendor(self, test_client, user_headers, db_session):
        await _seed_spend(db_session)

        response = await test_client.get("/api/reports/aggregated", params=_params(),
                                         headers=user_headers)

        assert response.status_code == 200, response.text
        body = response.json()
        assert body["monthlyTrend"] == [
            {"month": "2025-05", "label": "May 25", "AWS": 10, "total": 10},
            {"month": "2025-06", "label": "Jun 25", "AWS": 60, "Zoom": 60, "total": 120},
            {"month": "2025-07", "label": "Jul 25", "AWS": 100, "Unknown Vendor": 7, "total": 107},
        ]
        assert body["stackKeys"] == ["AWS", "Zoom", "Unknown Vendor"]
        assert body["grandTotal"] == 237
        aws = body["breakdown"][0]
        assert aws == {"name": "AWS", "cost": 170, "percentage": round(170 / 237 * 100, 2),
                       "colorIndex": 0}
        assert body["filters"]["availableMonths"] == ["2025-07", "2025-06", "2025-05"]
        assert body["filters"]["availableVendors"] == ["AWS", "Unknown Vendor", "Zoom"]
        assert body["meta"]["groupBy"] == "vendor"
        assert body["meta"]["lineItemCount"] == 6
        assert body["meta"]["totalLineItems"] == 8

    @pytest.mark.asyncio
    async def test_grouped_by_service(self, test_client, user_headers, db_session):
        await _seed_spend(db_session)

        response = await test_client.get(
            "/api/reports/aggregated", params=_params(groupBy="service"), headers=user_headers
        )

        assert response.status_code == 200
        body = response.json()
        assert body["stackKeys"] == [
            "EC2 usage", "Zoom Meetings", "S3 June 2025", "EC2 credits", "Support", "Misc",
        ]
        june = body["monthlyTrend"][1]
        assert june["Zoom Meetings"] == 60
        assert june["EC2 credits"] == 20
        assert "Zoom Meetings" in body["filters"]["availableServices"]

    @pytest.mark.asyncio
    async def test_empty_range(self, test_client, user_headers, db_session):
        await _seed_spend(db_session)

        response = await test_client.get(
            "/api/reports/aggregated",
            params={"startDate": "2023-01-01", "endDate": "2023-12-31"},
            headers=user_headers,
        )

        body = response.json()
        assert body["monthlyTrend"] == []
        assert body["breakdown"] == []
        assert body["grandTotal"] == 0

    @pytest.mark.asyncio
    async def test_dates_required(self, test_client, user_headers):
        response = await test_client.get(
            "/api/reports/aggregated", params={"startDate": "2025-01-01"}, headers=user_headers
        )
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_start_after_end_is_400(self, test_client, user_headers):
        response = await test_client.get(
            "/api/reports/aggregated",
            params={"startDate": "2025-08-01", "endDate": "2025-07-01"},
            headers=user_headers,
        )
        assert response.status_code == 400
        assert response.json()["message"] == "startDate must not be after endDate"

    @pytest.mark.asyncio
    async def test_requires_auth(self, test_client):
        response = await test_client.get("/api/reports/aggregated", params=_params())
        assert response.status_code == 401
