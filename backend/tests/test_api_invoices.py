"""
SubTrack Backend: Invoice & Line Item API Contract Tests
===========================================================

What:  Invoice ingestion (vendor/agreement creation, service aggregation,
       idempotent re-import), invoice CRUD, /api/line-items and moving
       line items between billing months.
"""

from datetime import date
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from subtrack.models import Invoice, LineItem, SubscribedService, Subscription, Vendor


def _analysis(number="INV-1001", total="$1,250.00", items=None, **invoice):
    return {
        "analysis": {
            "vendor": {"name": "Amazon Web Services", "website": "https://aws.amazon.com"},
            "invoice": {"number": number, "date": "2024-06-01", "total_amount": total,
                        "currency": "usd", **invoice},
            "line_items": items if items is not None else [
                {"description": "EC2 us-east-1", "service_name": "EC2", "total_amount": "$800.00"},
                {"description": "EC2 eu-west-1", "service_name": "EC2", "total_amount": "$300.00"},
                {"description": "S3 storage", "service_name": "S3", "quantity": "2",
                 "unit_price": "$75.00"},
            ],
        }
    }


async def _count(session, model):
    return (await session.execute(select(func.count()).select_from(model))).scalar()


class TestIngestion:

    @pytest.mark.asyncio
    async def test_first_import_creates_everything(self, test_client, user_headers, db_session):
        response = await test_client.post("/api/invoices", json=_analysis(), headers=user_headers)

        assert response.status_code == 200, response.text
        body = response.json()
        assert body["success"] is True
        invoice = body["invoice"]
        assert invoice["invoiceNumber"] == "INV-1001"
        assert invoice["totalAmount"] == 1250.0
        assert invoice["currency"] == "USD"
        assert invoice["status"] == "Paid"
        assert invoice["vendorName"] == "Amazon Web Services"

        vendor = (await db_session.execute(select(Vendor))).scalar_one()
        assert vendor.logo_url == "https://www.google.com/s2/favicons?domain=aws.amazon.com&sz=128"

        agreement = (await db_session.execute(select(Subscription))).scalar_one()
        assert agreement.name == "Amazon Web Services Master Agreement"
        assert agreement.payment_method == "Invoice"

        services = {
            s.name: s.current_unit_price
            for s in (await db_session.execute(select(SubscribedService))).scalars()
        }
        assert services == {"EC2": 1100.0, "S3": 150.0}
        assert await _count(db_session, LineItem) == 3

    @pytest.mark.asyncio
    async def test_reimport_updates_instead_of_duplicating(self, test_client, user_headers, db_session):
        first = await test_client.post("/api/invoices", json=_analysis(), headers=user_headers)
        second = await test_client.post(
            "/api/invoices",
            json=_analysis(total="$900.00", items=[
                {"description": "EC2", "service_name": "EC2", "total_amount": "900"},
            ]),
            headers=user_headers,
        )

        assert second.status_code == 200
        assert second.json()["invoice"]["id"] == first.json()["invoice"]["id"]
        assert second.json()["invoice"]["totalAmount"] == 900.0
        assert await _count(db_session, Invoice) == 1
        assert await _count(db_session, Vendor) == 1
        assert await _count(db_session, Subscription) == 1
        assert await _count(db_session, LineItem) == 1
        services = (await db_session.execute(select(SubscribedService))).scalars().all()
        assert [(s.name, s.current_unit_price) for s in services] == [("EC2", 900.0)]

    @pytest.mark.asyncio
    async def test_existing_vendor_matched_case_insensitively(self, test_client, user_headers, db_session):
        db_session.add(Vendor(name="amazon web services"))
        await db_session.commit()

        response = await test_client.post("/api/invoices", json=_analysis(), headers=user_headers)

        assert response.status_code == 200
        assert await _count(db_session, Vendor) == 1
        vendor = (await db_session.execute(select(Vendor))).scalar_one()
        await db_session.refresh(vendor)
        assert vendor.logo_url is not None

    @pytest.mark.asyncio
    async def test_missing_vendor_is_400(self, test_client, user_headers):
        payload = {"analysis": {"invoice": {"number": "X-1"}}}
        response = await test_client.post("/api/invoices", json=payload, headers=user_headers)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_missing_analysis_is_400(self, test_client, user_headers):
        response = await test_client.post("/api/invoices", json={}, headers=user_headers)
        assert response.status_code == 400


class TestInvoiceCrud:

    @pytest.mark.asyncio
    async def test_list_alias_get_update_delete(self, test_client, user_headers, db_session):
        created = (await test_client.post(
            "/api/invoices", json=_analysis(), headers=user_headers
        )).json()["invoice"]
        invoice_id = created["id"]

        for path in ("/api/invoices", "/api/invoices/list"):
            listing = await test_client.get(path, headers=user_headers)
            assert [i["id"] for i in listing.json()] == [invoice_id]

        fetched = await test_client.get(f"/api/invoices/{invoice_id}", headers=user_headers)
        assert fetched.json()["invoiceDate"] == "2024-06-01"

        updated = await test_client.put(
            f"/api/invoices/{invoice_id}",
            json={"status": "Overdue", "dueDate": "2024-07-01"},
            headers=user_headers,
        )
        assert updated.status_code == 200
        assert updated.json()["status"] == "Overdue"
        assert updated.json()["dueDate"] == "2024-07-01"
        assert updated.json()["totalAmount"] == 1250.0

        lines = await test_client.get(f"/api/invoices/{invoice_id}/line-items", headers=user_headers)
        assert {line["serviceName"] for line in lines.json()} == {"EC2", "S3"}

        deleted = await test_client.delete(f"/api/invoices/{invoice_id}", headers=user_headers)
        assert deleted.status_code == 200
        assert deleted.json() == {"success": True, "deletedCounts": {"lineItems": 3}}
        assert await _count(db_session, Invoice) == 0

    @pytest.mark.asyncio
    async def test_invalid_status_is_400(self, test_client, user_headers):
        response = await test_client.put(
            f"/api/invoices/{uuid4()}", json={"status": "Lost"}, headers=user_headers
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_invoice_is_404(self, test_client, user_headers):
        for method, path in (
            ("GET", f"/api/invoices/{uuid4()}"),
            ("DELETE", f"/api/invoices/{uuid4()}"),
            ("GET", f"/api/invoices/{uuid4()}/line-items"),
        ):
            response = await test_client.request(method, path, headers=user_headers)
            assert response.status_code == 404, path


class TestLineItems:

    @pytest.mark.asyncio
    async def test_line_item_lifecycle(self, test_client, user_headers):
        invoice = (await test_client.post(
            "/api/invoices", json=_analysis(items=[]), headers=user_headers
        )).json()["invoice"]

        created = await test_client.post(
            "/api/line-items",
            json={"invoiceId": invoice["id"], "description": "Support plan", "totalAmount": 49},
            headers=user_headers,
        )
        assert created.status_code == 201
        item = created.json()
        assert item["invoiceNumber"] == "INV-1001"
        assert item["quantity"] == 1

        updated = await test_client.put(
            f"/api/line-items/{item['id']}", json={"totalAmount": 59}, headers=user_headers
        )
        assert updated.json()["totalAmount"] == 59
        assert updated.json()["description"] == "Support plan"

        fetched = await test_client.get(f"/api/line-items/{item['id']}", headers=user_headers)
        assert fetched.status_code == 200

        deleted = await test_client.delete(f"/api/line-items/{item['id']}", headers=user_headers)
        assert deleted.json() == {"success": True, "message": "Line item deleted"}

        gone = await test_client.get(f"/api/line-items/{item['id']}", headers=user_headers)
        assert gone.status_code == 404

    @pytest.mark.asyncio
    async def test_unknown_invoice_is_404(self, test_client, user_headers):
        response = await test_client.post(
            "/api/line-items",
            json={"invoiceId": str(uuid4()), "description": "Orphan"},
            headers=user_headers,
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_description_required(self, test_client, user_headers):
        response = await test_client.post(
            "/api/line-items", json={"invoiceId": str(uuid4())}, headers=user_headers
        )
        assert response.status_code == 400


async def _seed_periods(session):
    invoice = Invoice(invoice_number="AD-9", invoice_date=date(2025, 9, 3), total_amount=90)
    other = Invoice(invoice_number="AD-10", invoice_date=date(2025, 10, 2), total_amount=30)
    session.add_all([invoice, other])
    await session.flush()
    august = LineItem(invoice_id=invoice.id, description="Adobe Acrobat Pro 8/1/2025-8/31/2025",
                      total_amount=30)
    september = LineItem(invoice_id=invoice.id, description="Adobe Acrobat Pro", total_amount=30)
    stock = LineItem(invoice_id=invoice.id, description="Adobe Stock", total_amount=30)
    october = LineItem(invoice_id=other.id, description="adobe acrobat pro", total_amount=30)
    session.add_all([august, september, stock, october])
    await session.commit()
    return invoice, other, (august, september, stock, october)


async def _overrides(session):
    result = await session.execute(select(LineItem.id, LineItem.billing_month_override))
    return dict(result.all())


class TestMovePeriod:

    @pytest.mark.asyncio
    async def test_line_item_level(self, test_client, user_headers, db_session):
        _, _, (august, *_rest) = await _seed_periods(db_session)

        response = await test_client.post(
            "/api/line-items/move-period",
            json={"level": "lineItem", "targetMonth": "2025-07-19",
                  "filter": {"lineItemId": str(august.id)}},
            headers=user_headers,
        )

        assert response.status_code == 200, response.text
        assert response.json() == {
            "success": True, "level": "lineItem", "targetMonth": "2025-07-01",
            "affectedCount": 1, "affectedIds": [str(august.id)],
        }
        overrides = await _overrides(db_session)
        assert overrides[august.id] == date(2025, 7, 1)
        assert sum(1 for value in overrides.values() if value) == 1

    @pytest.mark.asyncio
    async def test_invoice_level(self, test_client, user_headers, db_session):
        invoice, other, items = await _seed_periods(db_session)

        response = await test_client.post(
            "/api/line-items/move-period",
            json={"level": "invoice", "targetMonth": "2025-08-01",
                  "filter": {"invoiceId": str(invoice.id)}},
            headers=user_headers,
        )

        assert response.json()["affectedCount"] == 3
        overrides = await _overrides(db_session)
        assert [overrides[item.id] for item in items] == [date(2025, 8, 1)] * 3 + [None]

    @pytest.mark.asyncio
    async def test_service_level_matches_description(self, test_client, user_headers, db_session):
        _, _, (august, september, stock, october) = await _seed_periods(db_session)

        response = await test_client.post(
            "/api/line-items/move-period",
            json={"level": "service", "targetMonth": "2025-11-01",
                  "filter": {"serviceName": "Acrobat Pro"}},
            headers=user_headers,
        )

        body = response.json()
        assert body["affectedCount"] == 3
        assert set(body["affectedIds"]) == {str(august.id), str(september.id), str(october.id)}
        assert (await _overrides(db_session))[stock.id] is None

    @pytest.mark.asyncio
    async def test_service_level_source_month(self, test_client, user_headers, db_session):
        _, _, (august, september, _, october) = await _seed_periods(db_session)

        response = await test_client.post(
            "/api/line-items/move-period",
            json={"level": "service", "targetMonth": "2025-12-01",
                  "filter": {"serviceName": "acrobat", "sourceMonth": "2025-09-01"}},
            headers=user_headers,
        )

        # The August item names its own period, the October one is on a later invoice
        assert response.json()["affectedIds"] == [str(september.id)]

    @pytest.mark.asyncio
    async def test_bad_requests(self, test_client, user_headers, db_session):
        invoice, _, _ = await _seed_periods(db_session)

        cases = [
            ({"level": "invoice", "targetMonth": "2025-08", "filter": {"invoiceId": str(invoice.id)}},
             "Invalid targetMonth format. Use yyyy-MM-dd."),
            ({"level": "lineItem", "targetMonth": "2025-08-01"},
             "lineItemId is required for lineItem level"),
            ({"level": "invoice", "targetMonth": "2025-08-01", "filter": {}},
             "invoiceId is required for invoice level"),
            ({"level": "service", "targetMonth": "2025-08-01", "filter": {"serviceName": "  "}},
             "serviceName is required for service level"),
            ({"level": "service", "targetMonth": "2025-08-01",
              "filter": {"serviceName": "Adobe", "sourceMonth": "Sept"}},
             "Invalid sourceMonth format. Use yyyy-MM-dd."),
        ]
        for payload, message in cases:
            response = await test_client.post(
                "/api/line-items/move-period", json=payload, headers=user_headers
            )
            assert response.status_code == 400, payload
            assert response.json()["message"] == message

        unknown_level = await test_client.post(
            "/api/line-items/move-period",
            json={"level": "vendor", "targetMonth": "2025-08-01"},
            headers=user_headers,
        )
        assert unknown_level.status_code == 400
        assert all(value is None for value in (await _overrides(db_session)).values())

    @pytest.mark.asyncio
    async def test_unknown_targets_are_404(self, test_client, user_headers):
        for payload in (
            {"level": "lineItem", "targetMonth": "2025-08-01", "filter": {"lineItemId": str(uuid4())}},
            {"level": "invoice", "targetMonth": "2025-08-01", "filter": {"invoiceId": str(uuid4())}},
        ):
            response = await test_client.post(
                "/api/line-items/move-period", json=payload, headers=user_headers
            )
            assert response.status_code == 404, payload

    @pytest.mark.asyncio
    async def test_clear_override(self, test_client, user_headers, db_session):
        invoice, _, (august, september, _, _) = await _seed_periods(db_session)
        await test_client.post(
            "/api/line-items/move-period",
            json={"level": "invoice", "targetMonth": "2025-01-01",
                  "filter": {"invoiceId": str(invoice.id)}},
            headers=user_headers,
        )

        single = await test_client.delete(
            "/api/line-items/move-period", params={"lineItemId": str(august.id)}, headers=user_headers
        )
        assert single.json() == {"success": True, "cleared": 1}
        assert (await _overrides(db_session))[august.id] is None
        assert (await _overrides(db_session))[september.id] == date(2025, 1, 1)

        whole = await test_client.delete(
            "/api/line-items/move-period", params={"invoiceId": str(invoice.id)}, headers=user_headers
        )
        assert whole.json()["cleared"] == 3
        assert all(value is None for value in (await _overrides(db_session)).values())

    @pytest.mark.asyncio
    async def test_clear_needs_a_target(self, test_client, user_headers):
        missing = await test_client.delete("/api/line-items/move-period", headers=user_headers)
        assert missing.status_code == 400
        assert missing.json()["message"] == "Either lineItemId or invoiceId is required"

        unknown = await test_client.delete(
            "/api/line-items/move-period", params={"lineItemId": str(uuid4())}, headers=user_headers
        )
        assert unknown.status_code == 404
