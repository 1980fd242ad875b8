"""
SubTrack Backend: Vendor API Contract Tests
==============================================

What:  Spend roll-ups and the confirm-first cascade delete.
"""

from datetime import date
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from subtrack.models import Assignment, Invoice, LineItem, SubscribedService, Subscription, Vendor


async def _seed_vendor(session):
    vendor = Vendor(name="Datadog")
    other = Vendor(name="Atlassian")
    session.add_all([vendor, other])
    await session.flush()
    sub = Subscription(name="Datadog Pro", vendor_id=vendor.id, cost=300)
    session.add(sub)
    await session.flush()
    service = SubscribedService(subscription_id=sub.id, name="APM")
    invoice = Invoice(vendor_id=vendor.id, subscription_id=sub.id, invoice_number="DD-1",
                      invoice_date=date(2024, 4, 1), total_amount=300)
    # Billed by the vendor but not filed under its subscription
    stray = Invoice(vendor_id=vendor.id, invoice_number="DD-2",
                    invoice_date=date(2024, 5, 1), total_amount=20)
    session.add_all([service, invoice, stray])
    await session.flush()
    session.add_all([
        LineItem(invoice_id=invoice.id, service_id=service.id, description="APM hosts", total_amount=300),
        LineItem(invoice_id=stray.id, description="Overage", total_amount=20),
    ])
    await session.commit()
    return vendor, other


class TestVendorReads:

    @pytest.mark.asyncio
    async def test_list_has_rollups(self, test_client, user_headers, db_session):
        await _seed_vendor(db_session)

        response = await test_client.get("/api/vendors", headers=user_headers)

        assert response.status_code == 200
        atlassian, datadog = response.json()
        assert atlassian["name"] == "Atlassian"
        assert atlassian["subscriptionCount"] == 0
        assert atlassian["totalSpend"] == 0
        assert datadog["subscriptionCount"] == 1
        assert datadog["invoiceCount"] == 2
        assert datadog["totalSpend"] == 320

    @pytest.mark.asyncio
    async def test_update_and_404(self, test_client, user_headers, db_session):
        vendor, _ = await _seed_vendor(db_session)

        response = await test_client.put(
            f"/api/vendors/{vendor.id}", json={"category": "Monitoring"}, headers=user_headers
        )
        assert response.status_code == 200
        assert response.json()["category"] == "Monitoring"
        assert response.json()["name"] == "Datadog"

        missing = await test_client.get(f"/api/vendors/{uuid4()}", headers=user_headers)
        assert missing.status_code == 404


class TestVendorDelete:

    @pytest.mark.asyncio
    async def test_requires_admin(self, test_client, user_headers, db_session):
        vendor, _ = await _seed_vendor(db_session)
        response = await test_client.delete(f"/api/vendors/{vendor.id}", headers=user_headers)
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_preview_changes_nothing(self, test_client, admin_headers, db_session):
        vendor, _ = await _seed_vendor(db_session)

        response = await test_client.delete(f"/api/vendors/{vendor.id}", headers=admin_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["requiresConfirmation"] is True
        assert body["impact"] == {
            "subscriptions": 1, "invoices": 2, "lineItems": 2, "services": 1, "assignments": 0,
        }
        assert body["message"] == (
            "This will delete 1 subscription(s), 1 service(s), 2 invoice(s), and 2 line item(s)."
        )
        assert (await db_session.execute(select(func.count(Vendor.id)))).scalar() == 2

    @pytest.mark.asyncio
    async def test_confirmed_delete_cascades(self, test_client, admin_headers, db_session):
        vendor, other = await _seed_vendor(db_session)

        response = await test_client.delete(
            f"/api/vendors/{vendor.id}", params={"confirm": "true"}, headers=admin_headers
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Vendor and all related data deleted"
        assert body["deletedCounts"]["invoices"] == 2
        assert body["deletedCounts"]["lineItems"] == 2
        remaining = (await db_session.execute(select(Vendor.id))).scalars().all()
        assert remaining == [other.id]
        for model in (Subscription, SubscribedService, Invoice, LineItem):
            count = (await db_session.execute(select(func.count()).select_from(model))).scalar()
            assert count == 0, model.__name__

    @pytest.mark.asyncio
    async def test_unknown_vendor_is_404(self, test_client, admin_headers):
        response = await test_client.delete(f"/api/vendors/{uuid4()}", headers=admin_headers)
        assert response.status_code == 404


class TestVendorMerge:

    @pytest.mark.asyncio
    async def test_preview_counts(self, test_client, admin_headers, db_session):
        vendor, _ = await _seed_vendor(db_session)

        response = await test_client.get(
            "/api/vendors/merge", params={"sourceVendorId": str(vendor.id)}, headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json() == {"subscriptions": 1, "invoices": 2, "services": 1, "lineItems": 2}

    @pytest.mark.asyncio
    async def test_merge_into_vendor_without_subscriptions(
        self, foreign_keys, test_client, admin_headers, db_session
    ):
        vendor, other = await _seed_vendor(db_session)
        sub_id = (await db_session.execute(select(Subscription.id))).scalar_one()
        db_session.add(Assignment(subscription_id=sub_id))
        await db_session.commit()

        response = await test_client.post(
            "/api/vendors/merge",
            json={"sourceVendorId": str(vendor.id), "targetVendorId": str(other.id),
                  "newName": "Atlassian Cloud"},
            headers=admin_headers,
        )

        assert response.status_code == 200, response.text
        body = response.json()
        assert body["message"] == 'Successfully merged "Datadog" into "Atlassian Cloud"'
        assert body["merged"] == {"subscriptions": 1, "invoices": 2, "services": 1}

        vendors = (await db_session.execute(select(Vendor.id, Vendor.name))).all()
        assert [tuple(v) for v in vendors] == [(other.id, "Atlassian Cloud")]
        master_id, master_name, master_vendor = (await db_session.execute(
            select(Subscription.id, Subscription.name, Subscription.vendor_id)
        )).one()
        assert master_name == "Atlassian Cloud Master Agreement"
        assert master_vendor == other.id
        invoices = (await db_session.execute(select(Invoice.vendor_id, Invoice.subscription_id))).all()
        assert {tuple(i) for i in invoices} == {(other.id, master_id)}
        service_parent = (await db_session.execute(select(SubscribedService.subscription_id))).scalar_one()
        assert service_parent == master_id
        assert (await db_session.execute(select(func.count()).select_from(LineItem))).scalar() == 2
        assert (await db_session.execute(select(func.count()).select_from(Assignment))).scalar() == 0

    @pytest.mark.asyncio
    async def test_merge_reuses_newest_target_subscription(self, test_client, admin_headers, db_session):
        vendor, other = await _seed_vendor(db_session)
        jira = Subscription(name="Jira", vendor_id=other.id, cost=80)
        db_session.add(jira)
        await db_session.commit()

        response = await test_client.post(
            "/api/vendors/merge",
            json={"sourceVendorId": str(vendor.id), "targetVendorId": str(other.id)},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["message"] == 'Successfully merged "Datadog" into "Atlassian"'
        names = (await db_session.execute(select(Subscription.name))).scalars().all()
        assert names == ["Jira"]
        invoice_subs = (await db_session.execute(select(Invoice.subscription_id))).scalars().all()
        assert set(invoice_subs) == {jira.id}

    @pytest.mark.asyncio
    async def test_self_merge_is_400(self, test_client, admin_headers, db_session):
        vendor, _ = await _seed_vendor(db_session)

        response = await test_client.post(
            "/api/vendors/merge",
            json={"sourceVendorId": str(vendor.id), "targetVendorId": str(vendor.id)},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Cannot merge vendor into itself"

    @pytest.mark.asyncio
    async def test_unknown_vendors_are_404(self, test_client, admin_headers, db_session):
        vendor, _ = await _seed_vendor(db_session)

        preview = await test_client.get(
            "/api/vendors/merge", params={"sourceVendorId": str(uuid4())}, headers=admin_headers
        )
        merge = await test_client.post(
            "/api/vendors/merge",
            json={"sourceVendorId": str(vendor.id), "targetVendorId": str(uuid4())},
            headers=admin_headers,
        )

        assert preview.status_code == 404
        assert merge.status_code == 404
        assert (await db_session.execute(select(func.count(Vendor.id)))).scalar() == 2

    @pytest.mark.asyncio
    async def test_requires_admin(self, test_client, user_headers, db_session):
        vendor, other = await _seed_vendor(db_session)

        preview = await test_client.get(
            "/api/vendors/merge", params={"sourceVendorId": str(vendor.id)}, headers=user_headers
        )
        merge = await test_client.post(
            "/api/vendors/merge",
            json={"sourceVendorId": str(vendor.id), "targetVendorId": str(other.id)},
            headers=user_headers,
        )

        assert preview.status_code == 403
        assert merge.status_code == 403
