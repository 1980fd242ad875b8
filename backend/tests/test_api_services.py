"""
SubTrack Backend: Service API Contract Tests
===============================================

What:  /api/services: read, partial edit, confirm-first delete, and
       merging duplicate services.
"""

from datetime import date
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from subtrack.models import Invoice, LineItem, SubscribedService, Subscription


async def _seed_services(session):
    sub = Subscription(name="AWS Master Agreement", cost=0)
    session.add(sub)
    await session.flush()
    ec2 = SubscribedService(subscription_id=sub.id, name="EC2", current_quantity=2,
                            current_unit_price=50)
    amazon_ec2 = SubscribedService(subscription_id=sub.id, name="Amazon EC2")
    invoice = Invoice(subscription_id=sub.id, invoice_number="A-1",
                      invoice_date=date(2025, 6, 1), total_amount=175)
    session.add_all([ec2, amazon_ec2, invoice])
    await session.flush()
    session.add_all([
        LineItem(invoice_id=invoice.id, service_id=ec2.id, description="EC2 us-east-1", total_amount=100),
        LineItem(invoice_id=invoice.id, service_id=ec2.id, description="EC2 eu-west-1", total_amount=25.5),
        LineItem(invoice_id=invoice.id, service_id=amazon_ec2.id, description="Amazon EC2", total_amount=49.5),
    ])
    await session.commit()
    return ec2, amazon_ec2


async def _items_of(session, service_id):
    result = await session.execute(
        select(func.count()).select_from(LineItem).where(LineItem.service_id == service_id)
    )
    return result.scalar()


class TestServiceReadUpdate:

    @pytest.mark.asyncio
    async def test_get_and_partial_update(self, test_client, user_headers, db_session):
        ec2, _ = await _seed_services(db_session)

        fetched = await test_client.get(f"/api/services/{ec2.id}", headers=user_headers)
        assert fetched.status_code == 200
        assert fetched.json()["name"] == "EC2"
        assert fetched.json()["currentQuantity"] == 2

        updated = await test_client.put(
            f"/api/services/{ec2.id}",
            json={"name": "Amazon EC2 Compute", "currentUnitPrice": 55, "currency": None},
            headers=user_headers,
        )
        assert updated.status_code == 200, updated.text
        body = updated.json()
        assert body["name"] == "Amazon EC2 Compute"
        assert body["currentUnitPrice"] == 55
        assert body["currentQuantity"] == 2
        assert body["currency"] == "USD"

    @pytest.mark.asyncio
    async def test_unknown_service_is_404(self, test_client, user_headers):
        missing = uuid4()
        assert (await test_client.get(f"/api/services/{missing}", headers=user_headers)).status_code == 404
        response = await test_client.put(
            f"/api/services/{missing}", json={"name": "Ghost"}, headers=user_headers
        )
        assert response.status_code == 404


class TestServiceDelete:

    @pytest.mark.asyncio
    async def test_preview_then_confirm(self, test_client, admin_headers, db_session):
        ec2, amazon_ec2 = await _seed_services(db_session)

        preview = await test_client.delete(f"/api/services/{ec2.id}", headers=admin_headers)
        assert preview.status_code == 200
        assert preview.json() == {
            "requiresConfirmation": True,
            "impact": {"lineItems": 2},
            "message": "This will delete 2 line item(s) linked to this service.",
        }
        assert await _items_of(db_session, ec2.id) == 2

        confirmed = await test_client.delete(
            f"/api/services/{ec2.id}", params={"confirm": "true"}, headers=admin_headers
        )
        assert confirmed.json() == {
            "success": True,
            "message": "Service and related line items deleted",
            "deletedLineItems": 2,
        }
        remaining = (await db_session.execute(select(SubscribedService.id))).scalars().all()
        assert remaining == [amazon_ec2.id]
        assert (await db_session.execute(select(func.count()).select_from(LineItem))).scalar() == 1

    @pytest.mark.asyncio
    async def test_requires_admin(self, test_client, user_headers, db_session):
        ec2, _ = await _seed_services(db_session)
        response = await test_client.delete(
            f"/api/services/{ec2.id}", params={"confirm": "true"}, headers=user_headers
        )
        assert response.status_code == 403
        assert await _items_of(db_session, ec2.id) == 2


class TestServiceMerge:

    @pytest.mark.asyncio
    async def test_preview(self, test_client, admin_headers, db_session):
        ec2, _ = await _seed_services(db_session)

        response = await test_client.get(
            "/api/services/merge", params={"sourceServiceId": str(ec2.id)}, headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json() == {"lineItems": 2, "totalAmount": 125.5}

    @pytest.mark.asyncio
    async def test_merge_moves_line_items(self, foreign_keys, test_client, admin_headers, db_session):
        ec2, amazon_ec2 = await _seed_services(db_session)

        response = await test_client.post(
            "/api/services/merge",
            json={"sourceServiceId": str(ec2.id), "targetServiceId": str(amazon_ec2.id)},
            headers=admin_headers,
        )

        assert response.status_code == 200, response.text
        assert response.json() == {
            "success": True,
            "message": 'Successfully merged "EC2" into "Amazon EC2"',
            "movedLineItems": 2,
        }
        assert await _items_of(db_session, amazon_ec2.id) == 3
        remaining = (await db_session.execute(select(SubscribedService.id))).scalars().all()
        assert remaining == [amazon_ec2.id]

    @pytest.mark.asyncio
    async def test_self_merge_and_unknown(self, test_client, admin_headers, db_session):
        ec2, _ = await _seed_services(db_session)

        same = await test_client.post(
            "/api/services/merge",
            json={"sourceServiceId": str(ec2.id), "targetServiceId": str(ec2.id)},
            headers=admin_headers,
        )
        unknown = await test_client.post(
            "/api/services/merge",
            json={"sourceServiceId": str(ec2.id), "targetServiceId": str(uuid4())},
            headers=admin_headers,
        )
        preview = await test_client.get(
            "/api/services/merge", params={"sourceServiceId": str(uuid4())}, headers=admin_headers
        )

        assert same.status_code == 400
        assert same.json()["message"] == "Cannot merge service into itself"
        assert unknown.status_code == 404
        assert preview.status_code == 404
        assert await _items_of(db_session, ec2.id) == 2

    @pytest.mark.asyncio
    async def test_requires_admin(self, test_client, user_headers, db_session):
        ec2, amazon_ec2 = await _seed_services(db_session)
        response = await test_client.post(
            "/api/services/merge",
            json={"sourceServiceId": str(ec2.id), "targetServiceId": str(amazon_ec2.id)},
            headers=user_headers,
        )
        assert response.status_code == 403
