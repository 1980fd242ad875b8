"""
SubTrack Backend: Subscription Service Unit Tests
====================================================

What:  Bulk import validation, partial updates, and error wrapping.
How:   Mock DB sessions only; the cascade itself is exercised against a
       real schema in test_api_subscriptions.py.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from subtrack.exceptions import DatabaseError, NotFoundError, ValidationError
from subtrack.models import Subscription
from subtrack.schemas.subscription import SubscriptionUpdate
from subtrack.services.subscription_service import SubscriptionService


def _subscription(**overrides):
    values = dict(
        id=uuid4(), vendor_id=None, name="Figma", category="Design", logo=None,
        renewal_date=None, cost=45.0, billing_cycle="Monthly",
        payment_method="Credit Card", payment_details=None, auto_renewal=True,
        owner_name="Dana", owner_email="dana@example.com", seats_total=10,
        seats_used=4, status="Active", description=None,
        agreement_type="Subscription", line_items=[],
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )
    values.update(overrides)
    return Subscription(**values)


class TestBulkCreate:

    def setup_method(self):
        self.service = SubscriptionService()

    @pytest.mark.asyncio
    async def test_rejects_non_array_body(self, mock_db_session):
        with pytest.raises(ValidationError) as exc_info:
            await self.service.bulk_create(mock_db_session, {"name": "Slack"})
        assert "array" in exc_info.value.message
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_one_invalid_item_rejects_batch(self, mock_db_session):
        payload = [{"name": "Slack"}, {"name": "Zoom", "billingCycle": "Weekly"}]
        with pytest.raises(ValidationError) as exc_info:
            await self.service.bulk_create(mock_db_session, payload)
        errors = exc_info.value.context["errors"]
        assert errors and errors[0]["loc"][0] == "billingCycle"
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_creates_every_item(self, mock_db_session):
        payload = [
            {"name": "Slack", "cost": 120, "owner": {"name": "Sam", "email": "sam@example.com"}},
            {"name": "Zoom", "seats": {"total": 5, "used": 2}},
        ]
        result = await self.service.bulk_create(mock_db_session, payload)

        assert result.count == 2
        added = [call.args[0] for call in mock_db_session.add.call_args_list]
        assert [sub.name for sub in added] == ["Slack", "Zoom"]
        assert added[0].owner_email == "sam@example.com"
        assert added[1].seats_total == 5
        mock_db_session.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_flush_failure_becomes_database_error(self, mock_db_session):
        mock_db_session.flush = AsyncMock(side_effect=RuntimeError("deadlock detected"))
        with pytest.raises(DatabaseError):
            await self.service.bulk_create(mock_db_session, [{"name": "Slack"}])


class TestUpdate:

    def setup_method(self):
        self.service = SubscriptionService()

    @pytest.mark.asyncio
    async def test_missing_subscription(self, mock_db_session):
        mock_db_session.get.return_value = None
        with pytest.raises(NotFoundError):
            await self.service.update_subscription(
                mock_db_session, uuid4(), SubscriptionUpdate(cost=10)
            )

    @pytest.mark.asyncio
    async def test_only_sent_fields_change(self, mock_db_session):
        sub = _subscription()
        mock_db_session.get.return_value = sub
        payload = SubscriptionUpdate.model_validate({"cost": 60, "owner": {"name": "Lee"}})

        result = await self.service.update_subscription(mock_db_session, sub.id, payload)

        assert result.cost == 60
        assert result.owner.name == "Lee"
        assert result.owner.email == "dana@example.com"
        assert result.seats.total == 10
        assert result.billing_cycle == "Monthly"

    @pytest.mark.asyncio
    async def test_null_required_field_is_ignored(self, mock_db_session):
        sub = _subscription()
        mock_db_session.get.return_value = sub
        payload = SubscriptionUpdate.model_validate({"name": None, "category": None})

        result = await self.service.update_subscription(mock_db_session, sub.id, payload)

        assert result.name == "Figma"
        assert result.category is None


class TestReads:

    def setup_method(self):
        self.service = SubscriptionService()

    @pytest.mark.asyncio
    async def test_get_missing_subscription(self, mock_db_session):
        mock_result = MagicMock()
        mock_result.first.return_value = None
        mock_db_session.execute.return_value = mock_result

        with pytest.raises(NotFoundError):
            await self.service.get_subscription(mock_db_session, uuid4())

    @pytest.mark.asyncio
    async def test_vendor_logo_wins_over_own_logo(self, mock_db_session):
        sub = _subscription(logo="https://example.com/own.png")
        mock_result = MagicMock()
        mock_result.first.return_value = (sub, "Figma Inc", "https://example.com/vendor.png")
        mock_db_session.execute.return_value = mock_result

        result = await self.service.get_subscription(mock_db_session, sub.id)

        assert result.vendor_name == "Figma Inc"
        assert result.logo == "https://example.com/vendor.png"

    @pytest.mark.asyncio
    async def test_query_failure_becomes_database_error(self, mock_db_session):
        mock_db_session.execute = AsyncMock(side_effect=RuntimeError("SSL connection closed"))
        with pytest.raises(DatabaseError) as exc_info:
            await self.service.list_subscriptions(mock_db_session)
        assert "SSL" not in exc_info.value.message

    @pytest.mark.asyncio
    async def test_empty_tree_delete_touches_nothing(self, mock_db_session):
        counts = await self.service.delete_subscription_tree(mock_db_session, [])
        assert counts["subscriptions"] == 0
        mock_db_session.execute.assert_not_awaited()
