"""
SubTrack Backend: Invoice Service Unit Tests
===============================================

What:  Amount sanitisation, logo URLs, service-name matching, and the
       upsert rule that keeps newer prices from being overwritten.
How:   Pure functions are called directly; DB-touching paths use the
       mock_db_session fixture.
"""

from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from subtrack.exceptions import DatabaseError, NotFoundError, ValidationError
from subtrack.models import SubscribedService
from subtrack.schemas.invoice import AnalysisLineItem, InvoiceAnalysis
from subtrack.services.invoice_service import (
    InvoiceService,
    _amounts_for,
    _service_name_for,
    generate_logo_url,
    normalize_service_name,
    sanitize_number,
)


class TestSanitizeNumber:

    @pytest.mark.parametrize("raw, expected", [
        ("$1,234.56", 1234.56),
        ("($ 63.02)", -63.02),
        ("(63.02)", -63.02),
        ("-63.02", -63.02),
        (" 42 ", 42.0),
        ("12.5 USD", 12.5),
        (17, 17.0),
        (3.25, 3.25),
    ])
    def test_parses_currency_strings(self, raw, expected):
        assert sanitize_number(raw) == pytest.approx(expected)

    @pytest.mark.parametrize("raw", [None, "", "abc", "N/A", True, float("nan"), {"x": 1}])
    def test_garbage_becomes_zero(self, raw):
        assert sanitize_number(raw) == 0.0


class TestGenerateLogoUrl:

    def test_uses_website_host(self):
        url = generate_logo_url("https://aws.amazon.com/billing", "Amazon Web Services")
        assert url == "https://www.google.com/s2/favicons?domain=aws.amazon.com&sz=128"

    def test_adds_scheme_to_bare_domain(self):
        assert "domain=slack.com" in generate_logo_url("slack.com", None)

    def test_falls_back_to_name(self):
        assert "domain=digitalocean.com" in generate_logo_url(None, "Digital Ocean")

    def test_empty_without_inputs(self):
        assert generate_logo_url(None, None) == ""


class TestLineItemHelpers:

    def test_normalize_service_name(self):
        assert normalize_service_name("Amazon EC2 (Compute)") == "amazonec2compute"

    def test_service_name_fallbacks(self):
        assert _service_name_for(AnalysisLineItem(service_name="S3", description="Storage")) == "S3"
        assert _service_name_for(AnalysisLineItem(description="Storage")) == "Storage"
        assert _service_name_for(AnalysisLineItem()) == "Unknown Service"

    def test_total_defaults_to_unit_price_times_quantity(self):
        quantity, unit_price, total = _amounts_for(
            AnalysisLineItem(quantity="3", unit_price="$10.00")
        )
        assert (quantity, unit_price, total) == (3.0, 10.0, 30.0)

    def test_quantity_defaults_to_one(self):
        quantity, _, total = _amounts_for(AnalysisLineItem(total_amount="($5)"))
        assert quantity == 1.0
        assert total == -5.0


class TestServiceMatching:

    def setup_method(self):
        self.service = InvoiceService()

    def _svc(self, name):
        return SubscribedService(id=uuid4(), subscription_id=uuid4(), name=name)

    def test_exact_normalized_match(self):
        ec2 = self._svc("Amazon EC2")
        assert self.service._match_service([self._svc("S3"), ec2], "amazon-ec2") is ec2

    def test_containment_match_for_long_names(self):
        compute = self._svc("Amazon Elastic Compute Cloud")
        found = self.service._match_service([compute], "Amazon Elastic Compute Cloud - Linux")
        assert found is compute

    def test_short_names_need_exact_match(self):
        assert self.service._match_service([self._svc("EC2 Linux")], "EC2") is None


class TestUpsertService:

    def setup_method(self):
        self.service = InvoiceService()

    @pytest.mark.asyncio
    async def test_older_invoice_keeps_newer_price(self, mock_db_session):
        existing = SubscribedService(
            id=uuid4(), subscription_id=uuid4(), name="Compute",
            current_quantity=1, current_unit_price=200.0, currency="USD",
            updated_at=datetime(2024, 3, 1, tzinfo=timezone.utc),
        )
        result = await self.service._upsert_service(
            mock_db_session, [existing], existing.subscription_id,
            "Compute", 150.0, date(2024, 2, 1), "USD",
        )
        assert result is existing
        assert existing.current_unit_price == 200.0

    @pytest.mark.asyncio
    async def test_newer_invoice_reprices_service(self, mock_db_session):
        existing = SubscribedService(
            id=uuid4(), subscription_id=uuid4(), name="Compute",
            current_quantity=4, current_unit_price=200.0, currency="USD",
            updated_at=datetime(2024, 3, 1),
        )
        await self.service._upsert_service(
            mock_db_session, [existing], existing.subscription_id,
            "Compute", 250.0, date(2024, 4, 1), "EUR",
        )
        assert existing.current_unit_price == 250.0
        assert existing.current_quantity == 1
        assert existing.currency == "EUR"
        assert existing.updated_at == datetime(2024, 4, 1, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_unknown_name_creates_service(self, mock_db_session):
        existing = []
        subscription_id = uuid4()
        created = await self.service._upsert_service(
            mock_db_session, existing, subscription_id, "Support", 99.0, date(2024, 1, 5), "USD",
        )
        mock_db_session.add.assert_called_once_with(created)
        assert created.current_unit_price == 99.0
        assert existing == [created]


class TestIngestValidation:

    def setup_method(self):
        self.service = InvoiceService()

    @pytest.mark.asyncio
    async def test_missing_vendor_is_rejected(self, mock_db_session):
        analysis = InvoiceAnalysis(invoice={"number": "INV-1"})
        with pytest.raises(ValidationError):
            await self.service.ingest_analysis(mock_db_session, analysis)
        mock_db_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_driver_failure_becomes_database_error(self, mock_db_session):
        mock_db_session.execute = AsyncMock(side_effect=RuntimeError("connection reset"))
        analysis = InvoiceAnalysis(vendor={"name": "Acme"}, invoice={"number": "INV-2"})
        with pytest.raises(DatabaseError) as exc_info:
            await self.service.ingest_analysis(mock_db_session, analysis)
        assert "connection reset" not in exc_info.value.message


class TestInvoiceCrud:

    def setup_method(self):
        self.service = InvoiceService()

    @pytest.mark.asyncio
    async def test_delete_missing_invoice(self, mock_db_session):
        mock_db_session.get.return_value = None
        with pytest.raises(NotFoundError):
            await self.service.delete_invoice(mock_db_session, uuid4())

    @pytest.mark.asyncio
    async def test_delete_reports_line_item_count(self, mock_db_session):
        mock_db_session.get.return_value = MagicMock()
        mock_result = MagicMock()
        mock_result.rowcount = 3
        mock_db_session.execute.return_value = mock_result

        result = await self.service.delete_invoice(mock_db_session, uuid4())

        assert result.deleted_counts == {"lineItems": 3}
        mock_db_session.delete.assert_awaited_once()
