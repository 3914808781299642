"""Schema sanity checks: the database itself enforces invoice uniqueness."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from billing_engine.models import Invoice


def raw_invoice(tenant, number: int, source_month: int | None, status: str = "DRAFT") -> Invoice:
    return Invoice(
        tenant_id=tenant.tenant_id,
        invoice_number=number,
        number_year=2024,
        number_month=2,
        source_year=2024 if source_month else None,
        source_month=source_month,
        customer_name="Gulf Construction",
        customer_address="King Fahd Road 12",
        customer_city="Riyadh",
        issue_date=datetime(2024, 2, 5, tzinfo=timezone.utc),
        due_date=date(2024, 3, 6),
        subtotal=Decimal("100.00"),
        vat_amount=Decimal("15.00"),
        total_amount=Decimal("115.00"),
        status=status,
        qr_payload="",
    )


class TestInvoiceIndexes:
    async def test_partial_unique_index_exists(self, session):
        result = await session.execute(
            text(
                "SELECT sql FROM sqlite_master "
                "WHERE type = 'index' AND name = 'invoice_tenant_source_period_unique'"
            )
        )
        ddl = result.scalar_one()
        assert "UNIQUE" in ddl
        assert "WHERE" in ddl

    async def test_second_open_monthly_invoice_rejected(self, session, tenant):
        session.add(raw_invoice(tenant, 1, source_month=1))
        await session.commit()

        session.add(raw_invoice(tenant, 2, source_month=1))
        with pytest.raises(IntegrityError):
            await session.flush()
        await session.rollback()

    async def test_cancelled_monthly_invoice_does_not_block(self, session, tenant):
        session.add(raw_invoice(tenant, 1, source_month=1, status="CANCELLED"))
        session.add(raw_invoice(tenant, 2, source_month=1))
        await session.flush()

    async def test_duplicate_number_rejected(self, session, tenant):
        session.add(raw_invoice(tenant, 1, source_month=None))
        await session.commit()

        session.add(raw_invoice(tenant, 1, source_month=None))
        with pytest.raises(IntegrityError):
            await session.flush()
        await session.rollback()

    async def test_unknown_status_rejected(self, session, tenant):
        session.add(raw_invoice(tenant, 1, source_month=None, status="OVERDUE"))
        with pytest.raises(IntegrityError):
            await session.flush()
        await session.rollback()
