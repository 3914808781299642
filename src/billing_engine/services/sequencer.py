"""Per-tenant, per-month sequential invoice numbering."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from billing_engine.errors import InvoiceValidationError
from billing_engine.models import InvoiceSequence


class InvoiceNumberSequencer:
    """Issues invoice numbers 1, 2, 3, ... within each (tenant, year, month).

    Key invariants:
    1. One counter row per bucket, created idempotently (ON CONFLICT DO NOTHING)
    2. The counter advances with a single UPDATE ... RETURNING, which takes the
       row lock and holds it until the surrounding transaction ends, so two
       callers can never read the same value
    3. The reservation is part of the caller's transaction: a rollback
       returns the number, a commit consumes it
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def next_number(self, tenant_id: UUID, year: int, month: int) -> int:
        """Reserve and return the next number for a bucket."""
        if not 1 <= month <= 12:
            raise InvoiceValidationError(
                f"Month must be between 1 and 12, got {month}", {"month": month}
            )

        await self._ensure_bucket(tenant_id, year, month)

        result = await self.session.execute(
            update(InvoiceSequence)
            .where(
                InvoiceSequence.tenant_id == tenant_id,
                InvoiceSequence.year == year,
                InvoiceSequence.month == month,
            )
            .values(last_number=InvoiceSequence.last_number + 1)
            .returning(InvoiceSequence.last_number)
            .execution_options(synchronize_session=False)
        )
        return int(result.scalar_one())

    async def peek(self, tenant_id: UUID, year: int, month: int) -> int:
        """Last number issued in a bucket (0 if none)."""
        result = await self.session.execute(
            select(InvoiceSequence.last_number).where(
                InvoiceSequence.tenant_id == tenant_id,
                InvoiceSequence.year == year,
                InvoiceSequence.month == month,
            )
        )
        return int(result.scalar_one_or_none() or 0)

    async def _ensure_bucket(self, tenant_id: UUID, year: int, month: int) -> None:
        """Create the bucket's counter row if it does not exist yet."""
        dialect = self.session.get_bind().dialect.name
        insert = pg_insert if dialect == "postgresql" else sqlite_insert
        stmt = (
            insert(InvoiceSequence)
            .values(tenant_id=tenant_id, year=year, month=month, last_number=0)
            .on_conflict_do_nothing(index_elements=["tenant_id", "year", "month"])
        )
        await self.session.execute(stmt)
