"""Timesheet aggregation into per-job billable lines."""

from __future__ import annotations

import calendar
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from billing_engine.calculators.rate_catalog import RateCatalog
from billing_engine.calculators.types import BillableLine
from billing_engine.calculators.vat_calculator import VatCalculator
from billing_engine.errors import InvoiceValidationError, RateIntegrityError
from billing_engine.models import TimesheetEntry

logger = logging.getLogger(__name__)


class TimesheetRow(Protocol):
    laborer_id: UUID
    job_id: UUID
    work_date: date
    regular_hours: Decimal
    overtime_hours: Decimal
    overtime_multiplier: Decimal


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last day of a calendar month."""
    if not 1 <= month <= 12:
        raise InvoiceValidationError(
            f"Month must be between 1 and 12, got {month}", {"month": month}
        )
    if not 1 <= year <= 9999:
        raise InvoiceValidationError(f"Invalid year {year}", {"year": year})
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


@dataclass
class _JobAccumulator:
    regular_hours: Decimal = Decimal("0")
    overtime_hours: Decimal = Decimal("0")
    cost: Decimal = Decimal("0")
    charge: Decimal = Decimal("0")
    laborers: set[UUID] = field(default_factory=set)


class TimesheetAggregator:
    """Groups a tenant's monthly timesheets into per-job billable lines.

    Cost and charge are accumulated per laborer-day at full precision,
    because overtime carries a per-entry multiplier and laborers on the same
    job bill at their own rates:

        cost   += regular * pay_rate    + overtime * pay_rate    * multiplier
        charge += regular * charge_rate + overtime * charge_rate * multiplier

    Rounding to cents happens once per job total. Output is ordered by job
    name (then job id) so invoice layout is reproducible.

    Entries are assumed already unique per (laborer, date); the timesheet
    CRUD layer enforces that.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def aggregate(self, tenant_id: UUID, year: int, month: int) -> list[BillableLine]:
        """Aggregate a tenant's timesheets for one calendar month.

        Returns an empty list when the month has no timesheet rows.

        Raises:
            RateIntegrityError: If any entry references a missing laborer,
                job, or rate. No partial result is returned.
        """
        period_start, period_end = month_bounds(year, month)
        entries = await self._get_entries(tenant_id, period_start, period_end)
        if not entries:
            return []

        catalog = await RateCatalog.load(
            self.session,
            tenant_id,
            laborer_ids=(e.laborer_id for e in entries),
            job_ids=(e.job_id for e in entries),
        )
        try:
            return self.aggregate_entries(entries, catalog)
        except RateIntegrityError as exc:
            logger.error(
                "Aggregation aborted for tenant %s period %04d-%02d: %s (%s)",
                tenant_id,
                year,
                month,
                exc.reason,
                exc.context,
            )
            raise

    @staticmethod
    def aggregate_entries(
        entries: Iterable[TimesheetRow], catalog: RateCatalog
    ) -> list[BillableLine]:
        """Pure aggregation over already-loaded entries."""
        groups: dict[UUID, _JobAccumulator] = {}
        job_names: dict[UUID, str] = {}

        for entry in entries:
            try:
                rates = catalog.rates_for(entry.laborer_id)
                job = catalog.job(entry.job_id)
            except RateIntegrityError as exc:
                exc.context.update(
                    {
                        "laborer_id": str(entry.laborer_id),
                        "job_id": str(entry.job_id),
                        "work_date": entry.work_date.isoformat(),
                    }
                )
                raise

            regular = Decimal(entry.regular_hours)
            overtime = Decimal(entry.overtime_hours)
            multiplier = Decimal(entry.overtime_multiplier)

            acc = groups.setdefault(job.job_id, _JobAccumulator())
            job_names[job.job_id] = job.name
            acc.regular_hours += regular
            acc.overtime_hours += overtime
            acc.cost += regular * rates.pay_rate + overtime * rates.pay_rate * multiplier
            acc.charge += regular * rates.charge_rate + overtime * rates.charge_rate * multiplier
            acc.laborers.add(entry.laborer_id)

        lines = [
            BillableLine(
                job_id=job_id,
                job_name=job_names[job_id],
                total_regular_hours=acc.regular_hours,
                total_overtime_hours=acc.overtime_hours,
                cost_amount=VatCalculator.round_to_cents(acc.cost),
                charge_amount=VatCalculator.round_to_cents(acc.charge),
                laborer_count=len(acc.laborers),
            )
            for job_id, acc in groups.items()
        ]
        lines.sort(key=lambda line: (line.job_name, str(line.job_id)))
        return lines

    async def _get_entries(
        self, tenant_id: UUID, period_start: date, period_end: date
    ) -> list[TimesheetEntry]:
        result = await self.session.execute(
            select(TimesheetEntry).where(
                TimesheetEntry.tenant_id == tenant_id,
                TimesheetEntry.work_date >= period_start,
                TimesheetEntry.work_date <= period_end,
            )
        )
        return list(result.scalars().all())
