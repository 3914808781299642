"""Labor and client billing reports over timesheet ranges."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from billing_engine.calculators.vat_calculator import VatCalculator
from billing_engine.errors import InvoiceValidationError, RateIntegrityError
from billing_engine.models import Job, Laborer, TimesheetEntry

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass(frozen=True)
class LaborReportRow:
    """Cost side of one timesheet entry."""

    work_date: date
    laborer_name: str
    laborer_id_number: str
    job_name: str
    regular_hours: Decimal
    overtime_hours: Decimal
    overtime_multiplier: Decimal
    pay_rate: Decimal
    regular_pay: Decimal
    overtime_pay: Decimal
    notes: str = ""

    @property
    def total_hours(self) -> Decimal:
        return self.regular_hours + self.overtime_hours

    @property
    def total_pay(self) -> Decimal:
        return self.regular_pay + self.overtime_pay


@dataclass(frozen=True)
class ClientReportRow:
    """Charge side of one timesheet entry, with cost and profit."""

    work_date: date
    laborer_name: str
    laborer_id_number: str
    job_name: str
    regular_hours: Decimal
    overtime_hours: Decimal
    overtime_multiplier: Decimal
    charge_rate: Decimal
    regular_charge: Decimal
    overtime_charge: Decimal
    total_cost: Decimal
    notes: str = ""

    @property
    def total_hours(self) -> Decimal:
        return self.regular_hours + self.overtime_hours

    @property
    def total_charge(self) -> Decimal:
        return self.regular_charge + self.overtime_charge

    @property
    def profit(self) -> Decimal:
        return self.total_charge - self.total_cost


@dataclass
class LaborReport:
    start_date: date
    end_date: date
    rows: list[LaborReportRow] = field(default_factory=list)

    @property
    def summary(self) -> dict[str, Decimal | int]:
        return {
            "total_regular_hours": sum((r.regular_hours for r in self.rows), ZERO),
            "total_overtime_hours": sum((r.overtime_hours for r in self.rows), ZERO),
            "total_hours": sum((r.total_hours for r in self.rows), ZERO),
            "total_regular_pay": sum((r.regular_pay for r in self.rows), ZERO),
            "total_overtime_pay": sum((r.overtime_pay for r in self.rows), ZERO),
            "total_pay": sum((r.total_pay for r in self.rows), ZERO),
            "record_count": len(self.rows),
        }


@dataclass
class ClientReport:
    start_date: date
    end_date: date
    rows: list[ClientReportRow] = field(default_factory=list)

    @property
    def summary(self) -> dict[str, Decimal | int]:
        return {
            "total_regular_hours": sum((r.regular_hours for r in self.rows), ZERO),
            "total_overtime_hours": sum((r.overtime_hours for r in self.rows), ZERO),
            "total_hours": sum((r.total_hours for r in self.rows), ZERO),
            "total_regular_charge": sum((r.regular_charge for r in self.rows), ZERO),
            "total_overtime_charge": sum((r.overtime_charge for r in self.rows), ZERO),
            "total_charge": sum((r.total_charge for r in self.rows), ZERO),
            "total_cost": sum((r.total_cost for r in self.rows), ZERO),
            "total_profit": sum((r.profit for r in self.rows), ZERO),
            "record_count": len(self.rows),
        }


class ReportService:
    """Per-entry cost and charge reports for a date range.

    Amounts on each row are rounded to cents, and summaries add up the
    rounded rows so exported sheets foot. Rows are ordered by date, then
    laborer name.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def labor_report(
        self,
        tenant_id: UUID,
        start_date: date,
        end_date: date,
        laborer_id: UUID | None = None,
        job_id: UUID | None = None,
    ) -> LaborReport:
        """Cost report at laborer pay rates."""
        report = LaborReport(start_date=start_date, end_date=end_date)
        for entry, laborer, job in await self._fetch(
            tenant_id, start_date, end_date, laborer_id, job_id
        ):
            pay_rate = self._rate(entry, laborer, "pay_rate")
            report.rows.append(
                LaborReportRow(
                    work_date=entry.work_date,
                    laborer_name=laborer.name,
                    laborer_id_number=laborer.id_number,
                    job_name=job.name,
                    regular_hours=entry.regular_hours,
                    overtime_hours=entry.overtime_hours,
                    overtime_multiplier=entry.overtime_multiplier,
                    pay_rate=pay_rate,
                    regular_pay=VatCalculator.round_to_cents(entry.regular_hours * pay_rate),
                    overtime_pay=VatCalculator.round_to_cents(
                        entry.overtime_hours * pay_rate * entry.overtime_multiplier
                    ),
                    notes=entry.notes or "",
                )
            )

        logger.info(
            "Labor report for tenant %s %s..%s: %d rows",
            tenant_id,
            start_date,
            end_date,
            len(report.rows),
        )
        return report

    async def client_report(
        self,
        tenant_id: UUID,
        start_date: date,
        end_date: date,
        laborer_id: UUID | None = None,
        job_id: UUID | None = None,
    ) -> ClientReport:
        """Charge report at laborer charge rates, with cost and profit."""
        report = ClientReport(start_date=start_date, end_date=end_date)
        for entry, laborer, job in await self._fetch(
            tenant_id, start_date, end_date, laborer_id, job_id
        ):
            pay_rate = self._rate(entry, laborer, "pay_rate")
            charge_rate = self._rate(entry, laborer, "charge_rate")
            weighted_hours = entry.regular_hours + entry.overtime_hours * entry.overtime_multiplier
            report.rows.append(
                ClientReportRow(
                    work_date=entry.work_date,
                    laborer_name=laborer.name,
                    laborer_id_number=laborer.id_number,
                    job_name=job.name,
                    regular_hours=entry.regular_hours,
                    overtime_hours=entry.overtime_hours,
                    overtime_multiplier=entry.overtime_multiplier,
                    charge_rate=charge_rate,
                    regular_charge=VatCalculator.round_to_cents(
                        entry.regular_hours * charge_rate
                    ),
                    overtime_charge=VatCalculator.round_to_cents(
                        entry.overtime_hours * charge_rate * entry.overtime_multiplier
                    ),
                    total_cost=VatCalculator.round_to_cents(weighted_hours * pay_rate),
                    notes=entry.notes or "",
                )
            )

        logger.info(
            "Client report for tenant %s %s..%s: %d rows",
            tenant_id,
            start_date,
            end_date,
            len(report.rows),
        )
        return report

    async def _fetch(
        self,
        tenant_id: UUID,
        start_date: date,
        end_date: date,
        laborer_id: UUID | None,
        job_id: UUID | None,
    ) -> list[tuple[TimesheetEntry, Laborer, Job]]:
        if end_date < start_date:
            raise InvoiceValidationError(
                "End date cannot be before the start date",
                {"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
            )

        query = (
            select(TimesheetEntry, Laborer, Job)
            .join(Laborer, TimesheetEntry.laborer_id == Laborer.laborer_id)
            .join(Job, TimesheetEntry.job_id == Job.job_id)
            .where(
                TimesheetEntry.tenant_id == tenant_id,
                TimesheetEntry.work_date >= start_date,
                TimesheetEntry.work_date <= end_date,
            )
        )
        if laborer_id:
            query = query.where(TimesheetEntry.laborer_id == laborer_id)
        if job_id:
            query = query.where(TimesheetEntry.job_id == job_id)
        query = query.order_by(TimesheetEntry.work_date, Laborer.name)

        result = await self.session.execute(query)
        return [tuple(row) for row in result.all()]

    @staticmethod
    def _rate(entry: TimesheetEntry, laborer: Laborer, attr: str) -> Decimal:
        rate = getattr(laborer, attr)
        if rate is None or rate <= 0:
            raise RateIntegrityError(
                f"laborer has no valid {attr.replace('_', ' ')}",
                laborer_id=laborer.laborer_id,
                work_date=entry.work_date,
            )
        return rate
