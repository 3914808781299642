"""Tests for timesheet aggregation."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import update

from billing_engine.calculators.aggregator import TimesheetAggregator, month_bounds
from billing_engine.calculators.rate_catalog import RateCatalog
from billing_engine.calculators.types import JobInfo, LaborerRates
from billing_engine.errors import InvoiceValidationError, RateIntegrityError
from billing_engine.models import Laborer

from conftest import make_entry


class TestMonthBounds:
    def test_leap_february(self):
        assert month_bounds(2024, 2) == (date(2024, 2, 1), date(2024, 2, 29))

    @pytest.mark.parametrize("month", [0, 13])
    def test_invalid_month(self, month):
        with pytest.raises(InvoiceValidationError):
            month_bounds(2024, month)


class TestAggregate:
    """Aggregation against the database."""

    async def test_groups_by_job_sorted_by_name(self, session, tenant, january_timesheets):
        lines = await TimesheetAggregator(session).aggregate(tenant.tenant_id, 2024, 1)

        assert [line.job_name for line in lines] == ["Carpenter", "Welder"]
        carpenter, welder = lines

        assert welder.total_regular_hours == Decimal("24")
        assert welder.total_overtime_hours == Decimal("6")
        assert welder.charge_amount == Decimal("660.00")
        # 3 x (8 x 12 + 2 x 12 x 1.5)
        assert welder.cost_amount == Decimal("396.00")
        assert welder.laborer_count == 1

        assert carpenter.charge_amount == Decimal("400.00")
        assert carpenter.cost_amount == Decimal("240.00")

    async def test_empty_period(self, session, tenant, january_timesheets):
        assert await TimesheetAggregator(session).aggregate(tenant.tenant_id, 2023, 12) == []

    async def test_other_tenant_sees_nothing(self, session, other_tenant, january_timesheets):
        assert await TimesheetAggregator(session).aggregate(other_tenant.tenant_id, 2024, 1) == []

    async def test_per_entry_multiplier(self, session, tenant, jobs, laborers):
        session.add_all(
            [
                make_entry(tenant, laborers["ali"], jobs["welder"], date(2024, 3, 1), "0", "2", "1.5"),
                make_entry(tenant, laborers["ali"], jobs["welder"], date(2024, 3, 2), "0", "2", "2"),
            ]
        )
        await session.commit()

        [line] = await TimesheetAggregator(session).aggregate(tenant.tenant_id, 2024, 3)
        # 2 x 20 x 1.5 + 2 x 20 x 2
        assert line.charge_amount == Decimal("140.00")

    async def test_laborers_on_same_job_bill_at_own_rates(self, session, tenant, jobs, laborers):
        session.add_all(
            [
                make_entry(tenant, laborers["ali"], jobs["welder"], date(2024, 4, 1), "10"),
                make_entry(tenant, laborers["omar"], jobs["welder"], date(2024, 4, 1), "10"),
            ]
        )
        await session.commit()

        [line] = await TimesheetAggregator(session).aggregate(tenant.tenant_id, 2024, 4)
        assert line.charge_amount == Decimal("450.00")
        assert line.laborer_count == 2

    async def test_missing_rate_fails_whole_period(self, session, tenant, jobs, laborers, january_timesheets):
        await session.execute(
            update(Laborer)
            .where(Laborer.laborer_id == laborers["omar"].laborer_id)
            .values(charge_rate=None)
        )
        await session.commit()

        with pytest.raises(RateIntegrityError) as exc_info:
            await TimesheetAggregator(session).aggregate(tenant.tenant_id, 2024, 1)

        assert exc_info.value.context["laborer_id"] == str(laborers["omar"].laborer_id)
        assert "work_date" in exc_info.value.context

    @pytest.mark.parametrize("column", ["charge_rate", "pay_rate"])
    async def test_zero_rate_is_not_billed(self, session, tenant, jobs, laborers, column):
        ali_id = laborers["ali"].laborer_id
        session.add(make_entry(tenant, laborers["ali"], jobs["welder"], date(2024, 1, 8), "8"))
        await session.execute(
            update(Laborer).where(Laborer.laborer_id == ali_id).values({column: Decimal("0")})
        )
        await session.commit()

        with pytest.raises(RateIntegrityError) as exc_info:
            await TimesheetAggregator(session).aggregate(tenant.tenant_id, 2024, 1)

        assert exc_info.value.context["laborer_id"] == str(ali_id)


class TestAggregateEntries:
    """Pure aggregation with an in-memory catalog."""

    def test_unknown_job_is_integrity_fault(self):
        laborer_id, job_id = uuid4(), uuid4()
        catalog = RateCatalog(
            laborers={laborer_id: LaborerRates(laborer_id, "Ali", Decimal("10"), Decimal("20"))},
            jobs={},
        )
        entry = type(
            "Row",
            (),
            {
                "laborer_id": laborer_id,
                "job_id": job_id,
                "work_date": date(2024, 1, 2),
                "regular_hours": Decimal("8"),
                "overtime_hours": Decimal("0"),
                "overtime_multiplier": Decimal("1.5"),
            },
        )()

        with pytest.raises(RateIntegrityError) as exc_info:
            TimesheetAggregator.aggregate_entries([entry], catalog)
        assert exc_info.value.reason == "job not found"

    def test_rounds_once_per_job(self):
        laborer_id, job_id = uuid4(), uuid4()
        catalog = RateCatalog(
            laborers={laborer_id: LaborerRates(laborer_id, "Ali", Decimal("0"), Decimal("0.333"))},
            jobs={job_id: JobInfo(job_id, "Helper")},
        )
        rows = [
            type(
                "Row",
                (),
                {
                    "laborer_id": laborer_id,
                    "job_id": job_id,
                    "work_date": date(2024, 1, day),
                    "regular_hours": Decimal("1"),
                    "overtime_hours": Decimal("0"),
                    "overtime_multiplier": Decimal("1.5"),
                },
            )()
            for day in (1, 2, 3)
        ]

        [line] = TimesheetAggregator.aggregate_entries(rows, catalog)
        # 0.999 once, not 0.33 three times
        assert line.charge_amount == Decimal("1.00")
