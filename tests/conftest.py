"""Pytest fixtures for billing engine tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from billing_engine.config import Settings
from billing_engine.database import create_schema, get_engine, make_session_factory
from billing_engine.models import Job, Laborer, Tenant, TimesheetEntry

# File-backed SQLite so concurrent tests can open independent connections.
# For advisory-lock behaviour, point DATABASE_URL at a Postgres test database.

FIXED_NOW = datetime(2024, 2, 5, 9, 30, 0, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return FIXED_NOW


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings pointing at a per-test database file."""
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'billing.db'}",
        engine_version="test",
        host="127.0.0.1",
        port=8000,
        debug=False,
        log_level="DEBUG",
        default_vat_rate=Decimal("15"),
        default_payment_term_days=30,
    )


@pytest_asyncio.fixture
async def engine(settings: Settings) -> AsyncGenerator[AsyncEngine, None]:
    """Create test database engine with the schema in place."""
    engine = get_engine(settings.database_url)
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return make_session_factory(engine)


@pytest_asyncio.fixture
async def session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


# ============================================================================
# Reference data
# ============================================================================


@pytest_asyncio.fixture
async def tenant(session: AsyncSession) -> Tenant:
    """Tenant with an explicit 15% VAT rate and 30-day terms."""
    tenant = Tenant(
        tenant_id=uuid4(),
        name="Acme Labor Co",
        vat_number="300000000000003",
        vat_rate_percent=Decimal("15"),
        payment_term_days=30,
    )
    session.add(tenant)
    await session.commit()
    return tenant


@pytest_asyncio.fixture
async def other_tenant(session: AsyncSession) -> Tenant:
    tenant = Tenant(
        tenant_id=uuid4(),
        name="Beta Staffing",
        vat_number="311111111111113",
    )
    session.add(tenant)
    await session.commit()
    return tenant


@pytest_asyncio.fixture
async def jobs(session: AsyncSession, tenant: Tenant) -> dict[str, Job]:
    """Two jobs, named so that sorting by name is not insertion order."""
    welder = Job(job_id=uuid4(), tenant_id=tenant.tenant_id, name="Welder")
    carpenter = Job(job_id=uuid4(), tenant_id=tenant.tenant_id, name="Carpenter")
    session.add_all([welder, carpenter])
    await session.commit()
    return {"welder": welder, "carpenter": carpenter}


@pytest_asyncio.fixture
async def laborers(
    session: AsyncSession, tenant: Tenant, jobs: dict[str, Job]
) -> dict[str, Laborer]:
    ali = Laborer(
        laborer_id=uuid4(),
        tenant_id=tenant.tenant_id,
        name="Ali",
        id_number="2000000001",
        pay_rate=Decimal("12"),
        charge_rate=Decimal("20"),
        job_id=jobs["welder"].job_id,
    )
    omar = Laborer(
        laborer_id=uuid4(),
        tenant_id=tenant.tenant_id,
        name="Omar",
        id_number="2000000002",
        pay_rate=Decimal("15"),
        charge_rate=Decimal("25"),
        job_id=jobs["carpenter"].job_id,
    )
    session.add_all([ali, omar])
    await session.commit()
    return {"ali": ali, "omar": omar}


def make_entry(
    tenant: Tenant,
    laborer: Laborer,
    job: Job,
    work_date: date,
    regular: str = "8",
    overtime: str = "0",
    multiplier: str = "1.5",
) -> TimesheetEntry:
    return TimesheetEntry(
        tenant_id=tenant.tenant_id,
        laborer_id=laborer.laborer_id,
        job_id=job.job_id,
        work_date=work_date,
        regular_hours=Decimal(regular),
        overtime_hours=Decimal(overtime),
        overtime_multiplier=Decimal(multiplier),
    )


@pytest_asyncio.fixture
async def january_timesheets(
    session: AsyncSession,
    tenant: Tenant,
    jobs: dict[str, Job],
    laborers: dict[str, Laborer],
) -> list[TimesheetEntry]:
    """Ali: 3 x (8h + 2h OT @1.5) welding at 20/h = 660.00 charge.

    Omar: 2 x 8h carpentry at 25/h = 400.00 charge.
    """
    entries = [
        make_entry(tenant, laborers["ali"], jobs["welder"], date(2024, 1, d), "8", "2")
        for d in (8, 9, 10)
    ] + [
        make_entry(tenant, laborers["omar"], jobs["carpenter"], date(2024, 1, d), "8")
        for d in (15, 16)
    ]
    # Outside the period; must be ignored
    entries.append(
        make_entry(tenant, laborers["ali"], jobs["welder"], date(2024, 2, 1), "8")
    )
    session.add_all(entries)
    await session.commit()
    return entries
