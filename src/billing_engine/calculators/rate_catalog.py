"""Read-only view of laborer rates and job names for billing."""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from billing_engine.calculators.types import JobInfo, LaborerRates
from billing_engine.errors import RateIntegrityError
from billing_engine.models import Job, Laborer


class RateCatalog:
    """Resolves laborer rates and job names within one tenant.

    The catalog never substitutes a default rate: a missing laborer, a
    missing job, or a laborer without a pay or charge rate raises
    RateIntegrityError, since billing around it would under-bill.
    """

    def __init__(
        self,
        laborers: dict[UUID, LaborerRates] | None = None,
        jobs: dict[UUID, JobInfo] | None = None,
        invalid_laborers: dict[UUID, str] | None = None,
    ):
        self._laborers = laborers or {}
        self._jobs = jobs or {}
        # laborer_id -> reason, for laborers that exist but cannot be billed
        self._invalid = invalid_laborers or {}

    @classmethod
    async def load(
        cls,
        session: AsyncSession,
        tenant_id: UUID,
        laborer_ids: Iterable[UUID],
        job_ids: Iterable[UUID],
    ) -> RateCatalog:
        """Bulk-load the laborers and jobs referenced by a set of timesheets."""
        laborer_ids = set(laborer_ids)
        job_ids = set(job_ids)

        laborers: dict[UUID, LaborerRates] = {}
        invalid: dict[UUID, str] = {}
        if laborer_ids:
            result = await session.execute(
                select(Laborer).where(
                    Laborer.tenant_id == tenant_id,
                    Laborer.laborer_id.in_(laborer_ids),
                )
            )
            for laborer in result.scalars().all():
                if laborer.pay_rate is None or laborer.charge_rate is None:
                    invalid[laborer.laborer_id] = "laborer has no pay or charge rate"
                    continue
                if laborer.pay_rate <= 0 or laborer.charge_rate <= 0:
                    invalid[laborer.laborer_id] = "laborer has a non-positive rate"
                    continue
                laborers[laborer.laborer_id] = LaborerRates(
                    laborer_id=laborer.laborer_id,
                    name=laborer.name,
                    pay_rate=laborer.pay_rate,
                    charge_rate=laborer.charge_rate,
                )

        jobs: dict[UUID, JobInfo] = {}
        if job_ids:
            result = await session.execute(
                select(Job).where(Job.tenant_id == tenant_id, Job.job_id.in_(job_ids))
            )
            for job in result.scalars().all():
                jobs[job.job_id] = JobInfo(
                    job_id=job.job_id, name=job.name, group_name=job.group_name
                )

        return cls(laborers, jobs, invalid)

    def rates_for(self, laborer_id: UUID) -> LaborerRates:
        """Get a laborer's rates, raising RateIntegrityError if unusable."""
        rates = self._laborers.get(laborer_id)
        if rates is not None:
            return rates
        reason = self._invalid.get(laborer_id, "laborer not found")
        raise RateIntegrityError(reason, laborer_id=laborer_id)

    def job(self, job_id: UUID) -> JobInfo:
        """Get a job's name and grouping, raising RateIntegrityError if missing."""
        job = self._jobs.get(job_id)
        if job is None:
            raise RateIntegrityError("job not found", job_id=job_id)
        return job
