"""Job, laborer, and timesheet models.

These rows are owned by the HR/timesheet CRUD layer. The billing engine only
reads them.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from billing_engine.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from billing_engine.models.tenant import Tenant


class Job(Base, TimestampMixin):
    """Job a laborer is billed under."""

    __tablename__ = "job"

    job_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    tenant_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("tenant.tenant_id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    group_name: Mapped[str | None] = mapped_column(String, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (UniqueConstraint("tenant_id", "name", name="job_tenant_name_unique"),)

    tenant: Mapped[Tenant] = relationship()


class Laborer(Base, TimestampMixin):
    """Laborer with a pay rate (cost) and a charge rate (client price)."""

    __tablename__ = "laborer"

    laborer_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    tenant_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("tenant.tenant_id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    id_number: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    # Rates may be cleared by HR while renegotiating; billing refuses to run then
    pay_rate: Mapped[Decimal | None] = mapped_column(Numeric(12, 4), nullable=True)
    charge_rate: Mapped[Decimal | None] = mapped_column(Numeric(12, 4), nullable=True)
    job_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("job.job_id"),
        nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    job: Mapped[Job | None] = relationship()


class TimesheetEntry(Base, TimestampMixin):
    """One laborer's hours on one date."""

    __tablename__ = "timesheet_entry"

    timesheet_entry_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    tenant_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("tenant.tenant_id", ondelete="CASCADE"),
        nullable=False,
    )
    laborer_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("laborer.laborer_id"),
        nullable=False,
    )
    job_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("job.job_id"),
        nullable=False,
    )
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    regular_hours: Mapped[Decimal] = mapped_column(
        Numeric(8, 2), nullable=False, default=Decimal("0")
    )
    overtime_hours: Mapped[Decimal] = mapped_column(
        Numeric(8, 2), nullable=False, default=Decimal("0")
    )
    overtime_multiplier: Mapped[Decimal] = mapped_column(
        Numeric(6, 3), nullable=False, default=Decimal("1.5")
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "laborer_id", "work_date", name="timesheet_laborer_date_unique"
        ),
        CheckConstraint("regular_hours >= 0", name="timesheet_regular_hours_check"),
        CheckConstraint("overtime_hours >= 0", name="timesheet_overtime_hours_check"),
        CheckConstraint("overtime_multiplier > 0", name="timesheet_multiplier_check"),
        Index("timesheet_tenant_date_idx", "tenant_id", "work_date"),
    )

    laborer: Mapped[Laborer] = relationship()
    job: Mapped[Job] = relationship()
