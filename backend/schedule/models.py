"""Schedule ORM models: ScheduleEntry, SchedulePattern."""

from __future__ import annotations

import uuid
from datetime import date, datetime, time, timedelta, timezone
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.common.constants import SHIFT_TYPE_REGULAR
from backend.database import Base

if TYPE_CHECKING:
    from backend.core_hr.models import Employee


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ScheduleEntry(Base):
    """One shift slot: an employee's day within a given week."""

    __tablename__ = "schedule_entries"
    __table_args__ = (
        sa.UniqueConstraint(
            "employee_id", "week_start_date", "day_of_week",
            name="uq_schedule_entry_slot",
        ),
        sa.CheckConstraint(
            "day_of_week BETWEEN 0 AND 6", name="ck_schedule_entry_day_of_week"
        ),
        sa.Index("ix_schedule_entries_week_start_date", "week_start_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    week_start_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    day_of_week: Mapped[int] = mapped_column(sa.SmallInteger, nullable=False)
    shift_start_time: Mapped[Optional[time]] = mapped_column(sa.Time)
    shift_end_time: Mapped[Optional[time]] = mapped_column(sa.Time)
    shift_type: Mapped[str] = mapped_column(
        sa.String(20), nullable=False, default=SHIFT_TYPE_REGULAR
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    # Relationships
    employee: Mapped[Employee] = relationship(back_populates="schedule_entries")

    @property
    def shift_date(self) -> date:
        return self.week_start_date + timedelta(days=self.day_of_week)


class SchedulePattern(Base):
    """Repeat cycle length for an employee's schedule; one active at a time."""

    __tablename__ = "schedule_patterns"
    __table_args__ = (
        sa.CheckConstraint("pattern_weeks >= 1", name="ck_schedule_pattern_weeks_positive"),
        sa.Index(
            "uq_schedule_patterns_one_active",
            "employee_id",
            unique=True,
            postgresql_where=sa.text("is_active"),
            sqlite_where=sa.text("is_active"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    pattern_weeks: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=1)
    is_active: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=_utcnow
    )

    # Relationships
    employee: Mapped[Employee] = relationship(back_populates="schedule_patterns")
