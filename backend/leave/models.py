"""Leave ORM models: LeaveBalance, LeaveRequest."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import InstrumentedAttribute, Mapped, mapped_column, relationship

from backend.common.constants import LeaveStatus, LeaveType
from backend.database import Base

if TYPE_CHECKING:
    from backend.core_hr.models import Employee


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


HOURS = sa.Numeric(6, 2)


class LeaveBalance(Base):
    """Remaining leave entitlement in hours; one row per employee."""

    __tablename__ = "leave_balances"
    __table_args__ = (
        sa.CheckConstraint("annual_hours >= 0", name="ck_leave_balance_annual_non_negative"),
        sa.CheckConstraint("sick_hours >= 0", name="ck_leave_balance_sick_non_negative"),
        sa.CheckConstraint(
            "long_service_hours >= 0", name="ck_leave_balance_long_service_non_negative"
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
        unique=True,
        nullable=False,
    )
    annual_hours: Mapped[Decimal] = mapped_column(HOURS, nullable=False)
    sick_hours: Mapped[Decimal] = mapped_column(HOURS, nullable=False)
    long_service_hours: Mapped[Decimal] = mapped_column(HOURS, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=_utcnow
    )

    # Relationships
    employee: Mapped[Employee] = relationship(
        back_populates="leave_balance"
    )

    def __repr__(self) -> str:
        return (
            f"<LeaveBalance {self.employee_id} annual={self.annual_hours} "
            f"sick={self.sick_hours} long_service={self.long_service_hours}>"
        )


# Typed column per ledgered leave type; unpaid/other have no entry.
BALANCE_COLUMNS: dict[LeaveType, InstrumentedAttribute] = {
    LeaveType.annual: LeaveBalance.annual_hours,
    LeaveType.sick: LeaveBalance.sick_hours,
    LeaveType.long_service: LeaveBalance.long_service_hours,
}


class LeaveRequest(Base):
    __tablename__ = "leave_requests"
    __table_args__ = (
        sa.CheckConstraint("hours_requested > 0", name="ck_leave_request_hours_positive"),
        sa.Index("ix_leave_requests_status_requested_at", "status", "requested_at"),
        sa.Index("ix_leave_requests_employee_requested_at", "employee_id", "requested_at"),
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
    leave_type: Mapped[LeaveType] = mapped_column(
        sa.Enum(LeaveType, name="leave_type", native_enum=False, length=20),
        nullable=False,
    )
    start_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    end_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    hours_requested: Mapped[Decimal] = mapped_column(HOURS, nullable=False)
    comments: Mapped[Optional[str]] = mapped_column(sa.Text)
    status: Mapped[LeaveStatus] = mapped_column(
        sa.Enum(LeaveStatus, name="leave_status", native_enum=False, length=20),
        nullable=False,
        default=LeaveStatus.pending,
    )
    requested_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=_utcnow
    )
    approved_at: Mapped[Optional[datetime]] = mapped_column(
        sa.DateTime(timezone=True)
    )
    reviewed_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employees.id", ondelete="SET NULL")
    )

    # Relationships
    employee: Mapped[Employee] = relationship(
        back_populates="leave_requests", foreign_keys=[employee_id]
    )
    reviewer: Mapped[Optional[Employee]] = relationship(
        foreign_keys=[reviewed_by]
    )
