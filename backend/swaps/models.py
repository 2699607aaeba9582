"""Shift swap ORM model."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.common.constants import SwapStatus
from backend.database import Base

if TYPE_CHECKING:
    from backend.core_hr.models import Employee


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ShiftSwap(Base):
    """A proposal to exchange one shift for another.

    ``requested_with_id`` targets a single colleague; NULL means any
    colleague may accept.
    """

    __tablename__ = "shift_swaps"
    __table_args__ = (
        sa.Index("ix_shift_swaps_status", "status"),
        sa.Index("ix_shift_swaps_requester_id", "requester_id"),
        sa.Index("ix_shift_swaps_accepter_id", "accepter_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    requester_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    requester_shift: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    requested_shift: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    requested_with_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employees.id", ondelete="CASCADE")
    )
    accepter_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employees.id", ondelete="CASCADE")
    )
    status: Mapped[SwapStatus] = mapped_column(
        sa.Enum(SwapStatus, name="swap_status", native_enum=False, length=20),
        nullable=False,
        default=SwapStatus.pending,
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=_utcnow
    )
    accepted_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    decided_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    decided_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employees.id", ondelete="SET NULL")
    )

    # Relationships
    requester: Mapped[Employee] = relationship(foreign_keys=[requester_id])
    requested_with: Mapped[Optional[Employee]] = relationship(foreign_keys=[requested_with_id])
    accepter: Mapped[Optional[Employee]] = relationship(foreign_keys=[accepter_id])

    @property
    def is_open(self) -> bool:
        return self.requested_with_id is None

    def __repr__(self) -> str:
        return f"<ShiftSwap {self.id} {self.status.value}>"
