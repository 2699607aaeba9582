"""Leave Pydantic v2 schemas — request / response validation.

Naming conventions:
  - *Create / *Update  → request bodies (write)
  - *Out / *Result     → response bodies (read)

Presence and positivity of submission fields are checked by the service so
that they surface as the workflow's own failure kinds rather than as
generic request-validation errors.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from backend.common.constants import LeaveStatus, LeaveType


# ═════════════════════════════════════════════════════════════════════
# Leave Balance
# ═════════════════════════════════════════════════════════════════════


class LeaveBalanceOut(BaseModel):
    """Remaining hours per ledgered leave type."""

    model_config = ConfigDict(from_attributes=True)

    employee_id: uuid.UUID
    annual_hours: Decimal
    sick_hours: Decimal
    long_service_hours: Decimal
    updated_at: datetime

    # Enriched by the ledger
    username: Optional[str] = None
    full_name: Optional[str] = None


class LeaveBalanceUpdate(BaseModel):
    """Absolute overwrite of all three balance fields."""

    annual_hours: Decimal = Field(..., max_digits=6, decimal_places=2)
    sick_hours: Decimal = Field(..., max_digits=6, decimal_places=2)
    long_service_hours: Decimal = Field(..., max_digits=6, decimal_places=2)


# ═════════════════════════════════════════════════════════════════════
# Leave Request — Create
# ═════════════════════════════════════════════════════════════════════


class LeaveRequestCreate(BaseModel):
    """Payload for submitting a leave request."""

    leave_type: Optional[LeaveType] = None
    start_date: Optional[date] = Field(None, description="Leave start date (inclusive)")
    end_date: Optional[date] = Field(None, description="Leave end date (inclusive)")
    hours_requested: Optional[Decimal] = Field(
        None, max_digits=6, decimal_places=2, description="Total hours of leave"
    )
    comments: Optional[str] = Field(None, max_length=1000)


# ═════════════════════════════════════════════════════════════════════
# Leave Request — Response
# ═════════════════════════════════════════════════════════════════════


class LeaveRequestOut(BaseModel):
    """Full leave request response."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    leave_type: LeaveType
    start_date: date
    end_date: date
    hours_requested: Decimal
    comments: Optional[str] = None
    status: LeaveStatus
    requested_at: datetime
    approved_at: Optional[datetime] = None
    reviewed_by: Optional[uuid.UUID] = None


class PendingLeaveOut(LeaveRequestOut):
    """Pending queue row with the requesting employee's name."""

    username: Optional[str] = None
    full_name: Optional[str] = None


# ═════════════════════════════════════════════════════════════════════
# Approval
# ═════════════════════════════════════════════════════════════════════


class LeaveApprovalResult(BaseModel):
    """Outcome of an approval; the hour figures are informational only."""

    request_id: uuid.UUID
    status: LeaveStatus
    leave_type: LeaveType
    hours_deducted: Decimal
    remaining_balance: Optional[Decimal] = None
    scheduled_hours: Optional[Decimal] = None
    message: str
