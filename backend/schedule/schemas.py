"""Schedule Pydantic v2 schemas — slots, patterns, expanded and work-pattern views.

Times travel as ``HH:MM`` strings and dates as ``YYYY-MM-DD``.
"""

from __future__ import annotations

import uuid
from datetime import date, time
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from backend.common.constants import SHIFT_TYPE_REGULAR, TIME_FORMAT


def _format_time(value: Optional[time]) -> Optional[str]:
    return value.strftime(TIME_FORMAT) if value is not None else None


# ═════════════════════════════════════════════════════════════════════
# Slot writes
# ═════════════════════════════════════════════════════════════════════


class ScheduleSlotRef(BaseModel):
    """Identifies one slot: employee, week and day."""

    employee_id: uuid.UUID
    week_start_date: date
    day_of_week: int = Field(..., ge=0, le=6, description="0 = first day of the week")


class ScheduleEntryUpdate(ScheduleSlotRef):
    """Replace a slot; omit both times to leave the slot empty."""

    shift_start_time: Optional[time] = None
    shift_end_time: Optional[time] = None
    shift_type: str = Field(SHIFT_TYPE_REGULAR, min_length=1, max_length=20)


class ScheduleClearResult(BaseModel):
    removed: int


# ═════════════════════════════════════════════════════════════════════
# Slot reads
# ═════════════════════════════════════════════════════════════════════


class ScheduleEntryOut(BaseModel):
    """A stored slot."""

    model_config = ConfigDict(from_attributes=True)

    employee_id: uuid.UUID
    week_start_date: date
    day_of_week: int
    shift_start_time: Optional[time] = None
    shift_end_time: Optional[time] = None
    shift_type: str

    # Enriched by the week view
    full_name: Optional[str] = None

    @field_serializer("shift_start_time", "shift_end_time")
    def _serialize_time(self, value: Optional[time]) -> Optional[str]:
        return _format_time(value)


class ExpandedEntryOut(ScheduleEntryOut):
    """A stored slot tagged with its position inside the pattern cycle."""

    week_offset: int


class ExpandedScheduleOut(BaseModel):
    pattern_weeks: int
    schedules: list[ExpandedEntryOut]


# ═════════════════════════════════════════════════════════════════════
# Patterns
# ═════════════════════════════════════════════════════════════════════


class PatternUpdate(BaseModel):
    pattern_weeks: int = Field(..., description="Cycle length in weeks (at least 1)")


class PatternOut(BaseModel):
    employee_id: uuid.UUID
    pattern_weeks: int


class WorkDayOut(BaseModel):
    """One slot of the work pattern with its worked hours."""

    day_of_week: int
    week_offset: int
    shift_type: str
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    hours: Decimal

    @field_serializer("start_time", "end_time")
    def _serialize_time(self, value: Optional[time]) -> Optional[str]:
        return _format_time(value)


class WorkPatternOut(BaseModel):
    """Work pattern used for leave-hour calculations.

    ``success`` is False, with no work days, when the employee has no active
    pattern; that is a valid empty answer, not an error.
    """

    success: bool
    pattern_weeks: Optional[int] = None
    work_days: list[WorkDayOut] = Field(default_factory=list)
    message: Optional[str] = None
