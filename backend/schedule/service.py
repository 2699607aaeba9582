"""Schedule service layer — slot writes and the pattern resolver.

Business logic:
  - A slot is replaced delete-then-insert; a slot with no times is empty
  - One active pattern per employee; setting a pattern retires the others
  - Expansion walks ``pattern_weeks`` consecutive weeks from an anchor and
    tags every stored slot with its offset; missing weeks are simply absent
  - Worked hours per slot wrap overnight and round to the nearest half hour
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, time, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Protocol

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth.identity import Caller, ensure_manager, ensure_self_or_manager
from backend.common.constants import (
    DAYS_PER_WEEK,
    MINUTES_PER_DAY,
    SHIFT_TYPE_LEAVE,
    UserRole,
)
from backend.common.exceptions import NotFoundException, ValidationException
from backend.core_hr.models import Employee
from backend.core_hr.schemas import EmployeeBrief
from backend.schedule.models import ScheduleEntry, SchedulePattern
from backend.schedule.schemas import (
    ExpandedEntryOut,
    ExpandedScheduleOut,
    PatternOut,
    ScheduleEntryOut,
    ScheduleEntryUpdate,
    ScheduleSlotRef,
    WorkDayOut,
    WorkPatternOut,
)

logger = logging.getLogger(__name__)

_HALF_HOUR = Decimal(30)
_WHOLE = Decimal(1)
_ONE_DECIMAL = Decimal("0.1")


class ShiftLike(Protocol):
    shift_type: str
    shift_start_time: Optional[time]
    shift_end_time: Optional[time]


def _minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def hours_for_entry(entry: ShiftLike) -> Decimal:
    """Worked hours for one slot, to the nearest half hour.

    Leave slots and slots without both times count as zero. An end time
    before the start time wraps past midnight.
    """
    if (
        entry.shift_type == SHIFT_TYPE_LEAVE
        or entry.shift_start_time is None
        or entry.shift_end_time is None
    ):
        return Decimal("0.0")

    diff = (_minutes(entry.shift_end_time) - _minutes(entry.shift_start_time)) % MINUTES_PER_DAY
    half_hours = (Decimal(diff) / _HALF_HOUR).quantize(_WHOLE, rounding=ROUND_HALF_UP)
    return (half_hours / 2).quantize(_ONE_DECIMAL)


async def _ensure_employee(db: AsyncSession, employee_id: uuid.UUID) -> None:
    result = await db.execute(select(Employee.id).where(Employee.id == employee_id))
    if result.scalar() is None:
        raise NotFoundException("Employee", str(employee_id))


# ═════════════════════════════════════════════════════════════════════
# ScheduleService
# ═════════════════════════════════════════════════════════════════════


class ScheduleService:
    """Async service for schedule slots, patterns and their expansion."""

    hours_for_entry = staticmethod(hours_for_entry)

    # ─────────────────────────────────────────────────────────────────
    # Slots
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def set_entry(
        db: AsyncSession,
        caller: Caller,
        data: ScheduleEntryUpdate,
    ) -> Optional[ScheduleEntryOut]:
        """Replace one slot. Returns the new entry, or None when left empty."""

        ensure_manager(caller)

        has_start = data.shift_start_time is not None
        has_end = data.shift_end_time is not None
        if has_start != has_end:
            missing = "shift_end_time" if has_start else "shift_start_time"
            raise ValidationException(
                {missing: ["Start and end times must be given together."]}
            )

        await _ensure_employee(db, data.employee_id)

        await ScheduleService._delete_slot(db, data)

        if not has_start:
            logger.info(
                "Schedule slot cleared: employee=%s week=%s day=%s",
                data.employee_id, data.week_start_date, data.day_of_week,
            )
            return None

        entry = ScheduleEntry(
            employee_id=data.employee_id,
            week_start_date=data.week_start_date,
            day_of_week=data.day_of_week,
            shift_start_time=data.shift_start_time,
            shift_end_time=data.shift_end_time,
            shift_type=data.shift_type,
        )
        db.add(entry)
        await db.flush()

        logger.info(
            "Schedule slot set by %s: employee=%s week=%s day=%s %s-%s (%s)",
            caller.employee_id, data.employee_id, data.week_start_date,
            data.day_of_week, data.shift_start_time, data.shift_end_time,
            data.shift_type,
        )
        return ScheduleEntryOut.model_validate(entry)

    @staticmethod
    async def _delete_slot(db: AsyncSession, slot: ScheduleSlotRef) -> int:
        result = await db.execute(
            delete(ScheduleEntry)
            .where(
                ScheduleEntry.employee_id == slot.employee_id,
                ScheduleEntry.week_start_date == slot.week_start_date,
                ScheduleEntry.day_of_week == slot.day_of_week,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    @staticmethod
    async def clear_entry(
        db: AsyncSession,
        caller: Caller,
        slot: ScheduleSlotRef,
    ) -> int:
        """Remove one slot; returns how many rows were removed."""

        ensure_manager(caller)
        removed = await ScheduleService._delete_slot(db, slot)
        logger.info(
            "Schedule slot cleared by %s: employee=%s week=%s day=%s removed=%d",
            caller.employee_id, slot.employee_id, slot.week_start_date,
            slot.day_of_week, removed,
        )
        return removed

    @staticmethod
    async def week_schedule(db: AsyncSession, week_start: date) -> list[ScheduleEntryOut]:
        """Every employee's slots for one week, by full name then day."""

        result = await db.execute(
            select(ScheduleEntry, Employee.full_name)
            .join(Employee, ScheduleEntry.employee_id == Employee.id)
            .where(ScheduleEntry.week_start_date == week_start)
            .order_by(Employee.full_name, Employee.username, ScheduleEntry.day_of_week)
        )
        output: list[ScheduleEntryOut] = []
        for entry, full_name in result.all():
            out = ScheduleEntryOut.model_validate(entry)
            out.full_name = full_name
            output.append(out)
        return output

    @staticmethod
    async def list_employees(db: AsyncSession, caller: Caller) -> list[EmployeeBrief]:
        """Roster of employee-role accounts for schedule management."""

        ensure_manager(caller)
        result = await db.execute(
            select(Employee)
            .where(Employee.role == UserRole.employee)
            .order_by(Employee.full_name, Employee.username)
        )
        return [EmployeeBrief.model_validate(e) for e in result.scalars().all()]

    # ─────────────────────────────────────────────────────────────────
    # Patterns
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def _active_pattern(
        db: AsyncSession, employee_id: uuid.UUID
    ) -> Optional[SchedulePattern]:
        result = await db.execute(
            select(SchedulePattern).where(
                SchedulePattern.employee_id == employee_id,
                SchedulePattern.is_active.is_(True),
            )
        )
        return result.scalars().first()

    @staticmethod
    async def active_pattern_weeks(db: AsyncSession, employee_id: uuid.UUID) -> int:
        """The active cycle length, or 1 when no pattern is active."""
        pattern = await ScheduleService._active_pattern(db, employee_id)
        return pattern.pattern_weeks if pattern else 1

    @staticmethod
    async def get_pattern(
        db: AsyncSession,
        caller: Caller,
        employee_id: uuid.UUID,
    ) -> PatternOut:
        ensure_manager(caller)
        weeks = await ScheduleService.active_pattern_weeks(db, employee_id)
        return PatternOut(employee_id=employee_id, pattern_weeks=weeks)

    @staticmethod
    async def set_pattern(
        db: AsyncSession,
        caller: Caller,
        employee_id: uuid.UUID,
        pattern_weeks: int,
    ) -> PatternOut:
        """Retire every existing pattern and make a new one active."""

        ensure_manager(caller)
        if pattern_weeks < 1:
            raise ValidationException(
                {"pattern_weeks": ["Pattern weeks must be at least 1."]}
            )
        await _ensure_employee(db, employee_id)

        await db.execute(
            update(SchedulePattern)
            .where(
                SchedulePattern.employee_id == employee_id,
                SchedulePattern.is_active.is_(True),
            )
            .values(is_active=False)
            .execution_options(synchronize_session=False)
        )
        db.add(SchedulePattern(
            employee_id=employee_id,
            pattern_weeks=pattern_weeks,
            is_active=True,
        ))
        await db.flush()

        logger.info(
            "Schedule pattern for %s set to %d week(s) by %s",
            employee_id, pattern_weeks, caller.employee_id,
        )
        return PatternOut(employee_id=employee_id, pattern_weeks=pattern_weeks)

    # ─────────────────────────────────────────────────────────────────
    # Resolver
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def expand(
        db: AsyncSession,
        employee_id: uuid.UUID,
        anchor_week_start: date,
    ) -> ExpandedScheduleOut:
        """Stored slots for each week of the cycle starting at the anchor."""

        pattern_weeks = await ScheduleService.active_pattern_weeks(db, employee_id)
        week_starts = [
            anchor_week_start + timedelta(days=DAYS_PER_WEEK * offset)
            for offset in range(pattern_weeks)
        ]

        result = await db.execute(
            select(ScheduleEntry)
            .where(
                ScheduleEntry.employee_id == employee_id,
                ScheduleEntry.week_start_date.in_(week_starts),
            )
            .order_by(ScheduleEntry.week_start_date, ScheduleEntry.day_of_week)
        )
        schedules = [
            ExpandedEntryOut(
                employee_id=entry.employee_id,
                week_start_date=entry.week_start_date,
                day_of_week=entry.day_of_week,
                shift_start_time=entry.shift_start_time,
                shift_end_time=entry.shift_end_time,
                shift_type=entry.shift_type,
                week_offset=(entry.week_start_date - anchor_week_start).days // DAYS_PER_WEEK,
            )
            for entry in result.scalars().all()
        ]
        return ExpandedScheduleOut(pattern_weeks=pattern_weeks, schedules=schedules)

    @staticmethod
    async def work_pattern(
        db: AsyncSession,
        caller: Caller,
        employee_id: uuid.UUID,
    ) -> WorkPatternOut:
        """Every stored slot with its cycle offset and worked hours.

        The offset counts weeks from the employee's earliest stored week,
        wrapped to the active cycle length.
        """

        ensure_self_or_manager(caller, employee_id)

        pattern = await ScheduleService._active_pattern(db, employee_id)
        if pattern is None:
            return WorkPatternOut(
                success=False,
                message="No active schedule pattern found",
            )

        result = await db.execute(
            select(ScheduleEntry)
            .where(ScheduleEntry.employee_id == employee_id)
            .order_by(ScheduleEntry.week_start_date, ScheduleEntry.day_of_week)
        )
        entries = result.scalars().all()
        if not entries:
            return WorkPatternOut(success=True, pattern_weeks=pattern.pattern_weeks)

        first_week = entries[0].week_start_date
        work_days = [
            WorkDayOut(
                day_of_week=entry.day_of_week,
                week_offset=(
                    (entry.week_start_date - first_week).days // DAYS_PER_WEEK
                ) % pattern.pattern_weeks,
                shift_type=entry.shift_type,
                start_time=entry.shift_start_time,
                end_time=entry.shift_end_time,
                hours=hours_for_entry(entry),
            )
            for entry in entries
        ]
        work_days.sort(key=lambda d: (d.week_offset, d.day_of_week))
        return WorkPatternOut(
            success=True,
            pattern_weeks=pattern.pattern_weeks,
            work_days=work_days,
        )

    @staticmethod
    async def scheduled_hours(
        db: AsyncSession,
        employee_id: uuid.UUID,
        start: date,
        end: date,
    ) -> Optional[Decimal]:
        """Worked hours stored for the dates ``start``..``end`` inclusive.

        Returns None when no slot falls inside the range, so callers can tell
        "no schedule on record" apart from "scheduled for zero hours".
        """

        result = await db.execute(
            select(ScheduleEntry).where(
                ScheduleEntry.employee_id == employee_id,
                ScheduleEntry.week_start_date >= start - timedelta(days=DAYS_PER_WEEK - 1),
                ScheduleEntry.week_start_date <= end,
            )
        )
        in_range = [
            entry for entry in result.scalars().all()
            if start <= entry.shift_date <= end
        ]
        if not in_range:
            return None
        return sum((hours_for_entry(entry) for entry in in_range), Decimal("0.0"))
