"""Schedule test suite — slot writes, pattern activation, cycle expansion,
the work-pattern view and per-slot hour arithmetic.

Tests run against SQLite via the shared conftest.py fixtures.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date, time
from decimal import Decimal
from typing import Optional

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.common.exceptions import (
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from backend.schedule.models import ScheduleEntry, SchedulePattern
from backend.schedule.schemas import ScheduleEntryUpdate, ScheduleSlotRef
from backend.schedule.service import ScheduleService, hours_for_entry

WEEK_1 = date(2024, 1, 1)
WEEK_2 = date(2024, 1, 8)
WEEK_3 = date(2024, 1, 15)


@dataclass
class _Shift:
    shift_start_time: Optional[time]
    shift_end_time: Optional[time]
    shift_type: str = "regular"


def _slot(
    employee_id: uuid.UUID,
    week: date = WEEK_1,
    day: int = 0,
    start: Optional[time] = time(9, 0),
    end: Optional[time] = time(17, 0),
    shift_type: str = "regular",
) -> ScheduleEntryUpdate:
    return ScheduleEntryUpdate(
        employee_id=employee_id,
        week_start_date=week,
        day_of_week=day,
        shift_start_time=start,
        shift_end_time=end,
        shift_type=shift_type,
    )


async def _entry_count(db: AsyncSession, employee_id: uuid.UUID) -> int:
    result = await db.execute(
        select(func.count()).select_from(ScheduleEntry).where(
            ScheduleEntry.employee_id == employee_id
        )
    )
    return result.scalar_one()


# ═════════════════════════════════════════════════════════════════════
# Hour arithmetic
# ═════════════════════════════════════════════════════════════════════


class TestHoursForEntry:

    @pytest.mark.parametrize(
        "start, end, expected",
        [
            (time(9, 0), time(17, 0), "8.0"),
            (time(22, 0), time(6, 0), "8.0"),
            (time(9, 15), time(17, 40), "8.5"),
            (time(9, 0), time(9, 14), "0.0"),
            (time(9, 0), time(9, 15), "0.5"),
            (time(8, 0), time(8, 0), "0.0"),
            (time(23, 30), time(0, 0), "0.5"),
        ],
    )
    def test_rounds_to_half_hours(self, start, end, expected):
        assert hours_for_entry(_Shift(start, end)) == Decimal(expected)

    def test_leave_slot_counts_zero(self):
        assert hours_for_entry(_Shift(time(9, 0), time(17, 0), "leave")) == Decimal("0.0")

    @pytest.mark.parametrize("start, end", [(None, time(17, 0)), (time(9, 0), None), (None, None)])
    def test_missing_times_count_zero(self, start, end):
        assert hours_for_entry(_Shift(start, end)) == Decimal("0.0")

    def test_exposed_on_service(self):
        assert ScheduleService.hours_for_entry(_Shift(time(6, 0), time(14, 30))) == Decimal("8.5")


# ═════════════════════════════════════════════════════════════════════
# Slot writes
# ═════════════════════════════════════════════════════════════════════


class TestScheduleEntries:

    async def test_set_entry_creates_slot(self, db: AsyncSession, employee, manager_caller):
        out = await ScheduleService.set_entry(db, manager_caller, _slot(employee.id, day=2))

        assert out is not None
        assert out.day_of_week == 2
        assert out.model_dump()["shift_start_time"] == "09:00"
        assert await _entry_count(db, employee.id) == 1

    async def test_set_entry_replaces_slot(self, db: AsyncSession, employee, manager_caller):
        await ScheduleService.set_entry(db, manager_caller, _slot(employee.id))
        out = await ScheduleService.set_entry(
            db, manager_caller, _slot(employee.id, start=time(13, 0), end=time(21, 0), shift_type="late"),
        )

        assert out.shift_type == "late"
        assert out.shift_start_time == time(13, 0)
        assert await _entry_count(db, employee.id) == 1

    async def test_set_entry_without_times_empties_slot(self, db: AsyncSession, employee, manager_caller):
        await ScheduleService.set_entry(db, manager_caller, _slot(employee.id))

        out = await ScheduleService.set_entry(
            db, manager_caller, _slot(employee.id, start=None, end=None),
        )

        assert out is None
        assert await _entry_count(db, employee.id) == 0

    async def test_half_specified_times_rejected(self, db: AsyncSession, employee, manager_caller):
        with pytest.raises(ValidationException) as exc_info:
            await ScheduleService.set_entry(db, manager_caller, _slot(employee.id, end=None))
        assert "shift_end_time" in exc_info.value.errors

    async def test_unknown_employee(self, db: AsyncSession, manager_caller):
        with pytest.raises(NotFoundException):
            await ScheduleService.set_entry(db, manager_caller, _slot(uuid.uuid4()))

    async def test_employee_cannot_edit_schedule(self, db: AsyncSession, employee, employee_caller):
        with pytest.raises(ForbiddenException):
            await ScheduleService.set_entry(db, employee_caller, _slot(employee.id))

    async def test_clear_entry_reports_removed(self, db: AsyncSession, employee, manager_caller):
        await ScheduleService.set_entry(db, manager_caller, _slot(employee.id, day=4))
        ref = ScheduleSlotRef(employee_id=employee.id, week_start_date=WEEK_1, day_of_week=4)

        assert await ScheduleService.clear_entry(db, manager_caller, ref) == 1
        assert await ScheduleService.clear_entry(db, manager_caller, ref) == 0

    async def test_week_schedule_orders_by_name_then_day(
        self, db: AsyncSession, manager_caller, make_employee,
    ):
        zed = await make_employee(full_name="Zed Zulu")
        amy = await make_employee(full_name="Amy Alpha")
        await ScheduleService.set_entry(db, manager_caller, _slot(zed.id, day=0))
        await ScheduleService.set_entry(db, manager_caller, _slot(amy.id, day=3))
        await ScheduleService.set_entry(db, manager_caller, _slot(amy.id, day=1))
        await ScheduleService.set_entry(db, manager_caller, _slot(amy.id, week=WEEK_2, day=0))

        rows = await ScheduleService.week_schedule(db, WEEK_1)

        assert [(r.full_name, r.day_of_week) for r in rows] == [
            ("Amy Alpha", 1), ("Amy Alpha", 3), ("Zed Zulu", 0),
        ]

    async def test_list_employees_skips_managers(
        self, db: AsyncSession, employee, manager, manager_caller,
    ):
        rows = await ScheduleService.list_employees(db, manager_caller)

        ids = [r.id for r in rows]
        assert employee.id in ids
        assert manager.id not in ids


# ═════════════════════════════════════════════════════════════════════
# Patterns
# ═════════════════════════════════════════════════════════════════════


class TestPatterns:

    async def test_default_cycle_is_one_week(self, db: AsyncSession, employee, manager_caller):
        out = await ScheduleService.get_pattern(db, manager_caller, employee.id)
        assert out.pattern_weeks == 1

    async def test_set_pattern_retires_previous(self, db: AsyncSession, employee, manager_caller):
        await ScheduleService.set_pattern(db, manager_caller, employee.id, 2)
        await ScheduleService.set_pattern(db, manager_caller, employee.id, 4)

        result = await db.execute(
            select(SchedulePattern.pattern_weeks, SchedulePattern.is_active)
            .where(SchedulePattern.employee_id == employee.id)
        )
        rows = sorted(tuple(row) for row in result.all())
        assert rows == [(2, False), (4, True)]
        assert (await ScheduleService.get_pattern(db, manager_caller, employee.id)).pattern_weeks == 4

    @pytest.mark.parametrize("weeks", [0, -3])
    async def test_pattern_must_be_positive(self, db: AsyncSession, employee, manager_caller, weeks):
        with pytest.raises(ValidationException):
            await ScheduleService.set_pattern(db, manager_caller, employee.id, weeks)

    async def test_pattern_for_unknown_employee(self, db: AsyncSession, manager_caller):
        with pytest.raises(NotFoundException):
            await ScheduleService.set_pattern(db, manager_caller, uuid.uuid4(), 2)


# ═════════════════════════════════════════════════════════════════════
# Expansion / work pattern
# ═════════════════════════════════════════════════════════════════════


class TestExpand:

    async def test_three_week_cycle_skips_missing_week(self, db: AsyncSession, employee, manager_caller):
        await ScheduleService.set_pattern(db, manager_caller, employee.id, 3)
        await ScheduleService.set_entry(db, manager_caller, _slot(employee.id, week=WEEK_1, day=0))
        await ScheduleService.set_entry(db, manager_caller, _slot(employee.id, week=WEEK_3, day=2))
        await ScheduleService.set_entry(
            db, manager_caller, _slot(employee.id, week=date(2024, 1, 22), day=0),
        )

        out = await ScheduleService.expand(db, employee.id, WEEK_1)

        assert out.pattern_weeks == 3
        assert [(s.week_offset, s.day_of_week) for s in out.schedules] == [(0, 0), (2, 2)]

    async def test_without_pattern_expands_one_week(self, db: AsyncSession, employee, manager_caller):
        await ScheduleService.set_entry(db, manager_caller, _slot(employee.id, week=WEEK_1))
        await ScheduleService.set_entry(db, manager_caller, _slot(employee.id, week=WEEK_2))

        out = await ScheduleService.expand(db, employee.id, WEEK_1)

        assert out.pattern_weeks == 1
        assert [s.week_start_date for s in out.schedules] == [WEEK_1]


class TestWorkPattern:

    async def test_no_active_pattern_is_soft_failure(self, db: AsyncSession, employee, employee_caller):
        out = await ScheduleService.work_pattern(db, employee_caller, employee.id)

        assert out.success is False
        assert out.work_days == []
        assert out.message == "No active schedule pattern found"

    async def test_offsets_wrap_and_hours_are_computed(
        self, db: AsyncSession, employee, employee_caller, manager_caller,
    ):
        await ScheduleService.set_pattern(db, manager_caller, employee.id, 2)
        await ScheduleService.set_entry(
            db, manager_caller, _slot(employee.id, week=WEEK_2, day=1, start=time(22, 0), end=time(6, 0)),
        )
        await ScheduleService.set_entry(db, manager_caller, _slot(employee.id, week=WEEK_1, day=3))
        await ScheduleService.set_entry(
            db, manager_caller, _slot(employee.id, week=WEEK_3, day=0, shift_type="leave"),
        )

        out = await ScheduleService.work_pattern(db, employee_caller, employee.id)

        assert out.success is True
        assert out.pattern_weeks == 2
        assert [(d.week_offset, d.day_of_week, d.hours) for d in out.work_days] == [
            (0, 0, Decimal("0.0")),
            (0, 3, Decimal("8.0")),
            (1, 1, Decimal("8.0")),
        ]

    async def test_other_employee_forbidden(self, db: AsyncSession, employee_caller, make_employee):
        other = await make_employee()
        with pytest.raises(ForbiddenException):
            await ScheduleService.work_pattern(db, employee_caller, other.id)


class TestScheduledHours:

    async def test_sums_slots_inside_range(self, db: AsyncSession, employee, manager_caller):
        # 2024-01-05 is day 4 of WEEK_1; 2024-01-08 is day 0 of WEEK_2
        await ScheduleService.set_entry(db, manager_caller, _slot(employee.id, week=WEEK_1, day=3))
        await ScheduleService.set_entry(db, manager_caller, _slot(employee.id, week=WEEK_1, day=4))
        await ScheduleService.set_entry(
            db, manager_caller, _slot(employee.id, week=WEEK_2, day=0, start=time(9, 0), end=time(13, 0)),
        )
        await ScheduleService.set_entry(db, manager_caller, _slot(employee.id, week=WEEK_2, day=1))

        hours = await ScheduleService.scheduled_hours(
            db, employee.id, date(2024, 1, 5), date(2024, 1, 8),
        )

        assert hours == Decimal("12.0")

    async def test_none_when_nothing_scheduled(self, db: AsyncSession, employee):
        assert await ScheduleService.scheduled_hours(
            db, employee.id, date(2024, 1, 1), date(2024, 1, 7),
        ) is None
