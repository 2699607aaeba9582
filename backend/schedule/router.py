"""Schedule router — slots, patterns and resolver views.

Routes (mounted under /api/v1/schedule):
    GET    /employees                                    — Roster (manager)
    GET    /week/{week_start}                            — Everyone's slots for a week
    PUT    /entries                                      — Replace one slot (manager)
    DELETE /entries/{employee_id}/{week_start}/{day}     — Clear one slot (manager)
    GET    /patterns/{employee_id}                       — Active cycle length (manager)
    PUT    /patterns/{employee_id}                       — New active pattern (manager)
    GET    /employees/{employee_id}/weeks/{week_start}   — Expanded cycle from an anchor
    GET    /work-pattern/{employee_id}                   — Slots with hours (self or manager)
"""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth.dependencies import get_current_caller
from backend.auth.identity import Caller
from backend.core_hr.schemas import EmployeeBrief
from backend.database import get_db
from backend.schedule.schemas import (
    ExpandedScheduleOut,
    PatternOut,
    PatternUpdate,
    ScheduleClearResult,
    ScheduleEntryOut,
    ScheduleEntryUpdate,
    ScheduleSlotRef,
    WorkPatternOut,
)
from backend.schedule.service import ScheduleService

router = APIRouter(prefix="", tags=["schedule"])


@router.get("/employees", response_model=list[EmployeeBrief])
async def schedule_employees(
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    return await ScheduleService.list_employees(db, caller)


@router.get("/week/{week_start}", response_model=list[ScheduleEntryOut])
async def week_schedule(
    week_start: date,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    return await ScheduleService.week_schedule(db, week_start)


# ── Slots ───────────────────────────────────────────────────────────

@router.put("/entries", response_model=Optional[ScheduleEntryOut])
async def set_entry(
    body: ScheduleEntryUpdate,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    """Replace a slot. Returns null when the slot was left empty."""
    return await ScheduleService.set_entry(db, caller, body)


@router.delete(
    "/entries/{employee_id}/{week_start}/{day_of_week}",
    response_model=ScheduleClearResult,
)
async def clear_entry(
    employee_id: uuid.UUID,
    week_start: date,
    day_of_week: int = Path(..., ge=0, le=6),
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    slot = ScheduleSlotRef(
        employee_id=employee_id, week_start_date=week_start, day_of_week=day_of_week
    )
    removed = await ScheduleService.clear_entry(db, caller, slot)
    return ScheduleClearResult(removed=removed)


# ── Patterns ────────────────────────────────────────────────────────

@router.get("/patterns/{employee_id}", response_model=PatternOut)
async def get_pattern(
    employee_id: uuid.UUID,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    return await ScheduleService.get_pattern(db, caller, employee_id)


@router.put("/patterns/{employee_id}", response_model=PatternOut)
async def set_pattern(
    employee_id: uuid.UUID,
    body: PatternUpdate,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    """Retire the current pattern and activate a new cycle length."""
    return await ScheduleService.set_pattern(db, caller, employee_id, body.pattern_weeks)


# ── Resolver views ──────────────────────────────────────────────────

@router.get(
    "/employees/{employee_id}/weeks/{week_start}",
    response_model=ExpandedScheduleOut,
)
async def expanded_schedule(
    employee_id: uuid.UUID,
    week_start: date,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    """Stored slots for every week of the employee's cycle from ``week_start``."""
    return await ScheduleService.expand(db, employee_id, week_start)


@router.get("/work-pattern/{employee_id}", response_model=WorkPatternOut)
async def work_pattern(
    employee_id: uuid.UUID,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    return await ScheduleService.work_pattern(db, caller, employee_id)
