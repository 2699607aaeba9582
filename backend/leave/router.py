"""Leave routers — submission, approval queue, history, balances.

Routes (mounted under /api/v1/leave):
    POST /                       — Submit a leave request
    GET  /pending                — Manager queue, oldest first
    GET  /my                     — Caller's own history
    GET  /employees/{id}         — One employee's history (self or manager)
    PUT  /{id}/approve           — Approve and deduct
    PUT  /{id}/deny              — Deny

Routes (mounted under /api/v1/leave-balances):
    GET  /                       — Every employee's balance (manager)
    GET  /me                     — Caller's balance
    GET  /{employee_id}          — One balance (self or manager)
    PUT  /{employee_id}          — Absolute overwrite (manager)
"""


import uuid

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth.dependencies import get_current_caller
from backend.auth.identity import Caller
from backend.common.rate_limit import APPROVAL_RATE_LIMIT, limiter
from backend.database import get_db
from backend.leave.ledger import BalanceLedger
from backend.leave.schemas import (
    LeaveApprovalResult,
    LeaveBalanceOut,
    LeaveBalanceUpdate,
    LeaveRequestCreate,
    LeaveRequestOut,
    PendingLeaveOut,
)
from backend.leave.service import LeaveService

router = APIRouter(prefix="", tags=["leave"])
balances_router = APIRouter(prefix="", tags=["leave-balances"])


# ── POST / ──────────────────────────────────────────────────────────

@router.post("", response_model=LeaveRequestOut, status_code=201)
async def submit_leave(
    body: LeaveRequestCreate,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    """Submit a leave request; it always starts pending."""
    return await LeaveService.submit(db, caller, body)


# ── GET /pending ────────────────────────────────────────────────────

@router.get("/pending", response_model=list[PendingLeaveOut])
async def pending_leaves(
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    """Pending requests awaiting a manager decision."""
    return await LeaveService.list_pending_for_manager(db, caller)


# ── GET /my ─────────────────────────────────────────────────────────

@router.get("/my", response_model=list[LeaveRequestOut])
async def my_leaves(
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.list_history_for_employee(db, caller, caller.employee_id)


# ── GET /employees/{id} ─────────────────────────────────────────────

@router.get("/employees/{employee_id}", response_model=list[LeaveRequestOut])
async def employee_leaves(
    employee_id: uuid.UUID,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.list_history_for_employee(db, caller, employee_id)


# ── PUT /{id}/approve ───────────────────────────────────────────────

@router.put("/{request_id}/approve", response_model=LeaveApprovalResult)
@limiter.limit(APPROVAL_RATE_LIMIT)
async def approve_leave(
    request: Request,
    request_id: uuid.UUID,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    """Approve a pending leave request. Deducts from balance."""
    return await LeaveService.approve(db, caller, request_id)


# ── PUT /{id}/deny ──────────────────────────────────────────────────

@router.put("/{request_id}/deny", response_model=LeaveRequestOut)
@limiter.limit(APPROVAL_RATE_LIMIT)
async def deny_leave(
    request: Request,
    request_id: uuid.UUID,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    """Deny a pending leave request."""
    return await LeaveService.deny(db, caller, request_id)


# ═════════════════════════════════════════════════════════════════════
# Balances
# ═════════════════════════════════════════════════════════════════════


@balances_router.get("", response_model=list[LeaveBalanceOut])
async def list_balances(
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    return await BalanceLedger.list_all(db, caller)


@balances_router.get("/me", response_model=LeaveBalanceOut)
async def my_balance(
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    """The caller's balance; created with defaults on first read."""
    return await BalanceLedger.view(db, caller, caller.employee_id)


@balances_router.get("/{employee_id}", response_model=LeaveBalanceOut)
async def get_balance(
    employee_id: uuid.UUID,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    return await BalanceLedger.view(db, caller, employee_id)


@balances_router.put("/{employee_id}", response_model=LeaveBalanceOut)
async def set_balance(
    employee_id: uuid.UUID,
    body: LeaveBalanceUpdate,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    """Overwrite all three balance fields (manager only)."""
    return await BalanceLedger.set_absolute(db, caller, employee_id, body)
