"""Shift swap router.

Routes (mounted under /api/v1/shift-swaps):
    POST /                   — Propose a swap
    GET  /available          — Pending swaps the caller may accept
    GET  /outgoing           — Caller's own proposals
    GET  /accepted           — Accepted swaps awaiting a manager
    GET  /history            — Caller's recent decided swaps
    POST /{id}/accept        — Accept
    POST /{id}/approve       — Manager approve
    POST /{id}/deny          — Manager deny
    POST /{id}/withdraw      — Withdraw own pending proposal
"""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth.dependencies import get_current_caller
from backend.auth.identity import Caller
from backend.common.rate_limit import APPROVAL_RATE_LIMIT, limiter
from backend.database import get_db
from backend.swaps.schemas import (
    AvailableSwapOut,
    AwaitingApprovalOut,
    OutgoingSwapOut,
    ShiftSwapCreate,
    ShiftSwapOut,
    SwapHistoryOut,
)
from backend.swaps.service import SwapService

router = APIRouter(prefix="", tags=["shift-swaps"])


@router.post("", response_model=ShiftSwapOut, status_code=201)
async def propose_swap(
    body: ShiftSwapCreate,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    return await SwapService.propose(db, caller, body)


@router.get("/available", response_model=list[AvailableSwapOut])
async def available_swaps(
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    return await SwapService.list_available_for(db, caller)


@router.get("/outgoing", response_model=list[OutgoingSwapOut])
async def outgoing_swaps(
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    return await SwapService.list_outgoing_for(db, caller)


@router.get("/accepted", response_model=list[AwaitingApprovalOut])
async def accepted_swaps(
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    return await SwapService.list_awaiting_approval(db, caller)


@router.get("/history", response_model=list[SwapHistoryOut])
async def swap_history(
    limit: Optional[int] = Query(None, ge=1, le=50),
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    return await SwapService.list_history_for(db, caller, limit=limit)


@router.post("/{swap_id}/accept", response_model=ShiftSwapOut)
async def accept_swap(
    swap_id: uuid.UUID,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    return await SwapService.accept(db, caller, swap_id)


@router.post("/{swap_id}/approve", response_model=ShiftSwapOut)
@limiter.limit(APPROVAL_RATE_LIMIT)
async def approve_swap(
    request: Request,
    swap_id: uuid.UUID,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    return await SwapService.manager_approve(db, caller, swap_id)


@router.post("/{swap_id}/deny", response_model=ShiftSwapOut)
@limiter.limit(APPROVAL_RATE_LIMIT)
async def deny_swap(
    request: Request,
    swap_id: uuid.UUID,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    return await SwapService.manager_deny(db, caller, swap_id)


@router.post("/{swap_id}/withdraw", status_code=204)
async def withdraw_swap(
    swap_id: uuid.UUID,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    await SwapService.withdraw(db, caller, swap_id)
    return Response(status_code=204)
