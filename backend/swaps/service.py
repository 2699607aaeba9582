"""Shift swap service layer — negotiation between two employees and a manager.

State machine:
    pending ──accept──▶ accepted ──approve──▶ approved
       │                    └──────deny─────▶ denied
       └──withdraw──▶ (row deleted)

Every transition is a conditional UPDATE/DELETE on the expected status, so
a transition that lost a race affects zero rows and reports NotFound.
Swaps never touch the leave ledger or the stored schedule.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from backend.auth.identity import Caller, ensure_manager
from backend.common.constants import SwapRole, SwapStatus
from backend.common.exceptions import (
    ForbiddenException,
    MissingShiftException,
    NotFoundException,
    SelfAcceptNotAllowedException,
)
from backend.config import settings
from backend.core_hr.models import Employee
from backend.swaps.models import ShiftSwap
from backend.swaps.schemas import (
    AvailableSwapOut,
    AwaitingApprovalOut,
    OutgoingSwapOut,
    ShiftSwapCreate,
    ShiftSwapOut,
    SwapHistoryOut,
)

logger = logging.getLogger(__name__)

Requester = aliased(Employee, name="requester")
Accepter = aliased(Employee, name="accepter")
Target = aliased(Employee, name="target")


def _name(full_name: Optional[str], username: Optional[str]) -> Optional[str]:
    return full_name or username


def _not_found(swap_id: uuid.UUID, detail: str) -> NotFoundException:
    return NotFoundException("ShiftSwap", str(swap_id), detail=detail)


# ═════════════════════════════════════════════════════════════════════
# SwapService
# ═════════════════════════════════════════════════════════════════════


class SwapService:
    """Async service for the shift swap negotiation workflow."""

    @staticmethod
    async def _get_swap(db: AsyncSession, swap_id: uuid.UUID) -> Optional[ShiftSwap]:
        result = await db.execute(
            select(ShiftSwap)
            .where(ShiftSwap.id == swap_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    # ─────────────────────────────────────────────────────────────────
    # Propose
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def propose(
        db: AsyncSession,
        caller: Caller,
        data: ShiftSwapCreate,
    ) -> ShiftSwapOut:
        """Open a swap proposal owned by the caller."""

        requester_shift = (data.requester_shift or "").strip()
        requested_shift = (data.requested_shift or "").strip()
        missing = [
            name for name, value in (
                ("requester_shift", requester_shift),
                ("requested_shift", requested_shift),
            )
            if not value
        ]
        if missing:
            raise MissingShiftException(missing)

        if data.requested_with_id is not None:
            target = await db.execute(
                select(Employee.id).where(Employee.id == data.requested_with_id)
            )
            if target.scalar() is None:
                raise NotFoundException("Employee", str(data.requested_with_id))

        swap = ShiftSwap(
            requester_id=caller.employee_id,
            requester_shift=requester_shift,
            requested_shift=requested_shift,
            requested_with_id=data.requested_with_id,
            accepter_id=None,
            status=SwapStatus.pending,
            created_at=datetime.now(timezone.utc),
            accepted_at=None,
            decided_at=None,
            decided_by=None,
        )
        db.add(swap)
        await db.flush()

        logger.info(
            "Shift swap %s proposed by %s (target=%s)",
            swap.id, caller.employee_id, data.requested_with_id or "open",
        )
        return ShiftSwapOut.model_validate(swap)

    # ─────────────────────────────────────────────────────────────────
    # Accept
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def accept(
        db: AsyncSession,
        caller: Caller,
        swap_id: uuid.UUID,
    ) -> ShiftSwapOut:
        """Take up a pending swap; it then waits for a manager decision."""

        swap = await SwapService._get_swap(db, swap_id)
        if swap is None or swap.status != SwapStatus.pending:
            raise _not_found(swap_id, "Shift swap not found or already actioned.")
        if swap.requester_id == caller.employee_id:
            raise SelfAcceptNotAllowedException()
        if (
            settings.ENFORCE_TARGETED_SWAPS
            and not swap.is_open
            and swap.requested_with_id != caller.employee_id
        ):
            raise ForbiddenException("This shift swap is addressed to another colleague.")

        result = await db.execute(
            update(ShiftSwap)
            .where(
                ShiftSwap.id == swap_id,
                ShiftSwap.status == SwapStatus.pending,
            )
            .values(
                status=SwapStatus.accepted,
                accepter_id=caller.employee_id,
                accepted_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning("Lost accept race on shift swap %s", swap_id)
            raise _not_found(swap_id, "Shift swap not found or already actioned.")

        await db.refresh(swap)
        logger.info("Shift swap %s accepted by %s", swap_id, caller.employee_id)
        return ShiftSwapOut.model_validate(swap)

    # ─────────────────────────────────────────────────────────────────
    # Manager decision
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def _decide(
        db: AsyncSession,
        caller: Caller,
        swap_id: uuid.UUID,
        outcome: SwapStatus,
    ) -> ShiftSwapOut:
        ensure_manager(caller)

        result = await db.execute(
            update(ShiftSwap)
            .where(
                ShiftSwap.id == swap_id,
                ShiftSwap.status == SwapStatus.accepted,
            )
            .values(
                status=outcome,
                decided_at=datetime.now(timezone.utc),
                decided_by=caller.employee_id,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise _not_found(swap_id, "Request not found or not in accepted state.")

        swap = await SwapService._get_swap(db, swap_id)
        logger.info("Shift swap %s %s by %s", swap_id, outcome.value, caller.employee_id)
        return ShiftSwapOut.model_validate(swap)

    @staticmethod
    async def manager_approve(
        db: AsyncSession,
        caller: Caller,
        swap_id: uuid.UUID,
    ) -> ShiftSwapOut:
        return await SwapService._decide(db, caller, swap_id, SwapStatus.approved)

    @staticmethod
    async def manager_deny(
        db: AsyncSession,
        caller: Caller,
        swap_id: uuid.UUID,
    ) -> ShiftSwapOut:
        return await SwapService._decide(db, caller, swap_id, SwapStatus.denied)

    # ─────────────────────────────────────────────────────────────────
    # Withdraw
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def withdraw(
        db: AsyncSession,
        caller: Caller,
        swap_id: uuid.UUID,
    ) -> None:
        """Delete the caller's own proposal while it is still pending."""

        result = await db.execute(
            delete(ShiftSwap)
            .where(
                ShiftSwap.id == swap_id,
                ShiftSwap.requester_id == caller.employee_id,
                ShiftSwap.status == SwapStatus.pending,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise _not_found(swap_id, "Request not found or cannot be withdrawn.")
        logger.info("Shift swap %s withdrawn by %s", swap_id, caller.employee_id)

    # ─────────────────────────────────────────────────────────────────
    # Read projections
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def list_available_for(
        db: AsyncSession,
        caller: Caller,
    ) -> list[AvailableSwapOut]:
        """Pending swaps open to the caller, excluding the caller's own."""

        result = await db.execute(
            select(ShiftSwap, Requester.full_name, Requester.username)
            .join(Requester, ShiftSwap.requester_id == Requester.id)
            .where(
                ShiftSwap.status == SwapStatus.pending,
                ShiftSwap.requester_id != caller.employee_id,
                or_(
                    ShiftSwap.requested_with_id.is_(None),
                    ShiftSwap.requested_with_id == caller.employee_id,
                ),
            )
            .order_by(ShiftSwap.created_at, ShiftSwap.id)
        )
        output: list[AvailableSwapOut] = []
        for swap, full_name, username in result.all():
            out = AvailableSwapOut.model_validate(swap)
            out.from_colleague = _name(full_name, username)
            output.append(out)
        return output

    @staticmethod
    async def list_outgoing_for(
        db: AsyncSession,
        caller: Caller,
    ) -> list[OutgoingSwapOut]:
        """The caller's own proposals in any status, newest first."""

        result = await db.execute(
            select(ShiftSwap, Target.full_name, Target.username)
            .outerjoin(Target, ShiftSwap.requested_with_id == Target.id)
            .where(ShiftSwap.requester_id == caller.employee_id)
            .order_by(ShiftSwap.created_at.desc(), ShiftSwap.id)
        )
        output: list[OutgoingSwapOut] = []
        for swap, full_name, username in result.all():
            out = OutgoingSwapOut.model_validate(swap)
            out.with_colleague = _name(full_name, username)
            output.append(out)
        return output

    @staticmethod
    async def list_awaiting_approval(
        db: AsyncSession,
        caller: Caller,
    ) -> list[AwaitingApprovalOut]:
        """Accepted swaps waiting for a manager, oldest acceptance first."""

        ensure_manager(caller)

        result = await db.execute(
            select(
                ShiftSwap,
                Requester.full_name, Requester.username,
                Accepter.full_name, Accepter.username,
            )
            .join(Requester, ShiftSwap.requester_id == Requester.id)
            .join(Accepter, ShiftSwap.accepter_id == Accepter.id)
            .where(ShiftSwap.status == SwapStatus.accepted)
            .order_by(ShiftSwap.accepted_at, ShiftSwap.id)
        )
        return [
            AwaitingApprovalOut(
                id=swap.id,
                requester_id=swap.requester_id,
                requester_name=_name(req_full, req_user),
                requester_shift=swap.requester_shift,
                accepter_id=swap.accepter_id,
                accepter_name=_name(acc_full, acc_user),
                requested_shift=swap.requested_shift,
                accepted_at=swap.accepted_at,
            )
            for swap, req_full, req_user, acc_full, acc_user in result.all()
        ]

    @staticmethod
    async def list_history_for(
        db: AsyncSession,
        caller: Caller,
        limit: Optional[int] = None,
    ) -> list[SwapHistoryOut]:
        """Most recent decided swaps involving the caller, from the caller's side."""

        limit = settings.SWAP_HISTORY_LIMIT if limit is None else limit
        me = caller.employee_id

        result = await db.execute(
            select(
                ShiftSwap,
                Requester.full_name, Requester.username,
                Accepter.full_name, Accepter.username,
            )
            .join(Requester, ShiftSwap.requester_id == Requester.id)
            .outerjoin(Accepter, ShiftSwap.accepter_id == Accepter.id)
            .where(
                or_(ShiftSwap.requester_id == me, ShiftSwap.accepter_id == me),
                ShiftSwap.status.in_([SwapStatus.approved, SwapStatus.denied]),
            )
            .order_by(ShiftSwap.decided_at.desc(), ShiftSwap.created_at.desc())
            .limit(limit)
        )

        history: list[SwapHistoryOut] = []
        for swap, req_full, req_user, acc_full, acc_user in result.all():
            is_requester = swap.requester_id == me
            history.append(SwapHistoryOut(
                id=swap.id,
                my_role=SwapRole.requester if is_requester else SwapRole.accepter,
                my_shift=swap.requester_shift if is_requester else swap.requested_shift,
                colleague_name=(
                    _name(acc_full, acc_user) if is_requester else _name(req_full, req_user)
                ),
                colleague_shift=swap.requested_shift if is_requester else swap.requester_shift,
                status=swap.status,
                decided_at=swap.decided_at,
            ))
        return history
