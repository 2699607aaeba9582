"""Leave service layer — submission and the pending → approved/denied machine.

Business logic:
  - Submission validates presence and positivity, always lands in pending
  - Approval deducts from the ledger and claims the request in the same
    unit of work; an insufficient balance aborts before anything is written
  - Denial only moves a still-pending request and never touches the ledger
  - Pending queue (oldest first) and per-employee history (newest first)
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from backend.auth.identity import Caller, ensure_manager, ensure_self_or_manager
from backend.common.constants import LeaveStatus
from backend.common.exceptions import (
    AlreadyProcessedException,
    InvalidHoursException,
    MissingFieldException,
    NotFoundException,
    ValidationException,
)
from backend.leave.ledger import BalanceLedger
from backend.leave.models import LeaveRequest
from backend.leave.schemas import (
    LeaveApprovalResult,
    LeaveRequestCreate,
    LeaveRequestOut,
    PendingLeaveOut,
)
from backend.schedule.service import ScheduleService

logger = logging.getLogger(__name__)


def _approval_message(result: LeaveApprovalResult) -> str:
    if not result.leave_type.is_ledgered:
        return "Request approved."
    label = result.leave_type.value.replace("_", " ")
    return (
        f"Request approved. {result.hours_deducted} hours deducted "
        f"from {label} leave balance."
    )


# ═════════════════════════════════════════════════════════════════════
# LeaveService
# ═════════════════════════════════════════════════════════════════════


class LeaveService:
    """Async service for the leave approval workflow."""

    @staticmethod
    async def _get_request(db: AsyncSession, request_id: uuid.UUID) -> LeaveRequest:
        result = await db.execute(
            select(LeaveRequest)
            .where(LeaveRequest.id == request_id)
            .execution_options(populate_existing=True)
        )
        leave_req = result.scalars().first()
        if not leave_req:
            raise NotFoundException("LeaveRequest", str(request_id))
        return leave_req

    # ─────────────────────────────────────────────────────────────────
    # Submit
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def submit(
        db: AsyncSession,
        caller: Caller,
        data: LeaveRequestCreate,
    ) -> LeaveRequestOut:
        """Create a pending leave request owned by the caller."""

        missing = [
            name for name in ("leave_type", "start_date", "end_date", "hours_requested")
            if getattr(data, name) is None
        ]
        if missing:
            raise MissingFieldException(missing)
        if data.hours_requested <= 0:
            raise InvalidHoursException()
        if data.end_date < data.start_date:
            raise ValidationException(
                {"end_date": ["End date must be on or after the start date."]}
            )

        leave_req = LeaveRequest(
            employee_id=caller.employee_id,
            leave_type=data.leave_type,
            start_date=data.start_date,
            end_date=data.end_date,
            hours_requested=data.hours_requested,
            comments=data.comments,
            status=LeaveStatus.pending,
            requested_at=datetime.now(timezone.utc),
            approved_at=None,
            reviewed_by=None,
        )
        db.add(leave_req)
        await db.flush()

        logger.info(
            "Leave request %s submitted by %s: %s %s hours (%s to %s)",
            leave_req.id, caller.employee_id, data.leave_type.value,
            data.hours_requested, data.start_date, data.end_date,
        )
        return LeaveRequestOut.model_validate(leave_req)

    # ─────────────────────────────────────────────────────────────────
    # Approve
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def approve(
        db: AsyncSession,
        caller: Caller,
        request_id: uuid.UUID,
    ) -> LeaveApprovalResult:
        """Approve a pending request and draw its hours from the ledger.

        The deduction and the status change are flushed into the same
        transaction; the caller's unit of work commits or rolls back both.
        """

        ensure_manager(caller)

        leave_req = await LeaveService._get_request(db, request_id)
        if leave_req.status != LeaveStatus.pending:
            raise AlreadyProcessedException(
                "LeaveRequest", str(request_id), leave_req.status.value
            )

        scheduled = await ScheduleService.scheduled_hours(
            db, leave_req.employee_id, leave_req.start_date, leave_req.end_date
        )
        if scheduled is not None and leave_req.hours_requested > scheduled:
            logger.warning(
                "Leave request %s asks for %s hours but only %s are scheduled",
                request_id, leave_req.hours_requested, scheduled,
            )

        if leave_req.leave_type.is_ledgered:
            await BalanceLedger.get_or_create(db, leave_req.employee_id)

        remaining = await BalanceLedger.deduct(
            db, leave_req.employee_id, leave_req.leave_type, leave_req.hours_requested
        )

        now = datetime.now(timezone.utc)
        claimed = await db.execute(
            update(LeaveRequest)
            .where(
                LeaveRequest.id == request_id,
                LeaveRequest.status == LeaveStatus.pending,
            )
            .values(
                status=LeaveStatus.approved,
                approved_at=now,
                reviewed_by=caller.employee_id,
            )
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount != 1:
            # Another approver won; raising discards this deduction too
            logger.warning("Lost approval race on leave request %s", request_id)
            raise AlreadyProcessedException("LeaveRequest", str(request_id), "approved")

        await db.refresh(leave_req)

        result = LeaveApprovalResult(
            request_id=leave_req.id,
            status=leave_req.status,
            leave_type=leave_req.leave_type,
            hours_deducted=(
                leave_req.hours_requested if leave_req.leave_type.is_ledgered else Decimal("0")
            ),
            remaining_balance=remaining,
            scheduled_hours=scheduled,
            message="",
        )
        result.message = _approval_message(result)

        logger.info(
            "Leave request %s approved by %s (%s, %s hours, remaining=%s)",
            request_id, caller.employee_id, leave_req.leave_type.value,
            result.hours_deducted, remaining,
        )
        return result

    # ─────────────────────────────────────────────────────────────────
    # Deny
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def deny(
        db: AsyncSession,
        caller: Caller,
        request_id: uuid.UUID,
    ) -> LeaveRequestOut:
        """Deny a request that is still pending; the ledger is never touched."""

        ensure_manager(caller)

        result = await db.execute(
            update(LeaveRequest)
            .where(
                LeaveRequest.id == request_id,
                LeaveRequest.status == LeaveStatus.pending,
            )
            .values(status=LeaveStatus.denied, reviewed_by=caller.employee_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise NotFoundException(
                "LeaveRequest",
                str(request_id),
                detail=f"Leave request '{request_id}' not found or already processed.",
            )

        leave_req = await LeaveService._get_request(db, request_id)
        logger.info("Leave request %s denied by %s", request_id, caller.employee_id)
        return LeaveRequestOut.model_validate(leave_req)

    # ─────────────────────────────────────────────────────────────────
    # Read projections
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def list_pending_for_manager(
        db: AsyncSession,
        caller: Caller,
    ) -> list[PendingLeaveOut]:
        """Pending requests across all employees, oldest first."""

        ensure_manager(caller)

        result = await db.execute(
            select(LeaveRequest)
            .options(selectinload(LeaveRequest.employee))
            .where(LeaveRequest.status == LeaveStatus.pending)
            .order_by(LeaveRequest.requested_at.asc(), LeaveRequest.id)
        )
        output: list[PendingLeaveOut] = []
        for leave_req in result.scalars().all():
            out = PendingLeaveOut.model_validate(leave_req)
            out.username = leave_req.employee.username
            out.full_name = leave_req.employee.full_name
            output.append(out)
        return output

    @staticmethod
    async def list_history_for_employee(
        db: AsyncSession,
        caller: Caller,
        employee_id: uuid.UUID,
    ) -> list[LeaveRequestOut]:
        """All of one employee's requests, most recent first."""

        ensure_self_or_manager(caller, employee_id)

        result = await db.execute(
            select(LeaveRequest)
            .where(LeaveRequest.employee_id == employee_id)
            .order_by(LeaveRequest.requested_at.desc(), LeaveRequest.id)
        )
        return [LeaveRequestOut.model_validate(r) for r in result.scalars().all()]
