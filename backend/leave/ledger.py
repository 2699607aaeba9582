"""Balance ledger — per-employee leave entitlement in hours.

Rules:
  - A balance row is created lazily with the configured defaults; creation
    is insert-if-absent, so concurrent first reads converge on one row.
  - Deduction is a single conditional UPDATE. The sufficiency guard and the
    write are one statement, so two approvals racing on the same row can
    never both pass the guard.
  - No field is ever negative: the guard, the absolute-set validation and
    the table's CHECK constraints all enforce it.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import insert, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth.identity import Caller, ensure_manager, ensure_self_or_manager
from backend.common.constants import LeaveType, UserRole
from backend.common.exceptions import (
    BalanceRecordMissingException,
    InsufficientBalanceException,
    NegativeValueException,
    NotAnEmployeeRoleException,
    NotFoundException,
)
from backend.config import settings
from backend.core_hr.models import Employee
from backend.leave.models import BALANCE_COLUMNS, LeaveBalance
from backend.leave.schemas import LeaveBalanceOut, LeaveBalanceUpdate

logger = logging.getLogger(__name__)

# Dialects with native INSERT … ON CONFLICT DO NOTHING
_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class BalanceLedger:
    """Async ledger operations: lazy creation, deduction, administrative overwrite."""

    # ─────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    def _default_hours() -> dict[str, Decimal]:
        return {
            "annual_hours": settings.DEFAULT_ANNUAL_HOURS,
            "sick_hours": settings.DEFAULT_SICK_HOURS,
            "long_service_hours": settings.DEFAULT_LONG_SERVICE_HOURS,
        }

    @staticmethod
    async def _load(db: AsyncSession, employee_id: uuid.UUID) -> Optional[LeaveBalance]:
        result = await db.execute(
            select(LeaveBalance)
            .where(LeaveBalance.employee_id == employee_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @staticmethod
    async def _insert_if_absent(db: AsyncSession, employee_id: uuid.UUID) -> None:
        values = dict(
            id=uuid.uuid4(),
            employee_id=employee_id,
            updated_at=datetime.now(timezone.utc),
            **BalanceLedger._default_hours(),
        )
        dialect = db.get_bind().dialect.name
        dialect_insert = _UPSERT_INSERTS.get(dialect)
        if dialect_insert is not None:
            await db.execute(
                dialect_insert(LeaveBalance)
                .values(**values)
                .on_conflict_do_nothing(index_elements=[LeaveBalance.employee_id])
            )
            return

        # Portable fallback: let the unique constraint pick the winner
        try:
            async with db.begin_nested():
                await db.execute(insert(LeaveBalance).values(**values))
        except IntegrityError:
            logger.info("Balance for %s created concurrently; using existing row", employee_id)

    @staticmethod
    async def _build_out(db: AsyncSession, balance: LeaveBalance) -> LeaveBalanceOut:
        emp_result = await db.execute(
            select(Employee.username, Employee.full_name).where(
                Employee.id == balance.employee_id
            )
        )
        row = emp_result.first()
        out = LeaveBalanceOut.model_validate(balance)
        if row is not None:
            out.username, out.full_name = row.username, row.full_name
        return out

    # ─────────────────────────────────────────────────────────────────
    # Ledger contract
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def get_or_create(db: AsyncSession, employee_id: uuid.UUID) -> LeaveBalance:
        """Return the employee's balance, inserting the defaults if absent."""

        balance = await BalanceLedger._load(db, employee_id)
        if balance is not None:
            return balance

        await BalanceLedger._insert_if_absent(db, employee_id)
        balance = await BalanceLedger._load(db, employee_id)
        if balance is None:
            raise BalanceRecordMissingException(employee_id)
        logger.info("Initialised leave balance for employee %s", employee_id)
        return balance

    @staticmethod
    async def deduct(
        db: AsyncSession,
        employee_id: uuid.UUID,
        leave_type: LeaveType,
        hours: Decimal,
    ) -> Optional[Decimal]:
        """Draw ``hours`` from the field backing ``leave_type``.

        Returns the new field value, or ``None`` for unpaid/other leave,
        which has no ledger effect. Raises ``InsufficientBalanceException``
        without writing anything when the result would be negative.
        """

        if not leave_type.is_ledgered:
            return None

        column = BALANCE_COLUMNS[leave_type]
        result = await db.execute(
            update(LeaveBalance)
            .where(
                LeaveBalance.employee_id == employee_id,
                column >= hours,
            )
            .values({
                column: column - hours,
                LeaveBalance.updated_at: datetime.now(timezone.utc),
            })
            .execution_options(synchronize_session=False)
        )

        current_result = await db.execute(
            select(column).where(LeaveBalance.employee_id == employee_id)
        )
        current = current_result.scalar_one_or_none()

        if result.rowcount == 1:
            return current

        if current is None:
            logger.warning("No leave balance row for employee %s", employee_id)
            raise BalanceRecordMissingException(employee_id)

        logger.warning(
            "Insufficient %s balance for employee %s: available=%s requested=%s",
            leave_type.value, employee_id, current, hours,
        )
        raise InsufficientBalanceException(leave_type.value, current, hours)

    @staticmethod
    async def set_absolute(
        db: AsyncSession,
        caller: Caller,
        employee_id: uuid.UUID,
        data: LeaveBalanceUpdate,
    ) -> LeaveBalanceOut:
        """Administrative overwrite of all three fields (manager only)."""

        ensure_manager(caller)

        negative = [
            name for name, value in (
                ("annual_hours", data.annual_hours),
                ("sick_hours", data.sick_hours),
                ("long_service_hours", data.long_service_hours),
            )
            if value < 0
        ]
        if negative:
            raise NegativeValueException(negative)

        emp_result = await db.execute(
            select(Employee.role).where(Employee.id == employee_id)
        )
        role = emp_result.scalar_one_or_none()
        if role is None:
            raise NotFoundException("Employee", str(employee_id))
        if role != UserRole.employee:
            raise NotAnEmployeeRoleException(employee_id)

        balance = await BalanceLedger.get_or_create(db, employee_id)
        old_values = {
            "annual_hours": str(balance.annual_hours),
            "sick_hours": str(balance.sick_hours),
            "long_service_hours": str(balance.long_service_hours),
        }
        balance.annual_hours = data.annual_hours
        balance.sick_hours = data.sick_hours
        balance.long_service_hours = data.long_service_hours
        balance.updated_at = datetime.now(timezone.utc)
        await db.flush()

        logger.info(
            "Manager %s set leave balance for %s: %s -> annual=%s sick=%s long_service=%s",
            caller.employee_id, employee_id, old_values,
            data.annual_hours, data.sick_hours, data.long_service_hours,
        )
        return await BalanceLedger._build_out(db, balance)

    # ─────────────────────────────────────────────────────────────────
    # Read projections
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def view(
        db: AsyncSession,
        caller: Caller,
        employee_id: uuid.UUID,
    ) -> LeaveBalanceOut:
        """One employee's balance; own balance, or anyone's for managers."""

        ensure_self_or_manager(caller, employee_id)

        emp_check = await db.execute(
            select(Employee.id).where(Employee.id == employee_id)
        )
        if emp_check.scalar() is None:
            raise NotFoundException("Employee", str(employee_id))

        balance = await BalanceLedger.get_or_create(db, employee_id)
        return await BalanceLedger._build_out(db, balance)

    @staticmethod
    async def list_all(db: AsyncSession, caller: Caller) -> list[LeaveBalanceOut]:
        """Every employee-role account's balance, by full name then username."""

        ensure_manager(caller)

        result = await db.execute(
            select(LeaveBalance, Employee.username, Employee.full_name)
            .join(Employee, LeaveBalance.employee_id == Employee.id)
            .where(Employee.role == UserRole.employee)
            .order_by(Employee.full_name, Employee.username)
        )
        output: list[LeaveBalanceOut] = []
        for balance, username, full_name in result.all():
            out = LeaveBalanceOut.model_validate(balance)
            out.username, out.full_name = username, full_name
            output.append(out)
        return output
