"""Caller identity passed explicitly into every workflow operation.

The workflows never read ambient request or session state; the router
resolves a ``Caller`` once and hands it down.
"""

from __future__ import annotations

import uuid

from pydantic import BaseModel, ConfigDict

from backend.common.constants import UserRole
from backend.common.exceptions import ForbiddenException


class Caller(BaseModel):
    """An authenticated ``(employee_id, role)`` pair."""

    model_config = ConfigDict(frozen=True)

    employee_id: uuid.UUID
    role: UserRole

    @property
    def is_manager(self) -> bool:
        return self.role == UserRole.manager


def ensure_manager(caller: Caller) -> None:
    """Capability check for approve/deny/schedule-admin operations."""
    if not caller.is_manager:
        raise ForbiddenException("Manager role required.")


def ensure_self_or_manager(caller: Caller, employee_id: uuid.UUID) -> None:
    """Employees may only read their own records; managers may read anyone's."""
    if not caller.is_manager and caller.employee_id != employee_id:
        raise ForbiddenException("Access denied.")
