"""Enums and constants for the time manager — closed variants for every status column."""

from __future__ import annotations

import enum


# ── Auth / Roles ────────────────────────────────────────────────────

class UserRole(str, enum.Enum):
    employee = "employee"
    manager = "manager"


# ── Leave ───────────────────────────────────────────────────────────

class LeaveType(str, enum.Enum):
    annual = "annual"
    sick = "sick"
    long_service = "long_service"
    unpaid = "unpaid"
    other = "other"

    @property
    def is_ledgered(self) -> bool:
        """True when approving this type draws down a balance field."""
        return self in LEDGERED_LEAVE_TYPES


class LeaveStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    denied = "denied"


# Leave types backed by a balance field; unpaid/other never touch the ledger.
LEDGERED_LEAVE_TYPES: frozenset[LeaveType] = frozenset(
    {LeaveType.annual, LeaveType.sick, LeaveType.long_service}
)


# ── Shift swaps ─────────────────────────────────────────────────────

class SwapStatus(str, enum.Enum):
    pending = "pending"
    accepted = "accepted"
    approved = "approved"
    denied = "denied"


class SwapRole(str, enum.Enum):
    requester = "Requester"
    accepter = "Accepter"


# ── Schedule ────────────────────────────────────────────────────────

# Shift types are free text; these two carry meaning for the resolver.
SHIFT_TYPE_REGULAR = "regular"
SHIFT_TYPE_LEAVE = "leave"


# ── Misc constants ──────────────────────────────────────────────────

TIME_FORMAT = "%H:%M"
DAYS_PER_WEEK = 7
MINUTES_PER_DAY = 24 * 60
