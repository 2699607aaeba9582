"""Shift swap Pydantic v2 schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from backend.common.constants import SwapRole, SwapStatus


class ShiftSwapCreate(BaseModel):
    """Payload for proposing a swap; omit ``requested_with_id`` for an open swap."""

    requester_shift: Optional[str] = Field(None, max_length=200)
    requested_shift: Optional[str] = Field(None, max_length=200)
    requested_with_id: Optional[uuid.UUID] = None


class ShiftSwapOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    requester_id: uuid.UUID
    requester_shift: str
    requested_shift: str
    requested_with_id: Optional[uuid.UUID] = None
    accepter_id: Optional[uuid.UUID] = None
    status: SwapStatus
    created_at: datetime
    accepted_at: Optional[datetime] = None
    decided_at: Optional[datetime] = None


class OutgoingSwapOut(ShiftSwapOut):
    """One of the caller's own proposals."""

    with_colleague: Optional[str] = None


class AvailableSwapOut(ShiftSwapOut):
    """A pending proposal the caller may accept."""

    from_colleague: Optional[str] = None


class AwaitingApprovalOut(BaseModel):
    """An accepted swap waiting for a manager decision."""

    id: uuid.UUID
    requester_id: uuid.UUID
    requester_name: Optional[str] = None
    requester_shift: str
    accepter_id: uuid.UUID
    accepter_name: Optional[str] = None
    requested_shift: str
    accepted_at: Optional[datetime] = None


class SwapHistoryOut(BaseModel):
    """A decided swap seen from the caller's side of the exchange."""

    id: uuid.UUID
    my_role: SwapRole
    my_shift: str
    colleague_name: Optional[str] = None
    colleague_shift: str
    status: SwapStatus
    decided_at: Optional[datetime] = None
