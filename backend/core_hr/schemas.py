"""Core HR Pydantic v2 schemas — compact employee views embedded in workflow responses."""

import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict

from backend.common.constants import UserRole


class EmployeeBrief(BaseModel):
    """Minimal employee info embedded in leave, swap and schedule responses."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    username: str
    full_name: Optional[str] = None
    role: UserRole
    job_title: Optional[str] = None
    department: Optional[str] = None
