"""Common module — shared enums, errors and logging for the time manager."""

from backend.common.constants import (
    LEDGERED_LEAVE_TYPES,
    SHIFT_TYPE_LEAVE,
    SHIFT_TYPE_REGULAR,
    TIME_FORMAT,
    LeaveStatus,
    LeaveType,
    SwapRole,
    SwapStatus,
    UserRole,
)
from backend.common.exceptions import (
    AlreadyProcessedException,
    AppException,
    BalanceRecordMissingException,
    ForbiddenException,
    InsufficientBalanceException,
    InvalidHoursException,
    MissingFieldException,
    MissingShiftException,
    NegativeValueException,
    NotAnEmployeeRoleException,
    NotFoundException,
    SelfAcceptNotAllowedException,
    StorageFailureException,
    ValidationException,
    register_exception_handlers,
)
from backend.common.log import configure_logging

__all__ = [
    # Constants / Enums
    "LeaveStatus",
    "LeaveType",
    "SwapRole",
    "SwapStatus",
    "UserRole",
    "LEDGERED_LEAVE_TYPES",
    "SHIFT_TYPE_LEAVE",
    "SHIFT_TYPE_REGULAR",
    "TIME_FORMAT",
    # Exceptions
    "AppException",
    "AlreadyProcessedException",
    "BalanceRecordMissingException",
    "ForbiddenException",
    "InsufficientBalanceException",
    "InvalidHoursException",
    "MissingFieldException",
    "MissingShiftException",
    "NegativeValueException",
    "NotAnEmployeeRoleException",
    "NotFoundException",
    "SelfAcceptNotAllowedException",
    "StorageFailureException",
    "ValidationException",
    "register_exception_handlers",
    # Logging
    "configure_logging",
]
