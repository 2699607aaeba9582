"""Custom exceptions and RFC 7807 Problem Detail error handlers.

Every workflow failure is a tagged ``AppException`` subclass; the HTTP layer
only maps ``status_code`` and renders the problem document.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

BASE_ERROR_URI = "https://time.brendilka.com/errors"

logger = logging.getLogger(__name__)


# ── Exception hierarchy ─────────────────────────────────────────────

class AppException(Exception):
    """Base for all application exceptions → RFC 7807 JSON."""

    def __init__(
        self,
        status_code: int,
        error_type: str,
        title: str,
        detail: str,
        errors: Optional[dict[str, Any]] = None,
    ) -> None:
        self.status_code = status_code
        self.error_type = error_type
        self.title = title
        self.detail = detail
        self.errors = errors
        super().__init__(detail)


class NotFoundException(AppException):
    """404 — entity absent, or not in the state the operation needs."""

    def __init__(self, entity_type: str, entity_id: Any, detail: Optional[str] = None) -> None:
        super().__init__(
            status_code=404,
            error_type="not-found",
            title=f"{entity_type} Not Found",
            detail=detail or f"{entity_type} with id '{entity_id}' does not exist.",
        )


class ForbiddenException(AppException):
    """403 — insufficient permissions."""

    def __init__(
        self,
        detail: str = "You do not have permission to perform this action.",
    ) -> None:
        super().__init__(
            status_code=403,
            error_type="forbidden",
            title="Forbidden",
            detail=detail,
        )


class AlreadyProcessedException(AppException):
    """409 — re-entry into a request that already reached a terminal state."""

    def __init__(self, entity_type: str, entity_id: Any, status: str) -> None:
        super().__init__(
            status_code=409,
            error_type="already-processed",
            title="Already Processed",
            detail=f"{entity_type} '{entity_id}' has already been processed ({status}).",
        )


class ValidationException(AppException):
    """422 — business-logic validation failures."""

    error_type = "validation-error"

    def __init__(self, errors: dict[str, list[str]]) -> None:
        super().__init__(
            status_code=422,
            error_type=self.error_type,
            title="Validation Error",
            detail="One or more fields failed validation.",
            errors=errors,
        )


class InvalidHoursException(ValidationException):
    error_type = "invalid-hours"

    def __init__(self, field: str = "hours_requested") -> None:
        super().__init__({field: ["Hours requested must be a positive number."]})


class MissingFieldException(ValidationException):
    error_type = "missing-field"

    def __init__(self, fields: list[str]) -> None:
        super().__init__({f: ["This field is required."] for f in fields})


class MissingShiftException(ValidationException):
    error_type = "missing-shift"

    def __init__(self, fields: list[str]) -> None:
        super().__init__({f: ["Both of your shifts must be specified."] for f in fields})


class NegativeValueException(ValidationException):
    error_type = "negative-value"

    def __init__(self, fields: list[str]) -> None:
        super().__init__({f: ["Balance values cannot be negative."] for f in fields})


class InsufficientBalanceException(AppException):
    """409 — a deduction would drive a balance field below zero."""

    def __init__(self, leave_type: str, available: Decimal, requested: Decimal) -> None:
        self.leave_type = leave_type
        self.available = available
        self.requested = requested
        super().__init__(
            status_code=409,
            error_type="insufficient-balance",
            title="Insufficient Balance",
            detail=(
                f"Insufficient {leave_type} leave balance. "
                f"Available: {available}, Requested: {requested}."
            ),
        )


class SelfAcceptNotAllowedException(AppException):
    """403 — a requester tried to accept their own shift swap."""

    def __init__(self) -> None:
        super().__init__(
            status_code=403,
            error_type="self-accept-not-allowed",
            title="Forbidden",
            detail="You cannot accept your own shift swap request.",
        )


class NotAnEmployeeRoleException(AppException):
    """400 — balance administration targeted a non-employee account."""

    def __init__(self, employee_id: Any) -> None:
        super().__init__(
            status_code=400,
            error_type="not-an-employee",
            title="Not An Employee",
            detail=f"Account '{employee_id}' is not an employee; only employee balances can be set.",
        )


class BalanceRecordMissingException(AppException):
    """500 — an employee expected to own a balance row has none."""

    def __init__(self, employee_id: Any) -> None:
        super().__init__(
            status_code=500,
            error_type="balance-record-missing",
            title="Balance Record Missing",
            detail=f"Leave balance for employee '{employee_id}' was not found.",
        )


class StorageFailureException(AppException):
    """503 — the unit of work could not be committed."""

    def __init__(self, detail: str = "The operation could not be saved. Please retry.") -> None:
        super().__init__(
            status_code=503,
            error_type="storage-failure",
            title="Storage Failure",
            detail=detail,
        )


# ── RFC 7807 builder ────────────────────────────────────────────────

def _build_problem_detail(exc: AppException, request: Request) -> dict[str, Any]:
    body: dict[str, Any] = {
        "type": f"{BASE_ERROR_URI}/{exc.error_type}",
        "title": exc.title,
        "status": exc.status_code,
        "detail": exc.detail,
        "instance": str(request.url.path),
    }
    if exc.errors:
        body["errors"] = exc.errors
    return body


# ── FastAPI handlers ────────────────────────────────────────────────

async def _handle_app_exception(
    request: Request,
    exc: AppException,
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_build_problem_detail(exc, request),
        media_type="application/problem+json",
    )


async def _handle_storage_error(
    request: Request,
    exc: SQLAlchemyError,
) -> JSONResponse:
    logger.error("Storage failure on %s: %s", request.url.path, exc)
    return await _handle_app_exception(request, StorageFailureException())


async def _handle_validation_error(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    field_errors: dict[str, list[str]] = {}
    for err in exc.errors():
        loc = err.get("loc", ())
        name = (
            ".".join(str(p) for p in loc[1:])
            if len(loc) > 1
            else str(loc[0]) if loc else "unknown"
        )
        field_errors.setdefault(name, []).append(err.get("msg", "Invalid value"))

    return JSONResponse(
        status_code=422,
        content={
            "type": f"{BASE_ERROR_URI}/validation-error",
            "title": "Validation Error",
            "status": 422,
            "detail": "Request validation failed.",
            "instance": str(request.url.path),
            "errors": field_errors,
        },
        media_type="application/problem+json",
    )


# ── Registration helper (called from main.py) ──────────────────────

def register_exception_handlers(app: FastAPI) -> None:
    """Attach all custom exception handlers to the FastAPI app."""
    app.add_exception_handler(AppException, _handle_app_exception)          # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, _handle_storage_error)       # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _handle_validation_error)  # type: ignore[arg-type]
