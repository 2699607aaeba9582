"""Tests for common utilities — exception mapping, unit of work, logging,
caller identity and the bearer token dependency.
"""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal

import pytest
from fastapi import FastAPI
from fastapi.exceptions import HTTPException
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError

from backend import database
from backend.auth.dependencies import get_current_caller
from backend.auth.identity import Caller, ensure_manager, ensure_self_or_manager
from backend.common.constants import LeaveType, UserRole
from backend.common.exceptions import (
    AlreadyProcessedException,
    BalanceRecordMissingException,
    ForbiddenException,
    InsufficientBalanceException,
    MissingFieldException,
    NotAnEmployeeRoleException,
    NotFoundException,
    SelfAcceptNotAllowedException,
    StorageFailureException,
    register_exception_handlers,
)
from backend.common.log import configure_logging
from backend.core_hr.models import Employee


# ═════════════════════════════════════════════════════════════════════
# Exception → problem document
# ═════════════════════════════════════════════════════════════════════


class TestExceptionMapping:

    @pytest.mark.parametrize(
        "exc, status, error_type",
        [
            (NotFoundException("LeaveRequest", "x"), 404, "not-found"),
            (ForbiddenException(), 403, "forbidden"),
            (SelfAcceptNotAllowedException(), 403, "self-accept-not-allowed"),
            (AlreadyProcessedException("LeaveRequest", "x", "approved"), 409, "already-processed"),
            (InsufficientBalanceException("annual", Decimal("4"), Decimal("8")), 409, "insufficient-balance"),
            (MissingFieldException(["leave_type"]), 422, "missing-field"),
            (NotAnEmployeeRoleException("x"), 400, "not-an-employee"),
            (BalanceRecordMissingException("x"), 500, "balance-record-missing"),
            (StorageFailureException(), 503, "storage-failure"),
        ],
    )
    def test_status_and_type(self, exc, status, error_type):
        assert exc.status_code == status
        assert exc.error_type == error_type

    def test_insufficient_detail_names_both_amounts(self):
        exc = InsufficientBalanceException("sick", Decimal("10.0"), Decimal("10.5"))
        assert exc.detail == "Insufficient sick leave balance. Available: 10.0, Requested: 10.5."

    async def test_handlers_render_problem_json(self):
        app = FastAPI()
        register_exception_handlers(app)

        @app.get("/boom")
        async def boom():
            raise NotFoundException("ShiftSwap", "abc", detail="Gone.")

        @app.get("/storage")
        async def storage():
            raise OperationalError("UPDATE leave_balances", {}, Exception("locked"))

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            boom_resp = await ac.get("/boom")
            storage_resp = await ac.get("/storage")

        assert boom_resp.status_code == 404
        assert boom_resp.headers["content-type"].startswith("application/problem+json")
        assert boom_resp.json() == {
            "type": "https://time.brendilka.com/errors/not-found",
            "title": "ShiftSwap Not Found",
            "status": 404,
            "detail": "Gone.",
            "instance": "/boom",
        }
        assert storage_resp.status_code == 503
        assert storage_resp.json()["type"].endswith("/storage-failure")


# ═════════════════════════════════════════════════════════════════════
# Unit of work
# ═════════════════════════════════════════════════════════════════════


class TestGetDb:

    async def test_commits_on_success(self, monkeypatch, session_factory):
        monkeypatch.setattr(database, "async_session_factory", session_factory)

        gen = database.get_db()
        session = await gen.__anext__()
        emp_id = uuid.uuid4()
        session.add(Employee(id=emp_id, username="committed", role=UserRole.employee))
        with pytest.raises(StopAsyncIteration):
            await gen.__anext__()

        async with session_factory() as check:
            assert await check.get(Employee, emp_id) is not None

    async def test_failed_commit_becomes_storage_failure(self, monkeypatch, session_factory):
        monkeypatch.setattr(database, "async_session_factory", session_factory)

        gen = database.get_db()
        session = await gen.__anext__()
        session.add(Employee(id=uuid.uuid4(), username="twin", role=UserRole.employee))
        session.add(Employee(id=uuid.uuid4(), username="twin", role=UserRole.employee))

        with pytest.raises(StorageFailureException):
            await gen.__anext__()

        async with session_factory() as check:
            result = await check.execute(
                Employee.__table__.select().where(Employee.username == "twin")
            )
            assert result.all() == []

    async def test_workflow_error_rolls_back(self, monkeypatch, session_factory):
        monkeypatch.setattr(database, "async_session_factory", session_factory)

        gen = database.get_db()
        session = await gen.__anext__()
        emp_id = uuid.uuid4()
        session.add(Employee(id=emp_id, username="rolled-back", role=UserRole.employee))
        await session.flush()

        with pytest.raises(ForbiddenException):
            await gen.athrow(ForbiddenException())

        async with session_factory() as check:
            assert await check.get(Employee, emp_id) is None


# ═════════════════════════════════════════════════════════════════════
# Logging
# ═════════════════════════════════════════════════════════════════════


class TestConfigureLogging:

    def test_quiets_sql_engine_unless_echoing(self):
        configure_logging("debug")
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

    def test_echo_leaves_sql_engine_logger_alone(self):
        engine_logger = logging.getLogger("sqlalchemy.engine")
        engine_logger.setLevel(logging.INFO)
        try:
            configure_logging("not-a-level", sql_echo=True)
            assert engine_logger.level == logging.INFO
        finally:
            engine_logger.setLevel(logging.WARNING)


# ═════════════════════════════════════════════════════════════════════
# Identity
# ═════════════════════════════════════════════════════════════════════


class TestIdentity:

    def test_manager_checks(self):
        manager = Caller(employee_id=uuid.uuid4(), role=UserRole.manager)
        employee = Caller(employee_id=uuid.uuid4(), role=UserRole.employee)

        ensure_manager(manager)
        ensure_self_or_manager(manager, uuid.uuid4())
        ensure_self_or_manager(employee, employee.employee_id)
        with pytest.raises(ForbiddenException):
            ensure_manager(employee)
        with pytest.raises(ForbiddenException):
            ensure_self_or_manager(employee, uuid.uuid4())

    def test_ledgered_types(self):
        assert {t for t in LeaveType if t.is_ledgered} == {
            LeaveType.annual, LeaveType.sick, LeaveType.long_service,
        }


class _FakeRequest:
    def __init__(self, headers: dict[str, str]) -> None:
        self.headers = headers


class TestBearerDependency:

    async def test_valid_token_yields_caller(self, access_token):
        emp_id = uuid.uuid4()
        request = _FakeRequest({"Authorization": f"Bearer {access_token(emp_id, UserRole.manager)}"})

        caller = await get_current_caller(request)

        assert caller == Caller(employee_id=emp_id, role=UserRole.manager)

    @pytest.mark.parametrize("header", [None, "Token abc", "Bearer not-a-jwt"])
    async def test_bad_header_is_unauthorized(self, header):
        request = _FakeRequest({"Authorization": header} if header else {})
        with pytest.raises(HTTPException) as exc_info:
            await get_current_caller(request)
        assert exc_info.value.status_code == 401

