"""Shared test fixtures — async DB, client, auth helpers, factories.

Reusable across all test modules (ledger, leave, swaps, schedule, API).
Uses SQLite + aiosqlite for fast isolated tests without PostgreSQL.
"""

from __future__ import annotations

import os

# Set test settings before any other import touches pydantic-settings
os.environ.setdefault("JWT_SECRET", "test-secret-for-ci-do-not-use-in-production")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("ENVIRONMENT", "test")

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import AsyncGenerator, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from backend.auth.identity import Caller
from backend.common.constants import UserRole
from backend.config import settings
from backend.database import Base, enable_immediate_transactions, get_db
from backend.main import create_app

# Import ALL model modules so SQLAlchemy can resolve cross-module relationships
# (e.g. Employee → LeaveBalance, ScheduleEntry)
import backend.core_hr.models  # noqa: F401
import backend.leave.models  # noqa: F401
import backend.schedule.models  # noqa: F401
import backend.swaps.models  # noqa: F401

# ── SQLite compat: compile PG-specific types ────────────────────────

from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.ext.compiler import compiles


@compiles(PG_UUID, "sqlite")
def _uuid_sqlite(element, compiler, **kw):
    return "CHAR(36)"


# ── Test database (SQLite in-memory) ────────────────────────────────

TEST_DATABASE_URL = "sqlite+aiosqlite://"

engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# Register PG-compatible functions for SQLite
@event.listens_for(engine.sync_engine, "connect")
def _register_sqlite_functions(dbapi_conn, connection_record):
    """Register NOW() as a SQLite custom function."""
    dbapi_conn.create_function(
        "NOW", 0, lambda: datetime.now(timezone.utc).isoformat(),
    )


TestSessionFactory = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False,
)


@pytest.fixture(autouse=True)
async def _setup_db():
    """Create all tables before each test, drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """Reset rate limiter storage between tests to prevent cross-test interference."""
    from backend.common.rate_limit import limiter

    limiter.reset()
    yield


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── FastAPI test client ─────────────────────────────────────────────

@pytest.fixture
async def app():
    """Create a fresh app instance with DB dependency overridden."""
    application = create_app()
    application.dependency_overrides[get_db] = _override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the test app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ── Database session (for direct DB operations in tests) ────────────

@pytest.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        yield session
        await session.commit()


@pytest.fixture
def session_factory() -> async_sessionmaker[AsyncSession]:
    """Fresh sessions against the same in-memory database."""
    return TestSessionFactory


@pytest.fixture
async def file_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Session factory on a private file database with serialized writers.

    Sessions from this factory really run side by side, and foreign keys
    are enforced so ``ON DELETE`` rules apply.
    """
    file_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}",
        connect_args={"timeout": 15},
    )
    enable_immediate_transactions(file_engine)

    @event.listens_for(file_engine.sync_engine, "connect")
    def _enforce_foreign_keys(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with file_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(file_engine, class_=AsyncSession, expire_on_commit=False)
    await file_engine.dispose()


# ── Model factories ─────────────────────────────────────────────────

@pytest.fixture
def make_employee(db):
    """Return an async factory that inserts an Employee and flushes."""
    from backend.core_hr.models import Employee

    async def _make(
        *,
        username: Optional[str] = None,
        role: UserRole = UserRole.employee,
        full_name: Optional[str] = None,
    ) -> Employee:
        username = username or f"user-{uuid.uuid4().hex[:8]}"
        emp = Employee(
            id=uuid.uuid4(),
            username=username,
            role=role,
            full_name=full_name or username.replace("-", " ").title(),
            job_title=None,
            department=None,
        )
        db.add(emp)
        await db.flush()
        return emp

    return _make


@pytest.fixture
def make_balance(db):
    """Return an async factory that inserts a LeaveBalance row."""
    from backend.leave.models import LeaveBalance

    async def _make(
        employee_id: uuid.UUID,
        *,
        annual: Decimal = Decimal("80.0"),
        sick: Decimal = Decimal("80.0"),
        long_service: Decimal = Decimal("0.0"),
    ) -> LeaveBalance:
        bal = LeaveBalance(
            employee_id=employee_id,
            annual_hours=annual,
            sick_hours=sick,
            long_service_hours=long_service,
            updated_at=datetime.now(timezone.utc),
        )
        db.add(bal)
        await db.flush()
        return bal

    return _make


@pytest.fixture
async def manager(make_employee):
    return await make_employee(username="mia-manager", role=UserRole.manager)


@pytest.fixture
async def employee(make_employee):
    return await make_employee(username="eddie-employee")


@pytest.fixture
def manager_caller(manager) -> Caller:
    return Caller(employee_id=manager.id, role=UserRole.manager)


@pytest.fixture
def employee_caller(employee) -> Caller:
    return Caller(employee_id=employee.id, role=UserRole.employee)


# ── Auth helpers ────────────────────────────────────────────────────

def create_access_token(
    employee_id: uuid.UUID,
    role: UserRole = UserRole.employee,
    expired: bool = False,
    token_type: str = "access",
) -> str:
    """Generate a JWT access token for testing."""
    if expired:
        exp = datetime.now(timezone.utc) - timedelta(hours=1)
    else:
        exp = datetime.now(timezone.utc) + timedelta(hours=1)
    payload = {
        "sub": str(employee_id),
        "role": role.value,
        "type": token_type,
        "exp": exp,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def bearer(employee_id: uuid.UUID, role: UserRole = UserRole.employee) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(employee_id, role)}"}


@pytest.fixture
def auth_headers():
    """Return a helper building Bearer headers for an Employee row."""

    def _headers(emp) -> dict[str, str]:
        return bearer(emp.id, emp.role)

    return _headers


@pytest.fixture
def access_token():
    """Expose the token builder to test modules."""
    return create_access_token
