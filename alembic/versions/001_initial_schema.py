"""001 – Initial schema: employees, leave ledger, leave requests, shift swaps, schedules.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18 09:00:00.000000+00:00
"""

from alembic import op
import sqlalchemy as sa

# Revision identifiers
revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


# ---------------------------------------------------------------------------
# UPGRADE
# ---------------------------------------------------------------------------


def upgrade() -> None:
    # ── Extensions ────────────────────────────────────────────────────────
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')

    # Status and type columns are plain VARCHAR; the application owns the
    # closed value sets.

    # ── 1. employees ──────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE employees (
            id             UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            username       VARCHAR(100) NOT NULL UNIQUE,
            role           VARCHAR(20)  NOT NULL DEFAULT 'employee',
            full_name      VARCHAR(200),
            job_title      VARCHAR(100),
            department     VARCHAR(100),
            created_at     TIMESTAMPTZ DEFAULT NOW()
        )
    """)

    # ── 2. leave_balances ─────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE leave_balances (
            id                  UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_id         UUID NOT NULL UNIQUE
                                REFERENCES employees(id) ON DELETE CASCADE,
            annual_hours        NUMERIC(6,2) NOT NULL DEFAULT 80.0,
            sick_hours          NUMERIC(6,2) NOT NULL DEFAULT 80.0,
            long_service_hours  NUMERIC(6,2) NOT NULL DEFAULT 0.0,
            updated_at          TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_leave_balance_annual_non_negative CHECK (annual_hours >= 0),
            CONSTRAINT ck_leave_balance_sick_non_negative CHECK (sick_hours >= 0),
            CONSTRAINT ck_leave_balance_long_service_non_negative
                CHECK (long_service_hours >= 0)
        )
    """)

    # ── 3. leave_requests ─────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE leave_requests (
            id               UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_id      UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            leave_type       VARCHAR(20)  NOT NULL,
            start_date       DATE         NOT NULL,
            end_date         DATE         NOT NULL,
            hours_requested  NUMERIC(6,2) NOT NULL,
            comments         TEXT,
            status           VARCHAR(20)  NOT NULL DEFAULT 'pending',
            requested_at     TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            approved_at      TIMESTAMPTZ,
            reviewed_by      UUID REFERENCES employees(id) ON DELETE SET NULL,
            CONSTRAINT ck_leave_request_hours_positive CHECK (hours_requested > 0)
        )
    """)
    op.create_index(
        "ix_leave_requests_status_requested_at",
        "leave_requests", ["status", "requested_at"],
    )
    op.create_index(
        "ix_leave_requests_employee_requested_at",
        "leave_requests", ["employee_id", "requested_at"],
    )

    # ── 4. shift_swaps ────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE shift_swaps (
            id                 UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            requester_id       UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            requester_shift    VARCHAR(200) NOT NULL,
            requested_shift    VARCHAR(200) NOT NULL,
            requested_with_id  UUID REFERENCES employees(id) ON DELETE CASCADE,
            accepter_id        UUID REFERENCES employees(id) ON DELETE CASCADE,
            status             VARCHAR(20) NOT NULL DEFAULT 'pending',
            created_at         TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            accepted_at        TIMESTAMPTZ,
            decided_at         TIMESTAMPTZ,
            decided_by         UUID REFERENCES employees(id) ON DELETE SET NULL
        )
    """)
    op.create_index("ix_shift_swaps_status", "shift_swaps", ["status"])
    op.create_index("ix_shift_swaps_requester_id", "shift_swaps", ["requester_id"])
    op.create_index("ix_shift_swaps_accepter_id", "shift_swaps", ["accepter_id"])

    # ── 5. schedule_entries ───────────────────────────────────────────────
    op.execute("""
        CREATE TABLE schedule_entries (
            id                UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_id       UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            week_start_date   DATE     NOT NULL,
            day_of_week       SMALLINT NOT NULL,
            shift_start_time  TIME,
            shift_end_time    TIME,
            shift_type        VARCHAR(20) NOT NULL DEFAULT 'regular',
            created_at        TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at        TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_schedule_entry_slot
                UNIQUE (employee_id, week_start_date, day_of_week),
            CONSTRAINT ck_schedule_entry_day_of_week CHECK (day_of_week BETWEEN 0 AND 6)
        )
    """)
    op.create_index(
        "ix_schedule_entries_week_start_date", "schedule_entries", ["week_start_date"],
    )

    # ── 6. schedule_patterns ──────────────────────────────────────────────
    op.execute("""
        CREATE TABLE schedule_patterns (
            id             UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_id    UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            pattern_weeks  INTEGER NOT NULL DEFAULT 1,
            is_active      BOOLEAN NOT NULL DEFAULT TRUE,
            created_at     TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_schedule_pattern_weeks_positive CHECK (pattern_weeks >= 1)
        )
    """)
    op.create_index(
        "uq_schedule_patterns_one_active",
        "schedule_patterns", ["employee_id"],
        unique=True,
        postgresql_where=sa.text("is_active"),
    )


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    # Drop tables in reverse dependency order
    tables = [
        "schedule_patterns",
        "schedule_entries",
        "shift_swaps",
        "leave_requests",
        "leave_balances",
        "employees",
    ]
    for t in tables:
        op.execute(f"DROP TABLE IF EXISTS {t} CASCADE")

    op.execute('DROP EXTENSION IF EXISTS "uuid-ossp"')
