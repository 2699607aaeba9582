"""Async SQLAlchemy engine and session management.

Each request runs inside one session whose transaction is the unit of work:
services only flush, ``get_db`` commits on success and rolls back on any
failure, so a workflow operation is applied completely or not at all.
"""

import logging
from typing import Any

from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from backend.common.exceptions import StorageFailureException
from backend.config import settings

logger = logging.getLogger(__name__)


def enable_immediate_transactions(engine: AsyncEngine) -> None:
    """Make every SQLite transaction start with ``BEGIN IMMEDIATE``.

    pysqlite/aiosqlite defer ``BEGIN`` until the first write, so two readers
    can both pass a guard and then fail to upgrade their locks. Taking the
    write lock up front serializes writers on the database lock instead.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def _engine_options() -> dict[str, Any]:
    options: dict[str, Any] = {"echo": settings.ENVIRONMENT == "development"}
    if settings.is_sqlite:
        options["connect_args"] = {"timeout": settings.SQLITE_BUSY_TIMEOUT_SECONDS}
    else:
        options.update(
            pool_size=settings.DATABASE_POOL_SIZE,
            max_overflow=settings.DATABASE_MAX_OVERFLOW,
            pool_pre_ping=True,
        )
    return options


# Async engine for FastAPI
engine = create_async_engine(settings.DATABASE_URL, **_engine_options())
if settings.is_sqlite:
    enable_immediate_transactions(engine)

# Async session factory
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


async def get_db() -> AsyncSession:
    """FastAPI dependency: yield an async database session (one unit of work)."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as exc:
            await session.rollback()
            logger.exception("Unit of work failed to commit")
            raise StorageFailureException() from exc
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
