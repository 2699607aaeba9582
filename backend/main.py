"""Brendilka Time Manager — FastAPI Application Factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from backend.common.exceptions import register_exception_handlers
from backend.common.log import configure_logging
from backend.common.rate_limit import limiter
from backend.config import settings
from backend.database import engine
from backend.leave.router import balances_router
from backend.leave.router import router as leave_router
from backend.schedule.router import router as schedule_router
from backend.swaps.router import router as swaps_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    logger.info("Starting Brendilka Time Manager (%s)", settings.ENVIRONMENT)
    yield
    await engine.dispose()
    logger.info("Database engine disposed")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    configure_logging(
        settings.LOG_LEVEL,
        sql_echo=settings.ENVIRONMENT == "development",
    )

    app = FastAPI(
        title="Brendilka Time Manager",
        description="Leave ledger, leave approval, shift swaps and schedule patterns",
        version="1.0.0",
        docs_url="/api/docs" if settings.ENVIRONMENT != "production" else None,
        redoc_url="/api/redoc" if settings.ENVIRONMENT != "production" else None,
        lifespan=lifespan,
    )

    # Exception handlers (RFC 7807)
    register_exception_handlers(app)

    # Rate limiting (slowapi)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health check (no auth)
    @app.get("/api/v1/health", tags=["system"])
    async def health_check():
        return {
            "status": "healthy",
            "version": "1.0.0",
            "environment": settings.ENVIRONMENT,
        }

    # Register routers
    app.include_router(leave_router, prefix="/api/v1/leave", tags=["leave"])
    app.include_router(balances_router, prefix="/api/v1/leave-balances", tags=["leave-balances"])
    app.include_router(swaps_router, prefix="/api/v1/shift-swaps", tags=["shift-swaps"])
    app.include_router(schedule_router, prefix="/api/v1/schedule", tags=["schedule"])

    return app


app = create_app()
