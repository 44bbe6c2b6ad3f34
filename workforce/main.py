"""Workforce back-office — FastAPI application factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from workforce.admin.router import router as admin_router
from workforce.approvals.router import router as approvals_router
from workforce.attendance.router import router as attendance_router
from workforce.auth.router import router as auth_router
from workforce.benefits.router import router as benefits_router
from workforce.common.exceptions import register_exception_handlers
from workforce.common.rate_limit import limiter
from workforce.compensation.router import router as compensation_router
from workforce.config import settings
from workforce.contracts.router import router as contracts_router
from workforce.core_hr.router import (
    departments_router,
    employees_router,
    locations_router,
)
from workforce.currency.router import router as currency_router
from workforce.database import engine
from workforce.deductions.router import router as deductions_router
from workforce.documents.router import router as documents_router
from workforce.employment.router import router as employment_router
from workforce.pay_components.router import router as pay_components_router
from workforce.payroll.router import paychecks_router, runs_router
from workforce.performance.router import router as performance_router
from workforce.schedules.router import router as schedules_router
from workforce.tax.router import router as tax_router
from workforce.temporal_patterns.router import router as temporal_patterns_router
from workforce.timesheets.router import router as timesheets_router
from workforce.vip.router import router as vip_router
from workforce.worker_types.router import router as worker_types_router

logger = logging.getLogger(__name__)

HRIS = "/api/v1/hris"
PAYROLL = "/api/v1/payroll"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    logger.info("Workforce API starting environment=%s", settings.ENVIRONMENT)
    yield
    await engine.dispose()
    logger.info("Workforce API stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="Workforce",
        description="Multi-tenant HR (HRIS) and payroll back-office",
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

    # Shared
    app.include_router(auth_router, prefix="/api/v1/auth", tags=["auth"])
    app.include_router(admin_router, prefix="/api/v1/admin", tags=["admin"])

    # HRIS
    app.include_router(employees_router, prefix=f"{HRIS}/employees")
    app.include_router(employment_router, prefix=f"{HRIS}/employees")
    app.include_router(departments_router, prefix=f"{HRIS}/departments")
    app.include_router(locations_router, prefix=f"{HRIS}/locations")
    app.include_router(vip_router, prefix=f"{HRIS}/vip")
    app.include_router(contracts_router, prefix=f"{HRIS}/contracts")
    app.include_router(documents_router, prefix=f"{HRIS}/documents")
    app.include_router(performance_router, prefix=f"{HRIS}/performance-reviews")
    app.include_router(benefits_router, prefix=f"{HRIS}/benefits")
    app.include_router(attendance_router, prefix=f"{HRIS}/attendance")

    # Payroll
    app.include_router(worker_types_router, prefix=f"{PAYROLL}/worker-types")
    app.include_router(pay_components_router, prefix=f"{PAYROLL}/pay-components")
    app.include_router(deductions_router, prefix=f"{PAYROLL}/deductions")
    app.include_router(tax_router, prefix=f"{PAYROLL}/tax")
    app.include_router(currency_router, prefix=f"{PAYROLL}/currency")
    app.include_router(approvals_router, prefix=f"{PAYROLL}/approvals")
    app.include_router(schedules_router, prefix=f"{PAYROLL}/schedules")
    app.include_router(timesheets_router, prefix=f"{PAYROLL}/timesheets")
    app.include_router(temporal_patterns_router, prefix=f"{PAYROLL}/temporal-patterns")
    app.include_router(compensation_router, prefix=f"{PAYROLL}/compensation")
    app.include_router(runs_router, prefix=f"{PAYROLL}/runs")
    app.include_router(paychecks_router, prefix=f"{PAYROLL}/paychecks")

    return app


app = create_app()
