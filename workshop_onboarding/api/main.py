"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures exception handlers and lifespan events.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from psycopg_pool import ConnectionPool

from workshop_onboarding import __version__
from workshop_onboarding.adapters.otp.memory import InMemoryOtpStore
from workshop_onboarding.adapters.repository.memory import (
    InMemoryOwnerRepository,
    InMemoryStaffRepository,
)
from workshop_onboarding.adapters.repository.postgres import (
    PostgresOwnerRepository,
    PostgresStaffRepository,
    run_migrations,
)
from workshop_onboarding.adapters.tokens.jwt import JwtCredentialIssuer
from workshop_onboarding.api.v1 import router as v1_router
from workshop_onboarding.config.settings import get_settings
from workshop_onboarding.domain.exceptions import DependencyFailure
from workshop_onboarding.domain.otp import OtpEngine
from workshop_onboarding.domain.results import Failure

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "owners",
        "description": "Workshop owner registration, verifier check, documents and activation",
    },
    {
        "name": "staff",
        "description": "Staff registration and workshop owner approval",
    },
    {
        "name": "auth",
        "description": "Passwordless login for active owners and approved staff",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Creates database connection pool and runs migrations (postgres store)
    - Builds the OTP engine and credential issuer owned by this app
    - Closes connection pool on shutdown
    """
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    logger.info("Starting application...")

    pool = None
    if settings.actor_store == "postgres":
        logger.info("Connecting to database...")
        pool = ConnectionPool(
            conninfo=settings.database_url,
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
        )
        logger.info("Running database migrations...")
        run_migrations(pool)
        app.state.owners = PostgresOwnerRepository(pool)
        app.state.staff = PostgresStaffRepository(pool)
    else:
        logger.warning("Using in-memory actor store, accounts are lost on restart")
        app.state.owners = InMemoryOwnerRepository()
        app.state.staff = InMemoryStaffRepository()

    if settings.otp_fixed_code is not None:
        logger.warning("Fixed OTP code enabled, do not use outside development")

    app.state.pool = pool
    app.state.otp_engine = OtpEngine(
        InMemoryOtpStore(),
        ttl_seconds=settings.otp_ttl_seconds,
        max_attempts=settings.otp_max_attempts,
        code_length=settings.otp_length,
        fixed_code=settings.otp_fixed_code,
    )
    app.state.issuer = JwtCredentialIssuer(
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        issuer=settings.jwt_issuer,
        audience=settings.jwt_audience,
        expiry_minutes=settings.token_expiry_minutes,
    )

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    if pool is not None:
        pool.close()
        logger.info("Database connection pool closed")


app = FastAPI(
    title="workshop-onboarding",
    description="Workshop owner onboarding and staff approval API",
    version=__version__,
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

app.include_router(v1_router, prefix="/v1")


@app.exception_handler(DependencyFailure)
async def dependency_failure_handler(request: Request, exc: DependencyFailure) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "detail": {
                "message": "Service temporarily unavailable, retry later",
                "error": Failure.DEPENDENCY_FAILURE.value,
            }
        },
    )


@app.get("/health")
async def health_check(request: Request) -> dict[str, str]:
    """
    Health check endpoint with database validation.

    Returns 200 OK if application and database are healthy.
    Raises exception if database connection fails.
    """
    pool = request.app.state.pool
    if pool is not None:
        with pool.connection() as conn:
            conn.execute("SELECT 1")

    return {"status": "healthy"}
