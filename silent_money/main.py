"""
FastAPI application entry point for the Silent Money platform API.

This module provides the main FastAPI application with:
- Health and readiness endpoints
- Versioned API routers
- Request logging with correlation IDs
- Prometheus metrics
- OpenTelemetry distributed tracing
- CORS, security headers, and rate limiting
- Database connection pool and object storage lifecycle
- Graceful startup and shutdown
"""

import structlog
import uvicorn
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Any

from botocore.exceptions import BotoCoreError, ClientError
from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from prometheus_client import Gauge, CONTENT_TYPE_LATEST
from opentelemetry import trace
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from silent_money import __version__
from silent_money.config import get_settings, Settings
from silent_money.dependencies import (
    close_db_pool,
    get_db_pool,
    get_object_store,
    init_db_pool,
)
from silent_money.exceptions import SilentMoneyError
from silent_money.middleware.rate_limit import limiter
from silent_money.middleware.request_logging import RequestLoggingMiddleware
from silent_money.middleware.security_headers import SecurityHeadersMiddleware
from silent_money.routers import API_ROUTERS
from shared.logging import configure_logging
from shared.metrics import get_metrics_handler, get_platform_metrics
from shared.tracing import configure_tracing

# Initialize logger
logger = structlog.get_logger(__name__)

# Get settings
settings: Settings = get_settings()

configure_logging(
    log_level=settings.log_level,
    json_logs=settings.log_format == "json",
    service_name="silent-money-api",
    app_name=settings.app_name,
    environment=settings.environment,
)

# ============================================================================
# Prometheus Metrics
# ============================================================================

database_connections_active = Gauge(
    "database_connections_active",
    "Active database connections"
)

database_connections_idle = Gauge(
    "database_connections_idle",
    "Idle database connections in pool"
)

metrics_handler = get_metrics_handler()
get_platform_metrics()


def update_pool_metrics() -> None:
    try:
        pool = get_db_pool()
    except RuntimeError:
        return
    database_connections_active.set(pool.get_size())
    database_connections_idle.set(pool.get_idle_size())


# ============================================================================
# Lifespan Management
# ============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager for startup and shutdown events.

    Handles:
    - OpenTelemetry tracing setup
    - Database connection pool initialization
    - Upload bucket provisioning
    - Graceful shutdown and resource cleanup
    """
    logger.info(
        "application_starting",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment
    )

    # ========================================================================
    # Startup: Initialize Resources
    # ========================================================================

    try:
        if settings.tracing_enabled:
            logger.info("initializing_tracing", otlp_endpoint=settings.tracing_otlp_endpoint)
            configure_tracing(
                service_name=settings.app_name,
                otlp_endpoint=settings.tracing_otlp_endpoint,
                sampling_rate=settings.tracing_sample_rate,
                service_version=settings.app_version,
            )

        pool = await init_db_pool()
        async with pool.acquire() as conn:
            version = await conn.fetchval("SELECT version()")
            logger.info("database_connected", postgres_version=version)

        try:
            await get_object_store().create_bucket(settings.storage_bucket)
        except (ClientError, BotoCoreError) as e:
            # Reads keep working; uploads answer 502 until storage is reachable.
            logger.warning("storage_bucket_unavailable", bucket=settings.storage_bucket, error=str(e))

        update_pool_metrics()

        logger.info(
            "application_started",
            app_name=settings.app_name,
            version=settings.app_version,
            environment=settings.environment
        )

        yield

    except Exception as e:
        logger.error("application_startup_failed", error=str(e), exc_info=True)
        raise

    # ========================================================================
    # Shutdown: Cleanup Resources
    # ========================================================================

    finally:
        logger.info("application_shutting_down")

        try:
            await close_db_pool()

            if settings.tracing_enabled:
                logger.info("shutting_down_tracing")
                trace.get_tracer_provider().shutdown()

            logger.info("application_shutdown_complete")

        except Exception as e:
            logger.error("application_shutdown_failed", error=str(e), exc_info=True)

# ============================================================================
# FastAPI Application
# ============================================================================

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description=(
        "API for the Silent Money directory of passive-income ideas and "
        "franchise opportunities: catalog, community, library and moderation."
    ),
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
    debug=settings.debug,
)

app.state.limiter = limiter

# ============================================================================
# Middleware Configuration
# ============================================================================

if settings.cors_enabled:
    logger.info("configuring_cors", origins=settings.cors_origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(SecurityHeadersMiddleware, settings=settings)

if settings.tracing_enabled:
    FastAPIInstrumentor.instrument_app(app)

# ============================================================================
# Exception Handlers
# ============================================================================

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors."""
    # Submitted values stay out of the log; they may be passwords
    logger.warning(
        "validation_error",
        path=request.url.path,
        errors=[{k: v for k, v in error.items() if k != "input"} for error in exc.errors()]
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": jsonable_encoder(exc.errors())}
    )

@app.exception_handler(SilentMoneyError)
async def domain_exception_handler(request: Request, exc: SilentMoneyError):
    """Map domain errors to their HTTP status and error code."""
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        "domain_error",
        path=request.url.path,
        status_code=exc.status_code,
        error_code=exc.error_code,
        detail=exc.detail
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error_code": exc.error_code}
    )

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions."""
    logger.warning(
        "http_exception",
        path=request.url.path,
        status_code=exc.status_code,
        detail=exc.detail
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None)
    )

@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.error(
        "unexpected_exception",
        path=request.url.path,
        error=str(exc),
        exc_info=True
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"}
    )

app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# ============================================================================
# Health and Readiness Endpoints
# ============================================================================

@app.get("/health", tags=["Health"], response_class=JSONResponse)
async def health_check() -> Dict[str, Any]:
    """
    Health check endpoint.

    Returns basic health status without checking dependencies.
    Use for container health checks.
    """
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment
    }

@app.get("/ready", tags=["Health"], response_class=JSONResponse)
async def readiness_check() -> JSONResponse:
    """
    Readiness check endpoint.

    Verifies database connectivity before the instance takes traffic.
    """
    checks = {
        "database": "unknown",
    }

    try:
        pool = get_db_pool()
        async with pool.acquire() as conn:
            await conn.fetchval("SELECT 1")
            checks["database"] = "healthy"
    except Exception as e:
        logger.error("database_health_check_failed", error=str(e))
        checks["database"] = "unhealthy"

    update_pool_metrics()

    all_healthy = all(state == "healthy" for state in checks.values())

    return JSONResponse(
        status_code=status.HTTP_200_OK if all_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if all_healthy else "not_ready",
            "service": settings.app_name,
            "version": settings.app_version,
            "checks": checks
        }
    )

# ============================================================================
# Metrics Endpoint
# ============================================================================

@app.get("/metrics", tags=["Monitoring"], response_class=PlainTextResponse)
async def metrics() -> Response:
    """Prometheus metrics endpoint."""
    if not settings.metrics_enabled:
        return Response(status_code=status.HTTP_404_NOT_FOUND)

    update_pool_metrics()
    return Response(
        content=metrics_handler(),
        media_type=CONTENT_TYPE_LATEST
    )

# ============================================================================
# API Router Registration
# ============================================================================

for api_router in API_ROUTERS:
    app.include_router(api_router, prefix=settings.api_prefix)

# ============================================================================
# Application Entry Point
# ============================================================================

def run() -> None:
    """Run the application with Uvicorn for development."""
    logger.info(
        "starting_uvicorn_server",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        version=__version__
    )

    uvicorn.run(
        "silent_money.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        access_log=True,
    )


if __name__ == "__main__":
    run()
