"""
Memoria API application.

Main application entry point that configures:
- CORS middleware
- API routers
- Database lifecycle
- Logging system
- Exception handlers
- Prometheus metrics
- Graceful shutdown
"""
import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from memoria.config import get_settings
from memoria.database import close_db, init_db
from memoria.exceptions import MemoriaError
from memoria.middlewares.logging_middleware import LoggingMiddleware
from memoria.middlewares.rate_limit_middleware import setup_rate_limit_exception_handler
from memoria.middlewares.request_tracking_middleware import RequestTrackingMiddleware
from memoria.routers import albums_router, health_router, photos_router, users_router
from memoria.utils.logger import get_request_id, log_error, log_info, setup_logging
from memoria.utils.prometheus_metrics import (
    exceptions_total,
    in_flight_requests,
    ready,
    setup_prometheus,
)

settings = get_settings()
logger = logging.getLogger("memoria")

setup_logging()

# Max seconds to wait for in-flight requests on shutdown
SHUTDOWN_GRACE_SECONDS = 30.0


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan with graceful shutdown.

    Shutdown:
    1. Health checks fail immediately (ready=0)
    2. Load balancer stops routing new requests
    3. In-flight requests get up to SHUTDOWN_GRACE_SECONDS to finish
    4. Database connections are closed
    """
    await init_db()
    ready.set(1)
    log_info(
        "Application startup completed",
        event="lifecycle",
        version=settings.app_version,
        environment=settings.environment.value,
    )

    yield

    ready.set(0)
    log_info("Application shutdown initiated", event="lifecycle")

    start_wait = time.monotonic()
    while time.monotonic() - start_wait < SHUTDOWN_GRACE_SECONDS:
        current_count = int(in_flight_requests._value.get())
        if current_count == 0:
            break
        await asyncio.sleep(0.5)
    else:
        log_info(
            "Shutdown timeout reached",
            event="lifecycle",
            remaining_requests=int(in_flight_requests._value.get()),
        )

    await close_db()
    log_info("Graceful shutdown completed", event="lifecycle")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
## Memoria

Photo album backend built with FastAPI.

### Features
- **Users**: Identity-provider accounts synced into local profiles
- **Albums**: Public or private albums with an automatic cover photo
- **Photos**: Direct uploads to object storage through presigned URLs
- **Discovery**: Public listings, search and explore

### Authentication
Mutations require `Authorization: Bearer <token>` issued by the identity
provider. Reads accept an optional token; private content is only
visible to its owner.
    """,
    openapi_tags=[
        {"name": "Users", "description": "Identity sync and profiles"},
        {"name": "Albums", "description": "Album management and album photos"},
        {"name": "Photos", "description": "Photo upload, search and management"},
        {"name": "Health", "description": "Probes"},
    ],
    lifespan=lifespan,
)

# Prometheus: FastAPI metrics + node info at /metrics
setup_prometheus(app)

# Rate limiting on full-scan endpoints
setup_rate_limit_exception_handler(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(LoggingMiddleware)
app.add_middleware(RequestTrackingMiddleware)


@app.exception_handler(MemoriaError)
async def memoria_exception_handler(request: Request, exc: MemoriaError):
    """
    Business errors: stable code plus the request id for support.
    """
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.message,
            "code": exc.code,
            "request_id": get_request_id(),
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Unhandled exception handler: ERROR log and a 500 carrying the request id.
    """
    exceptions_total.inc()
    rid = get_request_id()

    log_error(
        "Unhandled exception occurred",
        error_type=type(exc).__name__,
        error_message=str(exc),
        error_code="INTERNAL_SERVER_ERROR",
        http_method=request.method,
        http_path=request.url.path,
        event="exception",
        exc_info=True,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error",
            "request_id": rid,
        },
    )


# Include routers
app.include_router(health_router)
app.include_router(users_router)
app.include_router(albums_router)
app.include_router(photos_router)


@app.get(
    "/",
    tags=["Root"],
    summary="API information",
)
async def root():
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
    }
