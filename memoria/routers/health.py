"""
Health check router.

Probes for load balancers and Kubernetes.
"""
import asyncio
import logging
import time
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from memoria.config import get_settings
from memoria.database import get_db
from memoria.utils.prometheus_metrics import REGISTRY, Gauge, ready

logger = logging.getLogger("memoria.health")
router = APIRouter(prefix="/health", tags=["Health"])

settings = get_settings()

health_check_status = Gauge(
    "memoria_health_check_status",
    "Health check status (1=healthy, 0=unhealthy)",
    ["check_type"],
    registry=REGISTRY,
)


def _is_ready() -> bool:
    return ready._value.get() != 0


async def _check_db(db: AsyncSession) -> None:
    """SELECT 1 with a one second timeout."""
    await asyncio.wait_for(db.execute(text("SELECT 1")), timeout=1.0)


@router.get(
    "",
    summary="Health check (fast)",
)
async def health_check(db: AsyncSession = Depends(get_db)) -> Dict[str, Any]:
    """
    Fast health check for load balancers: ready flag plus a DB round trip.
    """
    start_time = time.perf_counter()

    if not _is_ready():
        health_check_status.labels(check_type="fast").set(0)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Application is shutting down",
        )

    try:
        await _check_db(db)
    except asyncio.TimeoutError:
        logger.warning("DB health check timeout", extra={"event": "health"})
        health_check_status.labels(check_type="fast").set(0)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database connection timeout",
        )
    except Exception as e:
        logger.warning("DB health check failed", extra={"event": "health", "error": str(e)})
        health_check_status.labels(check_type="fast").set(0)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database connection failed",
        )

    duration = time.perf_counter() - start_time
    health_check_status.labels(check_type="fast").set(1)

    return {
        "status": "healthy",
        "duration_ms": round(duration * 1000, 2),
        "instance": settings.instance_ip or "unknown",
    }


@router.get(
    "/liveness",
    summary="Liveness probe (Kubernetes)",
)
async def liveness_probe() -> Dict[str, str]:
    """Process is up and not shutting down."""
    if not _is_ready():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Application is shutting down",
        )

    return {"status": "alive"}


@router.get(
    "/readiness",
    summary="Readiness probe (Kubernetes)",
)
async def readiness_probe(db: AsyncSession = Depends(get_db)) -> Dict[str, str]:
    """Ready to serve: not shutting down and the database answers."""
    if not _is_ready():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Application is not ready",
        )

    try:
        await _check_db(db)
    except asyncio.TimeoutError:
        logger.warning("Readiness check failed: DB timeout", extra={"event": "health"})
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database connection timeout",
        )
    except Exception as e:
        logger.warning("Readiness check failed: DB", extra={"event": "health", "error": str(e)})
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database not ready",
        )

    return {"status": "ready"}
