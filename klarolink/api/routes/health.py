"""Health check endpoints for the KlaroLink API.

Provides system health status including the database adapter and whether
AI insights are configured.
"""

from datetime import datetime, timezone
import time
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException

from klarolink import __version__
from klarolink.api.dependencies import get_db
from klarolink.api.models import HealthCheckResponse, HealthStatus
from klarolink.config.settings import Settings, get_settings
from klarolink.database.base import DatabaseAdapter

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Health"])

# Track server start time for uptime calculation
_server_start_time: Optional[float] = None


def set_server_start_time() -> None:
    """Set the server start time. Called on application startup."""
    global _server_start_time
    _server_start_time = time.time()


def get_uptime_seconds() -> Optional[float]:
    """Get server uptime in seconds."""
    if _server_start_time is None:
        return None
    return time.time() - _server_start_time


async def check_database_health(db: DatabaseAdapter) -> HealthStatus:
    """Check connectivity of the active database adapter."""
    start_time = time.time()
    healthy = await db.health_check()
    latency = (time.time() - start_time) * 1000

    if healthy:
        return HealthStatus(
            status="healthy",
            latency_ms=round(latency, 2),
            message=f"Connected ({db.backend})",
        )

    logger.error("database_health_check_failed", backend=db.backend)
    return HealthStatus(
        status="unhealthy",
        latency_ms=round(latency, 2),
        message=f"Database unreachable ({db.backend})",
    )


def check_ai_insights_health(settings: Settings) -> HealthStatus:
    """AI insights are optional; a missing key only degrades the service."""
    if settings.anthropic_api_key:
        return HealthStatus(status="healthy", message="Anthropic API key configured")
    return HealthStatus(status="degraded", message="AI insights disabled (no API key)")


@router.get(
    "/health",
    response_model=HealthCheckResponse,
    summary="Health Check",
    description="Check the health status of the API and its dependencies.",
)
async def health_check(
    db: DatabaseAdapter = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> HealthCheckResponse:
    """
    Perform a health check of all system components.

    Returns the status of:
    - Database (Supabase or in-memory mock store)
    - AI insights (Anthropic)
    """
    services = {
        "database": await check_database_health(db),
        "ai_insights": check_ai_insights_health(settings),
    }

    # Determine overall status
    statuses = [s.status for s in services.values()]
    if all(s == "healthy" for s in statuses):
        overall_status = "healthy"
    elif any(s == "unhealthy" for s in statuses):
        overall_status = "unhealthy"
    else:
        overall_status = "degraded"

    return HealthCheckResponse(
        status=overall_status,
        version=__version__,
        timestamp=datetime.now(timezone.utc),
        services=services,
        uptime_seconds=get_uptime_seconds(),
    )


@router.get(
    "/health/live",
    summary="Liveness Check",
    description="Simple liveness check for container orchestration.",
)
async def liveness() -> dict:
    """Returns 200 if the service is alive."""
    return {"status": "alive", "timestamp": datetime.now(timezone.utc).isoformat()}


@router.get(
    "/health/ready",
    summary="Readiness Check",
    description="Check if the service is ready to accept traffic.",
)
async def readiness(db: DatabaseAdapter = Depends(get_db)) -> dict:
    """
    Readiness check.

    Returns 200 only if the database is reachable.
    """
    database_status = await check_database_health(db)

    if database_status.status == "unhealthy":
        raise HTTPException(
            status_code=503,
            detail="Service not ready: database unavailable",
        )

    return {"status": "ready", "timestamp": datetime.now(timezone.utc).isoformat()}
