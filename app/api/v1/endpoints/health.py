"""Health check endpoints."""

from fastapi import APIRouter, status
from pydantic import BaseModel

from app.config import settings
from app.core.redis_client import check_redis_connection
from app.database import check_database_connection

router = APIRouter()


class HealthResponse(BaseModel):
    """Liveness response."""

    status: str
    version: str
    environment: str


class DetailedHealthResponse(HealthResponse):
    """Readiness response including backing services."""

    database: str
    cache: str
    clinic_timezone: str


def _component_status(healthy: bool) -> str:
    return "healthy" if healthy else "unhealthy"


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
)
async def health_check() -> HealthResponse:
    """Report that the process is up."""
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        environment=settings.environment,
    )


@router.get(
    "/health/detailed",
    response_model=DetailedHealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Detailed health check",
)
async def detailed_health_check() -> DetailedHealthResponse:
    """
    Check the database and the cache.

    A disabled cache is reported as such and does not degrade the service.
    """
    db_healthy = await check_database_connection()

    if settings.cache_enabled:
        cache_healthy = await check_redis_connection()
        cache_status = _component_status(cache_healthy)
    else:
        cache_healthy = True
        cache_status = "disabled"

    return DetailedHealthResponse(
        status="healthy" if db_healthy and cache_healthy else "degraded",
        version=settings.app_version,
        environment=settings.environment,
        database=_component_status(db_healthy),
        cache=cache_status,
        clinic_timezone=settings.clinic_timezone,
    )


@router.get(
    "/ping",
    status_code=status.HTTP_200_OK,
    summary="Simple ping",
)
async def ping() -> dict[str, str]:
    """Simple ping endpoint."""
    return {"message": "pong"}
