"""Health check endpoints."""

from fastapi import APIRouter, status
from pydantic import BaseModel

from app.config import settings
from app.core.redis_client import check_redis_connection
from app.database import check_database_connection

router = APIRouter()

HEALTHY = "healthy"
UNHEALTHY = "unhealthy"


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    service: str
    version: str
    environment: str


class DetailedHealthResponse(HealthResponse):
    """Health check including backing services."""

    checks: dict[str, str]


def _base(state: str) -> dict[str, str]:
    return {
        "status": state,
        "service": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Liveness check",
)
async def health_check() -> HealthResponse:
    """Report that the API process is up."""
    return HealthResponse(**_base(HEALTHY))


@router.get(
    "/health/detailed",
    response_model=DetailedHealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Readiness check",
)
async def detailed_health_check() -> DetailedHealthResponse:
    """
    Check the database and Redis.

    Returns:
        ``healthy`` when both respond, ``degraded`` otherwise
    """
    checks = {
        "database": HEALTHY if await check_database_connection() else UNHEALTHY,
        "redis": HEALTHY if await check_redis_connection() else UNHEALTHY,
    }
    state = HEALTHY if all(v == HEALTHY for v in checks.values()) else "degraded"
    return DetailedHealthResponse(**_base(state), checks=checks)


@router.get(
    "/ping",
    status_code=status.HTTP_200_OK,
    summary="Simple ping",
)
async def ping() -> dict[str, str]:
    """Return pong."""
    return {"message": "pong"}
