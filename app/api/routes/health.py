"""Health check endpoints.

Provides health status for probes and monitoring.
"""

from fastapi import APIRouter

from app import __version__
from app.config import settings
from app.infra.logging import get_logger
from app.schemas.common import HealthResponse
from app.services.backend_client import get_backend_client

router = APIRouter()
logger = get_logger(__name__)


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Basic health check.

    Returns 200 if service is running.
    """
    return HealthResponse(
        status="healthy",
        version=__version__,
        environment=settings.environment,
        checks={},
    )


@router.get("/health/ready", response_model=HealthResponse)
async def health_ready() -> HealthResponse:
    """Readiness check.

    Verifies the catalog backend answers; without it no lookup can succeed.
    """
    checks: dict[str, bool] = {}

    try:
        checks["backend"] = await get_backend_client().ping()
    except Exception as e:
        logger.warning("Backend health check failed", error=str(e))
        checks["backend"] = False

    all_healthy = all(checks.values()) if checks else True

    return HealthResponse(
        status="healthy" if all_healthy else "degraded",
        version=__version__,
        environment=settings.environment,
        checks=checks,
    )


@router.get("/health/live", response_model=HealthResponse)
async def health_live() -> HealthResponse:
    """Liveness check.

    Basic check that service is responding.
    """
    return HealthResponse(
        status="healthy",
        version=__version__,
        environment=settings.environment,
        checks={"alive": True},
    )
