"""Health check router for the Study Assistant gateway."""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from services import HealthMetricsService
from utils import get_logger

router = APIRouter(prefix="/health", tags=["health"])
logger = get_logger(__name__)


def get_health_service(request: Request) -> HealthMetricsService:
    """Dependency to get health service from application state."""
    return request.app.state.health_metrics  # type: ignore[no-any-return]


@router.get("/", response_model=Dict[str, Any])
async def health_check(
    health_service: HealthMetricsService = Depends(get_health_service),
) -> Dict[str, Any]:
    """Get application health status."""
    try:
        return await health_service.get_health_status()
    except Exception as e:
        logger.error(
            "Health check failed",
            error=str(e),
            endpoint="/health/",
        )
        return {
            "status": "unhealthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "components": {
                "health_service": {"status": "unhealthy", "error": str(e)}
            },
        }


@router.get("/detailed", response_model=Dict[str, Any])
async def detailed_health_check(
    health_service: HealthMetricsService = Depends(get_health_service),
) -> Dict[str, Any]:
    """Get health status together with cache and quota details."""
    try:
        health_status = await health_service.get_health_status()
        metrics_data = await health_service.get_metrics_data()
        return {**health_status, "metrics": metrics_data}
    except Exception as e:
        logger.error(
            "Detailed health check failed",
            error=str(e),
            endpoint="/health/detailed",
        )
        return {
            "status": "unhealthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "components": {
                "health_service": {"status": "unhealthy", "error": str(e)}
            },
            "metrics": {"error": "Failed to retrieve metrics data"},
        }
