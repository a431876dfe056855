"""Metrics router for the Study Assistant gateway."""

from typing import Any, Dict

from fastapi import APIRouter, Depends, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST

from services import HealthMetricsService
from utils import get_logger

router = APIRouter(prefix="/metrics", tags=["metrics"])
logger = get_logger(__name__)


def get_health_service(request: Request) -> HealthMetricsService:
    """Dependency to get health service from application state."""
    return request.app.state.health_metrics  # type: ignore[no-any-return]


@router.get("/", response_class=Response)
async def prometheus_metrics(
    health_service: HealthMetricsService = Depends(get_health_service),
) -> Response:
    """Get Prometheus metrics in text format."""
    try:
        return Response(content=health_service.get_prometheus_metrics(), media_type=CONTENT_TYPE_LATEST)
    except Exception as e:
        logger.error(
            "Failed to retrieve Prometheus metrics",
            error=str(e),
            endpoint="/metrics/",
        )
        return Response(
            content=f"# ERROR: Failed to retrieve metrics - {e}\n",
            media_type=CONTENT_TYPE_LATEST,
            status_code=503,
        )


@router.get("/json", response_model=Dict[str, Any])
async def json_metrics(
    health_service: HealthMetricsService = Depends(get_health_service),
) -> Dict[str, Any]:
    """Get metrics in JSON format."""
    try:
        return await health_service.get_metrics_data()
    except Exception as e:
        logger.error(
            "Failed to retrieve JSON metrics",
            error=str(e),
            endpoint="/metrics/json",
        )
        return {
            "error": "Failed to retrieve metrics data",
            "details": str(e),
            "status": "service_unavailable"
        }
