"""API routers for the Study Assistant gateway."""

from .health import router as health_router
from .metrics import router as metrics_router
from .study import router as study_router

__all__ = ["health_router", "metrics_router", "study_router"]
