"""HTTP middleware for the Study Assistant gateway."""

from .correlation import CorrelationMiddleware

__all__ = ["CorrelationMiddleware"]
