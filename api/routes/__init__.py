"""API route modules."""

from .chart_routes import router as chart_router
from .health_routes import router as health_router
from .qr_routes import router as qr_router

__all__ = [
    "chart_router",
    "health_router",
    "qr_router",
]
