"""promreader API routers package.

This package contains all API route handlers organized by domain.
"""

from promreader.api.routers.health import router as health_router
from promreader.api.routers.metrics import router as metrics_router
from promreader.api.routers.read import router as read_router

__all__ = [
    "health_router",
    "metrics_router",
    "read_router",
]
