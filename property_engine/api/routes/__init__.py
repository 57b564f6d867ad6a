"""API routes package."""

from .health_routes import router as health_router
from .search_routes import router as search_router
from .search_routes_legacy import router as legacy_router

__all__ = ["health_router", "search_router", "legacy_router"]
