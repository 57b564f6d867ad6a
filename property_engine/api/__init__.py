"""API 엔드포인트 패키지 - export only."""

from .deps import get_engine, get_orchestrator
from .routes import health_router, legacy_router, search_router

__all__ = ["health_router", "search_router", "legacy_router", "get_engine", "get_orchestrator"]
