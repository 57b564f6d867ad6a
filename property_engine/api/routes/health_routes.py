"""헬스 체크 엔드포인트"""
from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError

from property_engine import __version__
from property_engine.api.deps import get_engine
from property_engine.core.database import engine as db_engine
from property_engine.core.exceptions import CacheException
from property_engine.core.logging import logger
from property_engine.engine.factory import EngineResources
from property_engine.schemas.property_schema import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(resources: EngineResources = Depends(get_engine)):
    """
    헬스 체크 엔드포인트

    - 서버 상태
    - 응답 캐시 상태
    - DB 연결 상태
    """
    cache_ok = False
    db_ok = False

    try:
        cache_ok = resources.cache.health_check()
    except CacheException as e:
        logger.warning(f"Cache health check failed: {e.error_code}")

    try:
        with db_engine.connect() as connection:
            connection.exec_driver_sql("SELECT 1")
            db_ok = True
    except SQLAlchemyError as e:
        logger.error(f"Database connection error: {e}")

    status = "ok" if cache_ok and db_ok else ("degraded" if cache_ok or db_ok else "error")

    return HealthResponse(
        status=status,
        timestamp=datetime.now(),
        version=__version__,
        components={"cache": cache_ok, "database": db_ok},
    )


@router.get("/")
async def root():
    """루트 엔드포인트"""
    return {
        "service": "Property Data Resolution Engine",
        "version": __version__,
        "docs": "/docs",
    }
