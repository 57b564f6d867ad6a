"""Property Search Routes (v2)

HTTP Layer는 요청 검증과 응답 변환만 하고 해석은 ResolutionOrchestrator에 위임합니다.
"""

import asyncio
import re
from typing import Any, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from property_engine.api.deps import get_orchestrator
from property_engine.core.config import settings
from property_engine.core.database import get_db, get_db_context
from property_engine.core.exceptions import DatabaseException
from property_engine.core.logging import logger, sanitize_for_log
from property_engine.core.security import SecurityValidator
from property_engine.engine.orchestrator import ResolutionOrchestrator
from property_engine.engine.result import ResolutionResult
from property_engine.repositories.impl.resolution_log_repository import ResolutionLogRepository
from property_engine.schemas.property_schema import (
    ErrorBody,
    PopularQuery,
    PropertyQuery,
    PropertySearchRequest,
    PropertySearchResponse,
    ResolutionMetadata,
    StatisticsResponse,
)
from property_engine.utils.address import format_one_line

router = APIRouter(prefix="/api/v2/property", tags=["property"])

FINGERPRINT_RE = re.compile(r"^property:[0-9a-f]{32}$")

# error.code -> HTTP status
ERROR_STATUS = {
    "AUTH_ERROR": 502,
    "PROVIDER_HTTP_ERROR": 502,
    "PROVIDER_PARSE_ERROR": 502,
    "PROVIDER_TIMEOUT": 504,
    "API_TIMEOUT": 504,
    "PARCEL_NOT_FOUND": 404,
    "VALIDATION_ERROR": 400,
    "LOCATION_REQUIRED": 400,
}


def status_for_error(code: Optional[str]) -> int:
    """에러 코드별 HTTP 상태 (없으면 200, 모르는 코드는 500)"""
    if code is None:
        return 200
    return ERROR_STATUS.get(code, 500)


def validate_request(payload: PropertySearchRequest) -> PropertyQuery:
    """보안 검증 후 엔진 쿼리로 변환

    Raises:
        ValueError: 입력 검증 실패 (pydantic ValidationError 포함)
    """
    if payload.query is not None:
        SecurityValidator.validate_query(payload.query)
    for name in ("address1", "city", "state", "postal_code"):
        SecurityValidator.validate_field(name, getattr(payload, name))
    SecurityValidator.validate_coordinates(payload.lat, payload.lng)
    return payload.to_query()


def query_label(payload: PropertySearchRequest) -> str:
    """로그/통계용 쿼리 문자열"""
    if payload.query:
        return payload.query.strip()
    return format_one_line(payload.address1, payload.city, payload.state, payload.postal_code)


def error_response(status_code: int, code: str, message: str, details: Optional[dict[str, Any]] = None) -> JSONResponse:
    """엔진 실행 전 실패 응답 (응답 형태는 동일, error만 채움)"""
    response = PropertySearchResponse(
        results=[],
        verification=None,
        metadata=ResolutionMetadata(total_found=0, from_cache=False),
        error=ErrorBody(code=code, message=message, details=details or {}),
    )
    return JSONResponse(status_code=status_code, content=response.model_dump(mode="json", by_alias=True))


def log_status(result: ResolutionResult) -> str:
    if not result.is_success:
        return "FAIL"
    return "HIT" if result.from_cache else "MISS"


def _log_resolution(
    query_text: str,
    search_type: str,
    status: str,
    fingerprint: Optional[str] = None,
    total_found: int = 0,
    error_code: Optional[str] = None,
    elapsed_ms: Optional[float] = None,
) -> None:
    """해석 로그 저장 (백그라운드)"""
    try:
        with get_db_context() as db:
            ResolutionLogRepository(db).create(
                query_text=query_text,
                search_type=search_type,
                status=status,
                fingerprint=fingerprint,
                total_found=total_found,
                error_code=error_code,
                elapsed_ms=elapsed_ms,
            )
        logger.debug(f"[API] Resolution log saved: status={status}")
    except (DatabaseException, SQLAlchemyError) as e:
        logger.error(f"[API] Failed to save resolution log: {e}")


@router.post("/search", response_model=PropertySearchResponse)
async def search_property(
    payload: PropertySearchRequest,
    background_tasks: BackgroundTasks,
    orchestrator: ResolutionOrchestrator = Depends(get_orchestrator),
):
    """부동산 검색 API

    Flow:
        1. 입력 보안 검증 -> PropertyQuery
        2. 엔진에 위임 (분류 -> 캐시 -> 프로바이더 -> 병합 -> 검증)
        3. 결과를 HTTP 응답으로 변환 (error.code -> 상태 코드)
        4. 백그라운드로 해석 로그 저장
    """
    try:
        query = validate_request(payload)
    except ValueError as e:
        logger.warning(f"[API] Input validation failed: {sanitize_for_log(str(e))}")
        return error_response(400, "VALIDATION_ERROR", "Invalid search request", {"reason": str(e)})

    label = query_label(payload)
    logger.info(f"[API] Search request: length={len(label)}")

    try:
        result = await asyncio.wait_for(orchestrator.resolve(query), timeout=settings.api_search_timeout_s)
    except asyncio.TimeoutError:
        logger.error(f"[API] Timeout after {settings.api_search_timeout_s}s")
        background_tasks.add_task(
            _log_resolution, query_text=label, search_type="UNKNOWN", status="FAIL", error_code="API_TIMEOUT"
        )
        return error_response(504, "API_TIMEOUT", "Property resolution timed out")

    background_tasks.add_task(
        _log_resolution,
        query_text=label,
        search_type=result.search_type.value,
        status=log_status(result),
        fingerprint=result.fingerprint,
        total_found=result.total_found,
        error_code=result.error_code,
        elapsed_ms=result.elapsed_ms,
    )

    response = result.to_response()
    return JSONResponse(
        status_code=status_for_error(result.error_code),
        content=response.model_dump(mode="json", by_alias=True),
    )


@router.get("/statistics", response_model=StatisticsResponse)
async def get_statistics(db: Session = Depends(get_db), limit: int = 5):
    """해석 통계 API

    Returns:
        - totalSearches: 총 해석 횟수
        - cacheHits: 캐시 히트 횟수
        - hitRate: 캐시 히트율 (%)
        - failures: 실패 횟수
        - popularQueries: 인기 검색어
    """
    if limit < 1 or limit > 100:
        raise HTTPException(status_code=400, detail="limit must be between 1 and 100")

    repo = ResolutionLogRepository(db)
    total_searches = repo.get_total_count()
    cache_hits = repo.get_cache_hit_count()
    hit_rate = (cache_hits / total_searches * 100) if total_searches > 0 else 0

    popular_queries = [PopularQuery(name=name, count=count) for name, count in repo.get_popular_queries(limit=limit)]
    logger.info(f"Statistics: {total_searches} searches, {hit_rate:.2f}% hit rate")

    return StatisticsResponse(
        total_searches=total_searches,
        cache_hits=cache_hits,
        hit_rate=round(hit_rate, 2),
        failures=repo.get_failure_count(),
        popular_queries=popular_queries,
    )


@router.delete("/cache/{fingerprint}")
async def evict_cache_entry(
    fingerprint: str,
    orchestrator: ResolutionOrchestrator = Depends(get_orchestrator),
):
    """캐시 항목 제거"""
    if not FINGERPRINT_RE.match(fingerprint):
        raise HTTPException(status_code=400, detail="Invalid fingerprint")

    evicted = await orchestrator.evict(fingerprint)
    logger.info(f"[API] Cache evict: {fingerprint}, evicted={evicted}")
    return {"fingerprint": fingerprint, "evicted": evicted}
