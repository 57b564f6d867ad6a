"""Legacy Search Route (v1)

구 버전 클라이언트용 응답 형태 어댑터. 해석은 v2와 같은 오케스트레이터를 사용합니다.
구 클라이언트는 상태 코드 대신 error 필드를 보므로 항상 200으로 응답합니다.
"""

import asyncio
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends

from property_engine.api.deps import get_orchestrator
from property_engine.core.config import settings
from property_engine.core.logging import logger
from property_engine.core.security import SecurityValidator
from property_engine.engine.orchestrator import ResolutionOrchestrator
from property_engine.engine.result import ResolutionResult
from property_engine.schemas.property_schema import (
    CanonicalProperty,
    LegacyAddress,
    LegacyListing,
    LegacyLocation,
    LegacyMetadata,
    LegacySearchRequest,
    LegacySearchResponse,
    PropertyQuery,
    SearchType,
)

router = APIRouter(prefix="/api/v1", tags=["legacy"])


def data_quality(record: CanonicalProperty) -> str:
    """high: 검증 통과 + 복수 출처, medium: 검증 통과, low: 그 외"""
    valid = record.verification is not None and record.verification.valid
    if valid and len(record.sources) > 1:
        return "high"
    return "medium" if valid else "low"


def to_legacy_listing(record: CanonicalProperty, index: int, listings_provider_id: str) -> LegacyListing:
    listing_id = record.listing.listing_id
    return LegacyListing(
        id=listing_id or record.parcel_id or f"result-{index}",
        address=LegacyAddress(one_line=record.address.one_line),
        price=record.listing.price_max if record.listing.price_max is not None else record.valuation.current_value,
        beds=record.structure.bedrooms,
        baths=record.structure.bathrooms,
        sqft=record.structure.square_feet,
        location=LegacyLocation(
            latitude=record.coordinates.latitude if record.coordinates else None,
            longitude=record.coordinates.longitude if record.coordinates else None,
        ),
        img_src=record.listing.images[0] if record.listing.images else None,
        zpid=listing_id if listing_id and listings_provider_id in record.sources else None,
        data_source="+".join(record.sources) or "none",
        data_quality=data_quality(record),
    )


def summarize(query: str, result: ResolutionResult) -> Optional[str]:
    """요약 문구 (템플릿)"""
    if not result.is_success:
        return None
    if not result.results:
        return f"No properties found for '{query}'."

    if result.search_type is SearchType.ADDRESS:
        record = result.results[0]
        facts = []
        if record.structure.bedrooms is not None:
            facts.append(f"{record.structure.bedrooms} bd")
        if record.structure.bathrooms is not None:
            facts.append(f"{record.structure.bathrooms:g} ba")
        if record.structure.square_feet is not None:
            facts.append(f"{record.structure.square_feet:,} sqft")
        if record.valuation.current_value is not None:
            facts.append(f"estimated ${record.valuation.current_value:,}")
        label = record.address.one_line or query
        return f"{label}: {', '.join(facts)}." if facts else f"{label}."

    prices = [r.listing.price_max for r in result.results if r.listing.price_max is not None]
    summary = f"Found {result.total_found} properties for '{query}'."
    if prices:
        summary += f" Prices range from ${min(prices):,} to ${max(prices):,}."
    return summary


def to_legacy_response(query: str, result: ResolutionResult, listings_provider_id: str) -> LegacySearchResponse:
    return LegacySearchResponse(
        from_cache=result.from_cache,
        listings=[
            to_legacy_listing(record, index, listings_provider_id)
            for index, record in enumerate(result.results)
        ],
        metadata=LegacyMetadata(
            search_query=query,
            search_type=result.search_type.value.lower(),
            total_found=result.total_found,
            timestamp=datetime.now(),
        ),
        ai_summary=summarize(query, result),
        error=result.error["message"] if result.error else None,
    )


def legacy_error(query: str, message: str) -> LegacySearchResponse:
    return LegacySearchResponse(
        from_cache=False,
        listings=[],
        metadata=LegacyMetadata(
            search_query=query,
            search_type=SearchType.GENERAL.value.lower(),
            total_found=0,
            timestamp=datetime.now(),
        ),
        ai_summary=None,
        error=message,
    )


@router.post("/search", response_model=LegacySearchResponse, response_model_by_alias=True)
async def legacy_search(
    request: LegacySearchRequest,
    orchestrator: ResolutionOrchestrator = Depends(get_orchestrator),
):
    """구 버전 검색 API ({query} -> listings)"""
    try:
        SecurityValidator.validate_query(request.query)
        query = PropertyQuery(raw_text=request.query)
    except ValueError as e:
        logger.warning(f"[API] Legacy input validation failed: {e}")
        return legacy_error(request.query, "Invalid search query")

    try:
        result = await asyncio.wait_for(orchestrator.resolve(query), timeout=settings.api_search_timeout_s)
    except asyncio.TimeoutError:
        logger.error(f"[API] Legacy search timeout after {settings.api_search_timeout_s}s")
        return legacy_error(request.query, "Search timed out. Please try again later.")

    return to_legacy_response(request.query.strip(), result, orchestrator.listings_provider.provider_id)
