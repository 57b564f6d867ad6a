"""Pydantic 스키마 정의 (Query / Canonical Property / API)

외부로 나가는 모든 필드는 camelCase 별칭을 사용합니다.
없는 값은 생략하지 않고 명시적으로 null로 직렬화됩니다.
"""
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from property_engine.utils.address import AddressParts


class SearchType(str, Enum):
    """검색 유형"""

    ADDRESS = "ADDRESS"
    GENERAL = "GENERAL"


class CamelModel(BaseModel):
    """camelCase 별칭 기본 모델"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Query
# ============================================================================

class PropertyQuery(CamelModel):
    """엔진 입력 쿼리 (분류 이후 불변)

    - 자유 텍스트: {rawText} (+ 선택적 lat/lng 힌트)
    - 구조화 주소: {address1, city, state, postalCode, lat?, lng?}
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    raw_text: Optional[str] = Field(None, max_length=500)
    address1: Optional[str] = Field(None, max_length=200)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=50)
    postal_code: Optional[str] = Field(None, max_length=20)
    lat: Optional[float] = Field(None, ge=-90, le=90)
    lng: Optional[float] = Field(None, ge=-180, le=180)

    @field_validator("raw_text", "address1", "city", "state", "postal_code")
    @classmethod
    def strip_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = " ".join(v.split())
        return v or None

    @model_validator(mode="after")
    def validate_shape(self) -> "PropertyQuery":
        if self.raw_text and self.has_structured_fields:
            raise ValueError("rawText cannot be combined with structured address fields")
        if not self.raw_text and not self.has_structured_fields:
            raise ValueError("either rawText or structured address fields are required")
        if (self.lat is None) != (self.lng is None):
            raise ValueError("lat and lng must be supplied together")
        return self

    @property
    def has_structured_fields(self) -> bool:
        return any((self.address1, self.city, self.state, self.postal_code))

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lng is not None

    def address_parts(self) -> AddressParts:
        return AddressParts(
            address1=self.address1,
            city=self.city,
            state=self.state,
            postal_code=self.postal_code,
        )


# ============================================================================
# Canonical Property
# ============================================================================

class Coordinates(CamelModel):
    latitude: float
    longitude: float


class CanonicalAddress(CamelModel):
    """표준 주소"""

    line1: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    one_line: Optional[str] = None


class Structure(CamelModel):
    """건물 정보"""

    property_type: Optional[str] = None
    year_built: Optional[int] = None
    square_feet: Optional[int] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[float] = None


class Valuation(CamelModel):
    """가치 평가"""

    current_value: Optional[int] = None
    assessed_value: Optional[int] = None


class ListingInfo(CamelModel):
    """매물 정보 (price_max: 호가 상한, 단일 호가면 호가 그대로)"""

    listing_id: Optional[str] = None
    price_max: Optional[int] = None
    status: Optional[str] = None
    images: list[str] = Field(default_factory=list)


class FieldAlternate(CamelModel):
    """우선순위에서 밀린 다른 프로바이더 값"""

    field: str
    provider_id: str
    value: Any = None


class VerificationEnvelope(CamelModel):
    """검증 결과"""

    valid: bool
    reasons: list[str] = Field(default_factory=list)
    matched_fields: list[str] = Field(default_factory=list)


class CanonicalProperty(CamelModel):
    """프로바이더와 무관한 표준 부동산 레코드"""

    parcel_id: Optional[str] = None
    address: CanonicalAddress = Field(default_factory=CanonicalAddress)
    coordinates: Optional[Coordinates] = None
    structure: Structure = Field(default_factory=Structure)
    valuation: Valuation = Field(default_factory=Valuation)
    listing: ListingInfo = Field(default_factory=ListingInfo)
    sources: list[str] = Field(default_factory=list)
    alternates: list[FieldAlternate] = Field(default_factory=list)
    verification: Optional[VerificationEnvelope] = None


class CacheEntry(CamelModel):
    """응답 캐시 항목 (created_at: epoch seconds)"""

    fingerprint: str
    search_type: SearchType
    value: list[CanonicalProperty] = Field(default_factory=list)
    verification: VerificationEnvelope
    data_sources: dict[str, str] = Field(default_factory=dict)
    created_at: float
    ttl: int = Field(..., gt=0)

    @property
    def expires_at(self) -> float:
        return self.created_at + self.ttl

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


# ============================================================================
# API (v2)
# ============================================================================

class PropertySearchRequest(CamelModel):
    """부동산 검색 요청: {query} 또는 구조화 주소 필드"""

    query: Optional[str] = Field(None, max_length=500, description="자유 텍스트 검색어")
    address1: Optional[str] = Field(None, max_length=200)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=50)
    postal_code: Optional[str] = Field(None, max_length=20)
    lat: Optional[float] = None
    lng: Optional[float] = None

    @model_validator(mode="after")
    def validate_presence(self) -> "PropertySearchRequest":
        structured = any((self.address1, self.city, self.state, self.postal_code))
        if not (self.query and self.query.strip()) and not structured:
            raise ValueError("query or address fields are required")
        return self

    def to_query(self) -> PropertyQuery:
        return PropertyQuery(
            raw_text=self.query,
            address1=self.address1,
            city=self.city,
            state=self.state,
            postal_code=self.postal_code,
            lat=self.lat,
            lng=self.lng,
        )


class ErrorBody(CamelModel):
    code: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


class ResolutionMetadata(CamelModel):
    """응답 메타데이터 (입력 검증 실패 시 searchType은 null)"""

    search_type: Optional[SearchType] = None
    total_found: int = Field(..., ge=0)
    from_cache: bool
    data_sources: dict[str, str] = Field(default_factory=dict)
    fingerprint: Optional[str] = None
    elapsed_ms: Optional[float] = None


class PropertySearchResponse(CamelModel):
    """부동산 검색 응답"""

    results: list[CanonicalProperty] = Field(default_factory=list)
    verification: Optional[VerificationEnvelope] = None
    metadata: ResolutionMetadata
    error: Optional[ErrorBody] = None


# ============================================================================
# Legacy API (v1)
# ============================================================================

class LegacySearchRequest(BaseModel):
    """구 버전 검색 요청"""
    query: str = Field(..., min_length=1, max_length=500)


class LegacyAddress(CamelModel):
    one_line: Optional[str] = None


class LegacyLocation(CamelModel):
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class LegacyListing(CamelModel):
    id: str
    address: LegacyAddress
    price: Optional[int] = None
    beds: Optional[int] = None
    baths: Optional[float] = None
    sqft: Optional[int] = None
    location: LegacyLocation
    img_src: Optional[str] = None
    zpid: Optional[str] = None
    data_source: str
    data_quality: str


class LegacyMetadata(CamelModel):
    search_query: str
    search_type: str = Field(..., description="address | general")
    total_found: int
    timestamp: datetime


class LegacySearchResponse(CamelModel):
    from_cache: bool
    listings: list[LegacyListing] = Field(default_factory=list)
    metadata: LegacyMetadata
    ai_summary: Optional[str] = Field(None, alias="ai_summary")
    error: Optional[str] = None


# ============================================================================
# Health / Statistics
# ============================================================================

class HealthResponse(BaseModel):
    """헬스 체크 응답"""
    status: str = Field(..., description="ok | degraded | error")
    timestamp: datetime
    version: str
    components: dict[str, bool] = Field(default_factory=dict)


class PopularQuery(CamelModel):
    name: str
    count: int


class StatisticsResponse(CamelModel):
    """해석 통계 응답"""
    total_searches: int
    cache_hits: int
    hit_rate: float
    failures: int
    popular_queries: list[PopularQuery] = Field(default_factory=list)
