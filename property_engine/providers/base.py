"""Provider interfaces and intermediate records

각 어댑터는 자기 프로바이더의 wire format을 아래 중간 레코드로 변환합니다.
원시 응답은 어댑터 밖으로 나가지 않습니다.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Protocol, runtime_checkable

from property_engine.utils.address import AddressParts
from property_engine.utils.search_filters import SearchFilters


@dataclass(frozen=True)
class ParcelMatch:
    """필지 후보 (lookup_by_address / lookup_by_spatial 결과)"""

    parcel_id: str
    address: AddressParts
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    distance_m: Optional[float] = None


@dataclass(frozen=True)
class StructureRecord:
    property_type: Optional[str] = None
    year_built: Optional[int] = None
    square_feet: Optional[int] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[float] = None


@dataclass(frozen=True)
class ValuationRecord:
    current_value: Optional[int] = None
    assessed_value: Optional[int] = None


@dataclass(frozen=True)
class ListingRecord:
    """매물 검색 결과 1건"""

    listing_id: str
    address: AddressParts
    price: Optional[int] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[float] = None
    square_feet: Optional[int] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    image_url: Optional[str] = None
    property_type: Optional[str] = None
    status: Optional[str] = None
    estimated_value: Optional[int] = None


@runtime_checkable
class PropertyDataProvider(Protocol):
    """공간/부동산/가치평가 프로바이더 인터페이스"""

    provider_id: str

    async def lookup_by_spatial(
        self, lat: float, lng: float, *, timeout_s: Optional[float] = None
    ) -> list[ParcelMatch]:
        """좌표 주변 필지 후보 (가까운 순)"""
        ...

    async def lookup_by_address(
        self, address: AddressParts, *, timeout_s: Optional[float] = None
    ) -> Optional[ParcelMatch]:
        """주소로 필지 조회 (매칭 없으면 None)"""
        ...

    async def get_structure(self, parcel_id: str, *, timeout_s: Optional[float] = None) -> StructureRecord:
        ...

    async def get_valuation(self, parcel_id: str, *, timeout_s: Optional[float] = None) -> ValuationRecord:
        ...


@runtime_checkable
class ListingsProvider(Protocol):
    """매물 검색 프로바이더 인터페이스

    supported_filters: 프로바이더 쿼리 파라미터로 처리 가능한 필터 이름.
    나머지 필터는 엔진이 결과에 사후 적용합니다.
    """

    provider_id: str
    supported_filters: frozenset[str]

    async def search_by_location(
        self,
        text: str,
        filters: Optional[SearchFilters] = None,
        *,
        limit: Optional[int] = None,
        timeout_s: Optional[float] = None,
    ) -> list[ListingRecord]:
        ...

    async def get_images(self, listing_id: str, *, timeout_s: Optional[float] = None) -> list[str]:
        ...


def to_float(value: Any) -> Optional[float]:
    """숫자/숫자 문자열을 float로 (실패 시 None)"""
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(str(value).replace(",", "").replace("$", ""))
    except ValueError:
        return None


def to_int(value: Any) -> Optional[int]:
    number = to_float(value)
    return None if number is None else int(round(number))


def to_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
