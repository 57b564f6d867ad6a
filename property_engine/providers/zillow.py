"""Zillow (RapidAPI) listings adapter

정적 API 키 헤더(x-rapidapi-key / x-rapidapi-host)로 인증합니다.
"""

from __future__ import annotations

from typing import Any, Optional

from property_engine.core.exceptions import ProviderParseError
from property_engine.providers.base import ListingRecord, to_float, to_int, to_str
from property_engine.providers.http_client import ProviderHttpClient
from property_engine.utils.address import AddressParts, parse_address_text
from property_engine.utils.search_filters import SearchFilters, canonical_property_type


STATUS_TYPES = {
    "for_sale": "ForSale",
    "for_rent": "ForRent",
    "sold": "RecentlySold",
}

LISTING_STATUSES = {
    "FOR_SALE": "for_sale",
    "FOR_RENT": "for_rent",
    "SOLD": "sold",
    "RECENTLY_SOLD": "sold",
    "PENDING": "pending",
}


class ZillowListingsClient:
    """Zillow 매물 검색 어댑터"""

    provider_id = "zillow"
    supported_filters = frozenset({"location", "price_min", "price_max", "status"})

    def __init__(
        self,
        http_client: ProviderHttpClient,
        *,
        api_key: str,
        api_host: str,
        base_url: str,
        timeout_s: float = 10.0,
    ) -> None:
        self.http = http_client
        self.api_key = api_key
        self.api_host = api_host
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s

    def _headers(self) -> dict[str, str]:
        return {"x-rapidapi-key": self.api_key, "x-rapidapi-host": self.api_host}

    async def search_by_location(
        self,
        text: str,
        filters: Optional[SearchFilters] = None,
        *,
        limit: Optional[int] = None,
        timeout_s: Optional[float] = None,
    ) -> list[ListingRecord]:
        """위치 텍스트로 매물 검색

        Args:
            text: 위치 (도시, 우편번호, 또는 정확한 한 줄 주소)
            filters: 가격/상태 필터 (supported_filters만 전송)
            limit: 최대 결과 수
            timeout_s: 요청 타임아웃

        Returns:
            list[ListingRecord]: zpid가 없는 항목은 제외
        """
        if not text or not text.strip():
            raise ValueError("location text must not be empty")

        filters = filters or SearchFilters()
        params = {
            "location": text.strip(),
            "status_type": STATUS_TYPES.get(filters.status, STATUS_TYPES["for_sale"]),
            "minPrice": filters.price_min,
            "maxPrice": filters.price_max,
        }
        payload = await self._get("search_by_location", "/propertyExtendedSearch", params, timeout_s)

        props = payload.get("props", [])
        if not isinstance(props, list):
            raise ProviderParseError(self.provider_id, "search_by_location", "'props' is not a list")

        records = [r for r in (self._parse_prop(p) for p in props if isinstance(p, dict)) if r is not None]
        return records[:limit] if limit else records

    async def get_images(self, listing_id: str, *, timeout_s: Optional[float] = None) -> list[str]:
        payload = await self._get("get_images", "/images", {"zpid": listing_id}, timeout_s)
        images = payload.get("images", [])
        if not isinstance(images, list):
            raise ProviderParseError(self.provider_id, "get_images", "'images' is not a list")
        return [url for url in images if isinstance(url, str) and url]

    async def _get(
        self,
        operation: str,
        path: str,
        params: dict[str, Any],
        timeout_s: Optional[float],
    ) -> dict[str, Any]:
        payload = await self.http.request_json(
            self.provider_id,
            operation,
            "GET",
            f"{self.base_url}{path}",
            params=params,
            headers=self._headers(),
            timeout_s=timeout_s if timeout_s is not None else self.timeout_s,
        )
        if not isinstance(payload, dict):
            raise ProviderParseError(self.provider_id, operation, "expected a JSON object")
        return payload

    @staticmethod
    def _parse_prop(prop: dict[str, Any]) -> Optional[ListingRecord]:
        listing_id = to_str(prop.get("zpid"))
        if not listing_id:
            return None

        raw_address = to_str(prop.get("address")) or ""
        address = parse_address_text(raw_address) or AddressParts(address1=raw_address or None)
        status = to_str(prop.get("listingStatus"))

        return ListingRecord(
            listing_id=listing_id,
            address=address,
            price=to_int(prop.get("price")),
            bedrooms=to_int(prop.get("bedrooms")),
            bathrooms=to_float(prop.get("bathrooms")),
            square_feet=to_int(prop.get("livingArea")),
            latitude=to_float(prop.get("latitude")),
            longitude=to_float(prop.get("longitude")),
            image_url=to_str(prop.get("imgSrc")),
            property_type=canonical_property_type(to_str(prop.get("propertyType"))),
            status=LISTING_STATUSES.get(status.upper(), status.lower()) if status else None,
            estimated_value=to_int(prop.get("zestimate")),
        )
