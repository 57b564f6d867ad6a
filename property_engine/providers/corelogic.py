"""CoreLogic Property API adapter (spatial / property / valuation)

Bearer 토큰(OAuth2 client-credentials)은 CredentialManager가 관리합니다.
"""

from __future__ import annotations

import time
from typing import Any, Optional

from property_engine.core.exceptions import ProviderHTTPError, ProviderParseError, ProviderTimeoutError
from property_engine.core.logging import logger
from property_engine.providers.base import (
    ParcelMatch,
    StructureRecord,
    ValuationRecord,
    to_float,
    to_int,
    to_str,
)
from property_engine.providers.http_client import ProviderHttpClient
from property_engine.services.impl.credential_manager import CredentialManager
from property_engine.utils.address import AddressParts
from property_engine.utils.search_filters import canonical_property_type


class CoreLogicClient:
    """CoreLogic 어댑터"""

    provider_id = "corelogic"

    def __init__(
        self,
        http_client: ProviderHttpClient,
        credentials: CredentialManager,
        *,
        base_url: str,
        timeout_s: float = 10.0,
        spatial_radius_m: int = 100,
    ) -> None:
        self.http = http_client
        self.credentials = credentials
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self.spatial_radius_m = spatial_radius_m

    async def lookup_by_address(
        self, address: AddressParts, *, timeout_s: Optional[float] = None
    ) -> Optional[ParcelMatch]:
        """주소 검색 (bestMatch)

        Returns:
            ParcelMatch 또는 None (매칭 없음 / HTTP 404)
        """
        params = {
            "streetAddress": address.address1,
            "city": address.city,
            "state": address.state,
            "zipCode": address.postal_code,
            "bestMatch": "true",
        }
        try:
            payload = await self._get("lookup_by_address", "/v2/properties/search", params, timeout_s)
        except ProviderHTTPError as e:
            if e.status == 404:
                logger.info("CoreLogic address search: no match (404)")
                return None
            raise

        matches = self._parse_items(payload, "lookup_by_address")
        return matches[0] if matches else None

    async def lookup_by_spatial(
        self, lat: float, lng: float, *, timeout_s: Optional[float] = None
    ) -> list[ParcelMatch]:
        """좌표 반경 검색 (가까운 순 정렬)"""
        params = {"latitude": lat, "longitude": lng, "radius": self.spatial_radius_m}
        try:
            payload = await self._get("lookup_by_spatial", "/v2/properties/search/spatial", params, timeout_s)
        except ProviderHTTPError as e:
            if e.status == 404:
                return []
            raise

        matches = self._parse_items(payload, "lookup_by_spatial")
        return sorted(
            matches,
            key=lambda m: m.distance_m if m.distance_m is not None else float("inf"),
        )

    async def get_structure(self, parcel_id: str, *, timeout_s: Optional[float] = None) -> StructureRecord:
        payload = await self._get("get_structure", f"/v2/properties/{parcel_id}/buildings", None, timeout_s)
        buildings = payload.get("buildings")
        if not isinstance(buildings, list):
            raise ProviderParseError(self.provider_id, "get_structure", "missing 'buildings' list")
        if not buildings or not isinstance(buildings[0], dict):
            return StructureRecord()

        building = buildings[0]
        return StructureRecord(
            property_type=canonical_property_type(to_str(building.get("propertyType"))),
            year_built=to_int(building.get("yearBuilt")),
            square_feet=to_int(building.get("livingAreaSquareFeet")),
            bedrooms=to_int(building.get("bedrooms")),
            bathrooms=to_float(building.get("bathrooms")),
        )

    async def get_valuation(self, parcel_id: str, *, timeout_s: Optional[float] = None) -> ValuationRecord:
        payload = await self._get("get_valuation", f"/v2/properties/{parcel_id}/valuation", None, timeout_s)
        avm = payload.get("avm") or {}
        assessment = payload.get("taxAssessment") or {}
        if not isinstance(avm, dict) or not isinstance(assessment, dict):
            raise ProviderParseError(self.provider_id, "get_valuation", "unexpected valuation sections")
        return ValuationRecord(
            current_value=to_int(avm.get("estimatedValue")),
            assessed_value=to_int(assessment.get("totalAssessedValue")),
        )

    async def _get(
        self,
        operation: str,
        path: str,
        params: Optional[dict[str, Any]],
        timeout_s: Optional[float],
    ) -> dict[str, Any]:
        """토큰 교환과 요청이 한 타임아웃 안에서 실행됨 (교환에 쓴 시간만큼 요청 시간이 줄어듦)"""
        timeout = timeout_s if timeout_s is not None else self.timeout_s
        started = time.monotonic()
        token = await self.credentials.get_token(self.provider_id, timeout_s=timeout)
        remaining = timeout - (time.monotonic() - started)
        if remaining <= 0:
            raise ProviderTimeoutError(self.provider_id, operation, timeout, {"reason": "token_exchange_exhausted_timeout"})

        try:
            payload = await self.http.request_json(
                self.provider_id,
                operation,
                "GET",
                f"{self.base_url}{path}",
                params=params,
                headers={"Authorization": f"Bearer {token.access_token}"},
                timeout_s=remaining,
            )
        except ProviderHTTPError as e:
            if e.status == 401:
                # 서버가 토큰을 거부함: 다음 호출에서 재발급
                self.credentials.invalidate(self.provider_id)
            raise

        if not isinstance(payload, dict):
            raise ProviderParseError(self.provider_id, operation, "expected a JSON object")
        return payload

    def _parse_items(self, payload: dict[str, Any], operation: str) -> list[ParcelMatch]:
        items = payload.get("items", [])
        if not isinstance(items, list):
            raise ProviderParseError(self.provider_id, operation, "'items' is not a list")

        matches: list[ParcelMatch] = []
        for item in items:
            if not isinstance(item, dict):
                continue
            parcel_id = to_str(item.get("clip"))
            if not parcel_id:
                continue
            address = item.get("address") or {}
            location = item.get("location") or {}
            matches.append(
                ParcelMatch(
                    parcel_id=parcel_id,
                    address=AddressParts(
                        address1=to_str(address.get("streetAddress")),
                        city=to_str(address.get("city")),
                        state=to_str(address.get("state")),
                        postal_code=to_str(address.get("zipCode")),
                    ),
                    latitude=to_float(location.get("latitude")),
                    longitude=to_float(location.get("longitude")),
                    distance_m=to_float(item.get("distance")),
                )
            )
        return matches
