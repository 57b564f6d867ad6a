"""Verification Module - 병합 결과 교차 검증

ADDRESS: 입력 주소와 해석된 주소의 번지/도로명/우편번호 일치 여부,
입력 좌표가 있으면 해석 좌표와의 대권 거리(허용 반경) 검사.
GENERAL: 항상 valid. matchedFields에 필터 적용 위치를 기록
("provider:<필터>" 또는 "post_hoc:<필터>").
"""

from typing import Optional

from property_engine.schemas.property_schema import (
    CanonicalProperty,
    PropertyQuery,
    SearchType,
    VerificationEnvelope,
)
from property_engine.utils.address import (
    AddressParts,
    haversine_m,
    normalize_postal_code,
    parse_address_text,
    split_street,
)
from property_engine.utils.search_filters import FilterPlan

DEFAULT_RADIUS_M = 500.0


def verify(
    query: PropertyQuery,
    merged: Optional[CanonicalProperty],
    search_type: SearchType,
    *,
    radius_m: float = DEFAULT_RADIUS_M,
    filter_plan: Optional[FilterPlan] = None,
) -> VerificationEnvelope:
    """검증 envelope 생성

    Args:
        query: 원본 쿼리
        merged: 병합된 레코드 (GENERAL은 None 가능)
        search_type: 검색 유형
        radius_m: 좌표 허용 반경 (미터)
        filter_plan: GENERAL 필터 적용 계획

    Returns:
        VerificationEnvelope
    """
    if search_type is SearchType.GENERAL:
        return verify_general(filter_plan)
    if merged is None:
        return VerificationEnvelope(valid=False, reasons=["no resolved property"], matched_fields=[])
    return verify_address(query, merged, radius_m=radius_m)


def verify_general(filter_plan: Optional[FilterPlan]) -> VerificationEnvelope:
    matched: list[str] = []
    if filter_plan is not None:
        matched.extend(f"provider:{name}" for name in filter_plan.provider_fields)
        matched.extend(f"post_hoc:{name}" for name in filter_plan.post_hoc_fields)
    return VerificationEnvelope(valid=True, reasons=[], matched_fields=matched)


def verify_address(
    query: PropertyQuery,
    merged: CanonicalProperty,
    *,
    radius_m: float = DEFAULT_RADIUS_M,
) -> VerificationEnvelope:
    parts = (parse_address_text(query.raw_text) if query.raw_text else query.address_parts()) or AddressParts()
    reasons: list[str] = []
    matched: list[str] = []

    in_number, in_name = split_street(parts.address1 or "")
    out_number, out_name = split_street(merged.address.line1 or "")

    if in_number and in_number == out_number:
        matched.append("street_number")
    else:
        reasons.append(f"street number mismatch: input={in_number!r}, resolved={out_number!r}")

    if in_name and in_name == out_name:
        matched.append("street_name")
    else:
        reasons.append(f"street name mismatch: input={in_name!r}, resolved={out_name!r}")

    in_postal = normalize_postal_code(parts.postal_code)
    out_postal = normalize_postal_code(merged.address.postal_code)
    if in_postal:
        if in_postal == out_postal:
            matched.append("postal_code")
        elif out_postal is None:
            reasons.append("postal code unavailable on resolved address")
        else:
            reasons.append(f"postal code mismatch: input={in_postal}, resolved={out_postal}")

    if query.has_coordinates:
        if merged.coordinates is None:
            reasons.append("resolved coordinates unavailable")
        else:
            distance = haversine_m(
                query.lat, query.lng, merged.coordinates.latitude, merged.coordinates.longitude
            )
            if distance <= radius_m:
                matched.append("coordinates")
            else:
                reasons.append(
                    f"resolved coordinates are {distance:.0f}m from input (limit {radius_m:.0f}m)"
                )

    return VerificationEnvelope(valid=not reasons, reasons=reasons, matched_fields=matched)
