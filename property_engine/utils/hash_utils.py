"""해싱 유틸리티 - 쿼리 fingerprint"""
import hashlib
from typing import Mapping, Optional, Union

from property_engine.schemas.property_schema import PropertyQuery, SearchType
from property_engine.utils.address import (
    AddressParts,
    collapse_whitespace,
    normalize_city,
    normalize_postal_code,
    normalize_state,
    normalize_unit,
    parse_address_text,
    split_street,
)

FieldValue = Optional[Union[str, float, int]]


def hash_string(text: str) -> str:
    """
    문자열을 MD5 해시로 변환

    Args:
        text: 해시할 문자열

    Returns:
        MD5 해시 문자열
    """
    return hashlib.md5(text.encode()).hexdigest()


def normalize_text(text: str) -> str:
    """소문자화 + 공백 정리 + 끝 구두점 제거"""
    return collapse_whitespace(text).lower().strip(" .,;!?")


def _round_coordinate(value: Optional[float]) -> Optional[str]:
    # 소수점 5자리 ≈ 1m
    return None if value is None else f"{value:.5f}"


def normalized_query_fields(query: PropertyQuery, search_type: SearchType) -> dict[str, str]:
    """쿼리를 정규화된 필드 dict로 변환

    자유 텍스트 주소와 구조화 주소가 같은 주소를 가리키면 같은 필드가 됩니다.
    호실은 별도 필드(unit)로 남겨 같은 건물의 다른 호실은 다른 fingerprint가 됩니다.
    """
    fields: dict[str, FieldValue] = {"type": search_type.value}

    parts: Optional[AddressParts] = None
    if search_type is SearchType.ADDRESS:
        parts = parse_address_text(query.raw_text) if query.raw_text else query.address_parts()

    if parts is not None:
        number, name = split_street(parts.address1 or "")
        fields.update({
            "street_number": number,
            "street_name": name,
            "unit": normalize_unit(parts.address1),
            "city": normalize_city(parts.city),
            "state": (normalize_state(parts.state) or "").lower() or None,
            "postal_code": normalize_postal_code(parts.postal_code),
        })
    elif query.raw_text:
        fields["text"] = normalize_text(query.raw_text)
    else:
        fields.update({
            "address1": normalize_text(query.address1) if query.address1 else None,
            "city": normalize_city(query.city),
            "state": (normalize_state(query.state) or "").lower() or None,
            "postal_code": normalize_postal_code(query.postal_code),
        })

    fields["lat"] = _round_coordinate(query.lat)
    fields["lng"] = _round_coordinate(query.lng)

    return {k: str(v).strip().lower() for k, v in fields.items() if v not in (None, "")}


def generate_fingerprint(fields: Mapping[str, FieldValue]) -> str:
    """
    정규화된 필드로 캐시 키 생성 (키 정렬 후 해시)

    Args:
        fields: 정규화된 쿼리 필드

    Returns:
        캐시 키 ("property:<md5>")
    """
    canonical = "|".join(
        f"{key}={str(value).strip().lower()}"
        for key, value in sorted(fields.items())
        if value not in (None, "")
    )
    return f"property:{hash_string(canonical)}"


def fingerprint_query(query: PropertyQuery, search_type: SearchType) -> str:
    """쿼리 fingerprint"""
    return generate_fingerprint(normalized_query_fields(query, search_type))
