"""Query Classifier - ADDRESS / GENERAL 판정

순수 함수만 제공합니다 (I/O, 부수효과 없음).

판정 규칙:
- 구조화 쿼리: 번지 + 도로명 + (도시/주/우편번호 중 하나 이상) -> ADDRESS
- 자유 텍스트: 일반 검색 어휘(beds, homes, under ...)가 있으면 GENERAL,
  "번지 + 도로명, 지역" 형태면 ADDRESS
- 그 외(도시명만, 지역 없는 도로 주소 등)는 모호 -> GENERAL
"""

import re
from dataclasses import dataclass

from property_engine.core.exceptions import ClassificationAmbiguous
from property_engine.schemas.property_schema import PropertyQuery, SearchType
from property_engine.utils.address import looks_like_street_address, parse_address_text, split_street
from property_engine.utils.resource_loader import load_search_vocabulary


@dataclass(frozen=True)
class ClassificationDecision:
    """판정 결과와 근거"""

    search_type: SearchType
    reason: str
    ambiguous: bool = False


def _has_general_terms(text: str) -> bool:
    lowered = text.lower()
    for term in load_search_vocabulary()["general_terms"]:
        if re.search(rf"(?<!\w){re.escape(term)}(?!\w)", lowered):
            return True
    return False


def _decide_structured(query: PropertyQuery) -> ClassificationDecision:
    has_locality = any((query.city, query.state, query.postal_code))

    if query.address1:
        number, name = split_street(query.address1)
        if number and name and has_locality:
            return ClassificationDecision(SearchType.ADDRESS, "structured_address")
        if number and name:
            return ClassificationDecision(SearchType.GENERAL, "street_without_locality", ambiguous=True)
        return ClassificationDecision(SearchType.GENERAL, "street_without_number", ambiguous=True)

    return ClassificationDecision(SearchType.GENERAL, "locality_only", ambiguous=True)


def _decide_free_text(text: str) -> ClassificationDecision:
    if _has_general_terms(text):
        return ClassificationDecision(SearchType.GENERAL, "general_terms")

    parts = parse_address_text(text)
    if parts is not None:
        number, name = split_street(parts.address1 or "")
        if number and name and any((parts.city, parts.state, parts.postal_code)):
            return ClassificationDecision(SearchType.ADDRESS, "address_pattern")

    if looks_like_street_address(text):
        return ClassificationDecision(SearchType.GENERAL, "street_without_locality", ambiguous=True)

    return ClassificationDecision(SearchType.GENERAL, "no_address_structure", ambiguous=True)


def explain(query: PropertyQuery) -> ClassificationDecision:
    """판정 근거 포함 분류"""
    if query.raw_text:
        return _decide_free_text(query.raw_text)
    return _decide_structured(query)


def classify_strict(query: PropertyQuery) -> SearchType:
    """분류 (모호하면 예외)

    Raises:
        ClassificationAmbiguous: 주소로도 일반 검색으로도 확정할 수 없는 경우
    """
    decision = explain(query)
    if decision.ambiguous:
        raise ClassificationAmbiguous(decision.reason, {"default": SearchType.GENERAL.value})
    return decision.search_type


def classify(query: PropertyQuery) -> SearchType:
    """분류 (모호하면 GENERAL)"""
    try:
        return classify_strict(query)
    except ClassificationAmbiguous:
        return SearchType.GENERAL
