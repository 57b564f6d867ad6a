"""일반 검색 텍스트 파서

"3 bed homes in Houston under $300k" 같은 자유 텍스트에서
위치/가격/상태/침실 수/유형 필터를 추출합니다.
"""
import re
from dataclasses import dataclass, field
from typing import Any, Optional

from property_engine.utils.address import collapse_whitespace
from property_engine.utils.resource_loader import load_property_types, load_search_vocabulary


DEFAULT_STATUS = "for_sale"

_PRICE = r"\$?\s*(\d+(?:[.,]\d+)*)\s*(k|m|mm|thousand|million)?\b"
_BETWEEN_RE = re.compile(rf"\bbetween\s+{_PRICE}\s+(?:and|to|-)\s+{_PRICE}", re.IGNORECASE)
_RANGE_RE = re.compile(rf"(?<![\w$]){_PRICE}\s*(?:-|to)\s*{_PRICE}", re.IGNORECASE)
_MAX_RE = re.compile(
    rf"\b(?:under|below|less\s+than|max(?:imum)?|up\s+to|no\s+more\s+than|at\s+most)\s+{_PRICE}",
    re.IGNORECASE,
)
_MIN_RE = re.compile(
    rf"\b(?:over|above|more\s+than|at\s+least|min(?:imum)?|from|starting\s+at)\s+{_PRICE}",
    re.IGNORECASE,
)
_BEDS_RE = re.compile(
    r"\b(?:at\s+least\s+)?(\d+)\s*\+?\s*(?:-\s*)?(?:bedrooms?|beds?|br|bd)\b(?:\s+and\s+up)?",
    re.IGNORECASE,
)
_LOCATION_RE = re.compile(r"\b(?:in|near|around)\s+(.+)$", re.IGNORECASE)
_LOCATION_TAIL_RE = re.compile(r"\s+(?:with|that|which|and|for)\s+.*$", re.IGNORECASE)

_MONEY_MIN = 1000


@dataclass
class SearchFilters:
    """일반 검색 필터"""

    location: Optional[str] = None
    price_min: Optional[int] = None
    price_max: Optional[int] = None
    status: str = DEFAULT_STATUS
    min_beds: Optional[int] = None
    property_type: Optional[str] = None
    raw_text: Optional[str] = field(default=None, repr=False)

    def active(self) -> dict[str, Any]:
        """값이 지정된 필터만 반환 (status는 항상 포함)"""
        values = {
            "location": self.location,
            "price_min": self.price_min,
            "price_max": self.price_max,
            "status": self.status,
            "min_beds": self.min_beds,
            "property_type": self.property_type,
        }
        return {k: v for k, v in values.items() if v is not None}


def parse_price(number: str, suffix: Optional[str]) -> Optional[int]:
    """가격 토큰을 정수 달러로 변환 ("300k" -> 300000, "1.2m" -> 1200000)"""
    try:
        value = float(number.replace(",", ""))
    except ValueError:
        return None
    suffix = (suffix or "").lower()
    if suffix in ("k", "thousand"):
        value *= 1_000
    elif suffix in ("m", "mm", "million"):
        value *= 1_000_000
    return int(value)


def _money(match: re.Match, number_group: int, suffix_group: int) -> Optional[int]:
    """금액으로 볼 수 있는 경우에만 값 반환 ($ 또는 k/m 접미사 또는 1000 이상)"""
    value = parse_price(match.group(number_group), match.group(suffix_group))
    if value is None:
        return None
    text = match.group(0)
    if "$" in text or match.group(suffix_group) or value >= _MONEY_MIN:
        return value
    return None


def _remove_span(text: str, match: re.Match) -> str:
    return text[:match.start()] + " " + text[match.end():]


def _phrase_pattern(phrase: str) -> re.Pattern:
    return re.compile(rf"(?<!\w){re.escape(phrase)}(?!\w)", re.IGNORECASE)


def canonical_property_type(value: Optional[str]) -> Optional[str]:
    """프로바이더 유형 문자열을 표준 유형으로 변환

    "SINGLE_FAMILY" / "Single Family Residence" / "house" -> "single_family"
    """
    if not value:
        return None
    text = collapse_whitespace(value.replace("_", " ").replace("/", " ")).lower()
    property_types = load_property_types()

    for canonical, synonyms in property_types.items():
        if text == canonical.replace("_", " ") or text in synonyms:
            return canonical
    for canonical, synonyms in property_types.items():
        for synonym in sorted(synonyms, key=len, reverse=True):
            if _phrase_pattern(synonym).search(text):
                return canonical
    return None


def parse_search_text(text: str) -> SearchFilters:
    """자유 텍스트에서 필터 추출

    Args:
        text: 일반 검색어 (예: "affordable homes in Houston under $300k")

    Returns:
        SearchFilters: location이 비어 있을 수 있음 (호출자가 판단)
    """
    filters = SearchFilters(raw_text=text)
    remaining = collapse_whitespace(text)

    match = _BEDS_RE.search(remaining)
    if match:
        filters.min_beds = int(match.group(1))
        remaining = _remove_span(remaining, match)

    match = _BETWEEN_RE.search(remaining)
    if match:
        low, high = _money(match, 1, 2), _money(match, 3, 4)
        if low is not None and high is not None:
            filters.price_min, filters.price_max = min(low, high), max(low, high)
            remaining = _remove_span(remaining, match)

    if filters.price_min is None and filters.price_max is None:
        match = _RANGE_RE.search(remaining)
        if match:
            low, high = _money(match, 1, 2), _money(match, 3, 4)
            if low is not None and high is not None:
                filters.price_min, filters.price_max = min(low, high), max(low, high)
                remaining = _remove_span(remaining, match)

    match = _MAX_RE.search(remaining)
    if match and filters.price_max is None:
        value = _money(match, 1, 2)
        if value is not None:
            filters.price_max = value
            remaining = _remove_span(remaining, match)

    match = _MIN_RE.search(remaining)
    if match and filters.price_min is None:
        value = _money(match, 1, 2)
        if value is not None:
            filters.price_min = value
            remaining = _remove_span(remaining, match)

    vocabulary = load_search_vocabulary()
    for status, phrases in vocabulary["status_terms"].items():
        for phrase in sorted(phrases, key=len, reverse=True):
            pattern = _phrase_pattern(phrase)
            if pattern.search(remaining):
                filters.status = status
                remaining = pattern.sub(" ", remaining)
                break
        if filters.status != DEFAULT_STATUS:
            break

    for canonical, synonyms in load_property_types().items():
        for phrase in sorted(synonyms, key=len, reverse=True):
            pattern = _phrase_pattern(phrase)
            if pattern.search(remaining):
                filters.property_type = canonical
                remaining = pattern.sub(" ", remaining)
                break
        if filters.property_type:
            break

    filters.location = _extract_location(collapse_whitespace(remaining), vocabulary)
    return filters


def _extract_location(text: str, vocabulary: dict[str, Any]) -> Optional[str]:
    match = _LOCATION_RE.search(text)
    if match:
        location = match.group(1)
    else:
        location = text
        for phrase in sorted(vocabulary["filler_terms"], key=len, reverse=True):
            location = _phrase_pattern(phrase).sub(" ", location)

    location = _LOCATION_TAIL_RE.sub("", collapse_whitespace(location))
    location = location.strip(" ,.;!?")
    return location or None


@dataclass
class FilterPlan:
    """필터 적용 계획

    provider: 프로바이더 쿼리 파라미터로 보낼 필터
    post_hoc: 결과에 사후 적용할 필터 {이름: 값}
    """

    provider: SearchFilters
    provider_fields: list[str]
    post_hoc: dict[str, Any]

    @property
    def post_hoc_fields(self) -> list[str]:
        return list(self.post_hoc)


def split_filters(filters: SearchFilters, supported: frozenset[str]) -> FilterPlan:
    """필터를 프로바이더 처리분과 사후 처리분으로 나눔"""
    provider = SearchFilters(location=filters.location, raw_text=filters.raw_text)
    provider_fields: list[str] = []
    post_hoc: dict[str, Any] = {}

    for name, value in filters.active().items():
        if name in supported:
            setattr(provider, name, value)
            provider_fields.append(name)
        elif name != "location":
            post_hoc[name] = value

    return FilterPlan(provider=provider, provider_fields=provider_fields, post_hoc=post_hoc)
