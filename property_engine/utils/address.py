"""주소 정규화/파싱 유틸리티

- 자유 텍스트 주소 파싱 ("123 Main St, Houston, TX 77002")
- 도로명 정규화 (USPS 약어, 방위, 호실 제거)
- 대권 거리 계산 (haversine)
"""
import math
import re
from dataclasses import dataclass
from typing import Optional

from property_engine.utils.resource_loader import (
    load_directionals,
    load_street_suffixes,
    load_unit_designators,
)


US_STATES = frozenset({
    "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "DC", "FL", "GA", "HI", "ID", "IL",
    "IN", "IA", "KS", "KY", "LA", "ME", "MD", "MA", "MI", "MN", "MS", "MO", "MT", "NE",
    "NV", "NH", "NJ", "NM", "NY", "NC", "ND", "OH", "OK", "OR", "PA", "PR", "RI", "SC",
    "SD", "TN", "TX", "UT", "VT", "VA", "WA", "WV", "WI", "WY",
})

EARTH_RADIUS_M = 6_371_008.8

_STREET_NUMBER_RE = re.compile(r"^\d+[a-z]?(?:-\d+)?$", re.IGNORECASE)
_LEADING_NUMBER_RE = re.compile(r"^\s*\d+[a-z]?(?:-\d+)?\s+[a-z0-9]", re.IGNORECASE)
_POSTAL_RE = re.compile(r"\b(\d{5})(?:-\d{4})?\b")
_STATE_ZIP_RE = re.compile(r"^([A-Za-z]{2})(?:\s+(\d{5})(?:-\d{4})?)?$")
_CITY_STATE_ZIP_RE = re.compile(r"^(.+?)\s+([A-Za-z]{2})(?:\s+(\d{5})(?:-\d{4})?)?$")


@dataclass(frozen=True)
class AddressParts:
    """파싱된 주소 구성요소"""

    address1: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None

    @property
    def street_number(self) -> Optional[str]:
        return split_street(self.address1)[0] if self.address1 else None

    @property
    def street_name(self) -> Optional[str]:
        return split_street(self.address1)[1] if self.address1 else None

    @property
    def unit(self) -> Optional[str]:
        return normalize_unit(self.address1)

    def one_line(self) -> str:
        return format_one_line(self.address1, self.city, self.state, self.postal_code)


def collapse_whitespace(text: str) -> str:
    return " ".join(text.split())


def normalize_street(address1: str) -> str:
    """도로명 정규화

    소문자화, 구두점 제거, 접미사/방위 약어 통일, 호실(apt/unit/#) 이후 제거.
    호실 식별자는 normalize_unit()으로 따로 얻습니다.

    Args:
        address1: 도로 주소 (예: "1600 Amphitheatre Parkway")

    Returns:
        정규화된 도로 주소 (예: "1600 amphitheatre pkwy")
    """
    if not address1:
        return ""

    suffixes = load_street_suffixes()
    directionals = load_directionals()

    street, _ = _split_unit_tokens(address1)
    return " ".join(directionals.get(t, t) for t in (suffixes.get(t, t) for t in street))


def normalize_unit(address1: Optional[str]) -> Optional[str]:
    """호실 식별자 추출 ("100 Main St Apt 2B" -> "2b")

    표기(apt/unit/suite/#)는 버리고 식별자만 남기므로 "Apt 2"와 "#2"는 같은 값입니다.
    """
    if not address1:
        return None
    units = load_unit_designators()
    _, unit = _split_unit_tokens(address1)
    identifier = [t for t in unit if t not in units]
    return " ".join(identifier) or None


def _split_unit_tokens(address1: str) -> tuple[list[str], list[str]]:
    # 첫 호실 표기 앞은 도로, 뒤는 호실
    units = load_unit_designators()
    text = address1.lower().replace("#", " # ")
    tokens = re.sub(r"[.,]", " ", text).split()
    for index, token in enumerate(tokens):
        if token in units:
            return tokens[:index], tokens[index + 1:]
    return tokens, []


def _is_unit_part(text: str) -> bool:
    street, unit = _split_unit_tokens(text)
    return not street and bool(unit)


def split_street(address1: str) -> tuple[Optional[str], Optional[str]]:
    """도로 주소를 (번지, 도로명)으로 분리 (정규화 포함)"""
    tokens = normalize_street(address1).split()
    if not tokens:
        return None, None
    if _STREET_NUMBER_RE.match(tokens[0]):
        return tokens[0], " ".join(tokens[1:]) or None
    return None, " ".join(tokens)


def normalize_postal_code(value: Optional[str]) -> Optional[str]:
    """5자리 ZIP만 추출"""
    if not value:
        return None
    match = _POSTAL_RE.search(str(value))
    return match.group(1) if match else None


def normalize_state(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    value = value.strip().upper()
    return value or None


def normalize_city(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    value = collapse_whitespace(value.replace(".", "")).lower()
    return value or None


def looks_like_street_address(text: str) -> bool:
    """선행 번지 + 도로명 형태인지"""
    return bool(text and _LEADING_NUMBER_RE.match(text))


def parse_address_text(text: str) -> Optional[AddressParts]:
    """자유 텍스트 주소 파싱

    "123 Main St, Houston, TX 77002" / "123 Main St, Houston TX" /
    "123 Main St, 77002" / "100 Main St, Apt 2, Austin, TX" 형태를 지원합니다.

    Args:
        text: 자유 텍스트

    Returns:
        AddressParts 또는 None (번지로 시작하지 않는 경우)
    """
    parts = [collapse_whitespace(p) for p in text.split(",") if p.strip()]
    if not parts or not looks_like_street_address(parts[0]):
        return None

    address1 = parts[0]
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None

    rest = parts[1:]
    # "100 Main St, Apt 2, Austin, TX": 호실 조각은 도로 주소에 붙임
    while len(rest) > 1 and _is_unit_part(rest[0]):
        address1 = f"{address1} {rest.pop(0)}"

    if rest:
        last = rest[-1]
        state_zip = _STATE_ZIP_RE.match(last)
        city_state_zip = _CITY_STATE_ZIP_RE.match(last)
        if state_zip and state_zip.group(1).upper() in US_STATES:
            state = state_zip.group(1).upper()
            postal_code = state_zip.group(2)
            if len(rest) >= 2:
                city = rest[-2]
        elif city_state_zip and city_state_zip.group(2).upper() in US_STATES:
            city = city_state_zip.group(1)
            state = city_state_zip.group(2).upper()
            postal_code = city_state_zip.group(3)
        elif _POSTAL_RE.fullmatch(last):
            postal_code = normalize_postal_code(last)
            if len(rest) >= 2:
                city = rest[-2]
        else:
            city = last

    return AddressParts(address1=address1, city=city, state=state, postal_code=postal_code)


def format_one_line(
    address1: Optional[str],
    city: Optional[str],
    state: Optional[str],
    postal_code: Optional[str],
) -> str:
    """한 줄 주소 ("1600 Amphitheatre Pkwy, Mountain View, CA 94043")"""
    state_zip = " ".join(p for p in (state, postal_code) if p)
    return ", ".join(p for p in (address1, city, state_zip) if p)


def haversine_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """두 좌표 사이 대권 거리 (미터)"""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(a))
