"""Merge - 프로바이더 중간 레코드를 표준 레코드로 병합

겹치는 필드는 부동산 데이터 프로바이더 값을 우선하고,
값이 다른 매물 프로바이더 값은 alternates에 기록합니다.
어느 프로바이더도 주지 않은 필드는 null로 남습니다.
"""

from typing import Any, Iterable, Optional

from property_engine.providers.base import (
    ListingRecord,
    ParcelMatch,
    StructureRecord,
    ValuationRecord,
)
from property_engine.schemas.property_schema import (
    CanonicalAddress,
    CanonicalProperty,
    Coordinates,
    FieldAlternate,
    ListingInfo,
    Structure,
    Valuation,
)
from property_engine.utils.address import AddressParts, format_one_line, normalize_postal_code


def _dedupe(urls: Iterable[Optional[str]]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for url in urls:
        if url and url not in seen:
            seen.add(url)
            ordered.append(url)
    return ordered


def _address(parts: AddressParts) -> CanonicalAddress:
    postal_code = normalize_postal_code(parts.postal_code)
    state = parts.state.upper() if parts.state else None
    return CanonicalAddress(
        line1=parts.address1,
        city=parts.city,
        state=state,
        postal_code=postal_code,
        one_line=format_one_line(parts.address1, parts.city, state, postal_code) or None,
    )


class _Precedence:
    """우선 프로바이더 값 선택 + alternates 기록"""

    def __init__(self, secondary_provider_id: str):
        self.secondary_provider_id = secondary_provider_id
        self.alternates: list[FieldAlternate] = []

    def pick(self, field: str, preferred: Any, secondary: Any) -> Any:
        if preferred is None:
            return secondary
        if secondary is not None and secondary != preferred:
            self.alternates.append(
                FieldAlternate(field=field, provider_id=self.secondary_provider_id, value=secondary)
            )
        return preferred


def merge_property(
    *,
    property_provider_id: str,
    listings_provider_id: str,
    parcel: Optional[ParcelMatch] = None,
    structure: Optional[StructureRecord] = None,
    valuation: Optional[ValuationRecord] = None,
    listing: Optional[ListingRecord] = None,
    images: Optional[list[str]] = None,
) -> CanonicalProperty:
    """표준 레코드 병합

    Args:
        property_provider_id: 부동산 데이터 프로바이더 ID (우선)
        listings_provider_id: 매물 프로바이더 ID
        parcel: 필지 매칭 결과
        structure: 건물 정보
        valuation: 가치 평가
        listing: 매물 정보
        images: get_images 결과

    Returns:
        CanonicalProperty (verification 미포함)
    """
    precedence = _Precedence(listings_provider_id)
    structure = structure or StructureRecord()
    valuation = valuation or ValuationRecord()

    if parcel is not None and parcel.address.address1:
        address = _address(parcel.address)
    elif listing is not None:
        address = _address(listing.address)
    else:
        address = CanonicalAddress()

    coordinates: Optional[Coordinates] = None
    if parcel is not None and parcel.latitude is not None and parcel.longitude is not None:
        coordinates = Coordinates(latitude=parcel.latitude, longitude=parcel.longitude)
    elif listing is not None and listing.latitude is not None and listing.longitude is not None:
        coordinates = Coordinates(latitude=listing.latitude, longitude=listing.longitude)

    merged_structure = Structure(
        property_type=precedence.pick(
            "structure.propertyType", structure.property_type, listing.property_type if listing else None
        ),
        year_built=structure.year_built,
        square_feet=precedence.pick(
            "structure.squareFeet", structure.square_feet, listing.square_feet if listing else None
        ),
        bedrooms=precedence.pick(
            "structure.bedrooms", structure.bedrooms, listing.bedrooms if listing else None
        ),
        bathrooms=precedence.pick(
            "structure.bathrooms", structure.bathrooms, listing.bathrooms if listing else None
        ),
    )

    merged_valuation = Valuation(
        current_value=precedence.pick(
            "valuation.currentValue", valuation.current_value, listing.estimated_value if listing else None
        ),
        assessed_value=valuation.assessed_value,
    )

    listing_info = ListingInfo(
        listing_id=listing.listing_id if listing else None,
        price_max=listing.price if listing else None,
        status=listing.status if listing else None,
        images=_dedupe([listing.image_url if listing else None, *(images or [])]),
    )

    sources: set[str] = set()
    if parcel is not None or structure != StructureRecord() or valuation != ValuationRecord():
        sources.add(property_provider_id)
    if listing is not None or images:
        sources.add(listings_provider_id)

    return CanonicalProperty(
        parcel_id=parcel.parcel_id if parcel else None,
        address=address,
        coordinates=coordinates,
        structure=merged_structure,
        valuation=merged_valuation,
        listing=listing_info,
        sources=sorted(sources),
        alternates=precedence.alternates,
    )
