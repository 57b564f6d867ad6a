"""Provider adapters

외부 데이터 프로바이더별 어댑터. 엔진은 base.py의 프로토콜과
중간 레코드 타입에만 의존합니다.
"""

from .base import (
    ListingRecord,
    ListingsProvider,
    ParcelMatch,
    PropertyDataProvider,
    StructureRecord,
    ValuationRecord,
)
from .corelogic import CoreLogicClient
from .http_client import ProviderHttpClient
from .registry import ProviderRegistry
from .zillow import ZillowListingsClient

__all__ = [
    "ProviderHttpClient",
    "ProviderRegistry",
    "CoreLogicClient",
    "ZillowListingsClient",
    "PropertyDataProvider",
    "ListingsProvider",
    "ParcelMatch",
    "StructureRecord",
    "ValuationRecord",
    "ListingRecord",
]
