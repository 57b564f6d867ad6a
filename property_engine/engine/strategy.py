"""Execution Strategy - 역할(primary/enrichment)별 실패 처리 결정"""

from enum import Enum
from typing import Optional

from property_engine.core.exceptions import (
    AuthError,
    ProviderHTTPError,
    ProviderParseError,
    ProviderTimeoutError,
)


class ProviderRole(str, Enum):
    """호출 역할

    - PRIMARY: 실패 시 요청 전체가 실패
    - ENRICHMENT: 실패해도 해당 필드만 null로 남김
    """

    PRIMARY = "primary"
    ENRICHMENT = "enrichment"


class ExecutionStrategy:
    """실패 처리 전략

    Usage:
        strategy = ExecutionStrategy()
        if strategy.is_fatal(ProviderRole.PRIMARY, error):
            raise ResolutionError(...)
    """

    @staticmethod
    def is_fatal(role: ProviderRole, error: Optional[BaseException]) -> bool:
        """요청 단위 치명 여부"""
        if error is None:
            return False
        return role is ProviderRole.PRIMARY

    @staticmethod
    def should_fallback_to_spatial(error: Optional[BaseException], has_coordinates: bool) -> bool:
        """주소 조회 실패/무매칭 시 좌표 검색으로 폴백할지

        AuthError는 같은 자격 증명을 쓰는 좌표 검색도 실패하므로 폴백하지 않습니다.
        """
        if not has_coordinates:
            return False
        if error is None:
            return True
        if isinstance(error, AuthError):
            return False
        return isinstance(error, (ProviderHTTPError, ProviderTimeoutError, ProviderParseError))

    @staticmethod
    def should_trip_breaker(error: BaseException) -> bool:
        """회로차단 실패 카운트 대상인지 (프로바이더 상태 이상을 뜻하는 오류만)"""
        if isinstance(error, (ProviderTimeoutError, AuthError)):
            return True
        if isinstance(error, ProviderHTTPError):
            return error.is_server_error or error.status == 429
        return False
