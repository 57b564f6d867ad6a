"""입력 보안 검증"""

from typing import Optional

from property_engine.core.logging import logger, sanitize_for_log


class SecurityValidator:
    """입력 보안 검증"""

    MAX_QUERY_LENGTH = 500
    MAX_FIELD_LENGTH = 200

    # 위험한 문자 (Injection, XSS 방지). 주소에 흔한 '#', "'", '-'는 허용
    DANGEROUS_CHARS = ['<', '>', '"', '\\', '\0', '\n', '\r', ';', '--', '/*', '*/']

    @staticmethod
    def validate_query(query: str) -> bool:
        """검색어 검증

        Args:
            query: 자유 텍스트 검색어

        Returns:
            유효성 여부

        Raises:
            ValueError: 유효하지 않은 입력
        """
        if not query or not query.strip():
            raise ValueError("query is required")

        if len(query) > SecurityValidator.MAX_QUERY_LENGTH:
            raise ValueError(f"query must be at most {SecurityValidator.MAX_QUERY_LENGTH} characters")

        SecurityValidator._reject_dangerous("query", query)
        return True

    @staticmethod
    def validate_field(name: str, value: Optional[str]) -> bool:
        """구조화 주소 필드 검증 (address1, city, state, postalCode)"""
        if value is None:
            return True

        if len(value) > SecurityValidator.MAX_FIELD_LENGTH:
            raise ValueError(f"{name} must be at most {SecurityValidator.MAX_FIELD_LENGTH} characters")

        SecurityValidator._reject_dangerous(name, value)
        return True

    @staticmethod
    def validate_coordinates(lat: Optional[float], lng: Optional[float]) -> bool:
        """좌표 검증: 둘 다 있거나 둘 다 없어야 함

        Raises:
            ValueError: 범위를 벗어난 좌표 또는 한쪽만 주어진 경우
        """
        if lat is None and lng is None:
            return True
        if lat is None or lng is None:
            raise ValueError("lat and lng must be supplied together")
        if not -90.0 <= lat <= 90.0:
            raise ValueError("lat must be between -90 and 90")
        if not -180.0 <= lng <= 180.0:
            raise ValueError("lng must be between -180 and 180")
        return True

    @staticmethod
    def _reject_dangerous(name: str, value: str) -> None:
        for char in SecurityValidator.DANGEROUS_CHARS:
            if char in value:
                logger.warning(
                    f"Dangerous character in {name}: {sanitize_for_log(repr(char))}"
                )
                raise ValueError(f"{name} contains a disallowed character")
