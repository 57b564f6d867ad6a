"""커스텀 예외 정의 (Structured Exception Hierarchy)"""
from typing import Any, Optional


# 기본 예외 클래스
class PropertyEngineException(Exception):
    """기본 예외 클래스 - 모든 커스텀 예외의 부모"""
    def __init__(self, message: str, error_code: str = "UNKNOWN_ERROR", details: Optional[dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """에러 바디용 dict"""
        return {"code": self.error_code, "message": self.message, "details": self.details}


# 프로바이더 관련 예외
class ProviderError(PropertyEngineException):
    """프로바이더 호출 예외의 기본 클래스"""
    def __init__(
        self,
        provider_id: str,
        message: str,
        error_code: str = "PROVIDER_ERROR",
        details: Optional[dict[str, Any]] = None,
    ):
        self.provider_id = provider_id
        merged = {"provider": provider_id}
        merged.update(details or {})
        super().__init__(message, error_code or "PROVIDER_ERROR", merged)


class AuthError(ProviderError):
    """자격 증명 획득 실패 (토큰 교환 거부 또는 네트워크 실패)"""
    def __init__(self, provider_id: str, reason: str, details: Optional[dict[str, Any]] = None):
        message = f"Credential acquisition failed for '{provider_id}': {reason}"
        super().__init__(provider_id, message, "AUTH_ERROR", details or {"reason": reason})


class ProviderHTTPError(ProviderError):
    """프로바이더가 요청을 거부함 (HTTP 4xx/5xx)"""
    def __init__(self, provider_id: str, status: int, operation: str, details: Optional[dict[str, Any]] = None):
        self.status = status
        self.operation = operation
        message = f"{provider_id} rejected '{operation}' with HTTP {status}"
        super().__init__(
            provider_id, message, "PROVIDER_HTTP_ERROR",
            details or {"status": status, "operation": operation},
        )

    @property
    def is_server_error(self) -> bool:
        return self.status >= 500


class ProviderTimeoutError(ProviderError):
    """네트워크/지연 실패 (타임아웃, 연결 실패)"""
    def __init__(self, provider_id: str, operation: str, timeout_s: float, details: Optional[dict[str, Any]] = None):
        self.operation = operation
        message = f"{provider_id} '{operation}' failed after {timeout_s}s (timeout or network error)"
        super().__init__(
            provider_id, message, "PROVIDER_TIMEOUT",
            details or {"operation": operation, "timeout_s": timeout_s},
        )


class ProviderParseError(ProviderError):
    """프로바이더 응답 파싱 실패"""
    def __init__(self, provider_id: str, operation: str, reason: str, details: Optional[dict[str, Any]] = None):
        self.operation = operation
        message = f"Failed to parse {provider_id} '{operation}' response: {reason}"
        super().__init__(
            provider_id, message, "PROVIDER_PARSE_ERROR",
            details or {"operation": operation, "reason": reason},
        )


# 엔진 관련 예외
class ClassificationAmbiguous(PropertyEngineException):
    """검색 유형을 확정할 수 없음 (치명적이지 않음, GENERAL로 처리)"""
    def __init__(self, reason: str, details: Optional[dict[str, Any]] = None):
        message = f"Query classification is ambiguous: {reason}"
        super().__init__(message, "CLASSIFICATION_AMBIGUOUS", details or {"reason": reason})


class ResolutionError(PropertyEngineException):
    """주 경로(primary) 실패 - 요청 단위로 치명적

    Attributes:
        reason: 실패 사유 코드 (예: PARCEL_NOT_FOUND, PRIMARY_PROVIDER_FAILED)
        partial: 실패 시점까지 수집된 부분 컨텍스트
        cause: 원인 예외 (있는 경우)
        partial_results: 실패 전까지 병합된 레코드
    """
    def __init__(
        self,
        reason: str,
        message: str,
        partial: Optional[dict[str, Any]] = None,
        cause: Optional[PropertyEngineException] = None,
        results: Optional[list[Any]] = None,
    ):
        self.reason = reason
        self.partial = partial or {}
        self.cause = cause
        self.partial_results = list(results or [])
        details: dict[str, Any] = {"reason": reason, "partial": self.partial}
        if cause is not None:
            details["cause"] = cause.error_code
            details["cause_details"] = cause.details
        super().__init__(message, "RESOLUTION_ERROR", details)

    @property
    def effective_code(self) -> str:
        """원인 예외가 있으면 그 코드, 없으면 사유 코드"""
        return self.cause.error_code if self.cause is not None else self.reason


# 캐시 관련 예외
class CacheException(PropertyEngineException):
    """캐시 관련 예외"""
    def __init__(self, message: str, error_code: str = "CACHE_ERROR", details: Optional[dict[str, Any]] = None):
        super().__init__(message, error_code or "CACHE_ERROR", details)


class CacheConnectionException(CacheException):
    """캐시 연결 실패"""
    def __init__(self, reason: str, details: Optional[dict[str, Any]] = None):
        message = f"Failed to connect to cache: {reason}"
        super().__init__(message, "CACHE_CONNECTION_ERROR", details or {"reason": reason})


class CacheSerializationException(CacheException):
    """캐시 직렬화/역직렬화 오류"""
    def __init__(self, operation: str, reason: str, details: Optional[dict[str, Any]] = None):
        message = f"Cache {operation} failed: {reason}"
        super().__init__(message, "CACHE_SERIALIZATION_ERROR",
                        details or {"operation": operation, "reason": reason})


# 데이터베이스 관련 예외
class DatabaseException(PropertyEngineException):
    """데이터베이스 관련 예외"""
    def __init__(self, message: str, error_code: str = "DB_ERROR", details: Optional[dict[str, Any]] = None):
        super().__init__(message, error_code or "DB_ERROR", details)


# 유효성 검증 관련 예외
class ValidationException(PropertyEngineException):
    """유효성 검증 예외"""
    def __init__(self, field: str, reason: str, details: Optional[dict[str, Any]] = None):
        message = f"Validation failed for '{field}': {reason}"
        super().__init__(message, "VALIDATION_ERROR",
                        details or {"field": field, "reason": reason})


class InvalidQueryException(ValidationException):
    """유효하지 않은 검색어"""
    def __init__(self, reason: str, details: Optional[dict[str, Any]] = None):
        super().__init__("query", reason, details)
