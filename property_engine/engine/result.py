"""Resolution Result - 표준 결과 포맷

엔진은 예외를 밖으로 던지지 않고 항상 ResolutionResult를 반환합니다.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, Iterable, Optional, TypeVar

from property_engine.core.exceptions import PropertyEngineException, ResolutionError
from property_engine.schemas.property_schema import (
    CacheEntry,
    CanonicalProperty,
    ErrorBody,
    PropertySearchResponse,
    ResolutionMetadata,
    SearchType,
    VerificationEnvelope,
)

T = TypeVar("T")


class ResolutionStatus(str, Enum):
    """해석 상태"""

    RESOLVED = "resolved"  # 프로바이더 호출로 해석
    CACHE_HIT = "cache_hit"  # 캐시 히트
    FAILED = "failed"  # 주 경로 실패


class DataSourceStatus(str, Enum):
    """프로바이더별 기여 상태 (metadata.dataSources 값)"""

    OK = "ok"
    PARTIAL = "partial"  # 일부 호출만 성공
    FAILED = "failed"
    SKIPPED = "skipped"  # 호출하지 않음 (회로 개방, 예산 부족, 필요 없음)


@dataclass
class Outcome(Generic[T]):
    """프로바이더 호출 1건의 결과 (값 또는 부재 표시)"""

    provider_id: str
    operation: str
    value: Optional[T] = None
    error: Optional[BaseException] = None
    skip_reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.skip_reason is None

    @property
    def skipped(self) -> bool:
        return self.skip_reason is not None

    @property
    def status(self) -> DataSourceStatus:
        if self.skipped:
            return DataSourceStatus.SKIPPED
        return DataSourceStatus.OK if self.error is None else DataSourceStatus.FAILED

    @classmethod
    def success(cls, provider_id: str, operation: str, value: Optional[T]) -> "Outcome[T]":
        return cls(provider_id=provider_id, operation=operation, value=value)

    @classmethod
    def failure(cls, provider_id: str, operation: str, error: BaseException) -> "Outcome[T]":
        return cls(provider_id=provider_id, operation=operation, error=error)

    @classmethod
    def skip(cls, provider_id: str, operation: str, reason: str) -> "Outcome[T]":
        return cls(provider_id=provider_id, operation=operation, skip_reason=reason)


class DataSourceTracker:
    """요청 내 프로바이더별 상태 집계"""

    def __init__(self, provider_ids: Iterable[str] = ()):
        self._known = list(provider_ids)
        self._status: dict[str, DataSourceStatus] = {}

    def record(self, provider_id: str, status: DataSourceStatus) -> None:
        current = self._status.get(provider_id)
        if current is None or current is status:
            self._status[provider_id] = status
        elif {current, status} == {DataSourceStatus.FAILED, DataSourceStatus.SKIPPED}:
            self._status[provider_id] = DataSourceStatus.FAILED
        else:
            self._status[provider_id] = DataSourceStatus.PARTIAL

    def record_outcome(self, outcome: Outcome) -> None:
        self.record(outcome.provider_id, outcome.status)

    def get(self, provider_id: str) -> Optional[DataSourceStatus]:
        return self._status.get(provider_id)

    def as_dict(self) -> dict[str, str]:
        statuses = {pid: DataSourceStatus.SKIPPED.value for pid in self._known}
        statuses.update({pid: status.value for pid, status in self._status.items()})
        return statuses


@dataclass
class ResolutionResult:
    """해석 결과

    Attributes:
        status: 해석 상태
        search_type: 검색 유형
        results: 표준 레코드 목록 (실패 시 부분 결과)
        verification: 응답 단위 검증 결과
        data_sources: 프로바이더별 상태
        fingerprint: 쿼리 fingerprint
        elapsed_ms: 소요 시간 (밀리초)
        error: 실패 시 {code, message, details}
        budget_report: 예산 사용 리포트
    """

    status: ResolutionStatus
    search_type: SearchType
    results: list[CanonicalProperty] = field(default_factory=list)
    verification: Optional[VerificationEnvelope] = None
    data_sources: dict[str, str] = field(default_factory=dict)
    fingerprint: Optional[str] = None
    elapsed_ms: Optional[float] = None
    error: Optional[dict[str, Any]] = None
    budget_report: Optional[dict] = None

    @property
    def is_success(self) -> bool:
        return self.status in (ResolutionStatus.RESOLVED, ResolutionStatus.CACHE_HIT)

    @property
    def from_cache(self) -> bool:
        return self.status is ResolutionStatus.CACHE_HIT

    @property
    def total_found(self) -> int:
        return len(self.results)

    @property
    def error_code(self) -> Optional[str]:
        return self.error["code"] if self.error else None

    @classmethod
    def from_cache_entry(cls, entry: CacheEntry, elapsed_ms: float) -> "ResolutionResult":
        """캐시 항목에서 결과 생성"""
        return cls(
            status=ResolutionStatus.CACHE_HIT,
            search_type=entry.search_type,
            results=list(entry.value),
            verification=entry.verification,
            data_sources=dict(entry.data_sources),
            fingerprint=entry.fingerprint,
            elapsed_ms=elapsed_ms,
        )

    @classmethod
    def resolved(
        cls,
        search_type: SearchType,
        results: list[CanonicalProperty],
        verification: VerificationEnvelope,
        data_sources: dict[str, str],
        fingerprint: str,
        elapsed_ms: float,
        budget_report: Optional[dict] = None,
    ) -> "ResolutionResult":
        return cls(
            status=ResolutionStatus.RESOLVED,
            search_type=search_type,
            results=results,
            verification=verification,
            data_sources=data_sources,
            fingerprint=fingerprint,
            elapsed_ms=elapsed_ms,
            budget_report=budget_report,
        )

    @classmethod
    def failure(
        cls,
        error: PropertyEngineException,
        search_type: SearchType,
        elapsed_ms: float,
        fingerprint: Optional[str] = None,
        budget_report: Optional[dict] = None,
    ) -> "ResolutionResult":
        """실패 결과 생성

        ResolutionError는 원인 코드(예: AUTH_ERROR)를 error.code로 노출하고
        수집된 부분 결과와 dataSources를 함께 담습니다.
        """
        results: list[CanonicalProperty] = []
        data_sources: dict[str, str] = {}
        code = error.error_code
        if isinstance(error, ResolutionError):
            code = error.effective_code
            results = list(error.partial_results)
            data_sources = dict(error.partial.get("data_sources", {}))

        return cls(
            status=ResolutionStatus.FAILED,
            search_type=search_type,
            results=results,
            data_sources=data_sources,
            fingerprint=fingerprint,
            elapsed_ms=elapsed_ms,
            error={"code": code, "message": error.message, "details": error.details},
            budget_report=budget_report,
        )

    def to_response(self) -> PropertySearchResponse:
        """API 응답 모델로 변환"""
        return PropertySearchResponse(
            results=self.results,
            verification=self.verification,
            metadata=ResolutionMetadata(
                search_type=self.search_type,
                total_found=self.total_found,
                from_cache=self.from_cache,
                data_sources=self.data_sources,
                fingerprint=self.fingerprint,
                elapsed_ms=round(self.elapsed_ms, 2) if self.elapsed_ms is not None else None,
            ),
            error=ErrorBody(**self.error) if self.error else None,
        )
