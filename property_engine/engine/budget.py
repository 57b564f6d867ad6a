"""Budget Manager - 요청 단위 시간 예산 관리

예산 할당 구조 (기본값):
- 전체: 25초
- Cache: 0.5초
- Primary (필지 조회/매물 검색): 12초
- Enrichment (보강 호출): 10초

요청마다 새 BudgetManager를 만들어 동시 요청 간 상태를 공유하지 않습니다.
"""

from dataclasses import dataclass
from time import time
from typing import Optional


@dataclass
class BudgetConfig:
    """예산 설정"""

    total_budget: float = 25.0  # 전체 예산 (초)
    cache_timeout: float = 0.5  # Cache 조회
    primary_timeout: float = 12.0  # Primary 단계 호출당 상한
    enrichment_timeout: float = 10.0  # Enrichment 단계 호출당 상한
    min_remaining: float = 0.5  # Enrichment 실행 최소 여유 시간 (초)

    def __post_init__(self):
        """설정 검증"""
        for name in ("total_budget", "cache_timeout", "primary_timeout", "enrichment_timeout"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        sum_timeouts = self.cache_timeout + self.primary_timeout + self.enrichment_timeout
        if sum_timeouts > self.total_budget:
            raise ValueError(
                f"Sum of timeouts ({sum_timeouts}s) exceeds total budget ({self.total_budget}s)"
            )


class BudgetManager:
    """시간 예산 관리자

    Usage:
        manager = BudgetManager(config)
        manager.start()

        cache_timeout = manager.get_timeout_for("cache")
        manager.checkpoint("cache_miss")

        if manager.can_execute_enrichment():
            ...

        report = manager.get_report()
    """

    STAGES = ("cache", "primary", "enrichment")

    def __init__(self, config: Optional[BudgetConfig] = None):
        self.config = config or BudgetConfig()
        self.start_time: Optional[float] = None
        self._checkpoints: dict[str, float] = {}

    def start(self) -> None:
        """예산 측정 시작"""
        self.start_time = time()
        self._checkpoints.clear()

    def checkpoint(self, name: str) -> None:
        """체크포인트 기록

        Raises:
            RuntimeError: start()가 호출되지 않은 경우
        """
        if self.start_time is None:
            raise RuntimeError("Budget not started. Call start() first.")
        self._checkpoints[name] = time() - self.start_time

    def elapsed(self) -> float:
        """경과 시간 (초). start() 전에는 0.0"""
        if self.start_time is None:
            return 0.0
        return time() - self.start_time

    def remaining(self) -> float:
        """남은 예산 (초, 음수 없음)"""
        return max(0.0, self.config.total_budget - self.elapsed())

    def can_execute_primary(self) -> bool:
        return self.remaining() > 0.0

    def can_execute_enrichment(self) -> bool:
        """Enrichment 실행 가능 여부 (최소 여유 시간 이상 남았는지)"""
        return self.remaining() >= self.config.min_remaining

    def is_exhausted(self) -> bool:
        return self.remaining() < self.config.min_remaining

    def get_timeout_for(self, stage: str) -> float:
        """단계별 타임아웃: 남은 예산과 단계 상한 중 작은 값

        Args:
            stage: "cache" | "primary" | "enrichment"
        """
        remaining = self.remaining()

        if stage == "cache":
            return min(self.config.cache_timeout, remaining)
        elif stage == "primary":
            return min(self.config.primary_timeout, remaining)
        elif stage == "enrichment":
            return min(self.config.enrichment_timeout, remaining)
        else:
            return remaining

    def get_report(self) -> dict:
        """예산 사용 리포트"""
        return {
            "total_budget": self.config.total_budget,
            "elapsed": self.elapsed(),
            "remaining": self.remaining(),
            "checkpoints": self._checkpoints.copy(),
            "is_exhausted": self.is_exhausted(),
        }
