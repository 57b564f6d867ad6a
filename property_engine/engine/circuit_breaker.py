"""Circuit Breaker + Metrics for enrichment providers"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from property_engine.core.logging import logger


@dataclass
class CircuitBreakerMetrics:
    """Enrichment 호출 메트릭"""

    successes: int = 0
    failures: int = 0
    skipped: int = 0

    @property
    def success_rate(self) -> float:
        """성공률 (0.0~1.0)"""
        total = self.successes + self.failures
        return self.successes / total if total > 0 else 0.0

    def __repr__(self) -> str:
        return (
            f"Metrics({self.successes}S/{self.failures}F={self.success_rate:.1%}, skipped={self.skipped})"
        )


class CircuitBreaker:
    """Enrichment Circuit Breaker

    - 연속 실패 시 회로 개방 (해당 프로바이더 enrichment 일시 스킵)
    - 개방 후 일정 시간 후 자동 복구
    - 성공 시 즉시 회로 닫기
    """

    def __init__(
        self,
        name: str,
        fail_threshold: int = 5,
        open_duration_sec: float = 60.0,
    ) -> None:
        """
        Args:
            name: 프로바이더 ID (로그용)
            fail_threshold: 회로 개방 임계값 (연속 실패 횟수)
            open_duration_sec: 개방 상태 유지 시간 (초)
        """
        self.name = name
        self.fail_threshold = fail_threshold
        self.open_duration_sec = open_duration_sec

        self._fail_count = 0
        self._open_until: float = 0.0
        self.metrics = CircuitBreakerMetrics()

    def record_success(self) -> None:
        self._fail_count = 0
        self._open_until = 0.0
        self.metrics.successes += 1

    def record_failure(self) -> None:
        self._fail_count += 1
        self.metrics.failures += 1

        if self._fail_count >= self.fail_threshold:
            loop = asyncio.get_running_loop()
            self._open_until = loop.time() + self.open_duration_sec
            logger.warning(
                f"[CIRCUIT_BREAKER] {self.name} OPEN (fail_count={self._fail_count} >= {self.fail_threshold}). "
                f"Enrichment blocked for {self.open_duration_sec}s"
            )

    def record_skip(self) -> None:
        self.metrics.skipped += 1

    def is_open(self) -> bool:
        if self._open_until <= 0.0:
            return False

        loop = asyncio.get_running_loop()
        if loop.time() >= self._open_until:
            # 자동 복구
            self._fail_count = 0
            self._open_until = 0.0
            logger.info(f"[CIRCUIT_BREAKER] {self.name} CLOSED (auto-recovery)")
            return False

        return True

    def get_remaining_open_time(self) -> float:
        if self._open_until <= 0.0:
            return 0.0

        loop = asyncio.get_running_loop()
        return max(0.0, self._open_until - loop.time())

    def __repr__(self) -> str:
        return f"CircuitBreaker({self.name}, fail_count={self._fail_count}/{self.fail_threshold})"
