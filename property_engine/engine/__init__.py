"""Property Data Resolution Engine

Architecture:
- classifier: ADDRESS / GENERAL 판정
- orchestrator: 캐시 -> 프로바이더 호출 체인 -> 병합 -> 검증 -> 캐시 저장
- budget / strategy / circuit_breaker: 시간 예산, 역할별 실패 처리, enrichment 회로차단
- merge / verification: 표준 레코드 병합과 검증 envelope
"""

from .budget import BudgetConfig, BudgetManager
from .cache_adapter import CacheAdapter
from .classifier import classify, classify_strict, explain
from .orchestrator import ResolutionOrchestrator
from .result import DataSourceStatus, Outcome, ResolutionResult, ResolutionStatus
from .strategy import ExecutionStrategy, ProviderRole

__all__ = [
    "BudgetConfig",
    "BudgetManager",
    "CacheAdapter",
    "classify",
    "classify_strict",
    "explain",
    "ResolutionOrchestrator",
    "DataSourceStatus",
    "Outcome",
    "ResolutionResult",
    "ResolutionStatus",
    "ExecutionStrategy",
    "ProviderRole",
]
