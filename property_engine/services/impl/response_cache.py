"""Response Cache - 프로세스 로컬 캐시

- fingerprint -> CacheEntry 단일 매핑
- 읽기 시점 TTL 검사 (백그라운드 정리 없음)
- threading.RLock으로 동시 읽기/쓰기 보호
"""

import threading
import time
from collections import OrderedDict
from typing import Callable, Optional

from property_engine.core.logging import logger
from property_engine.schemas.property_schema import CacheEntry


class ResponseCache:
    """인메모리 응답 캐시"""

    backend = "memory"

    def __init__(self, max_entries: int = 2048, clock: Callable[[], float] = time.time):
        """
        Args:
            max_entries: 최대 항목 수 (초과 시 가장 오래 쓰인 항목부터 제거)
            clock: 현재 시각 (epoch seconds)
        """
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.RLock()

    def get(self, fingerprint: str) -> Optional[CacheEntry]:
        """캐시 조회

        Returns:
            CacheEntry 또는 None (없음 / 만료)
        """
        with self._lock:
            entry = self._entries.get(fingerprint)
            if entry is None:
                return None
            if entry.is_expired(self._clock()):
                del self._entries[fingerprint]
                logger.debug(f"Cache entry expired: {fingerprint}")
                return None
            return entry

    def put(self, fingerprint: str, entry: CacheEntry) -> None:
        """캐시 저장 (같은 키는 덮어씀)"""
        if entry.fingerprint != fingerprint:
            raise ValueError("entry.fingerprint does not match the cache key")

        with self._lock:
            self._entries[fingerprint] = entry
            self._entries.move_to_end(fingerprint)
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"Cache entry evicted (capacity): {evicted}")

    def evict(self, fingerprint: str) -> bool:
        """명시적 제거"""
        with self._lock:
            return self._entries.pop(fingerprint, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def health_check(self) -> bool:
        return True

    def close(self) -> None:
        self.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
