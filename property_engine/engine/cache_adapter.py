"""Cache Adapter - 응답 캐시를 오케스트레이터용 async 인터페이스로 변환

캐시 실패는 요청을 실패시키지 않습니다 (경고 로그 후 miss/skip 처리).
"""

import asyncio
from typing import Optional, Protocol

from property_engine.core.exceptions import CacheException
from property_engine.core.logging import logger
from property_engine.schemas.property_schema import CacheEntry


class ResponseCacheBackend(Protocol):
    backend: str

    def get(self, fingerprint: str) -> Optional[CacheEntry]: ...

    def put(self, fingerprint: str, entry: CacheEntry) -> None: ...

    def evict(self, fingerprint: str) -> bool: ...

    def health_check(self) -> bool: ...


class CacheAdapter:
    """응답 캐시 어댑터"""

    def __init__(self, cache: ResponseCacheBackend):
        """
        Args:
            cache: ResponseCache 또는 RedisResponseCache

        Raises:
            ValueError: cache가 None인 경우
        """
        if cache is None:
            raise ValueError("cache must not be None")
        self.cache = cache

    async def _run(self, func, *args):
        # Redis 백엔드는 동기 I/O이므로 스레드에서 실행
        if getattr(self.cache, "backend", "memory") == "redis":
            return await asyncio.to_thread(func, *args)
        return func(*args)

    async def get(self, fingerprint: str, timeout: float = 0.5) -> Optional[CacheEntry]:
        """캐시 조회

        Returns:
            CacheEntry 또는 None (miss / 타임아웃 / 캐시 오류)
        """
        if not fingerprint:
            logger.warning("Empty fingerprint for cache.get")
            return None

        try:
            entry = await asyncio.wait_for(self._run(self.cache.get, fingerprint), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Cache get timeout: {fingerprint}")
            return None
        except CacheException as e:
            logger.warning(f"Cache get failed: {e}")
            return None

        if entry is not None and entry.fingerprint != fingerprint:
            logger.warning(f"Cache entry fingerprint mismatch: {fingerprint}")
            return None
        return entry

    async def put(self, fingerprint: str, entry: CacheEntry) -> bool:
        """캐시 저장

        Returns:
            저장 성공 여부
        """
        try:
            await self._run(self.cache.put, fingerprint, entry)
            logger.debug(f"Result cached: {fingerprint}, ttl={entry.ttl}s")
            return True
        except (CacheException, ValueError) as e:
            logger.warning(f"Cache put failed: {e}")
            return False

    async def evict(self, fingerprint: str) -> bool:
        try:
            return bool(await self._run(self.cache.evict, fingerprint))
        except CacheException as e:
            logger.warning(f"Cache evict failed: {e}")
            return False

    def health_check(self) -> bool:
        return self.cache.health_check()
