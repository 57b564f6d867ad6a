"""Redis 응답 캐시 - 여러 워커가 공유하는 캐시 백엔드"""
from typing import Callable, Optional
import time

from pydantic import ValidationError
from redis import Redis
from redis.exceptions import RedisError

from property_engine.core.logging import logger
from property_engine.core.exceptions import (
    CacheConnectionException,
    CacheSerializationException,
)
from property_engine.schemas.property_schema import CacheEntry


class RedisResponseCache:
    """Redis 응답 캐시

    ResponseCache와 같은 get/put/evict 계약을 따릅니다.
    만료는 Redis SETEX에 맡기고, 읽을 때 createdAt+ttl도 한 번 더 확인합니다.
    """

    backend = "redis"

    def __init__(
        self,
        redis_url: str,
        key_prefix: str = "",
        clock: Callable[[], float] = time.time,
        client: Optional[Redis] = None,
    ):
        """Redis 클라이언트 초기화"""
        self.key_prefix = key_prefix
        self._clock = clock
        try:
            self.redis_client = client or Redis.from_url(
                redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5
            )
            # 연결 테스트
            self.redis_client.ping()
            logger.info("Redis connection established")
        except (RedisError, ValueError) as e:
            logger.error(f"Failed to connect to Redis: {e}")
            raise CacheConnectionException(str(e)) from e

    def _key(self, fingerprint: str) -> str:
        return f"{self.key_prefix}{fingerprint}"

    def get(self, fingerprint: str) -> Optional[CacheEntry]:
        """
        캐시 조회

        Args:
            fingerprint: 쿼리 fingerprint

        Returns:
            CacheEntry 또는 None
        """
        cache_key = self._key(fingerprint)
        try:
            cached_data = self.redis_client.get(cache_key)
        except RedisError as e:
            logger.error(f"Cache read error: {e}")
            raise CacheConnectionException(f"read failed: {e}") from e

        if not cached_data:
            logger.info(f"Cache miss for key: {cache_key}")
            return None

        try:
            entry = CacheEntry.model_validate_json(cached_data)
        except ValidationError as e:
            logger.error(f"Failed to deserialize cache: {e}")
            raise CacheSerializationException("get", str(e), {"key": cache_key}) from e

        if entry.is_expired(self._clock()):
            return None

        logger.info(f"Cache hit for key: {cache_key}")
        return entry

    def put(self, fingerprint: str, entry: CacheEntry) -> None:
        """
        캐시 저장 (TTL = entry.ttl)
        """
        if entry.fingerprint != fingerprint:
            raise ValueError("entry.fingerprint does not match the cache key")

        cache_key = self._key(fingerprint)
        cached_value = entry.model_dump_json(by_alias=True)
        try:
            self.redis_client.setex(cache_key, entry.ttl, cached_value)
        except RedisError as e:
            logger.error(f"Cache write error: {e}")
            raise CacheConnectionException(f"write failed: {e}") from e
        logger.info(f"Cache set for key: {cache_key}, TTL: {entry.ttl}s")

    def evict(self, fingerprint: str) -> bool:
        """캐시 삭제"""
        cache_key = self._key(fingerprint)
        try:
            result = self.redis_client.delete(cache_key)
        except RedisError as e:
            logger.error(f"Cache delete error: {e}")
            raise CacheConnectionException(f"delete failed: {e}") from e
        logger.info(f"Cache deleted for key: {cache_key}")
        return result > 0

    def health_check(self) -> bool:
        """Redis 연결 상태 확인"""
        try:
            self.redis_client.ping()
            return True
        except RedisError:
            return False

    def close(self) -> None:
        self.redis_client.close()
