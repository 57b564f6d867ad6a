"""공유 HTTP 클라이언트 (httpx)

- 요청마다 클라이언트를 만들면 TLS/커넥션 오버헤드가 커지므로
  프로세스 단위로 AsyncClient를 재사용합니다.
- 모든 호출은 명시적 타임아웃을 가지며, 5xx/타임아웃에 한해 1회 즉시 재시도합니다.
  타임아웃은 재시도를 포함한 전체 시간이며 시도마다 균등하게 나눕니다.
- 실패는 ProviderHTTPError / ProviderTimeoutError / ProviderParseError로 변환됩니다.
- 앱 종료 시 close()로 정리합니다.
"""

from __future__ import annotations

import asyncio
from typing import Any, Mapping, Optional

import httpx

from property_engine.core.exceptions import (
    ProviderHTTPError,
    ProviderParseError,
    ProviderTimeoutError,
)
from property_engine.core.logging import logger


class ProviderHttpClient:
    """프로바이더 공용 비동기 HTTP 클라이언트"""

    def __init__(
        self,
        *,
        timeout_s: float = 10.0,
        max_connections: int = 20,
        max_retries: int = 1,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Args:
            timeout_s: 기본 요청 타임아웃 (초)
            max_connections: 커넥션 풀 크기
            max_retries: 5xx/타임아웃 시 즉시 재시도 횟수
            transport: 테스트용 transport (httpx.MockTransport 등)
        """
        self.timeout_s = timeout_s
        self.max_connections = max_connections
        self.max_retries = max_retries
        self._transport = transport
        self._lock = asyncio.Lock()
        self._client: Optional[httpx.AsyncClient] = None

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._lock:
            if self._client is not None:
                return self._client
            self._client = httpx.AsyncClient(
                timeout=self.timeout_s,
                limits=httpx.Limits(max_connections=self.max_connections),
                headers={"Accept": "application/json"},
                transport=self._transport,
                trust_env=False,
            )
            return self._client

    def attempt_timeout(self, total_s: float) -> float:
        """시도 1회당 타임아웃 (전체 타임아웃을 최대 시도 횟수로 나눔)"""
        return total_s / (self.max_retries + 1)

    async def request_json(
        self,
        provider_id: str,
        operation: str,
        method: str,
        url: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        data: Optional[Mapping[str, Any]] = None,
        auth: Optional[tuple[str, str]] = None,
        timeout_s: Optional[float] = None,
    ) -> Any:
        """요청 후 JSON 바디 반환

        Args:
            provider_id: 에러/로그용 프로바이더 ID
            operation: 에러/로그용 연산 이름 (예: "lookup_by_address")
            method: HTTP 메서드
            url: 전체 URL
            params: 쿼리 파라미터 (None 값은 제외)
            headers: 추가 헤더
            data: form 바디
            auth: HTTP basic auth (id, secret)
            timeout_s: 재시도를 포함한 전체 타임아웃 (기본값: 클라이언트 설정)

        Returns:
            파싱된 JSON

        Raises:
            ProviderHTTPError: 4xx 또는 재시도 후에도 5xx
            ProviderTimeoutError: 재시도 후에도 타임아웃/네트워크 오류
            ProviderParseError: JSON이 아닌 응답
        """
        client = await self._ensure_client()
        timeout = timeout_s if timeout_s is not None else self.timeout_s
        attempt_timeout = self.attempt_timeout(timeout)
        clean_params = {k: v for k, v in (params or {}).items() if v is not None}

        attempt = 0
        while True:
            try:
                response = await client.request(
                    method,
                    url,
                    params=clean_params or None,
                    headers=dict(headers) if headers else None,
                    data=dict(data) if data else None,
                    auth=auth,
                    timeout=attempt_timeout,
                )
            except httpx.TransportError as e:
                if attempt < self.max_retries:
                    attempt += 1
                    logger.info(
                        f"[HTTP] {provider_id}.{operation} {type(e).__name__}, retrying ({attempt}/{self.max_retries})"
                    )
                    continue
                logger.warning(f"[HTTP] {provider_id}.{operation} failed: {type(e).__name__}")
                raise ProviderTimeoutError(provider_id, operation, timeout) from e

            if response.status_code >= 500 and attempt < self.max_retries:
                attempt += 1
                logger.info(
                    f"[HTTP] {provider_id}.{operation} HTTP {response.status_code}, retrying ({attempt}/{self.max_retries})"
                )
                continue

            if response.status_code >= 400:
                logger.warning(f"[HTTP] {provider_id}.{operation} HTTP {response.status_code}")
                raise ProviderHTTPError(provider_id, response.status_code, operation)

            try:
                return response.json()
            except ValueError as e:
                raise ProviderParseError(provider_id, operation, "response body is not valid JSON") from e

    async def close(self) -> None:
        async with self._lock:
            if self._client is None:
                return
            await self._client.aclose()
            self._client = None
            logger.info("[HTTP] Provider HTTP client closed")
