"""Credential Manager - 프로바이더 OAuth2 토큰 획득/캐시

- providerId별 토큰을 프로세스 단위로 캐시합니다.
- 남은 수명이 안전 마진보다 짧으면 넘겨주기 전에 갱신합니다.
- 같은 providerId의 동시 갱신은 하나로 합칩니다 (providerId별 asyncio.Lock).
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Optional

from property_engine.core.exceptions import (
    AuthError,
    ProviderHTTPError,
    ProviderParseError,
    ProviderTimeoutError,
)
from property_engine.core.logging import logger

if TYPE_CHECKING:
    from property_engine.providers.http_client import ProviderHttpClient


DEFAULT_EXPIRES_IN_S = 3600.0


@dataclass(frozen=True)
class OAuthClientConfig:
    """client-credentials 교환 설정"""

    provider_id: str
    token_url: str
    client_id: str
    client_secret: str = field(repr=False)
    scope: Optional[str] = None


@dataclass(frozen=True)
class ProviderToken:
    """프로바이더 액세스 토큰 (expires_at: epoch seconds)"""

    provider_id: str
    access_token: str = field(repr=False)
    expires_at: float

    def remaining(self, now: float) -> float:
        return self.expires_at - now

    def is_fresh(self, now: float, margin_s: float) -> bool:
        return self.remaining(now) > margin_s


class CredentialManager:
    """OAuth2 client-credentials 토큰 관리자

    Usage:
        manager = CredentialManager(http_client, refresh_margin_s=30)
        manager.register(OAuthClientConfig("corelogic", token_url, client_id, secret))
        token = await manager.get_token("corelogic")
    """

    def __init__(
        self,
        http_client: "ProviderHttpClient",
        *,
        refresh_margin_s: float = 30.0,
        timeout_s: float = 10.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._http = http_client
        self.refresh_margin_s = refresh_margin_s
        self.timeout_s = timeout_s
        self._clock = clock
        self._configs: dict[str, OAuthClientConfig] = {}
        self._tokens: dict[str, ProviderToken] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self.refresh_counts: dict[str, int] = {}

    def register(self, config: OAuthClientConfig) -> None:
        self._configs[config.provider_id] = config
        self.refresh_counts.setdefault(config.provider_id, 0)

    def is_registered(self, provider_id: str) -> bool:
        return provider_id in self._configs

    async def get_token(self, provider_id: str, *, timeout_s: Optional[float] = None) -> ProviderToken:
        """유효한 토큰 반환 (필요 시 갱신)

        Args:
            provider_id: 프로바이더 ID
            timeout_s: 토큰 교환 전체 타임아웃 (기본값: self.timeout_s)

        Returns:
            ProviderToken: 남은 수명이 안전 마진보다 긴 토큰

        Raises:
            AuthError: 미등록 프로바이더, 자격 증명 거부, 네트워크 실패
        """
        config = self._configs.get(provider_id)
        if config is None:
            raise AuthError(provider_id, "provider is not registered")

        token = self._fresh_token(provider_id)
        if token is not None:
            return token

        lock = self._locks.setdefault(provider_id, asyncio.Lock())
        async with lock:
            # 대기 중 다른 코루틴이 이미 갱신했을 수 있음
            token = self._fresh_token(provider_id)
            if token is not None:
                return token

            token = await self._exchange(config, timeout_s if timeout_s is not None else self.timeout_s)
            self._tokens[provider_id] = token
            return token

    def invalidate(self, provider_id: str) -> None:
        """캐시된 토큰 폐기 (프로바이더가 401을 반환한 경우)"""
        if self._tokens.pop(provider_id, None) is not None:
            logger.info(f"[CREDENTIALS] Token invalidated: provider={provider_id}")

    def clear(self) -> None:
        self._tokens.clear()

    def _fresh_token(self, provider_id: str) -> Optional[ProviderToken]:
        token = self._tokens.get(provider_id)
        if token is not None and token.is_fresh(self._clock(), self.refresh_margin_s):
            return token
        return None

    async def _exchange(self, config: OAuthClientConfig, timeout_s: float) -> ProviderToken:
        provider_id = config.provider_id
        if not config.client_id or not config.client_secret:
            raise AuthError(provider_id, "client credentials are not configured")

        data = {"grant_type": "client_credentials"}
        if config.scope:
            data["scope"] = config.scope

        try:
            # 네트워크/5xx 실패는 HTTP 클라이언트가 1회 즉시 재시도함
            payload = await self._http.request_json(
                provider_id,
                "token_exchange",
                "POST",
                config.token_url,
                data=data,
                auth=(config.client_id, config.client_secret),
                timeout_s=timeout_s,
            )
        except ProviderHTTPError as e:
            raise AuthError(
                provider_id, f"token endpoint returned HTTP {e.status}", {"status": e.status}
            ) from e
        except ProviderTimeoutError as e:
            raise AuthError(provider_id, "token endpoint unreachable", e.details) from e
        except ProviderParseError as e:
            raise AuthError(provider_id, "token response is not valid JSON") from e

        access_token, expires_in = self._parse_token_payload(provider_id, payload)
        self.refresh_counts[provider_id] = self.refresh_counts.get(provider_id, 0) + 1
        logger.info(f"[CREDENTIALS] Token refreshed: provider={provider_id}, expires_in={expires_in:.0f}s")
        return ProviderToken(
            provider_id=provider_id,
            access_token=access_token,
            expires_at=self._clock() + expires_in,
        )

    @staticmethod
    def _parse_token_payload(provider_id: str, payload: Any) -> tuple[str, float]:
        if not isinstance(payload, dict):
            raise AuthError(provider_id, "token response is not a JSON object")

        access_token = payload.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise AuthError(provider_id, "token response missing access_token")

        try:
            expires_in = float(payload.get("expires_in", DEFAULT_EXPIRES_IN_S))
        except (TypeError, ValueError):
            logger.warning(f"[CREDENTIALS] Invalid expires_in from {provider_id}, using default")
            expires_in = DEFAULT_EXPIRES_IN_S
        return access_token, expires_in
