"""Engine Factory - 프로세스 수명 객체 생성과 정리

앱 시작 시 build_engine()으로 HTTP 클라이언트, 토큰 관리자, 응답 캐시,
프로바이더, 오케스트레이터를 만들고 종료 시 aclose()로 정리합니다.
"""

from dataclasses import dataclass
from typing import Optional, Union

import httpx

from property_engine.core.config import Settings
from property_engine.core.logging import logger
from property_engine.providers import CoreLogicClient, ProviderHttpClient, ProviderRegistry, ZillowListingsClient
from property_engine.services.impl.credential_manager import CredentialManager, OAuthClientConfig
from property_engine.services.impl.redis_response_cache import RedisResponseCache
from property_engine.services.impl.response_cache import ResponseCache

from .budget import BudgetConfig
from .cache_adapter import CacheAdapter
from .orchestrator import ResolutionOrchestrator

ResponseCacheBackend = Union[ResponseCache, RedisResponseCache]


@dataclass
class EngineResources:
    """엔진과 그 수명 객체 묶음"""

    orchestrator: ResolutionOrchestrator
    cache: CacheAdapter
    response_cache: ResponseCacheBackend
    credentials: CredentialManager
    http_client: ProviderHttpClient
    registry: ProviderRegistry

    async def aclose(self) -> None:
        """진행 중 작업 취소, 토큰 폐기, 커넥션/캐시 연결 종료"""
        await self.orchestrator.aclose()
        self.credentials.clear()
        await self.http_client.close()
        self.response_cache.close()
        logger.info("Engine resources closed")


def build_response_cache(settings: Settings) -> ResponseCacheBackend:
    """설정된 백엔드의 응답 캐시 생성

    Raises:
        CacheConnectionException: redis 백엔드 연결 실패
    """
    if settings.response_cache_backend == "redis":
        return RedisResponseCache(settings.redis_url, key_prefix="property_engine:")
    return ResponseCache(max_entries=settings.response_cache_max_entries)


def build_engine(
    settings: Settings,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    response_cache: Optional[ResponseCacheBackend] = None,
) -> EngineResources:
    """설정으로 엔진 구성

    Args:
        settings: 애플리케이션 설정
        transport: 프로바이더 HTTP transport (테스트용)
        response_cache: 미리 만든 응답 캐시 (없으면 설정으로 생성)
    """
    http_client = ProviderHttpClient(
        timeout_s=settings.provider_timeout_s,
        max_connections=settings.provider_max_connections,
        transport=transport,
    )
    credentials = CredentialManager(
        http_client,
        refresh_margin_s=settings.token_refresh_margin_s,
        timeout_s=settings.provider_timeout_s,
    )
    credentials.register(
        OAuthClientConfig(
            provider_id=CoreLogicClient.provider_id,
            token_url=settings.corelogic_token_url,
            client_id=settings.corelogic_client_id,
            client_secret=settings.corelogic_client_secret,
        )
    )

    registry = ProviderRegistry()
    registry.register_property_provider(
        CoreLogicClient(
            http_client,
            credentials,
            base_url=settings.corelogic_base_url,
            timeout_s=settings.provider_timeout_s,
            spatial_radius_m=settings.corelogic_spatial_radius_m,
        )
    )
    registry.register_listings_provider(
        ZillowListingsClient(
            http_client,
            api_key=settings.zillow_api_key,
            api_host=settings.zillow_api_host,
            base_url=settings.zillow_base_url,
            timeout_s=settings.provider_timeout_s,
        )
    )

    response_cache = response_cache or build_response_cache(settings)
    cache = CacheAdapter(response_cache)
    orchestrator = ResolutionOrchestrator(
        cache,
        registry,
        property_provider_id=settings.property_provider,
        listings_provider_id=settings.listings_provider,
        budget_config=BudgetConfig(
            total_budget=settings.resolution_total_budget_s,
            cache_timeout=settings.resolution_cache_timeout_s,
            primary_timeout=settings.resolution_primary_timeout_s,
            enrichment_timeout=settings.resolution_enrichment_timeout_s,
        ),
        ttl_address_s=settings.cache_ttl_address_s,
        ttl_general_s=settings.cache_ttl_general_s,
        general_result_limit=settings.general_result_limit,
        enrich_top_n=settings.general_enrich_top_n,
        enrichment_concurrency=settings.enrichment_concurrency,
        verification_radius_m=settings.verification_radius_m,
        breaker_fail_threshold=settings.enrichment_fail_threshold,
        breaker_open_seconds=settings.enrichment_open_seconds,
    )
    logger.info(
        f"Engine ready: cache={response_cache.backend}, "
        f"providers={registry.provider_ids}"
    )
    return EngineResources(
        orchestrator=orchestrator,
        cache=cache,
        response_cache=response_cache,
        credentials=credentials,
        http_client=http_client,
        registry=registry,
    )
