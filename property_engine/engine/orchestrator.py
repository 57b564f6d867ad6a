"""Resolution Orchestrator - 부동산 데이터 해석 엔진 진입점

요청 단위 상태 머신:
1. CacheCheck: fingerprint 계산 후 응답 캐시 조회 (히트 시 즉시 반환)
2. Dispatch: 검색 유형별 프로바이더 호출 체인
   - ADDRESS: lookup_by_address (-> lookup_by_spatial 폴백)
     -> get_structure + get_valuation (병렬) -> 매물 보강 -> 병합
   - GENERAL: search_by_location (필터 적용) -> 상위 N건 보강 (동시성 제한) -> 병합
3. Verify: 검증 envelope 생성
4. CacheStore: 검색 유형별 TTL로 저장
5. Return: ResolutionResult

primary 호출 실패는 요청 실패(ResolutionError), enrichment 실패는 해당 필드만 null.
resolve()는 예외를 던지지 않고 항상 ResolutionResult를 반환합니다.
"""

import asyncio
import time
from functools import partial
from typing import Any, Awaitable, Callable, Optional

from property_engine.core.exceptions import (
    PropertyEngineException,
    ProviderError,
    ProviderTimeoutError,
    ResolutionError,
)
from property_engine.core.logging import logger, sanitize_for_log
from property_engine.providers.base import ListingRecord, ParcelMatch
from property_engine.providers.registry import ProviderRegistry
from property_engine.schemas.property_schema import (
    CacheEntry,
    CanonicalProperty,
    PropertyQuery,
    SearchType,
    VerificationEnvelope,
)
from property_engine.utils.address import AddressParts, format_one_line, normalize_street, parse_address_text
from property_engine.utils.hash_utils import fingerprint_query
from property_engine.utils.search_filters import (
    SearchFilters,
    canonical_property_type,
    parse_search_text,
    split_filters,
)

from .budget import BudgetConfig, BudgetManager
from .cache_adapter import CacheAdapter
from .circuit_breaker import CircuitBreaker
from .classifier import explain
from .merge import merge_property
from .result import DataSourceStatus, DataSourceTracker, Outcome, ResolutionResult
from .strategy import ExecutionStrategy, ProviderRole
from .verification import DEFAULT_RADIUS_M, verify

# 정확한 주소로 매물 검색 시 비교할 후보 수
EXACT_ADDRESS_CANDIDATES = 3

CallFactory = Callable[[float], Awaitable[Any]]


def apply_post_hoc_filters(listings: list[ListingRecord], post_hoc: dict[str, Any]) -> list[ListingRecord]:
    """프로바이더가 처리하지 못한 필터를 결과에 적용

    값이 없는 레코드는 해당 필터를 통과하지 못합니다.
    """
    kept: list[ListingRecord] = []
    for listing in listings:
        if "min_beds" in post_hoc and (listing.bedrooms is None or listing.bedrooms < post_hoc["min_beds"]):
            continue
        if "property_type" in post_hoc and canonical_property_type(listing.property_type) != post_hoc["property_type"]:
            continue
        if "price_min" in post_hoc and (listing.price is None or listing.price < post_hoc["price_min"]):
            continue
        if "price_max" in post_hoc and (listing.price is None or listing.price > post_hoc["price_max"]):
            continue
        if "status" in post_hoc and listing.status != post_hoc["status"]:
            continue
        kept.append(listing)
    return kept


class ResolutionOrchestrator:
    """부동산 데이터 해석 오케스트레이터

    캐시와 프로바이더는 생성자로 주입받습니다 (프로세스 수명 객체).
    요청별 상태(예산, dataSources)는 resolve() 호출마다 새로 만듭니다.
    """

    def __init__(
        self,
        cache: CacheAdapter,
        registry: ProviderRegistry,
        *,
        property_provider_id: str = "corelogic",
        listings_provider_id: str = "zillow",
        budget_config: Optional[BudgetConfig] = None,
        ttl_address_s: int = 3600,
        ttl_general_s: int = 900,
        general_result_limit: int = 40,
        enrich_top_n: int = 5,
        enrichment_concurrency: int = 3,
        verification_radius_m: float = DEFAULT_RADIUS_M,
        breaker_fail_threshold: int = 5,
        breaker_open_seconds: float = 60.0,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            cache: 응답 캐시 어댑터
            registry: 프로바이더 레지스트리
            property_provider_id: 부동산 데이터 프로바이더 ID
            listings_provider_id: 매물 프로바이더 ID
            budget_config: 요청 단위 시간 예산
            ttl_address_s: ADDRESS 결과 TTL (초)
            ttl_general_s: GENERAL 결과 TTL (초)
            general_result_limit: GENERAL 검색 최대 결과 수
            enrich_top_n: GENERAL 결과 중 보강할 상위 건수 (0이면 보강 안 함)
            enrichment_concurrency: GENERAL 보강 동시 실행 수
            verification_radius_m: 좌표 검증 허용 반경 (미터)
            breaker_fail_threshold: enrichment 회로 개방 연속 실패 수
            breaker_open_seconds: 회로 개방 유지 시간 (초)
            clock: CacheEntry.created_at 시계

        Raises:
            ValueError: cache가 None이거나 providerId가 등록되지 않은 경우
        """
        if cache is None:
            raise ValueError("cache must not be None")
        if enrich_top_n < 0:
            raise ValueError("enrich_top_n must not be negative")
        if enrichment_concurrency < 1:
            raise ValueError("enrichment_concurrency must be at least 1")

        self.cache = cache
        self.property_provider = registry.property_provider(property_provider_id)
        self.listings_provider = registry.listings_provider(listings_provider_id)
        self.budget_config = budget_config or BudgetConfig()
        self.ttl_by_type = {SearchType.ADDRESS: ttl_address_s, SearchType.GENERAL: ttl_general_s}
        self.general_result_limit = general_result_limit
        self.enrich_top_n = enrich_top_n
        self.enrichment_concurrency = enrichment_concurrency
        self.verification_radius_m = verification_radius_m
        self.clock = clock
        self.strategy = ExecutionStrategy()
        self.breakers = {
            provider_id: CircuitBreaker(provider_id, breaker_fail_threshold, breaker_open_seconds)
            for provider_id in (property_provider_id, listings_provider_id)
        }
        self._inflight: dict[str, asyncio.Future] = {}

    @property
    def provider_ids(self) -> list[str]:
        return [self.property_provider.provider_id, self.listings_provider.provider_id]

    async def resolve(self, query: PropertyQuery) -> ResolutionResult:
        """쿼리 해석

        Args:
            query: 검증된 PropertyQuery

        Returns:
            ResolutionResult: 성공/캐시 히트/실패 모두 이 타입으로 반환
        """
        budget = BudgetManager(self.budget_config)
        budget.start()
        search_type = SearchType.GENERAL
        fingerprint: Optional[str] = None

        try:
            decision = explain(query)
            search_type = decision.search_type
            if decision.ambiguous:
                logger.debug(f"[RESOLVE] Ambiguous query treated as GENERAL: reason={decision.reason}")
            fingerprint = fingerprint_query(query, search_type)
            logger.info(
                f"[RESOLVE] Started: type={search_type.value}, fingerprint={fingerprint}, "
                f"query='{sanitize_for_log(query.raw_text or query.address1 or query.city)}'"
            )

            cached = await self._try_cache(fingerprint, budget)
            if cached is not None:
                return cached

            task = self._inflight.get(fingerprint)
            if task is None:
                task = asyncio.ensure_future(self._execute(query, search_type, fingerprint, budget))
                self._inflight[fingerprint] = task
                task.add_done_callback(partial(self._release_inflight, fingerprint))
            else:
                logger.debug(f"[RESOLVE] Joined in-flight resolution: {fingerprint}")

            # 호출자 취소가 공유 작업을 취소하지 않도록 shield
            return await asyncio.shield(task)

        except PropertyEngineException as e:
            logger.warning(f"[RESOLVE] Failed: {e}")
            return ResolutionResult.failure(
                e, search_type, budget.elapsed() * 1000, fingerprint, budget.get_report()
            )
        except Exception as e:
            logger.error(f"[RESOLVE] Unexpected error: {type(e).__name__}: {e}", exc_info=True)
            return ResolutionResult.failure(
                PropertyEngineException(f"Unexpected error: {type(e).__name__}", "INTERNAL_ERROR"),
                search_type,
                budget.elapsed() * 1000,
                fingerprint,
                budget.get_report(),
            )

    def _release_inflight(self, fingerprint: str, task: asyncio.Future) -> None:
        if self._inflight.get(fingerprint) is task:
            del self._inflight[fingerprint]
        if not task.cancelled() and task.exception() is not None:
            logger.debug(f"[RESOLVE] In-flight task ended with {type(task.exception()).__name__}")

    async def aclose(self) -> None:
        """진행 중인 공유 해석 작업 취소 (종료 시)"""
        pending = [task for task in self._inflight.values() if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._inflight.clear()

    async def evict(self, fingerprint: str) -> bool:
        """캐시 항목 명시적 제거"""
        return await self.cache.evict(fingerprint)

    async def _try_cache(self, fingerprint: str, budget: BudgetManager) -> Optional[ResolutionResult]:
        entry = await self.cache.get(fingerprint, timeout=budget.get_timeout_for("cache"))
        if entry is None:
            budget.checkpoint("cache_miss")
            return None

        budget.checkpoint("cache_hit")
        logger.info(f"[RESOLVE] Cache hit: {fingerprint}")
        return ResolutionResult.from_cache_entry(entry, elapsed_ms=budget.elapsed() * 1000)

    async def _execute(
        self,
        query: PropertyQuery,
        search_type: SearchType,
        fingerprint: str,
        budget: BudgetManager,
    ) -> ResolutionResult:
        """캐시 미스 시 프로바이더 호출 체인 실행 (공유 작업 본체)"""
        tracker = DataSourceTracker(self.provider_ids)
        try:
            if search_type is SearchType.ADDRESS:
                results, verification = await self._resolve_address(query, fingerprint, budget, tracker)
            else:
                results, verification = await self._resolve_general(query, fingerprint, budget, tracker)
        except ResolutionError as e:
            logger.warning(f"[RESOLVE] Primary path failed: reason={e.reason}, code={e.effective_code}")
            return ResolutionResult.failure(
                e, search_type, budget.elapsed() * 1000, fingerprint, budget.get_report()
            )

        data_sources = tracker.as_dict()
        await self.cache.put(
            fingerprint,
            CacheEntry(
                fingerprint=fingerprint,
                search_type=search_type,
                value=results,
                verification=verification,
                data_sources=data_sources,
                created_at=self.clock(),
                ttl=self.ttl_by_type[search_type],
            ),
        )
        budget.checkpoint("cache_store")

        result = ResolutionResult.resolved(
            search_type=search_type,
            results=results,
            verification=verification,
            data_sources=data_sources,
            fingerprint=fingerprint,
            elapsed_ms=budget.elapsed() * 1000,
            budget_report=budget.get_report(),
        )
        logger.info(
            f"[RESOLVE] Completed: type={search_type.value}, found={result.total_found}, "
            f"sources={data_sources}, elapsed={result.elapsed_ms:.1f}ms"
        )
        return result

    # ------------------------------------------------------------------
    # Provider calls
    # ------------------------------------------------------------------

    async def _call(
        self,
        provider_id: str,
        operation: str,
        factory: CallFactory,
        *,
        role: ProviderRole,
        budget: BudgetManager,
        tracker: DataSourceTracker,
    ) -> Outcome:
        """프로바이더 호출 1건 실행

        provider 계층 예외는 Outcome으로 변환합니다.
        enrichment는 회로 개방 또는 예산 부족 시 호출하지 않고 skip 처리합니다.

        Args:
            factory: timeout(초)을 받아 코루틴을 만드는 함수
        """
        breaker = self.breakers[provider_id]
        stage = "primary" if role is ProviderRole.PRIMARY else "enrichment"

        if role is ProviderRole.ENRICHMENT:
            if breaker.is_open():
                breaker.record_skip()
                logger.info(
                    f"[RESOLVE] {provider_id}.{operation} skipped: circuit open "
                    f"({breaker.get_remaining_open_time():.1f}s remaining)"
                )
                return self._record(tracker, Outcome.skip(provider_id, operation, "circuit_open"))
            if not budget.can_execute_enrichment():
                breaker.record_skip()
                logger.info(f"[RESOLVE] {provider_id}.{operation} skipped: budget exhausted")
                return self._record(tracker, Outcome.skip(provider_id, operation, "budget_exhausted"))
        elif not budget.can_execute_primary():
            error = ProviderTimeoutError(provider_id, operation, 0.0, {"reason": "budget_exhausted"})
            return self._record(tracker, Outcome.failure(provider_id, operation, error))

        timeout = budget.get_timeout_for(stage)
        # 단계 타임아웃은 재시도를 포함한 한도. 시도별 분할은 ProviderHttpClient가 함
        try:
            value = await asyncio.wait_for(factory(timeout), timeout=timeout)
        except asyncio.TimeoutError:
            outcome = Outcome.failure(provider_id, operation, ProviderTimeoutError(provider_id, operation, timeout))
        except ProviderError as e:
            outcome = Outcome.failure(provider_id, operation, e)
        else:
            outcome = Outcome.success(provider_id, operation, value)

        budget.checkpoint(f"{provider_id}.{operation}")

        if outcome.error is not None:
            level = "error" if role is ProviderRole.PRIMARY else "warning"
            getattr(logger, level)(f"[RESOLVE] {provider_id}.{operation} failed ({stage}): {outcome.error}")

        if role is ProviderRole.ENRICHMENT:
            if outcome.ok:
                breaker.record_success()
            elif self.strategy.should_trip_breaker(outcome.error):
                breaker.record_failure()

        return self._record(tracker, outcome)

    @staticmethod
    def _record(tracker: DataSourceTracker, outcome: Outcome) -> Outcome:
        tracker.record_outcome(outcome)
        return outcome

    async def _locate_parcel(
        self,
        address: Optional[AddressParts],
        coordinates: Optional[tuple[float, float]],
        *,
        role: ProviderRole,
        budget: BudgetManager,
        tracker: DataSourceTracker,
    ) -> Outcome:
        """필지 조회: 주소 조회 후 매칭 없음/실패 시 좌표 검색 폴백

        Returns:
            Outcome: value는 ParcelMatch 또는 None (매칭 없음)
        """
        provider = self.property_provider
        provider_id = provider.provider_id

        if address is not None and address.address1:
            outcome = await self._call(
                provider_id,
                "lookup_by_address",
                lambda timeout: provider.lookup_by_address(address, timeout_s=timeout),
                role=role,
                budget=budget,
                tracker=tracker,
            )
            if outcome.ok and outcome.value is not None:
                return outcome
            if outcome.skipped or not self.strategy.should_fallback_to_spatial(outcome.error, coordinates is not None):
                return outcome
            logger.info(f"[RESOLVE] Falling back to spatial lookup: {provider_id}")
        elif coordinates is None:
            return Outcome.success(provider_id, "lookup_by_address", None)

        lat, lng = coordinates
        spatial = await self._call(
            provider_id,
            "lookup_by_spatial",
            lambda timeout: provider.lookup_by_spatial(lat, lng, timeout_s=timeout),
            role=role,
            budget=budget,
            tracker=tracker,
        )
        if not spatial.ok:
            return spatial
        candidates: list[ParcelMatch] = spatial.value or []
        return Outcome.success(provider_id, "lookup_by_spatial", candidates[0] if candidates else None)

    # ------------------------------------------------------------------
    # ADDRESS path
    # ------------------------------------------------------------------

    async def _resolve_address(
        self,
        query: PropertyQuery,
        fingerprint: str,
        budget: BudgetManager,
        tracker: DataSourceTracker,
    ) -> tuple[list[CanonicalProperty], VerificationEnvelope]:
        provider = self.property_provider
        provider_id = provider.provider_id
        parts = (parse_address_text(query.raw_text) if query.raw_text else query.address_parts()) or AddressParts()
        coordinates = (query.lat, query.lng) if query.has_coordinates else None

        located = await self._locate_parcel(
            parts, coordinates, role=ProviderRole.PRIMARY, budget=budget, tracker=tracker
        )
        if located.error is not None:
            raise ResolutionError(
                "PRIMARY_PROVIDER_FAILED",
                f"Property lookup failed at {provider_id}",
                partial=self._partial(tracker, fingerprint),
                cause=located.error,
            )
        parcel: Optional[ParcelMatch] = located.value
        if parcel is None:
            raise ResolutionError(
                "PARCEL_NOT_FOUND",
                "No parcel matched the address",
                partial=self._partial(tracker, fingerprint, address=parts.one_line()),
            )

        structure, valuation = await asyncio.gather(
            self._call(
                provider_id,
                "get_structure",
                lambda timeout: provider.get_structure(parcel.parcel_id, timeout_s=timeout),
                role=ProviderRole.PRIMARY,
                budget=budget,
                tracker=tracker,
            ),
            self._call(
                provider_id,
                "get_valuation",
                lambda timeout: provider.get_valuation(parcel.parcel_id, timeout_s=timeout),
                role=ProviderRole.ENRICHMENT,
                budget=budget,
                tracker=tracker,
            ),
        )
        if self.strategy.is_fatal(ProviderRole.PRIMARY, structure.error):
            gathered = merge_property(
                property_provider_id=provider_id,
                listings_provider_id=self.listings_provider.provider_id,
                parcel=parcel,
                valuation=valuation.value,
            )
            raise ResolutionError(
                "PRIMARY_PROVIDER_FAILED",
                f"Structure lookup failed at {provider_id}",
                partial=self._partial(tracker, fingerprint, parcel_id=parcel.parcel_id),
                cause=structure.error,
                results=[gathered],
            )

        listing_address = parcel.address if parcel.address.address1 else parts
        listing, images = await self._find_exact_listing(listing_address, budget, tracker)

        merged = merge_property(
            property_provider_id=provider_id,
            listings_provider_id=self.listings_provider.provider_id,
            parcel=parcel,
            structure=structure.value,
            valuation=valuation.value,
            listing=listing,
            images=images,
        )
        envelope = verify(query, merged, SearchType.ADDRESS, radius_m=self.verification_radius_m)
        if not envelope.valid:
            logger.info(f"[RESOLVE] Address verification failed: {envelope.reasons}")
        return [merged.model_copy(update={"verification": envelope})], envelope

    async def _find_exact_listing(
        self,
        address: AddressParts,
        budget: BudgetManager,
        tracker: DataSourceTracker,
    ) -> tuple[Optional[ListingRecord], list[str]]:
        """정확한 주소의 매물 보강 (도로명 주소가 일치하는 매물만 채택)"""
        listings = self.listings_provider
        one_line = address.one_line()
        if not one_line:
            return None, []

        found = await self._call(
            listings.provider_id,
            "search_by_location",
            lambda timeout: listings.search_by_location(
                one_line, None, limit=EXACT_ADDRESS_CANDIDATES, timeout_s=timeout
            ),
            role=ProviderRole.ENRICHMENT,
            budget=budget,
            tracker=tracker,
        )
        if not found.ok:
            return None, []

        wanted = normalize_street(address.address1 or "")
        listing = next(
            (item for item in found.value or [] if normalize_street(item.address.address1 or "") == wanted),
            None,
        )
        if listing is None:
            logger.debug("[RESOLVE] No listing matched the exact address")
            return None, []

        return listing, await self._listing_images(listing, budget, tracker)

    async def _listing_images(
        self,
        listing: ListingRecord,
        budget: BudgetManager,
        tracker: DataSourceTracker,
    ) -> list[str]:
        listings = self.listings_provider
        outcome = await self._call(
            listings.provider_id,
            "get_images",
            lambda timeout: listings.get_images(listing.listing_id, timeout_s=timeout),
            role=ProviderRole.ENRICHMENT,
            budget=budget,
            tracker=tracker,
        )
        return list(outcome.value or [])

    # ------------------------------------------------------------------
    # GENERAL path
    # ------------------------------------------------------------------

    async def _resolve_general(
        self,
        query: PropertyQuery,
        fingerprint: str,
        budget: BudgetManager,
        tracker: DataSourceTracker,
    ) -> tuple[list[CanonicalProperty], VerificationEnvelope]:
        listings = self.listings_provider
        if query.raw_text:
            filters = parse_search_text(query.raw_text)
        else:
            location = format_one_line(query.address1, query.city, query.state, query.postal_code)
            filters = SearchFilters(location=location or None)

        if not filters.location:
            raise ResolutionError(
                "LOCATION_REQUIRED",
                "General search requires a location (e.g. 'homes in Houston')",
                partial=self._partial(tracker, fingerprint, filters=filters.active()),
            )

        plan = split_filters(filters, listings.supported_filters)
        logger.debug(
            f"[RESOLVE] General filters: provider={plan.provider_fields}, post_hoc={plan.post_hoc_fields}"
        )

        found = await self._call(
            listings.provider_id,
            "search_by_location",
            lambda timeout: listings.search_by_location(
                filters.location, plan.provider, limit=self.general_result_limit, timeout_s=timeout
            ),
            role=ProviderRole.PRIMARY,
            budget=budget,
            tracker=tracker,
        )
        if found.error is not None:
            raise ResolutionError(
                "PRIMARY_PROVIDER_FAILED",
                f"Listing search failed at {listings.provider_id}",
                partial=self._partial(tracker, fingerprint, filters=filters.active()),
                cause=found.error,
            )

        matched = apply_post_hoc_filters(list(found.value or []), plan.post_hoc)
        results = await self._merge_general(matched, budget, tracker)

        envelope = verify(query, None, SearchType.GENERAL, filter_plan=plan)
        return [record.model_copy(update={"verification": envelope}) for record in results], envelope

    async def _merge_general(
        self,
        matched: list[ListingRecord],
        budget: BudgetManager,
        tracker: DataSourceTracker,
    ) -> list[CanonicalProperty]:
        top, rest = matched[: self.enrich_top_n], matched[self.enrich_top_n:]
        if not top:
            tracker.record(self.property_provider.provider_id, DataSourceStatus.SKIPPED)
            return [self._merge_listing(listing) for listing in rest]

        semaphore = asyncio.Semaphore(self.enrichment_concurrency)

        async def enrich(listing: ListingRecord) -> CanonicalProperty:
            async with semaphore:
                return await self._enrich_listing(listing, budget, tracker)

        enriched = await asyncio.gather(*(enrich(listing) for listing in top))
        return list(enriched) + [self._merge_listing(listing) for listing in rest]

    def _merge_listing(self, listing: ListingRecord, **kwargs: Any) -> CanonicalProperty:
        return merge_property(
            property_provider_id=self.property_provider.provider_id,
            listings_provider_id=self.listings_provider.provider_id,
            listing=listing,
            **kwargs,
        )

    async def _enrich_listing(
        self,
        listing: ListingRecord,
        budget: BudgetManager,
        tracker: DataSourceTracker,
    ) -> CanonicalProperty:
        """매물 1건 보강 (필지 -> 구조/가치평가, 이미지). 모든 호출이 enrichment"""
        provider = self.property_provider
        coordinates = (
            (listing.latitude, listing.longitude)
            if listing.latitude is not None and listing.longitude is not None
            else None
        )
        located = await self._locate_parcel(
            listing.address, coordinates, role=ProviderRole.ENRICHMENT, budget=budget, tracker=tracker
        )
        parcel: Optional[ParcelMatch] = located.value

        structure = valuation = None
        if parcel is not None:
            structure_outcome, valuation_outcome = await asyncio.gather(
                self._call(
                    provider.provider_id,
                    "get_structure",
                    lambda timeout: provider.get_structure(parcel.parcel_id, timeout_s=timeout),
                    role=ProviderRole.ENRICHMENT,
                    budget=budget,
                    tracker=tracker,
                ),
                self._call(
                    provider.provider_id,
                    "get_valuation",
                    lambda timeout: provider.get_valuation(parcel.parcel_id, timeout_s=timeout),
                    role=ProviderRole.ENRICHMENT,
                    budget=budget,
                    tracker=tracker,
                ),
            )
            structure, valuation = structure_outcome.value, valuation_outcome.value

        images = await self._listing_images(listing, budget, tracker)
        return self._merge_listing(
            listing, parcel=parcel, structure=structure, valuation=valuation, images=images
        )

    @staticmethod
    def _partial(tracker: DataSourceTracker, fingerprint: str, **extra: Any) -> dict[str, Any]:
        return {"fingerprint": fingerprint, "data_sources": tracker.as_dict(), **extra}
