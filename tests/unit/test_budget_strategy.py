"""Budget / ExecutionStrategy / CircuitBreaker 단위 테스트"""

from __future__ import annotations

import asyncio

import pytest

from property_engine.core.exceptions import (
    AuthError,
    ProviderHTTPError,
    ProviderParseError,
    ProviderTimeoutError,
)
from property_engine.engine import budget as budget_module
from property_engine.engine.budget import BudgetConfig, BudgetManager
from property_engine.engine.circuit_breaker import CircuitBreaker
from property_engine.engine.strategy import ExecutionStrategy, ProviderRole


class TestBudgetConfig:
    def test_defaults_are_valid(self):
        config = BudgetConfig()
        assert config.total_budget == 25.0

    def test_timeouts_must_fit_total(self):
        with pytest.raises(ValueError):
            BudgetConfig(total_budget=5.0, cache_timeout=0.5, primary_timeout=4.0, enrichment_timeout=4.0)

    def test_timeouts_must_be_positive(self):
        with pytest.raises(ValueError):
            BudgetConfig(primary_timeout=0)


class TestBudgetManager:
    @pytest.fixture
    def clock(self, monkeypatch):
        now = {"t": 100.0}
        monkeypatch.setattr(budget_module, "time", lambda: now["t"])
        return now

    def test_before_start(self):
        manager = BudgetManager(BudgetConfig())
        assert manager.elapsed() == 0.0
        assert manager.remaining() == 25.0
        with pytest.raises(RuntimeError):
            manager.checkpoint("cache")

    def test_stage_timeouts_are_capped_by_remaining(self, clock):
        manager = BudgetManager(BudgetConfig())
        manager.start()

        assert manager.get_timeout_for("cache") == 0.5
        assert manager.get_timeout_for("primary") == 12.0
        assert manager.get_timeout_for("enrichment") == 10.0

        clock["t"] = 118.0
        assert manager.get_timeout_for("primary") == pytest.approx(7.0)
        assert manager.get_timeout_for("enrichment") == pytest.approx(7.0)
        assert manager.get_timeout_for("other") == pytest.approx(7.0)

    def test_exhaustion(self, clock):
        manager = BudgetManager(BudgetConfig())
        manager.start()

        clock["t"] = 124.8
        assert manager.can_execute_primary() is True
        assert manager.can_execute_enrichment() is False
        assert manager.is_exhausted() is True

        clock["t"] = 130.0
        assert manager.remaining() == 0.0
        assert manager.can_execute_primary() is False

    def test_report(self, clock):
        manager = BudgetManager(BudgetConfig())
        manager.start()
        clock["t"] = 101.5
        manager.checkpoint("cache_miss")

        report = manager.get_report()
        assert report["checkpoints"] == {"cache_miss": pytest.approx(1.5)}
        assert report["remaining"] == pytest.approx(23.5)
        assert report["is_exhausted"] is False


class TestExecutionStrategy:
    def test_only_primary_failures_are_fatal(self):
        error = ProviderHTTPError("corelogic", 500, "get_structure")
        assert ExecutionStrategy.is_fatal(ProviderRole.PRIMARY, error) is True
        assert ExecutionStrategy.is_fatal(ProviderRole.ENRICHMENT, error) is False
        assert ExecutionStrategy.is_fatal(ProviderRole.PRIMARY, None) is False

    @pytest.mark.parametrize(
        "error, has_coordinates, expected",
        [
            (None, True, True),
            (None, False, False),
            (ProviderHTTPError("corelogic", 500, "lookup_by_address"), True, True),
            (ProviderTimeoutError("corelogic", "lookup_by_address", 2.0), True, True),
            (ProviderParseError("corelogic", "lookup_by_address", "bad"), True, True),
            (AuthError("corelogic", "rejected"), True, False),
            (ValueError("bug"), True, False),
        ],
    )
    def test_should_fallback_to_spatial(self, error, has_coordinates, expected):
        assert ExecutionStrategy.should_fallback_to_spatial(error, has_coordinates) is expected

    @pytest.mark.parametrize(
        "error, expected",
        [
            (ProviderTimeoutError("zillow", "get_images", 2.0), True),
            (AuthError("corelogic", "rejected"), True),
            (ProviderHTTPError("zillow", 503, "get_images"), True),
            (ProviderHTTPError("zillow", 429, "get_images"), True),
            (ProviderHTTPError("zillow", 404, "get_images"), False),
            (ProviderParseError("zillow", "get_images", "bad"), False),
        ],
    )
    def test_should_trip_breaker(self, error, expected):
        assert ExecutionStrategy.should_trip_breaker(error) is expected


class TestCircuitBreaker:
    @pytest.mark.asyncio
    async def test_opens_after_consecutive_failures(self):
        breaker = CircuitBreaker("zillow", fail_threshold=2, open_duration_sec=60)

        breaker.record_failure()
        assert breaker.is_open() is False

        breaker.record_failure()
        assert breaker.is_open() is True
        assert 0 < breaker.get_remaining_open_time() <= 60

    @pytest.mark.asyncio
    async def test_success_closes_and_resets(self):
        breaker = CircuitBreaker("zillow", fail_threshold=2, open_duration_sec=60)
        breaker.record_failure()
        breaker.record_success()
        breaker.record_failure()

        assert breaker.is_open() is False
        assert breaker.metrics.successes == 1
        assert breaker.metrics.failures == 2
        assert breaker.metrics.success_rate == pytest.approx(1 / 3)

    @pytest.mark.asyncio
    async def test_auto_recovery(self):
        breaker = CircuitBreaker("zillow", fail_threshold=1, open_duration_sec=0.05)
        breaker.record_failure()
        assert breaker.is_open() is True

        await asyncio.sleep(0.1)
        assert breaker.is_open() is False
        assert breaker.get_remaining_open_time() == 0.0

    def test_skip_metrics(self):
        breaker = CircuitBreaker("corelogic")
        breaker.record_skip()
        assert breaker.metrics.skipped == 1
        assert breaker.metrics.success_rate == 0.0
