"""전역 테스트 설정

역할:
- 테스트 환경 구성 (임시 SQLite, 메모리 캐시)
- 공통 Fake 프로바이더/캐시 주입

금지:
- 실제 프로바이더 호출 (HTTP는 httpx.MockTransport만 사용)
"""

from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path

import pytest

# 프로젝트 루트를 경로에 추가
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# property_engine.core.config import 전에 설정되어야 함
_tmp_dir = tempfile.mkdtemp(prefix="property_engine_test_")
os.environ["DATABASE_URL"] = f"sqlite:///{Path(_tmp_dir) / 'test.db'}"
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "INFO"
os.environ["RESPONSE_CACHE_BACKEND"] = "memory"
os.environ["CORELOGIC_CLIENT_ID"] = "test-client"
os.environ["CORELOGIC_CLIENT_SECRET"] = "test-secret"
os.environ["ZILLOW_API_KEY"] = "test-key"

from tests.fixtures.fakes import (  # noqa: E402
    FakeListingsProvider,
    FakePropertyProvider,
    make_orchestrator,
)
from tests.fixtures.provider_payloads import AMPHITHEATRE_PARCEL, HOUSTON_LISTINGS  # noqa: E402


@pytest.fixture
def property_provider() -> FakePropertyProvider:
    """1600 Amphitheatre Pkwy를 반환하는 부동산 데이터 프로바이더"""
    return FakePropertyProvider(parcel=AMPHITHEATRE_PARCEL)


@pytest.fixture
def listings_provider() -> FakeListingsProvider:
    """Houston 매물을 반환하는 매물 프로바이더"""
    return FakeListingsProvider(listings=list(HOUSTON_LISTINGS))


@pytest.fixture
def orchestrator(property_provider, listings_provider):
    return make_orchestrator(property_provider, listings_provider)
