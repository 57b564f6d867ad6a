"""Credential Manager 단위 테스트 (httpx.MockTransport + fake clock)"""

from __future__ import annotations

import asyncio

import httpx
import pytest

from property_engine.core.exceptions import AuthError
from property_engine.providers.http_client import ProviderHttpClient
from property_engine.services.impl.credential_manager import (
    CredentialManager,
    OAuthClientConfig,
    ProviderToken,
)
from tests.fixtures.provider_payloads import CORELOGIC_TOKEN_PAYLOAD

TOKEN_URL = "https://api.corelogic.test/oauth/token"


class FakeClock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TokenEndpoint:
    """토큰 엔드포인트 MockTransport 핸들러 (응답 순서대로 반환)"""

    def __init__(self, *responses):
        self.responses = list(responses) or [httpx.Response(200, json=CORELOGIC_TOKEN_PAYLOAD)]
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses[min(len(self.requests), len(self.responses)) - 1]
        if isinstance(response, Exception):
            raise response
        return response


def make_manager(endpoint: TokenEndpoint, clock: FakeClock, **config_overrides) -> CredentialManager:
    http = ProviderHttpClient(transport=httpx.MockTransport(endpoint))
    manager = CredentialManager(http, refresh_margin_s=30.0, clock=clock)
    config = {
        "provider_id": "corelogic",
        "token_url": TOKEN_URL,
        "client_id": "client-id",
        "client_secret": "client-secret",
    }
    config.update(config_overrides)
    manager.register(OAuthClientConfig(**config))
    return manager


def test_provider_token_freshness():
    token = ProviderToken("corelogic", "t", expires_at=1_100.0)
    assert token.is_fresh(1_000.0, 30.0)
    assert not token.is_fresh(1_080.0, 30.0)
    assert token.remaining(1_080.0) == 20.0
    assert "access_token" not in repr(token)


@pytest.mark.asyncio
async def test_fresh_token_triggers_no_refresh():
    endpoint = TokenEndpoint()
    clock = FakeClock()
    manager = make_manager(endpoint, clock)

    first = await manager.get_token("corelogic")
    clock.now += 600
    second = await manager.get_token("corelogic")

    assert first is second
    assert first.access_token == "token-abc"
    assert first.expires_at == 1_000.0 + 3599
    assert manager.refresh_counts["corelogic"] == 1
    assert len(endpoint.requests) == 1


@pytest.mark.asyncio
async def test_token_within_margin_triggers_exactly_one_refresh():
    endpoint = TokenEndpoint()
    clock = FakeClock()
    manager = make_manager(endpoint, clock)
    first = await manager.get_token("corelogic")

    clock.now = first.expires_at - 10
    refreshed = await manager.get_token("corelogic")
    again = await manager.get_token("corelogic")

    assert refreshed is not first
    assert refreshed is again
    assert refreshed.remaining(clock.now) > manager.refresh_margin_s
    assert manager.refresh_counts["corelogic"] == 2
    assert len(endpoint.requests) == 2


@pytest.mark.asyncio
async def test_concurrent_requests_share_one_exchange():
    endpoint = TokenEndpoint()
    manager = make_manager(endpoint, FakeClock())

    tokens = await asyncio.gather(*(manager.get_token("corelogic") for _ in range(5)))

    assert len({id(t) for t in tokens}) == 1
    assert len(endpoint.requests) == 1


@pytest.mark.asyncio
async def test_exchange_uses_client_credentials_grant():
    endpoint = TokenEndpoint()
    manager = make_manager(endpoint, FakeClock(), scope="property")

    await manager.get_token("corelogic")

    request = endpoint.requests[0]
    assert request.method == "POST"
    assert str(request.url) == TOKEN_URL
    assert request.headers["authorization"].startswith("Basic ")
    body = request.content.decode()
    assert "grant_type=client_credentials" in body
    assert "scope=property" in body


@pytest.mark.asyncio
async def test_invalidate_forces_new_exchange():
    endpoint = TokenEndpoint()
    manager = make_manager(endpoint, FakeClock())
    await manager.get_token("corelogic")

    manager.invalidate("corelogic")
    await manager.get_token("corelogic")

    assert len(endpoint.requests) == 2


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [400, 401])
async def test_rejected_credentials_raise_auth_error_without_retry(status):
    endpoint = TokenEndpoint(httpx.Response(status, json={"error": "invalid_client"}))
    manager = make_manager(endpoint, FakeClock())

    with pytest.raises(AuthError) as exc_info:
        await manager.get_token("corelogic")

    assert exc_info.value.error_code == "AUTH_ERROR"
    assert exc_info.value.details["status"] == status
    assert len(endpoint.requests) == 1


@pytest.mark.asyncio
async def test_server_error_is_retried_once_then_auth_error():
    endpoint = TokenEndpoint(httpx.Response(503), httpx.Response(503))
    manager = make_manager(endpoint, FakeClock())

    with pytest.raises(AuthError):
        await manager.get_token("corelogic")
    assert len(endpoint.requests) == 2


@pytest.mark.asyncio
async def test_network_failure_is_retried_once():
    endpoint = TokenEndpoint(
        httpx.ConnectError("connection refused"),
        httpx.Response(200, json=CORELOGIC_TOKEN_PAYLOAD),
    )
    manager = make_manager(endpoint, FakeClock())

    token = await manager.get_token("corelogic")

    assert token.access_token == "token-abc"
    assert len(endpoint.requests) == 2


@pytest.mark.asyncio
async def test_persistent_network_failure_raises_auth_error():
    endpoint = TokenEndpoint(httpx.ConnectError("connection refused"))
    manager = make_manager(endpoint, FakeClock())

    with pytest.raises(AuthError):
        await manager.get_token("corelogic")
    assert len(endpoint.requests) == 2


@pytest.mark.asyncio
async def test_payload_without_access_token_raises_auth_error():
    endpoint = TokenEndpoint(httpx.Response(200, json={"token_type": "Bearer"}))
    manager = make_manager(endpoint, FakeClock())

    with pytest.raises(AuthError):
        await manager.get_token("corelogic")


@pytest.mark.asyncio
async def test_missing_credentials_fail_without_http_call():
    endpoint = TokenEndpoint()
    manager = make_manager(endpoint, FakeClock(), client_secret="")

    with pytest.raises(AuthError):
        await manager.get_token("corelogic")
    assert endpoint.requests == []


@pytest.mark.asyncio
async def test_unregistered_provider():
    manager = make_manager(TokenEndpoint(), FakeClock())
    with pytest.raises(AuthError):
        await manager.get_token("unknown")
