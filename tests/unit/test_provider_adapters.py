"""Provider 어댑터 단위 테스트 (httpx.MockTransport)"""

from __future__ import annotations

import httpx
import pytest

from property_engine.core.exceptions import (
    ProviderHTTPError,
    ProviderParseError,
    ProviderTimeoutError,
)
from property_engine.providers.corelogic import CoreLogicClient
from property_engine.providers.http_client import ProviderHttpClient
from property_engine.providers.zillow import ZillowListingsClient
from property_engine.services.impl.credential_manager import CredentialManager, OAuthClientConfig
from property_engine.utils.address import AddressParts
from property_engine.utils.search_filters import SearchFilters
from tests.fixtures.provider_payloads import (
    AMPHITHEATRE_ADDRESS,
    CORELOGIC_BUILDINGS_PAYLOAD,
    CORELOGIC_SEARCH_PAYLOAD,
    CORELOGIC_SPATIAL_PAYLOAD,
    CORELOGIC_TOKEN_PAYLOAD,
    CORELOGIC_VALUATION_PAYLOAD,
    ZILLOW_IMAGES_PAYLOAD,
    ZILLOW_SEARCH_PAYLOAD,
)
from tests.fixtures.transport import Router

CORELOGIC_BASE = "https://api.corelogic.test"
ZILLOW_BASE = "https://zillow.rapidapi.test"


def corelogic_client(router: Router) -> CoreLogicClient:
    http = ProviderHttpClient(transport=httpx.MockTransport(router))
    credentials = CredentialManager(http)
    credentials.register(
        OAuthClientConfig("corelogic", f"{CORELOGIC_BASE}/oauth/token", "client-id", "client-secret")
    )
    return CoreLogicClient(http, credentials, base_url=CORELOGIC_BASE)


def zillow_client(router: Router) -> ZillowListingsClient:
    http = ProviderHttpClient(transport=httpx.MockTransport(router))
    return ZillowListingsClient(
        http, api_key="test-key", api_host="zillow.rapidapi.test", base_url=ZILLOW_BASE
    )


def corelogic_routes(**overrides):
    routes = {
        "/oauth/token": CORELOGIC_TOKEN_PAYLOAD,
        "/v2/properties/search": CORELOGIC_SEARCH_PAYLOAD,
        "/v2/properties/search/spatial": CORELOGIC_SPATIAL_PAYLOAD,
        "/v2/properties/2345678901/buildings": CORELOGIC_BUILDINGS_PAYLOAD,
        "/v2/properties/2345678901/valuation": CORELOGIC_VALUATION_PAYLOAD,
    }
    routes.update(overrides)
    return routes


# ============================================================================
# ProviderHttpClient
# ============================================================================

class TestProviderHttpClient:
    @pytest.mark.asyncio
    async def test_retries_once_on_server_error(self):
        router = Router({"/ping": [httpx.Response(503), httpx.Response(200, json={"ok": True})]})
        http = ProviderHttpClient(transport=httpx.MockTransport(router))

        payload = await http.request_json("corelogic", "ping", "GET", f"{CORELOGIC_BASE}/ping")

        assert payload == {"ok": True}
        assert router.count("/ping") == 2
        await http.close()

    @pytest.mark.asyncio
    async def test_server_error_after_retry_surfaces_status(self):
        router = Router({"/ping": httpx.Response(502)})
        http = ProviderHttpClient(transport=httpx.MockTransport(router))

        with pytest.raises(ProviderHTTPError) as exc_info:
            await http.request_json("corelogic", "ping", "GET", f"{CORELOGIC_BASE}/ping")

        assert exc_info.value.status == 502
        assert exc_info.value.is_server_error
        assert router.count("/ping") == 2

    @pytest.mark.asyncio
    async def test_client_error_is_not_retried(self):
        router = Router({"/ping": httpx.Response(403)})
        http = ProviderHttpClient(transport=httpx.MockTransport(router))

        with pytest.raises(ProviderHTTPError) as exc_info:
            await http.request_json("corelogic", "ping", "GET", f"{CORELOGIC_BASE}/ping")

        assert exc_info.value.status == 403
        assert not exc_info.value.is_server_error
        assert router.count("/ping") == 1

    @pytest.mark.asyncio
    async def test_timeout_becomes_provider_timeout_error(self):
        router = Router({"/ping": httpx.ReadTimeout("too slow")})
        http = ProviderHttpClient(transport=httpx.MockTransport(router))

        with pytest.raises(ProviderTimeoutError) as exc_info:
            await http.request_json("zillow", "ping", "GET", f"{ZILLOW_BASE}/ping", timeout_s=1.5)

        assert exc_info.value.error_code == "PROVIDER_TIMEOUT"
        assert exc_info.value.details["timeout_s"] == 1.5
        assert router.count("/ping") == 2

    @pytest.mark.asyncio
    async def test_timeout_is_split_across_attempts(self):
        router = Router({"/ping": [httpx.ReadTimeout("too slow"), httpx.Response(200, json={"ok": True})]})
        http = ProviderHttpClient(transport=httpx.MockTransport(router))

        await http.request_json("zillow", "ping", "GET", f"{ZILLOW_BASE}/ping", timeout_s=1.0)

        assert [r.extensions["timeout"]["read"] for r in router.requests] == [0.5, 0.5]

    @pytest.mark.asyncio
    async def test_non_json_body_raises_parse_error(self):
        router = Router({"/ping": httpx.Response(200, text="<html>oops</html>")})
        http = ProviderHttpClient(transport=httpx.MockTransport(router))

        with pytest.raises(ProviderParseError):
            await http.request_json("zillow", "ping", "GET", f"{ZILLOW_BASE}/ping")

    @pytest.mark.asyncio
    async def test_none_params_are_dropped(self):
        router = Router({"/ping": {"ok": True}})
        http = ProviderHttpClient(transport=httpx.MockTransport(router))

        await http.request_json(
            "zillow", "ping", "GET", f"{ZILLOW_BASE}/ping", params={"a": "1", "b": None}
        )

        params = router.requests[0].url.params
        assert params["a"] == "1"
        assert "b" not in params


# ============================================================================
# CoreLogic
# ============================================================================

class TestCoreLogicClient:
    @pytest.mark.asyncio
    async def test_lookup_by_address(self):
        router = Router(corelogic_routes())
        client = corelogic_client(router)

        match = await client.lookup_by_address(AMPHITHEATRE_ADDRESS)

        assert match is not None
        assert match.parcel_id == "2345678901"
        assert match.address.address1 == "1600 AMPHITHEATRE PKWY"
        assert match.address.postal_code == "94043-1351"
        assert (match.latitude, match.longitude) == (37.42202, -122.08408)

        search = next(r for r in router.requests if r.url.path == "/v2/properties/search")
        assert search.headers["authorization"] == "Bearer token-abc"
        assert search.url.params["streetAddress"] == "1600 Amphitheatre Pkwy"
        assert search.url.params["zipCode"] == "94043"

    @pytest.mark.asyncio
    async def test_lookup_by_address_404_is_no_match(self):
        router = Router(corelogic_routes(**{"/v2/properties/search": httpx.Response(404)}))
        assert await corelogic_client(router).lookup_by_address(AMPHITHEATRE_ADDRESS) is None

    @pytest.mark.asyncio
    async def test_lookup_by_address_empty_items(self):
        router = Router(corelogic_routes(**{"/v2/properties/search": {"items": []}}))
        assert await corelogic_client(router).lookup_by_address(AMPHITHEATRE_ADDRESS) is None

    @pytest.mark.asyncio
    async def test_lookup_by_spatial_sorted_by_distance(self):
        router = Router(corelogic_routes())
        matches = await corelogic_client(router).lookup_by_spatial(37.42202, -122.08408)

        assert [m.parcel_id for m in matches] == ["2345678901", "far-parcel"]
        assert matches[0].distance_m == 4.1

    @pytest.mark.asyncio
    async def test_get_structure(self):
        router = Router(corelogic_routes())
        structure = await corelogic_client(router).get_structure("2345678901")

        assert structure.property_type == "single_family"
        assert structure.year_built == 1998
        assert structure.square_feet == 2100
        assert structure.bedrooms == 3
        assert structure.bathrooms == 2.5

    @pytest.mark.asyncio
    async def test_token_exchange_shares_the_call_timeout(self):
        router = Router(corelogic_routes())
        client = corelogic_client(router)

        await client.get_structure("2345678901", timeout_s=1.0)

        token, buildings = router.requests
        assert token.url.path == "/oauth/token"
        assert token.extensions["timeout"]["read"] == pytest.approx(0.5)
        # 교환에 쓴 시간만큼 요청 몫이 줄어듦
        assert 0.4 < buildings.extensions["timeout"]["read"] <= 0.5

    @pytest.mark.asyncio
    async def test_get_structure_without_buildings_list(self):
        router = Router(corelogic_routes(**{"/v2/properties/2345678901/buildings": {"data": []}}))
        with pytest.raises(ProviderParseError):
            await corelogic_client(router).get_structure("2345678901")

    @pytest.mark.asyncio
    async def test_get_valuation(self):
        router = Router(corelogic_routes())
        valuation = await corelogic_client(router).get_valuation("2345678901")

        assert valuation.current_value == 2_450_000
        assert valuation.assessed_value == 1_900_000

    @pytest.mark.asyncio
    async def test_unauthorized_invalidates_token(self):
        router = Router(
            corelogic_routes(**{
                "/v2/properties/2345678901/valuation": [
                    httpx.Response(401),
                    httpx.Response(200, json=CORELOGIC_VALUATION_PAYLOAD),
                ]
            })
        )
        client = corelogic_client(router)

        with pytest.raises(ProviderHTTPError) as exc_info:
            await client.get_valuation("2345678901")
        assert exc_info.value.status == 401

        valuation = await client.get_valuation("2345678901")
        assert valuation.current_value == 2_450_000
        assert router.count("/oauth/token") == 2


# ============================================================================
# Zillow
# ============================================================================

class TestZillowListingsClient:
    @pytest.mark.asyncio
    async def test_search_by_location_parses_props(self):
        router = Router({"/propertyExtendedSearch": ZILLOW_SEARCH_PAYLOAD})
        listings = await zillow_client(router).search_by_location("Houston, TX")

        assert [listing.listing_id for listing in listings] == ["27908601", "27908602"]
        first, second = listings
        assert first.address == AddressParts("123 Main St", "Houston", "TX", "77002")
        assert first.price == 285_000
        assert first.property_type == "single_family"
        assert first.status == "for_sale"
        assert first.estimated_value == 291_000
        assert first.image_url == "https://photos.example.com/27908601-thumb.jpg"
        assert second.property_type == "condo"
        assert second.image_url is None

    @pytest.mark.asyncio
    async def test_search_sends_supported_filters_and_api_key(self):
        router = Router({"/propertyExtendedSearch": ZILLOW_SEARCH_PAYLOAD})
        filters = SearchFilters(location="Houston", price_max=300_000, status="for_rent")

        await zillow_client(router).search_by_location("Houston", filters)

        request = router.requests[0]
        assert request.headers["x-rapidapi-key"] == "test-key"
        assert request.headers["x-rapidapi-host"] == "zillow.rapidapi.test"
        assert request.url.params["location"] == "Houston"
        assert request.url.params["status_type"] == "ForRent"
        assert request.url.params["maxPrice"] == "300000"
        assert "minPrice" not in request.url.params

    @pytest.mark.asyncio
    async def test_search_limit(self):
        router = Router({"/propertyExtendedSearch": ZILLOW_SEARCH_PAYLOAD})
        listings = await zillow_client(router).search_by_location("Houston", limit=1)
        assert len(listings) == 1

    @pytest.mark.asyncio
    async def test_search_requires_location_text(self):
        with pytest.raises(ValueError):
            await zillow_client(Router({})).search_by_location("  ")

    @pytest.mark.asyncio
    async def test_props_must_be_list(self):
        router = Router({"/propertyExtendedSearch": {"props": "nope"}})
        with pytest.raises(ProviderParseError):
            await zillow_client(router).search_by_location("Houston")

    @pytest.mark.asyncio
    async def test_get_images(self):
        router = Router({"/images": ZILLOW_IMAGES_PAYLOAD})
        images = await zillow_client(router).get_images("27908601")

        assert images == ZILLOW_IMAGES_PAYLOAD["images"]
        assert router.requests[0].url.params["zpid"] == "27908601"
