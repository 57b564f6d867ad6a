"""Provider registry - providerId로 어댑터 선택"""

from __future__ import annotations

from property_engine.core.logging import logger
from property_engine.providers.base import ListingsProvider, PropertyDataProvider


class ProviderRegistry:
    """등록된 어댑터를 providerId로 조회"""

    def __init__(self) -> None:
        self._property_providers: dict[str, PropertyDataProvider] = {}
        self._listings_providers: dict[str, ListingsProvider] = {}

    def register_property_provider(self, provider: PropertyDataProvider) -> None:
        self._property_providers[provider.provider_id] = provider
        logger.debug(f"Property provider registered: {provider.provider_id}")

    def register_listings_provider(self, provider: ListingsProvider) -> None:
        self._listings_providers[provider.provider_id] = provider
        logger.debug(f"Listings provider registered: {provider.provider_id}")

    def property_provider(self, provider_id: str) -> PropertyDataProvider:
        """
        Raises:
            ValueError: 등록되지 않은 providerId
        """
        try:
            return self._property_providers[provider_id]
        except KeyError:
            raise ValueError(f"Unknown property provider: {provider_id}") from None

    def listings_provider(self, provider_id: str) -> ListingsProvider:
        try:
            return self._listings_providers[provider_id]
        except KeyError:
            raise ValueError(f"Unknown listings provider: {provider_id}") from None

    @property
    def provider_ids(self) -> list[str]:
        return sorted(set(self._property_providers) | set(self._listings_providers))
