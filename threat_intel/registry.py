"""
Provider Registry - Lookup table from Provider to its client.

The fallback orchestrator resolves chain members through the registry.
A provider that is not registered is treated as unavailable.
"""

import asyncio
import logging
from typing import Optional

from threat_intel.base import BaseThreatIntelProvider
from threat_intel.models import Provider


logger = logging.getLogger(__name__)


class ProviderRegistry:
    """
    Central registry for threat intelligence provider clients.

    Usage:
        registry = ProviderRegistry()
        registry.register(VirusTotalProvider(api_key="..."))
        registry.register(UrlHausProvider())

        client = registry.get(Provider.VIRUS_TOTAL)
    """

    def __init__(self) -> None:
        self._providers: dict[Provider, BaseThreatIntelProvider] = {}

    def register(self, client: BaseThreatIntelProvider) -> None:
        """Register a provider client, replacing any client for the same provider."""
        provider = client.provider
        if provider in self._providers:
            logger.warning(f"Provider '{provider.value}' already registered, replacing")
        self._providers[provider] = client
        logger.info(f"Registered provider '{provider.value}'")

    def unregister(self, provider: Provider) -> Optional[BaseThreatIntelProvider]:
        """Unregister a provider client."""
        client = self._providers.pop(provider, None)
        if client is not None:
            logger.info(f"Unregistered provider '{provider.value}'")
        return client

    def get(self, provider: Provider) -> Optional[BaseThreatIntelProvider]:
        """Get the client for a provider."""
        return self._providers.get(provider)

    def list_providers(self) -> list[Provider]:
        """List registered providers in registration order."""
        return list(self._providers)

    def __contains__(self, provider: Provider) -> bool:
        return provider in self._providers

    def __len__(self) -> int:
        return len(self._providers)

    async def close(self) -> None:
        """Close all registered clients."""
        results = await asyncio.gather(
            *(client.close() for client in self._providers.values()),
            return_exceptions=True,
        )
        for provider, result in zip(list(self._providers), results):
            if isinstance(result, Exception):
                logger.warning(f"[{provider.value}] Close failed: {result}")

    async def __aenter__(self) -> "ProviderRegistry":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
