"""
Base Threat Intel Provider - Abstract interface for all verdict providers.

All providers MUST implement this interface to ensure:
- Isolation
- Replaceability
- A single failure vocabulary for the fallback orchestrator

A provider answers with a VendorVerdict, answers None when it has no data
about the target, and raises a ThreatIntelError subclass when it fails.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Optional

import aiohttp

from threat_intel.exceptions import (
    MalformedResponseError,
    ProviderConfigurationError,
    ProviderUnavailableError,
    RateLimitError,
)
from threat_intel.models import Provider, ScanTarget, TargetType, VendorVerdict, VerdictStatus


logger = logging.getLogger(__name__)


class BaseThreatIntelProvider(ABC):
    """
    Abstract base class for all threat intelligence providers.

    Each provider implementation must:
    1. Implement provider - The Provider enum member it answers for
    2. Implement query() - Return a verdict, None for "no data", or raise
    """

    SUPPORTED_TARGETS: tuple[TargetType, ...] = (TargetType.URL,)

    @property
    @abstractmethod
    def provider(self) -> Provider:
        """Provider this client answers for."""
        pass

    @property
    def name(self) -> str:
        """Unique identifier for this provider."""
        return self.provider.value

    @abstractmethod
    async def query(self, target: ScanTarget) -> Optional[VendorVerdict]:
        """
        Ask the provider about a target.

        Args:
            target: Scan target

        Returns:
            VendorVerdict, or None when the provider has no data for the target

        Raises:
            ProviderUnavailableError: On transport or upstream failure
            ProviderConfigurationError: When the client is not configured
        """
        pass

    def supports(self, target_type: TargetType) -> bool:
        """Check if this provider can answer for a target type."""
        return target_type in self.SUPPORTED_TARGETS

    def verdict(self, status: VerdictStatus, score: float = 0.0, **details: Any) -> VendorVerdict:
        """Build a verdict attributed to this provider."""
        return VendorVerdict(
            provider=self.provider,
            status=status,
            score=score,
            details={key: str(value) for key, value in details.items() if value is not None},
        )

    async def close(self) -> None:
        """Close resources."""
        pass

    async def __aenter__(self) -> "BaseThreatIntelProvider":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()


class HttpThreatIntelProvider(BaseThreatIntelProvider):
    """
    Base class for providers reached over HTTP.

    Maps transport outcomes to the provider failure vocabulary:
    - 429 -> RateLimitError
    - 404 -> None (no data)
    - other >= 400 -> ProviderUnavailableError
    - connection errors and timeouts -> ProviderUnavailableError
    - undecodable JSON -> MalformedResponseError
    """

    DEFAULT_TIMEOUT = 15.0
    API_KEY_ENV: Optional[str] = None

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self._api_key = api_key
        self._timeout = timeout
        self._session = session
        self._owns_session = session is None

    @property
    def has_api_key(self) -> bool:
        return bool(self._api_key and self._api_key.strip())

    def _require_api_key(self) -> str:
        """Return the configured API key or raise ProviderConfigurationError."""
        if not self.has_api_key:
            raise ProviderConfigurationError(
                "API key not configured",
                provider=self.name,
                config_key=self.API_KEY_ENV,
            )
        return self._api_key.strip()

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout),
                headers=self._get_default_headers(),
            )
            self._owns_session = True
        return self._session

    def _get_default_headers(self) -> dict[str, str]:
        """Get default HTTP headers."""
        return {
            "Accept": "application/json",
            "User-Agent": "ThreatVerdictEngine/1.0",
        }

    async def _make_request(
        self,
        method: str,
        url: str,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        json: Optional[Any] = None,
        data: Optional[Any] = None,
    ) -> Optional[Any]:
        """Make HTTP request with error mapping. Returns decoded JSON, or None on 404."""
        session = await self._get_session()

        start_time = time.time()
        try:
            async with session.request(
                method,
                url,
                params=params,
                headers=headers,
                json=json,
                data=data,
            ) as response:
                latency_ms = (time.time() - start_time) * 1000

                if response.status == 429:
                    retry_after = response.headers.get("Retry-After")
                    raise RateLimitError(
                        message="Rate limit exceeded",
                        provider=self.name,
                        retry_after_seconds=int(retry_after) if retry_after and retry_after.isdigit() else None,
                    )

                if response.status == 404:
                    logger.debug(f"[{self.name}] No data (404) in {latency_ms:.1f}ms")
                    return None

                if response.status >= 400:
                    raise ProviderUnavailableError(
                        message=f"HTTP {response.status}",
                        provider=self.name,
                        status_code=response.status,
                        request_url=url,
                    )

                try:
                    payload = await response.json(content_type=None)
                except ValueError as e:
                    raise MalformedResponseError(
                        message="Response body is not valid JSON",
                        provider=self.name,
                        original_error=e,
                    )

                logger.debug(f"[{self.name}] Request completed in {latency_ms:.1f}ms")
                return payload

        except aiohttp.ClientError as e:
            raise ProviderUnavailableError(
                message=f"Connection error: {e}",
                provider=self.name,
                request_url=url,
                original_error=e,
            )
        except asyncio.TimeoutError as e:
            raise ProviderUnavailableError(
                message=f"Timed out after {self._timeout}s",
                provider=self.name,
                request_url=url,
                original_error=e,
            )

    async def close(self) -> None:
        """Close resources."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
