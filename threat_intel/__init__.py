"""
Threat Intel Package - Vendor verdict collection with fallback waterfalls.

Queries independent threat-intelligence providers for a scan target,
tolerates per-provider failure by walking ordered fallback chains, and
gathers vendor verdicts and sub-analyzer reports into one EvidenceBundle.

Features:
- Isolated, replaceable provider clients
- Normalized VendorVerdict output across all providers
- Per-slot fallback chains with provenance stamped on substitute answers
- Concurrent fan-out where one failing branch never fails the scan

Quick Start:
    from threat_intel import (
        FallbackOrchestrator,
        ProviderRegistry,
        ScanTarget,
        TargetType,
        UrlHausProvider,
        VerdictCollector,
        VirusTotalProvider,
    )

    async def scan(url: str):
        registry = ProviderRegistry()
        registry.register(VirusTotalProvider(api_key="..."))
        registry.register(UrlHausProvider())

        async with VerdictCollector(FallbackOrchestrator(registry)) as collector:
            bundle = await collector.collect(ScanTarget(TargetType.URL, url))

        for verdict in bundle.vendor_verdicts:
            print(verdict.provider.value, verdict.status.value, verdict.score)

Adding New Providers:
    1. Create class extending BaseThreatIntelProvider (or HttpThreatIntelProvider)
    2. Implement: provider, query()
    3. Register with ProviderRegistry
    4. Reference it from a SlotDefinition chain
"""

from threat_intel.analyzers import (
    DEFAULT_ANALYZERS_BY_TARGET,
    AnalyzerKind,
    BaseSubAnalyzer,
    SubReport,
)
from threat_intel.base import BaseThreatIntelProvider, HttpThreatIntelProvider
from threat_intel.collector import VerdictCollector
from threat_intel.config import CollectorConfig, ProviderCredentials
from threat_intel.exceptions import (
    AllProvidersExhaustedError,
    MalformedResponseError,
    ProviderConfigurationError,
    ProviderUnavailableError,
    RateLimitError,
    SubAnalyzerUnavailableError,
    ThreatIntelError,
)
from threat_intel.fallback import (
    DEFAULT_FALLBACK_CHAINS,
    FallbackOrchestrator,
    SlotDefinition,
    default_slot,
)
from threat_intel.models import (
    EXHAUSTED_KEY,
    FALLBACK_PROVIDER_KEY,
    FALLBACK_REASON_KEY,
    EvidenceBundle,
    FallbackReason,
    Feature,
    FileReport,
    InstagramReport,
    MlReport,
    NetworkReport,
    Provider,
    ScanTarget,
    TargetType,
    VendorVerdict,
    VerdictStatus,
    VpnConfigReport,
)
from threat_intel.providers import (
    GoogleSafeBrowsingProvider,
    PhishStatsProvider,
    ThreatFoxProvider,
    UrlHausProvider,
    UrlScanProvider,
    VirusTotalProvider,
)
from threat_intel.registry import ProviderRegistry


__version__ = "1.0.0"

__all__ = [
    # Base
    "BaseThreatIntelProvider",
    "HttpThreatIntelProvider",
    "BaseSubAnalyzer",
    # Exceptions
    "ThreatIntelError",
    "ProviderUnavailableError",
    "RateLimitError",
    "MalformedResponseError",
    "ProviderConfigurationError",
    "AllProvidersExhaustedError",
    "SubAnalyzerUnavailableError",
    # Models
    "Provider",
    "VerdictStatus",
    "TargetType",
    "ScanTarget",
    "VendorVerdict",
    "Feature",
    "MlReport",
    "NetworkReport",
    "FileReport",
    "VpnConfigReport",
    "InstagramReport",
    "EvidenceBundle",
    "FallbackReason",
    "FALLBACK_PROVIDER_KEY",
    "FALLBACK_REASON_KEY",
    "EXHAUSTED_KEY",
    # Analyzers
    "AnalyzerKind",
    "SubReport",
    "DEFAULT_ANALYZERS_BY_TARGET",
    # Fallback
    "SlotDefinition",
    "FallbackOrchestrator",
    "DEFAULT_FALLBACK_CHAINS",
    "default_slot",
    # Collection
    "VerdictCollector",
    "ProviderRegistry",
    # Config
    "CollectorConfig",
    "ProviderCredentials",
    # Providers
    "VirusTotalProvider",
    "GoogleSafeBrowsingProvider",
    "UrlScanProvider",
    "UrlHausProvider",
    "PhishStatsProvider",
    "ThreatFoxProvider",
]
