"""
Scan Engine - End-to-end scan of one target.

Control flow:
    ScanTarget -> VerdictCollector.collect() -> EvidenceBundle
               -> RiskScorer.assess()         -> ScanResult

The engine adds nothing to the evidence; it wires the collector to the
scorer and packages the result for hand-off to storage or display.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Optional
from uuid import UUID, uuid4

from risk_scoring import RiskAssessment, RiskBreakdown, RiskCategory, RiskScorer
from threat_intel import (
    BaseSubAnalyzer,
    CollectorConfig,
    EvidenceBundle,
    FallbackOrchestrator,
    GoogleSafeBrowsingProvider,
    PhishStatsProvider,
    ProviderCredentials,
    ProviderRegistry,
    ScanTarget,
    ThreatFoxProvider,
    UrlHausProvider,
    UrlScanProvider,
    VerdictCollector,
    VirusTotalProvider,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanResult:
    """Outcome of one scan."""
    target: ScanTarget
    bundle: EvidenceBundle
    assessment: RiskAssessment
    scan_id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def risk(self) -> float:
        return self.assessment.risk

    @property
    def breakdown(self) -> RiskBreakdown:
        return self.assessment.breakdown

    @property
    def dominant_category(self) -> RiskCategory:
        return self.assessment.dominant_category

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "scan_id": str(self.scan_id),
            "created_at": self.created_at.isoformat(),
            "target": self.target.to_dict(),
            "risk": round(self.risk, 6),
            "dominant_category": self.dominant_category.value,
            "breakdown": self.breakdown.to_dict(),
            "evidence": self.bundle.to_dict(),
            "assessment": self.assessment.to_dict(),
        }


class ScanEngine:
    """
    Runs collection and scoring for scan targets.

    Usage:
        async with create_default_engine() as engine:
            result = await engine.scan(ScanTarget(TargetType.URL, "https://example.com"))
            print(result.risk, result.dominant_category.value)
    """

    def __init__(
        self,
        collector: VerdictCollector,
        scorer: Optional[RiskScorer] = None,
    ) -> None:
        self._collector = collector
        self._scorer = scorer or RiskScorer()

    @property
    def collector(self) -> VerdictCollector:
        return self._collector

    @property
    def scorer(self) -> RiskScorer:
        return self._scorer

    async def scan(self, target: ScanTarget) -> ScanResult:
        """
        Collect evidence for a target and score it.

        Raises:
            asyncio.CancelledError: If the scan is cancelled
        """
        logger.info(f"Scanning {target.target_type.value} target")
        bundle = await self._collector.collect(target)
        assessment = self._scorer.assess(bundle)
        result = ScanResult(target=target, bundle=bundle, assessment=assessment)
        logger.info(
            f"Scan {result.scan_id} finished: risk={result.risk:.2f} "
            f"({result.dominant_category.value})"
        )
        return result

    async def close(self) -> None:
        await self._collector.close()

    async def __aenter__(self) -> "ScanEngine":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


def build_default_registry(
    credentials: ProviderCredentials,
    http_timeout_seconds: float = 15.0,
) -> ProviderRegistry:
    """Registry with every HTTP provider; clients without a key fail over at query time."""
    registry = ProviderRegistry()
    registry.register(VirusTotalProvider(api_key=credentials.virustotal_api_key, timeout=http_timeout_seconds))
    registry.register(GoogleSafeBrowsingProvider(api_key=credentials.google_safe_browsing_api_key, timeout=http_timeout_seconds))
    registry.register(UrlScanProvider(api_key=credentials.urlscan_api_key, timeout=http_timeout_seconds))
    registry.register(UrlHausProvider(api_key=credentials.abuse_ch_auth_key, timeout=http_timeout_seconds))
    registry.register(PhishStatsProvider(timeout=http_timeout_seconds))
    registry.register(ThreatFoxProvider(api_key=credentials.abuse_ch_auth_key, timeout=http_timeout_seconds))
    return registry


def create_default_engine(
    credentials: Optional[ProviderCredentials] = None,
    config: Optional[CollectorConfig] = None,
    analyzers: Optional[Iterable[BaseSubAnalyzer]] = None,
    scorer: Optional[RiskScorer] = None,
) -> ScanEngine:
    """
    Build a ScanEngine from the environment.

    Args:
        credentials: Provider keys (read from the environment if omitted)
        config: Collector configuration (read from the environment if omitted)
        analyzers: Sub-analyzers to register
        scorer: Risk scorer (default calibration if omitted)
    """
    credentials = credentials or ProviderCredentials.from_env()
    config = config or CollectorConfig.from_env()
    logger.info(f"Configured provider keys: {credentials.to_dict()}")

    registry = build_default_registry(credentials, config.http_timeout_seconds)
    collector = VerdictCollector(
        orchestrator=FallbackOrchestrator(registry),
        analyzers=analyzers,
        config=config,
    )
    return ScanEngine(collector=collector, scorer=scorer)
