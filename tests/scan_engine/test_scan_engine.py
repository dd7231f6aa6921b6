"""
Scan Engine Tests.

============================================================
PURPOSE
============================================================
End-to-end scans through collection and scoring with
scripted providers.

============================================================
"""

import pytest

from risk_scoring import RiskCategory, RiskScorer, aggregate_risk
from scan_engine import ScanEngine, ScanResult, build_default_registry, create_default_engine
from threat_intel import (
    AnalyzerKind,
    CollectorConfig,
    FallbackOrchestrator,
    MlReport,
    NetworkReport,
    Provider,
    ProviderCredentials,
    ProviderRegistry,
    SlotDefinition,
    TargetType,
    VerdictCollector,
    VerdictStatus,
)
from threat_intel.exceptions import ProviderUnavailableError


VT = Provider.VIRUS_TOTAL
GSB = Provider.GOOGLE_SAFE_BROWSING
URL_HAUS = Provider.URL_HAUS
PHISH_STATS = Provider.PHISH_STATS


# ============================================================
# FIXTURES
# ============================================================


@pytest.fixture
def registry():
    return ProviderRegistry()


@pytest.fixture
def config():
    return CollectorConfig(
        slots_by_target={
            TargetType.URL: (
                SlotDefinition(VT, (GSB,)),
                SlotDefinition(URL_HAUS),
                SlotDefinition(PHISH_STATS),
            ),
        },
        branch_timeout_seconds=1.0,
    )


@pytest.fixture
def engine(registry, config, make_analyzer):
    collector = VerdictCollector(
        orchestrator=FallbackOrchestrator(registry),
        analyzers=[
            make_analyzer(AnalyzerKind.ML, report=MlReport(probability=0.87)),
            make_analyzer(
                AnalyzerKind.NETWORK,
                report=NetworkReport(tls_version="TLS 1.0", cert_valid=False, dnssec_signal=False),
            ),
        ],
        config=config,
    )
    return ScanEngine(collector=collector)


# ============================================================
# SCAN TESTS
# ============================================================


class TestScan:
    """Full scan flow."""

    @pytest.mark.asyncio
    async def test_coordinated_phishing_scan(self, registry, engine, url_target, make_provider, answer):
        registry.register(make_provider(VT, result=answer(VT, VerdictStatus.MALICIOUS, 0.95)))
        registry.register(make_provider(URL_HAUS, result=answer(URL_HAUS, VerdictStatus.MALICIOUS, 0.92)))
        registry.register(make_provider(PHISH_STATS, result=answer(PHISH_STATS, VerdictStatus.MALICIOUS, 0.88)))

        result = await engine.scan(url_target)

        assert isinstance(result, ScanResult)
        assert result.target == url_target
        assert len(result.bundle.vendor_verdicts) == 3
        assert result.bundle.ml_report.probability == pytest.approx(0.87)
        assert result.dominant_category == RiskCategory.CRITICAL
        assert result.risk == pytest.approx(aggregate_risk(result.bundle)[0])

    @pytest.mark.asyncio
    async def test_fallback_survives_into_result(self, registry, engine, url_target, make_provider, answer):
        registry.register(make_provider(VT, error=ProviderUnavailableError("HTTP 503", status_code=503)))
        registry.register(make_provider(GSB, result=answer(GSB, VerdictStatus.MALICIOUS, 0.9)))
        registry.register(make_provider(URL_HAUS, result=None))
        registry.register(make_provider(PHISH_STATS, result=answer(PHISH_STATS, VerdictStatus.CLEAN)))

        result = await engine.scan(url_target)
        vt_verdict, haus_verdict, _ = result.bundle.vendor_verdicts

        assert vt_verdict.provider == VT
        assert vt_verdict.details["fallbackProvider"] == "google_safe_browsing"
        assert vt_verdict.details["fallbackReason"] == "primary_unavailable"
        assert haus_verdict.status == VerdictStatus.ERROR
        assert haus_verdict.details == {"allProvidersExhausted": "true"}
        assert 0.0 <= result.risk <= 5.0

    @pytest.mark.asyncio
    async def test_every_provider_down_still_scores(self, engine, url_target):
        result = await engine.scan(url_target)

        assert all(v.status == VerdictStatus.ERROR for v in result.bundle.vendor_verdicts)
        assert 0.0 <= result.risk <= 5.0
        assert abs(sum(result.breakdown.categories.values()) - 1.0) < 1e-6

    @pytest.mark.asyncio
    async def test_result_to_dict(self, registry, engine, url_target, make_provider, answer):
        registry.register(make_provider(VT, result=answer(VT, VerdictStatus.CLEAN)))

        data = (await engine.scan(url_target)).to_dict()

        assert data["target"]["value"] == url_target.value
        assert data["dominant_category"] in {c.value for c in RiskCategory}
        assert data["evidence"]["vendor_verdicts"][0]["provider"] == "virus_total"
        assert data["assessment"]["risk"] == data["risk"]

    @pytest.mark.asyncio
    async def test_custom_scorer_is_used(self, config, url_target):
        scorer = RiskScorer()
        collector = VerdictCollector(FallbackOrchestrator(ProviderRegistry()), config=config)

        engine = ScanEngine(collector=collector, scorer=scorer)

        assert engine.scorer is scorer
        assert engine.collector is collector

    @pytest.mark.asyncio
    async def test_context_manager_closes_providers(self, registry, config, make_provider):
        provider = make_provider(VT)
        registry.register(provider)

        async with ScanEngine(VerdictCollector(FallbackOrchestrator(registry), config=config)):
            pass

        assert provider.closed


# ============================================================
# FACTORY TESTS
# ============================================================


class TestFactories:
    """Default wiring."""

    def test_default_registry_has_every_http_provider(self):
        registry = build_default_registry(ProviderCredentials(virustotal_api_key="vt-key"), http_timeout_seconds=5.0)

        assert registry.list_providers() == [
            VT,
            GSB,
            Provider.URL_SCAN,
            URL_HAUS,
            PHISH_STATS,
            Provider.THREAT_FOX,
        ]
        assert registry.get(VT).has_api_key
        assert not registry.get(GSB).has_api_key

    def test_create_default_engine_with_explicit_settings(self, config, make_analyzer):
        analyzer = make_analyzer(AnalyzerKind.ML, report=MlReport(probability=0.1))

        engine = create_default_engine(
            credentials=ProviderCredentials(),
            config=config,
            analyzers=[analyzer],
        )

        assert engine.collector.config is config
        assert engine.collector.get_analyzer(AnalyzerKind.ML) is analyzer
