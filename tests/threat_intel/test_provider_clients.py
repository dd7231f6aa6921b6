"""
Provider Client Tests.

============================================================
PURPOSE
============================================================
Verify that each provider normalizes its upstream payload
into a VendorVerdict, and that HTTP outcomes map onto the
shared failure vocabulary.

TEST PRINCIPLES:
- No network access: payloads are canned, HTTP is mocked
- Parsers are tested directly; query() with _make_request
  patched

============================================================
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from threat_intel.exceptions import (
    MalformedResponseError,
    ProviderConfigurationError,
    ProviderUnavailableError,
    RateLimitError,
)
from threat_intel.models import Provider, VerdictStatus
from threat_intel.providers import (
    GoogleSafeBrowsingProvider,
    PhishStatsProvider,
    ThreatFoxProvider,
    UrlHausProvider,
    UrlScanProvider,
    VirusTotalProvider,
)
from threat_intel.providers.google_safe_browsing import build_lookup_request, parse_threat_matches
from threat_intel.providers.phishstats import parse_search_results
from threat_intel.providers.threatfox import parse_ioc_search
from threat_intel.providers.urlhaus import parse_url_lookup
from threat_intel.providers.urlscan import parse_scan_result
from threat_intel.providers.virustotal import parse_url_report, url_identifier


# ============================================================
# FIXTURES
# ============================================================


def vt_report(**stats):
    return {"data": {"attributes": {"last_analysis_stats": stats}}}


@pytest.fixture
def mock_session():
    """aiohttp session whose request() yields a scripted response."""
    response = MagicMock()
    response.status = 200
    response.headers = {}
    response.json = AsyncMock(return_value=[])

    session = MagicMock()
    session.closed = False
    session.close = AsyncMock()
    session.request.return_value.__aenter__.return_value = response
    session.request.return_value.__aexit__.return_value = False
    session.response = response
    return session


# ============================================================
# VIRUSTOTAL
# ============================================================


class TestVirusTotal:
    """URL report parsing and polling."""

    def test_url_identifier(self):
        assert url_identifier("http://example.com") == "aHR0cDovL2V4YW1wbGUuY29t"

    def test_malicious_report(self):
        parsed = parse_url_report(vt_report(malicious=3, suspicious=2, harmless=60, undetected=15))

        assert parsed["status"] == VerdictStatus.MALICIOUS
        assert parsed["score"] == pytest.approx(0.05)
        assert parsed["total_engines"] == 80

    def test_harmless_report(self):
        parsed = parse_url_report(vt_report(malicious=0, suspicious=0, harmless=70, undetected=10))

        assert parsed["status"] == VerdictStatus.CLEAN
        assert parsed["score"] == 0.0

    def test_only_undetected_is_unknown(self):
        assert parse_url_report(vt_report(undetected=12))["status"] == VerdictStatus.UNKNOWN

    @pytest.mark.parametrize("payload", [None, {}, vt_report(), vt_report(malicious=0, harmless=0)])
    def test_no_analysis_yet(self, payload):
        assert parse_url_report(payload) is None

    def test_non_integer_stats_rejected(self):
        with pytest.raises(MalformedResponseError):
            parse_url_report(vt_report(malicious="many"))

    @pytest.mark.asyncio
    async def test_missing_api_key(self, url_target):
        provider = VirusTotalProvider(api_key="  ")

        with pytest.raises(ProviderConfigurationError) as exc_info:
            await provider.query(url_target)

        assert exc_info.value.config_key == "VIRUSTOTAL_API_KEY"

    @pytest.mark.asyncio
    async def test_query_existing_report(self, url_target):
        provider = VirusTotalProvider(api_key="vt-key")
        request = AsyncMock(return_value=vt_report(malicious=8, harmless=72))

        with patch.object(provider, "_make_request", request):
            verdict = await provider.query(url_target)

        assert verdict.provider == Provider.VIRUS_TOTAL
        assert verdict.status == VerdictStatus.MALICIOUS
        assert verdict.score == pytest.approx(0.1)
        assert verdict.details["malicious"] == "8"
        assert "analysis_id" not in verdict.details
        assert request.await_count == 1
        assert request.call_args.kwargs["headers"] == {"x-apikey": "vt-key"}

    @pytest.mark.asyncio
    async def test_query_submits_and_polls_unknown_url(self, url_target):
        provider = VirusTotalProvider(api_key="vt-key", poll_attempts=3, poll_interval_seconds=0)
        request = AsyncMock(
            side_effect=[
                None,
                {"data": {"id": "u-123"}},
                vt_report(),
                vt_report(harmless=50, undetected=20),
            ]
        )

        with patch.object(provider, "_make_request", request):
            verdict = await provider.query(url_target)

        assert verdict.status == VerdictStatus.CLEAN
        assert verdict.details["analysis_id"] == "u-123"
        assert request.await_args_list[1].args[0] == "POST"

    @pytest.mark.asyncio
    async def test_query_pending_analysis_has_no_data(self, url_target):
        provider = VirusTotalProvider(api_key="vt-key", poll_attempts=2, poll_interval_seconds=0)
        request = AsyncMock(side_effect=[None, {"data": {"id": "u-123"}}, None, None])

        with patch.object(provider, "_make_request", request):
            assert await provider.query(url_target) is None


# ============================================================
# GOOGLE SAFE BROWSING
# ============================================================


class TestGoogleSafeBrowsing:
    """Threat match mapping."""

    def test_social_engineering_is_malicious(self):
        status, score, details = parse_threat_matches({"matches": [{"threatType": "SOCIAL_ENGINEERING"}]})

        assert status == VerdictStatus.MALICIOUS
        assert score == pytest.approx(0.9)
        assert details == {"matchCount": "1", "threatType_SOCIAL_ENGINEERING": "found"}

    def test_unwanted_software_is_suspicious(self):
        status, score, _ = parse_threat_matches({"matches": [{"threatType": "UNWANTED_SOFTWARE"}]})

        assert status == VerdictStatus.SUSPICIOUS
        assert score == pytest.approx(0.7)

    def test_empty_body_is_clean(self):
        assert parse_threat_matches({}) == (VerdictStatus.CLEAN, 0.0, {"matchCount": "0"})

    def test_lookup_request_carries_url(self):
        body = build_lookup_request("https://example.com")

        assert body["threatInfo"]["threatEntries"] == [{"url": "https://example.com"}]

    @pytest.mark.asyncio
    async def test_query_uses_key_param(self, url_target):
        provider = GoogleSafeBrowsingProvider(api_key="gsb-key")
        request = AsyncMock(return_value={"matches": [{"threatType": "MALWARE"}]})

        with patch.object(provider, "_make_request", request):
            verdict = await provider.query(url_target)

        assert verdict.status == VerdictStatus.MALICIOUS
        assert verdict.score == 1.0
        assert request.call_args.kwargs["params"] == {"key": "gsb-key"}

    @pytest.mark.asyncio
    async def test_missing_api_key(self, url_target):
        with pytest.raises(ProviderConfigurationError):
            await GoogleSafeBrowsingProvider().query(url_target)


# ============================================================
# URLSCAN
# ============================================================


class TestUrlScan:
    """Scan result mapping and polling."""

    def test_malicious_without_score(self):
        status, score, details = parse_scan_result(
            {"verdicts": {"overall": {"malicious": True, "score": 0}}, "page": {"domain": "login-paypa1.example"}}
        )

        assert status == VerdictStatus.MALICIOUS
        assert score == 1.0
        assert details["domain"] == "login-paypa1.example"

    def test_categorized_is_suspicious(self):
        status, score, details = parse_scan_result(
            {"verdicts": {"overall": {"malicious": False, "score": 30, "categories": ["phishing"]}}}
        )

        assert status == VerdictStatus.SUSPICIOUS
        assert score == pytest.approx(0.3)
        assert details["categories"] == "phishing"

    def test_clean(self):
        status, score, _ = parse_scan_result({"verdicts": {"overall": {"malicious": False, "score": 0}}})

        assert status == VerdictStatus.CLEAN
        assert score == 0.0

    @pytest.mark.parametrize("payload", [None, {}, {"verdicts": {}}])
    def test_not_ready(self, payload):
        assert parse_scan_result(payload) is None

    @pytest.mark.asyncio
    async def test_query_polls_until_ready(self, url_target):
        provider = UrlScanProvider(api_key="us-key", poll_attempts=3, poll_base_delay_seconds=0)
        request = AsyncMock(
            side_effect=[
                {"uuid": "scan-1"},
                None,
                {"verdicts": {"overall": {"malicious": True, "score": 100}}},
            ]
        )

        with patch.object(provider, "_make_request", request):
            verdict = await provider.query(url_target)

        assert verdict.status == VerdictStatus.MALICIOUS
        assert verdict.details["uuid"] == "scan-1"
        assert verdict.details["polling_attempts"] == "2"

    @pytest.mark.asyncio
    async def test_submission_without_uuid_has_no_data(self, url_target):
        provider = UrlScanProvider(api_key="us-key", poll_base_delay_seconds=0)

        with patch.object(provider, "_make_request", AsyncMock(return_value={"message": "queued"})):
            assert await provider.query(url_target) is None


# ============================================================
# ABUSE.CH AND PHISHSTATS
# ============================================================


class TestUrlHaus:
    """URL lookup mapping."""

    def test_not_listed_is_clean(self):
        assert parse_url_lookup({"query_status": "no_results"}) == (
            VerdictStatus.CLEAN,
            0.0,
            {"message": "not listed"},
        )

    def test_online_is_malicious(self):
        status, score, details = parse_url_lookup(
            {
                "query_status": "ok",
                "url_status": "online",
                "threat": "malware_download",
                "blacklists": {"spamhaus_dbl": "abused_legit_malware", "surbl": "not listed"},
            }
        )

        assert status == VerdictStatus.MALICIOUS
        assert score == pytest.approx(0.95)
        assert details["threat"] == "malware_download"
        assert "spamhaus_dbl=abused_legit_malware" in details["blacklists"]

    def test_offline_is_suspicious(self):
        status, score, _ = parse_url_lookup({"query_status": "ok", "url_status": "offline"})

        assert status == VerdictStatus.SUSPICIOUS
        assert score == pytest.approx(0.6)

    def test_invalid_query_is_unknown(self):
        status, _, details = parse_url_lookup({"query_status": "invalid_url"})

        assert status == VerdictStatus.UNKNOWN
        assert details == {"status": "invalid_url"}

    @pytest.mark.asyncio
    async def test_query_without_auth_key(self, url_target):
        provider = UrlHausProvider()
        request = AsyncMock(return_value={"query_status": "no_results"})

        with patch.object(provider, "_make_request", request):
            verdict = await provider.query(url_target)

        assert verdict.status == VerdictStatus.CLEAN
        assert request.call_args.kwargs["headers"] is None


class TestPhishStats:
    """Search result mapping."""

    def test_no_records_is_clean(self):
        assert parse_search_results([]) == (VerdictStatus.CLEAN, 0.0, {})

    def test_active_record_is_malicious(self):
        status, score, details = parse_search_results(
            [{"status": "ACTIVE", "host": "login-paypa1.example", "target": "PayPal"}]
        )

        assert status == VerdictStatus.MALICIOUS
        assert score == pytest.approx(0.9)
        assert details["target"] == "PayPal"

    def test_offline_record_is_suspicious(self):
        status, score, _ = parse_search_results([{"status": "offline"}])

        assert status == VerdictStatus.SUSPICIOUS
        assert score == pytest.approx(0.6)

    def test_non_list_rejected(self):
        with pytest.raises(MalformedResponseError):
            parse_search_results({"error": "bad query"})


class TestThreatFox:
    """IOC search mapping."""

    def test_no_result_is_clean(self):
        assert parse_ioc_search({"query_status": "no_result"}) == (VerdictStatus.CLEAN, 0.0, {})

    def test_most_confident_indicator_wins(self):
        status, score, details = parse_ioc_search(
            {
                "query_status": "ok",
                "data": [
                    {"confidence_level": 50, "threat_type": "botnet_cc"},
                    {
                        "confidence_level": 100,
                        "threat_type": "payload_delivery",
                        "malware": "win.emotet",
                        "tags": ["emotet", "exe"],
                    },
                ],
            }
        )

        assert status == VerdictStatus.MALICIOUS
        assert score == 1.0
        assert details["malware"] == "win.emotet"
        assert details["tags"] == "emotet, exe"

    def test_low_confidence_is_suspicious(self):
        status, score, _ = parse_ioc_search({"query_status": "ok", "data": [{"confidence_level": 50}]})

        assert status == VerdictStatus.SUSPICIOUS
        assert score == pytest.approx(0.5)

    def test_rejected_query_is_unknown(self):
        status, _, details = parse_ioc_search({"query_status": "illegal_search_term"})

        assert status == VerdictStatus.UNKNOWN
        assert details["status"] == "illegal_search_term"

    @pytest.mark.asyncio
    async def test_query_sends_auth_key(self, url_target):
        provider = ThreatFoxProvider(api_key="abuse-key")
        request = AsyncMock(return_value={"query_status": "no_result"})

        with patch.object(provider, "_make_request", request):
            await provider.query(url_target)

        assert request.call_args.kwargs["headers"] == {"Auth-Key": "abuse-key"}
        assert request.call_args.kwargs["json"]["search_term"] == url_target.value


# ============================================================
# HTTP ERROR MAPPING
# ============================================================


class TestHttpErrorMapping:
    """Transport outcomes mapped by _make_request."""

    @pytest.mark.asyncio
    async def test_success_returns_json(self, mock_session):
        mock_session.response.json = AsyncMock(return_value=[{"status": "ACTIVE"}])
        provider = PhishStatsProvider(session=mock_session)

        assert await provider._make_request("GET", "https://feed.example") == [{"status": "ACTIVE"}]

    @pytest.mark.asyncio
    async def test_rate_limit(self, mock_session):
        mock_session.response.status = 429
        mock_session.response.headers = {"Retry-After": "30"}
        provider = PhishStatsProvider(session=mock_session)

        with pytest.raises(RateLimitError) as exc_info:
            await provider._make_request("GET", "https://feed.example")

        assert exc_info.value.retry_after_seconds == 30
        assert exc_info.value.provider == "phish_stats"

    @pytest.mark.asyncio
    async def test_not_found_is_no_data(self, mock_session):
        mock_session.response.status = 404
        provider = PhishStatsProvider(session=mock_session)

        assert await provider._make_request("GET", "https://feed.example") is None

    @pytest.mark.asyncio
    async def test_server_error(self, mock_session):
        mock_session.response.status = 503
        provider = PhishStatsProvider(session=mock_session)

        with pytest.raises(ProviderUnavailableError) as exc_info:
            await provider._make_request("GET", "https://feed.example")

        assert exc_info.value.status_code == 503
        assert exc_info.value.is_server_error()

    @pytest.mark.asyncio
    async def test_invalid_json(self, mock_session):
        mock_session.response.json = AsyncMock(side_effect=ValueError("Expecting value"))
        provider = PhishStatsProvider(session=mock_session)

        with pytest.raises(MalformedResponseError):
            await provider._make_request("GET", "https://feed.example")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [aiohttp.ClientConnectionError("connection refused"), asyncio.TimeoutError()],
    )
    async def test_transport_failures(self, mock_session, error):
        mock_session.request.side_effect = error
        provider = PhishStatsProvider(session=mock_session)

        with pytest.raises(ProviderUnavailableError) as exc_info:
            await provider._make_request("GET", "https://feed.example")

        assert not isinstance(exc_info.value, RateLimitError)

    @pytest.mark.asyncio
    async def test_injected_session_not_closed(self, mock_session):
        provider = PhishStatsProvider(session=mock_session)

        await provider.close()

        mock_session.close.assert_not_called()
