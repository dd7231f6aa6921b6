"""
Google Safe Browsing Provider - Lookup API v4 threat matches.

API Documentation: https://developers.google.com/safe-browsing/v4/lookup-api
"""

import logging
from typing import Any, Optional

from threat_intel.base import HttpThreatIntelProvider
from threat_intel.models import Provider, ScanTarget, VendorVerdict, VerdictStatus


logger = logging.getLogger(__name__)


THREAT_TYPE_SEVERITY = {
    "MALWARE": 1.0,
    "SOCIAL_ENGINEERING": 0.9,
    "UNWANTED_SOFTWARE": 0.7,
    "POTENTIALLY_HARMFUL_APPLICATION": 0.6,
}
DEFAULT_SEVERITY = 0.5


def build_lookup_request(url: str) -> dict[str, Any]:
    return {
        "client": {"clientId": "threat-verdict-engine", "clientVersion": "1.0"},
        "threatInfo": {
            "threatTypes": list(THREAT_TYPE_SEVERITY),
            "platformTypes": ["ANY_PLATFORM"],
            "threatEntryTypes": ["URL"],
            "threatEntries": [{"url": url}],
        },
    }


def parse_threat_matches(payload: Optional[dict[str, Any]]) -> tuple[VerdictStatus, float, dict[str, str]]:
    """Map threat matches to (status, score, details). An empty body means no match."""
    matches = (payload or {}).get("matches") or []
    severity = max(
        (THREAT_TYPE_SEVERITY.get(m.get("threatType"), DEFAULT_SEVERITY) for m in matches),
        default=0.0,
    )

    if severity >= 0.8:
        status = VerdictStatus.MALICIOUS
    elif matches:
        status = VerdictStatus.SUSPICIOUS
    else:
        status = VerdictStatus.CLEAN

    details = {"matchCount": str(len(matches))}
    for match in matches:
        if match.get("threatType"):
            details[f"threatType_{match['threatType']}"] = "found"
    return status, severity, details


class GoogleSafeBrowsingProvider(HttpThreatIntelProvider):
    """Google Safe Browsing Lookup API client."""

    BASE_URL = "https://safebrowsing.googleapis.com/v4"
    API_KEY_ENV = "GOOGLE_SAFE_BROWSING_API_KEY"

    @property
    def provider(self) -> Provider:
        return Provider.GOOGLE_SAFE_BROWSING

    async def query(self, target: ScanTarget) -> Optional[VendorVerdict]:
        payload = await self._make_request(
            "POST",
            f"{self.BASE_URL}/threatMatches:find",
            params={"key": self._require_api_key()},
            json=build_lookup_request(target.value),
        )
        status, score, details = parse_threat_matches(payload)
        return self.verdict(status, score, **details)
