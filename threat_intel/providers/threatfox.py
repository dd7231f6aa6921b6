"""
ThreatFox Provider - abuse.ch IOC database search.

API Documentation: https://threatfox.abuse.ch/api/
"""

from typing import Any, Optional

from threat_intel.base import HttpThreatIntelProvider
from threat_intel.models import Provider, ScanTarget, VendorVerdict, VerdictStatus


MALICIOUS_CONFIDENCE = 70
DEFAULT_CONFIDENCE = 50


def parse_ioc_search(payload: Optional[dict[str, Any]]) -> tuple[VerdictStatus, float, dict[str, str]]:
    """Map an IOC search to (status, score, details) using the most confident indicator."""
    payload = payload or {}
    query_status = str(payload.get("query_status") or "").lower()

    if query_status == "no_result":
        return VerdictStatus.CLEAN, 0.0, {}
    if query_status != "ok":
        return VerdictStatus.UNKNOWN, 0.0, {
            "status": query_status or "missing",
            "error": str(payload.get("data") or "none"),
        }

    indicators = [i for i in (payload.get("data") or []) if isinstance(i, dict)]
    if not indicators:
        return VerdictStatus.CLEAN, 0.0, {}

    def confidence_of(indicator: dict[str, Any]) -> int:
        try:
            return int(indicator.get("confidence_level"))
        except (TypeError, ValueError):
            return DEFAULT_CONFIDENCE

    highest = max(indicators, key=confidence_of)
    confidence = max(0, min(100, confidence_of(highest)))

    details = {
        "confidence": str(confidence),
        "threat_type": highest.get("threat_type") or "unknown",
        "malware": highest.get("malware") or "none",
    }
    if highest.get("reference"):
        details["reference"] = highest["reference"]
    if highest.get("tags"):
        details["tags"] = ", ".join(highest["tags"])

    status = VerdictStatus.MALICIOUS if confidence >= MALICIOUS_CONFIDENCE else VerdictStatus.SUSPICIOUS
    return status, confidence / 100.0, details


class ThreatFoxProvider(HttpThreatIntelProvider):
    """ThreatFox client."""

    BASE_URL = "https://threatfox-api.abuse.ch/api/v1/"
    API_KEY_ENV = "ABUSE_CH_AUTH_KEY"

    @property
    def provider(self) -> Provider:
        return Provider.THREAT_FOX

    async def query(self, target: ScanTarget) -> Optional[VendorVerdict]:
        headers = {"Auth-Key": self._api_key.strip()} if self.has_api_key else None
        payload = await self._make_request(
            "POST",
            self.BASE_URL,
            headers=headers,
            json={"query": "search_ioc", "search_term": target.value, "exact_match": True},
        )
        status, score, details = parse_ioc_search(payload)
        return self.verdict(status, score, **details)
