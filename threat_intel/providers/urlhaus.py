"""
URLhaus Provider - abuse.ch malware URL database lookup.

API Documentation: https://urlhaus-api.abuse.ch/
"""

from typing import Any, Optional

from threat_intel.base import HttpThreatIntelProvider
from threat_intel.models import Provider, ScanTarget, VendorVerdict, VerdictStatus


def parse_url_lookup(payload: Optional[dict[str, Any]]) -> tuple[VerdictStatus, float, dict[str, str]]:
    """Map a URLhaus url lookup to (status, score, details)."""
    payload = payload or {}
    query_status = str(payload.get("query_status") or "").lower()

    if query_status == "no_results":
        return VerdictStatus.CLEAN, 0.0, {"message": "not listed"}
    if query_status != "ok":
        return VerdictStatus.UNKNOWN, 0.0, {"status": query_status or "missing"}

    url_status = str(payload.get("url_status") or "").lower()
    threat = payload.get("threat")

    if url_status in ("online", "malicious"):
        status, score = VerdictStatus.MALICIOUS, 0.95
    elif threat or url_status == "offline":
        status, score = VerdictStatus.SUSPICIOUS, 0.6
    else:
        status, score = VerdictStatus.CLEAN, 0.0

    blacklists = payload.get("blacklists") or {}
    summary = ", ".join(f"{name}={value}" for name, value in sorted(blacklists.items()) if value)

    return status, score, {
        "url_status": payload.get("url_status") or "unknown",
        "threat": threat or "unknown",
        "last_online": payload.get("last_online") or "unknown",
        "blacklists": summary or "n/a",
    }


class UrlHausProvider(HttpThreatIntelProvider):
    """URLhaus client. The auth key is optional for the lookup endpoint."""

    BASE_URL = "https://urlhaus-api.abuse.ch/v1"
    API_KEY_ENV = "ABUSE_CH_AUTH_KEY"

    @property
    def provider(self) -> Provider:
        return Provider.URL_HAUS

    async def query(self, target: ScanTarget) -> Optional[VendorVerdict]:
        headers = {"Auth-Key": self._api_key.strip()} if self.has_api_key else None
        payload = await self._make_request(
            "POST",
            f"{self.BASE_URL}/url/",
            headers=headers,
            data={"url": target.value},
        )
        status, score, details = parse_url_lookup(payload)
        return self.verdict(status, score, **details)
