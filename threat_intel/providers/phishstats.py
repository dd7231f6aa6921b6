"""
PhishStats Provider - Public phishing URL feed search.

API Documentation: https://phishstats.info/
"""

from typing import Any, Optional

from threat_intel.base import HttpThreatIntelProvider
from threat_intel.exceptions import MalformedResponseError
from threat_intel.models import Provider, ScanTarget, VendorVerdict, VerdictStatus


def _is_active(record: dict[str, Any]) -> bool:
    status = record.get("status")
    if status is None:
        return True
    status = str(status).lower()
    return "active" in status or "online" in status


def parse_search_results(payload: Any) -> tuple[VerdictStatus, float, dict[str, str]]:
    """Map search records to (status, score, details). No records means not listed."""
    if payload is None:
        payload = []
    if not isinstance(payload, list):
        raise MalformedResponseError(
            "Search response is not a list",
            provider=Provider.PHISH_STATS.value,
            raw_data=payload,
        )
    if not payload:
        return VerdictStatus.CLEAN, 0.0, {}

    record = next((r for r in payload if r.get("status") and _is_active(r)), payload[0])
    active = _is_active(record)

    return (
        VerdictStatus.MALICIOUS if active else VerdictStatus.SUSPICIOUS,
        0.9 if active else 0.6,
        {
            "host": record.get("host") or "unknown",
            "target": record.get("target") or "unknown",
            "status": record.get("status") or "unknown",
            "first_seen": record.get("date") or "unknown",
        },
    )


class PhishStatsProvider(HttpThreatIntelProvider):
    """PhishStats client. No credentials required."""

    BASE_URL = "https://phishstats.info:2096/api"

    @property
    def provider(self) -> Provider:
        return Provider.PHISH_STATS

    async def query(self, target: ScanTarget) -> Optional[VendorVerdict]:
        payload = await self._make_request(
            "GET",
            f"{self.BASE_URL}/phishing",
            params={"_where": f"(url,eq,{target.value})", "_sort": "-date"},
        )
        status, score, details = parse_search_results(payload)
        return self.verdict(status, score, **details)
