"""
VirusTotal Provider - URL reputation from the VirusTotal v3 API.

API Documentation: https://docs.virustotal.com/reference/url-info
"""

import asyncio
import base64
import logging
from typing import Any, Optional

import aiohttp

from threat_intel.base import HttpThreatIntelProvider
from threat_intel.exceptions import MalformedResponseError
from threat_intel.models import Provider, ScanTarget, VendorVerdict, VerdictStatus


logger = logging.getLogger(__name__)


def url_identifier(url: str) -> str:
    """VirusTotal URL id: unpadded urlsafe base64 of the URL."""
    return base64.urlsafe_b64encode(url.encode("utf-8")).decode("ascii").rstrip("=")


def parse_url_report(payload: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
    """
    Extract verdict fields from a URL report.

    Returns None while no engine has analyzed the URL yet.
    """
    if not payload:
        return None
    if not isinstance(payload, dict):
        raise MalformedResponseError("URL report is not an object", provider=Provider.VIRUS_TOTAL.value, raw_data=payload)

    stats = ((payload.get("data") or {}).get("attributes") or {}).get("last_analysis_stats") or {}
    try:
        counts = {key: int(value) for key, value in stats.items()}
    except (TypeError, ValueError) as e:
        raise MalformedResponseError(
            "Analysis stats are not integers",
            provider=Provider.VIRUS_TOTAL.value,
            raw_data=stats,
            original_error=e,
        )

    total = sum(counts.values())
    if total == 0:
        return None

    malicious = counts.get("malicious", 0)
    suspicious = counts.get("suspicious", 0)
    harmless = counts.get("harmless", 0)

    if malicious > 0:
        status = VerdictStatus.MALICIOUS
    elif suspicious > 0:
        status = VerdictStatus.SUSPICIOUS
    elif harmless > 0:
        status = VerdictStatus.CLEAN
    else:
        status = VerdictStatus.UNKNOWN

    return {
        "status": status,
        "score": (malicious + suspicious * 0.5) / total,
        "malicious": malicious,
        "suspicious": suspicious,
        "harmless": harmless,
        "undetected": counts.get("undetected", 0),
        "total_engines": total,
    }


class VirusTotalProvider(HttpThreatIntelProvider):
    """
    VirusTotal URL report client.

    Unknown URLs are submitted for analysis and the report is polled a
    bounded number of times. If no engine has answered by then the
    provider reports no data.
    """

    BASE_URL = "https://www.virustotal.com/api/v3"
    API_KEY_ENV = "VIRUSTOTAL_API_KEY"

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: float = HttpThreatIntelProvider.DEFAULT_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
        poll_attempts: int = 5,
        poll_interval_seconds: float = 2.0,
    ) -> None:
        super().__init__(api_key=api_key, timeout=timeout, session=session)
        self._poll_attempts = poll_attempts
        self._poll_interval = poll_interval_seconds

    @property
    def provider(self) -> Provider:
        return Provider.VIRUS_TOTAL

    async def query(self, target: ScanTarget) -> Optional[VendorVerdict]:
        headers = {"x-apikey": self._require_api_key()}
        report_url = f"{self.BASE_URL}/urls/{url_identifier(target.value)}"

        parsed = parse_url_report(await self._make_request("GET", report_url, headers=headers))
        analysis_id = None

        if parsed is None and self._poll_attempts > 0:
            submitted = await self._make_request(
                "POST",
                f"{self.BASE_URL}/urls",
                headers=headers,
                data={"url": target.value},
            )
            analysis_id = ((submitted or {}).get("data") or {}).get("id")
            if analysis_id:
                for attempt in range(self._poll_attempts):
                    await asyncio.sleep(self._poll_interval * (attempt + 1))
                    parsed = parse_url_report(await self._make_request("GET", report_url, headers=headers))
                    if parsed is not None:
                        break

        if parsed is None:
            logger.debug(f"[{self.name}] Analysis pending for {target.value}")
            return None

        status = parsed.pop("status")
        score = parsed.pop("score")
        return self.verdict(status, score, analysis_id=analysis_id, **parsed)
