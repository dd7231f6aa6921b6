"""
urlscan.io Provider - Submits a URL and reads the verdicts of the finished scan.

API Documentation: https://urlscan.io/docs/api/
"""

import asyncio
import logging
from typing import Any, Optional

import aiohttp

from threat_intel.base import HttpThreatIntelProvider
from threat_intel.models import Provider, ScanTarget, VendorVerdict, VerdictStatus


logger = logging.getLogger(__name__)


def parse_scan_result(payload: Optional[dict[str, Any]]) -> Optional[tuple[VerdictStatus, float, dict[str, str]]]:
    """Map a finished scan to (status, score, details); None while the result is not ready."""
    if not payload:
        return None
    overall = (payload.get("verdicts") or {}).get("overall")
    if overall is None:
        return None

    malicious = 1 if overall.get("malicious") else 0
    score = float(overall.get("score") or 0) / 100.0
    categories = overall.get("categories") or []
    suspicious = 1 if not malicious and (categories or score > 0) else 0

    if malicious:
        status = VerdictStatus.MALICIOUS
    elif suspicious:
        status = VerdictStatus.SUSPICIOUS
    else:
        status = VerdictStatus.CLEAN

    details = {
        "malicious": str(malicious),
        "suspicious": str(suspicious),
    }
    domain = (payload.get("page") or {}).get("domain")
    if domain:
        details["domain"] = domain
    if categories:
        details["categories"] = ", ".join(categories)
    if malicious and score == 0:
        score = 1.0
    return status, score, details


class UrlScanProvider(HttpThreatIntelProvider):
    """
    urlscan.io client.

    A scan result becomes available some seconds after submission, so the
    result endpoint is polled with growing delays; 404 means not ready yet.
    """

    BASE_URL = "https://urlscan.io/api/v1"
    API_KEY_ENV = "URLSCAN_API_KEY"
    MAX_POLL_DELAY = 30.0

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: float = HttpThreatIntelProvider.DEFAULT_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
        poll_attempts: int = 6,
        poll_base_delay_seconds: float = 1.0,
    ) -> None:
        super().__init__(api_key=api_key, timeout=timeout, session=session)
        self._poll_attempts = poll_attempts
        self._poll_base_delay = poll_base_delay_seconds

    @property
    def provider(self) -> Provider:
        return Provider.URL_SCAN

    async def query(self, target: ScanTarget) -> Optional[VendorVerdict]:
        submitted = await self._make_request(
            "POST",
            f"{self.BASE_URL}/scan/",
            headers={"API-Key": self._require_api_key()},
            json={"url": target.value, "visibility": "unlisted"},
        )
        uuid = (submitted or {}).get("uuid")
        if not uuid:
            logger.warning(f"[{self.name}] Submission returned no uuid")
            return None

        for attempt in range(self._poll_attempts):
            await asyncio.sleep(min(self._poll_base_delay * 1.5 ** attempt, self.MAX_POLL_DELAY))
            parsed = parse_scan_result(await self._make_request("GET", f"{self.BASE_URL}/result/{uuid}/"))
            if parsed is not None:
                status, score, details = parsed
                return self.verdict(status, score, uuid=uuid, polling_attempts=attempt + 1, **details)

        logger.debug(f"[{self.name}] Result for {uuid} not ready after {self._poll_attempts} polls")
        return None
