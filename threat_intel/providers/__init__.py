"""
Providers package - Threat intelligence provider implementations.
"""

from threat_intel.providers.google_safe_browsing import GoogleSafeBrowsingProvider
from threat_intel.providers.phishstats import PhishStatsProvider
from threat_intel.providers.threatfox import ThreatFoxProvider
from threat_intel.providers.urlhaus import UrlHausProvider
from threat_intel.providers.urlscan import UrlScanProvider
from threat_intel.providers.virustotal import VirusTotalProvider


__all__ = [
    "GoogleSafeBrowsingProvider",
    "PhishStatsProvider",
    "ThreatFoxProvider",
    "UrlHausProvider",
    "UrlScanProvider",
    "VirusTotalProvider",
]
