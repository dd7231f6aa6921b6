"""
Threat Intel Models - Verdicts, sub-reports and the per-scan evidence bundle.

Every provider and analyzer normalizes its answer into these structures.
No downstream code depends on provider-specific payload fields.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Optional


def clamp_unit(value: Any) -> float:
    """Coerce a value to a finite float in [0, 1]; non-finite or invalid input becomes 0."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return max(0.0, min(1.0, number))


class Provider(str, Enum):
    """Closed set of evidence sources."""
    VIRUS_TOTAL = "virus_total"
    GOOGLE_SAFE_BROWSING = "google_safe_browsing"
    URL_SCAN = "url_scan"
    URL_HAUS = "url_haus"
    PHISH_STATS = "phish_stats"
    THREAT_FOX = "threat_fox"
    LOCAL_HEURISTIC = "local_heuristic"
    NETWORK = "network"
    ML = "ml"
    FILE_STATIC = "file_static"
    VPN_CONFIG = "vpn_config"
    INSTAGRAM = "instagram"


class VerdictStatus(str, Enum):
    """
    Vendor answer status.

    CLEAN < SUSPICIOUS < MALICIOUS is the severity order of conclusive
    answers. UNKNOWN and ERROR carry no usable answer.
    """
    CLEAN = "clean"
    SUSPICIOUS = "suspicious"
    MALICIOUS = "malicious"
    UNKNOWN = "unknown"
    ERROR = "error"

    @property
    def is_conclusive(self) -> bool:
        return self in (VerdictStatus.CLEAN, VerdictStatus.SUSPICIOUS, VerdictStatus.MALICIOUS)

    @property
    def severity(self) -> Optional[int]:
        """Severity rank of conclusive statuses, None otherwise."""
        return _SEVERITY.get(self)


_SEVERITY = {
    VerdictStatus.CLEAN: 0,
    VerdictStatus.SUSPICIOUS: 1,
    VerdictStatus.MALICIOUS: 2,
}


class TargetType(str, Enum):
    """Kind of object being scanned."""
    URL = "url"
    FILE = "file"
    VPN_CONFIG = "vpn_config"
    INSTAGRAM = "instagram"


# Detail keys stamped on verdicts that did not come from the slot primary
FALLBACK_PROVIDER_KEY = "fallbackProvider"
FALLBACK_REASON_KEY = "fallbackReason"
EXHAUSTED_KEY = "allProvidersExhausted"


class FallbackReason(str, Enum):
    """Why a slot's primary did not supply the final verdict."""
    PRIMARY_UNAVAILABLE = "primary_unavailable"
    NO_RESULTS = "no_results"
    RATE_LIMITED = "rate_limited"


@dataclass(frozen=True)
class ScanTarget:
    """What a scan is about: a URL, a file reference, a VPN config or a profile handle."""
    target_type: TargetType
    value: str
    metadata: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "target_type": self.target_type.value,
            "value": self.value,
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class VendorVerdict:
    """
    One provider's answer about one target.

    Construction normalizes the invariants: the score is a finite value in
    [0, 1], an ERROR verdict always scores 0, and details are string-valued.
    """
    provider: Provider
    status: VerdictStatus
    score: float = 0.0
    details: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        score = 0.0 if self.status == VerdictStatus.ERROR else clamp_unit(self.score)
        object.__setattr__(self, "score", score)
        object.__setattr__(
            self,
            "details",
            {str(key): str(value) for key, value in (self.details or {}).items()},
        )

    @property
    def is_fallback(self) -> bool:
        return FALLBACK_PROVIDER_KEY in self.details

    @property
    def fallback_provider(self) -> Optional[str]:
        return self.details.get(FALLBACK_PROVIDER_KEY)

    @property
    def fallback_reason(self) -> Optional[str]:
        return self.details.get(FALLBACK_REASON_KEY)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "provider": self.provider.value,
            "status": self.status.value,
            "score": self.score,
            "details": dict(self.details),
        }


@dataclass(frozen=True)
class Feature:
    """A named ML feature and its contribution weight."""
    name: str
    weight: float


@dataclass(frozen=True)
class MlReport:
    """Output of the ML classifier: phishing probability plus top features."""
    probability: float
    top_features: tuple[Feature, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "probability", clamp_unit(self.probability))
        object.__setattr__(self, "top_features", tuple(self.top_features))

    @property
    def risk_score(self) -> float:
        return self.probability

    def to_dict(self) -> dict[str, Any]:
        return {
            "probability": self.probability,
            "top_features": [{"name": f.name, "weight": f.weight} for f in self.top_features],
        }


@dataclass(frozen=True)
class NetworkReport:
    """
    Network posture of a URL's host.

    Any field may be None when the probe could not determine it.
    """
    tls_version: Optional[str] = None
    cipher_suite: Optional[str] = None
    cert_valid: Optional[bool] = None
    headers: dict[str, str] = field(default_factory=dict)
    dnssec_signal: Optional[bool] = None

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None

    def missing_headers(self, required: Iterable[str]) -> list[str]:
        """Required headers that are absent or blank."""
        missing = []
        for name in required:
            value = self.header(name)
            if value is None or not value.strip():
                missing.append(name)
        return missing

    @property
    def risk_score(self) -> float:
        """Coarse posture weakness in [0, 1], used when the report is treated as a generic sub-report."""
        weakness = 0.0
        if self.tls_version is None or self.tls_version in ("TLS 1.0", "TLS 1.1"):
            weakness += 0.35
        if self.cert_valid is False:
            weakness += 0.35
        if not self.headers:
            weakness += 0.2
        if self.dnssec_signal is False:
            weakness += 0.1
        return clamp_unit(weakness)

    def to_dict(self) -> dict[str, Any]:
        return {
            "tls_version": self.tls_version,
            "cipher_suite": self.cipher_suite,
            "cert_valid": self.cert_valid,
            "headers": dict(self.headers),
            "dnssec_signal": self.dnssec_signal,
        }


@dataclass(frozen=True)
class FileReport:
    """Static analysis of a file target."""
    risk_score: float
    file_name: Optional[str] = None
    mime_type: Optional[str] = None
    sha256: Optional[str] = None
    indicators: tuple[str, ...] = ()
    verdict: Optional[VendorVerdict] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "risk_score", clamp_unit(self.risk_score))
        object.__setattr__(self, "indicators", tuple(self.indicators))

    def to_dict(self) -> dict[str, Any]:
        return {
            "risk_score": self.risk_score,
            "file_name": self.file_name,
            "mime_type": self.mime_type,
            "sha256": self.sha256,
            "indicators": list(self.indicators),
            "verdict": self.verdict.to_dict() if self.verdict else None,
        }


@dataclass(frozen=True)
class VpnConfigReport:
    """Analysis of a VPN configuration target."""
    risk_score: float
    protocol: Optional[str] = None
    server: Optional[str] = None
    indicators: tuple[str, ...] = ()
    verdict: Optional[VendorVerdict] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "risk_score", clamp_unit(self.risk_score))
        object.__setattr__(self, "indicators", tuple(self.indicators))

    def to_dict(self) -> dict[str, Any]:
        return {
            "risk_score": self.risk_score,
            "protocol": self.protocol,
            "server": self.server,
            "indicators": list(self.indicators),
            "verdict": self.verdict.to_dict() if self.verdict else None,
        }


@dataclass(frozen=True)
class InstagramReport:
    """Analysis of a social profile target."""
    risk_score: float
    username: Optional[str] = None
    indicators: tuple[str, ...] = ()
    verdict: Optional[VendorVerdict] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "risk_score", clamp_unit(self.risk_score))
        object.__setattr__(self, "indicators", tuple(self.indicators))

    def to_dict(self) -> dict[str, Any]:
        return {
            "risk_score": self.risk_score,
            "username": self.username,
            "indicators": list(self.indicators),
            "verdict": self.verdict.to_dict() if self.verdict else None,
        }


@dataclass(frozen=True)
class EvidenceBundle:
    """
    All evidence gathered for one scan.

    Built once per scan by the collector and read-only afterwards.
    """
    target_type: TargetType
    vendor_verdicts: tuple[VendorVerdict, ...] = ()
    ml_report: Optional[MlReport] = None
    network_report: Optional[NetworkReport] = None
    file_report: Optional[FileReport] = None
    vpn_report: Optional[VpnConfigReport] = None
    instagram_report: Optional[InstagramReport] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "vendor_verdicts", tuple(self.vendor_verdicts))

    def verdicts_for(self, provider: Provider) -> list[VendorVerdict]:
        return [v for v in self.vendor_verdicts if v.provider == provider]

    @property
    def specialized_report(self) -> Optional[Any]:
        """The report matching the target type for FILE, VPN_CONFIG and INSTAGRAM targets."""
        if self.target_type == TargetType.FILE:
            return self.file_report
        if self.target_type == TargetType.VPN_CONFIG:
            return self.vpn_report
        if self.target_type == TargetType.INSTAGRAM:
            return self.instagram_report
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "target_type": self.target_type.value,
            "vendor_verdicts": [v.to_dict() for v in self.vendor_verdicts],
            "ml_report": self.ml_report.to_dict() if self.ml_report else None,
            "network_report": self.network_report.to_dict() if self.network_report else None,
            "file_report": self.file_report.to_dict() if self.file_report else None,
            "vpn_report": self.vpn_report.to_dict() if self.vpn_report else None,
            "instagram_report": self.instagram_report.to_dict() if self.instagram_report else None,
        }
