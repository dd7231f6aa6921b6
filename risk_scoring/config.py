"""
Risk Scoring Engine - Configuration.

============================================================
PURPOSE
============================================================
Defines all configuration dataclasses and calibration
constants for the Risk Scoring Engine.

The defaults are calibrated against a fixed set of
scenario bundles (coordinated phishing, lone vendor hit,
clean consensus with weak transport security, ...).
Changing a constant moves those scenarios; re-check them.

============================================================
DESIGN PRINCIPLES
============================================================
- Every numeric constant of the engine lives here
- Immutable configurations
- Each section serializes with to_dict()
- Overrides load from a plain mapping or a YAML file

============================================================
PIPELINE SECTIONS
============================================================
1. ProviderTrustConfig   - How much each provider is believed
2. VerdictWeightConfig   - Status/score to severity mapping
3. ConsensusConfig       - Agreement boost and clean penalty
4. ConfidenceConfig      - Confidence-aware alignment
5. NetworkPostureConfig  - Transport security adjustment
6. BlendConfig           - How signals are combined
7. MembershipConfig      - Fuzzy category curves

============================================================
"""

import dataclasses
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Tuple, Union

import yaml

from threat_intel.models import Provider, VerdictStatus

from .types import InvalidConfigurationError, RiskCategory


logger = logging.getLogger(__name__)


# ============================================================
# PROVIDER TRUST
# ============================================================


def _default_provider_weights() -> Dict[Provider, float]:
    return {
        Provider.VIRUS_TOTAL: 1.0,
        Provider.GOOGLE_SAFE_BROWSING: 0.9,
        Provider.URL_SCAN: 0.85,
        Provider.URL_HAUS: 0.9,
        Provider.PHISH_STATS: 0.8,
        Provider.THREAT_FOX: 0.85,
        Provider.NETWORK: 0.75,
        Provider.ML: 0.75,
        Provider.FILE_STATIC: 0.8,
        Provider.VPN_CONFIG: 0.7,
        Provider.INSTAGRAM: 0.7,
        Provider.LOCAL_HEURISTIC: 0.6,
    }


@dataclass(frozen=True)
class ProviderTrustConfig:
    """
    Trust weight per provider.

    Multi-engine aggregators rank highest; the on-device
    heuristic ranks lowest.
    """

    weights: Dict[Provider, float] = field(default_factory=_default_provider_weights)
    default_weight: float = 0.5

    def weight_for(self, provider: Provider) -> float:
        return self.weights.get(provider, self.default_weight)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "weights": {p.value: w for p, w in self.weights.items()},
            "default_weight": self.default_weight,
        }


# ============================================================
# VERDICT SEVERITY MAPPING
# ============================================================


def _default_status_weights() -> Dict[VerdictStatus, float]:
    return {
        VerdictStatus.MALICIOUS: 1.0,
        VerdictStatus.SUSPICIOUS: 0.7,
        VerdictStatus.UNKNOWN: 0.4,
        VerdictStatus.ERROR: 0.6,
        VerdictStatus.CLEAN: 0.0,
    }


def _default_provider_caps() -> Dict[Provider, float]:
    return {Provider.LOCAL_HEURISTIC: 0.75}


@dataclass(frozen=True)
class VerdictWeightConfig:
    """
    Maps a verdict to a severity in [0, 1].

    severity = status_weight * status_blend + score * score_blend

    UNKNOWN and ERROR map to a neutral baseline rather than 0 so a
    failed lookup is not read as evidence of safety. Providers in
    provider_caps never exceed their cap.
    """

    status_weights: Dict[VerdictStatus, float] = field(default_factory=_default_status_weights)
    status_blend: float = 0.6
    score_blend: float = 0.4
    provider_caps: Dict[Provider, float] = field(default_factory=_default_provider_caps)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status_weights": {s.value: w for s, w in self.status_weights.items()},
            "status_blend": self.status_blend,
            "score_blend": self.score_blend,
            "provider_caps": {p.value: c for p, c in self.provider_caps.items()},
        }


# ============================================================
# CONSENSUS
# ============================================================


@dataclass(frozen=True)
class ConsensusConfig:
    """
    Agreement adjustment added on top of the weighted vendor score.

    - multi_malicious_boost when at least min_malicious vendors say MALICIOUS
    - mixed_boost when exactly one says MALICIOUS and another SUSPICIOUS
    - suspicious_boost when at least two say SUSPICIOUS, or when the flagged
      set (MALICIOUS + SUSPICIOUS) reaches broad_consensus_flagged with
      min_malicious of them MALICIOUS
    - clean_penalty subtracted when every vendor says CLEAN

    The broad-consensus clause keeps the boost from dropping when one
    SUSPICIOUS verdict is upgraded to MALICIOUS.
    """

    min_malicious: int = 2
    multi_malicious_boost: float = 0.18
    mixed_boost: float = 0.12
    suspicious_boost: float = 0.05
    min_suspicious: int = 2
    broad_consensus_flagged: int = 4
    clean_penalty: float = 0.05
    min_boost: float = -0.05
    max_boost: float = 0.25

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


# ============================================================
# CONFIDENCE
# ============================================================


@dataclass(frozen=True)
class ConfidenceConfig:
    """
    Confidence-aware alignment toward the directional vendor signal.

    alignment = base_alignment + confidence ** alignment_exponent * alignment_gain
    penalty   = (penalty_threshold - confidence) ** 2 * penalty_gain   (below threshold)

    The penalty ramps in over the first penalty_ramp of upward gap
    between signal and value. penalty_ramp must stay at or above
    penalty_threshold ** 2 * penalty_gain / base_alignment or the
    result stops being non-decreasing in the signal.
    """

    base_alignment: float = 0.15
    alignment_gain: float = 0.3
    alignment_exponent: float = 0.75
    penalty_threshold: float = 0.4
    penalty_gain: float = 0.12
    penalty_ramp: float = 0.2

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


# ============================================================
# NETWORK POSTURE
# ============================================================


def _default_tls_adjustments() -> Dict[str, float]:
    return {
        "TLS 1.0": 0.2,
        "TLS 1.1": 0.2,
        "TLS 1.2": 0.06,
        "TLS 1.3": -0.05,
    }


@dataclass(frozen=True)
class NetworkPostureConfig:
    """
    Additive adjustment from transport security observations.

    Weak posture (legacy or missing TLS, invalid certificate,
    missing security headers, no DNSSEC) raises risk; strong
    posture lowers it slightly. Strong posture alone never
    dominates vendor evidence.

    A weak posture beyond floor_threshold also sets a floor on
    the final normalized risk:
        floor = clamp(floor_base + (adjustment - floor_threshold) * floor_slope,
                      floor_base, floor_max)
    """

    required_headers: Tuple[str, ...] = (
        "Strict-Transport-Security",
        "Content-Security-Policy",
        "X-Frame-Options",
        "X-Content-Type-Options",
        "Referrer-Policy",
    )

    tls_adjustments: Dict[str, float] = field(default_factory=_default_tls_adjustments)
    missing_tls: float = 0.26
    unrecognized_tls: float = 0.02

    invalid_certificate: float = 0.22
    valid_certificate: float = -0.03

    missing_header: float = 0.03       # Per missing or blank header
    complete_headers: float = -0.05    # All required headers present

    dnssec_valid: float = -0.02
    dnssec_missing: float = 0.06

    min_adjustment: float = -0.12
    max_adjustment: float = 0.45

    floor_threshold: float = 0.22
    floor_base: float = 0.12
    floor_slope: float = 0.8
    floor_max: float = 0.6

    def to_dict(self) -> Dict[str, Any]:
        data = dataclasses.asdict(self)
        data["required_headers"] = list(self.required_headers)
        return data


# ============================================================
# SIGNAL BLENDING
# ============================================================


@dataclass(frozen=True)
class BlendConfig:
    """
    How vendor, ML, network and specialized signals combine.

    URL targets:
        base = vendor * url_vendor_weight + ml * url_ml_weight + boost + network
        (missing ML is imputed from vendor score and boost)

    FILE / VPN_CONFIG / INSTAGRAM targets:
        base = vendor * specialized_vendor_weight
             + report * specialized_report_weight
             + boost * specialized_boost_weight
        (missing report means vendor score alone)

    Unanimous CLEAN with a low ML probability dampens the URL result.
    """

    url_vendor_weight: float = 0.6
    url_ml_weight: float = 0.3
    ml_imputed_vendor_weight: float = 0.8
    ml_imputed_boost_weight: float = 0.2

    specialized_vendor_weight: float = 0.55
    specialized_report_weight: float = 0.45
    specialized_boost_weight: float = 0.5

    clean_dampening: float = 0.45
    clean_dampening_ml_threshold: float = 0.2

    risk_scale: float = 5.0

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


# ============================================================
# FUZZY MEMBERSHIP
# ============================================================


@dataclass(frozen=True)
class TriangularCurve:
    """Triangular membership: 0 outside (start, end), 1 at peak."""

    start: float
    peak: float
    end: float

    def to_dict(self) -> Dict[str, float]:
        return {"start": self.start, "peak": self.peak, "end": self.end}


def _default_curves() -> Dict[RiskCategory, TriangularCurve]:
    return {
        RiskCategory.MINIMAL: TriangularCurve(0.0, 0.0, 0.2),
        RiskCategory.LOW: TriangularCurve(0.15, 0.3, 0.45),
        RiskCategory.MEDIUM: TriangularCurve(0.35, 0.55, 0.75),
        RiskCategory.HIGH: TriangularCurve(0.65, 0.82, 0.95),
    }


@dataclass(frozen=True)
class MembershipConfig:
    """
    Category curves over the normalized risk in [0, 1].

    MINIMAL through HIGH are triangles; CRITICAL is a right
    shoulder rising from critical_start to 1. Adjacent curves
    overlap so every point has non-zero total membership.
    """

    curves: Dict[RiskCategory, TriangularCurve] = field(default_factory=_default_curves)
    critical_start: float = 0.85

    def to_dict(self) -> Dict[str, Any]:
        return {
            "curves": {c.value: curve.to_dict() for c, curve in self.curves.items()},
            "critical_start": self.critical_start,
        }


# ============================================================
# MASTER CONFIGURATION
# ============================================================


@dataclass(frozen=True)
class RiskScoringConfig:
    """
    Complete configuration for the Risk Scoring Engine.
    """

    provider_trust: ProviderTrustConfig = field(default_factory=ProviderTrustConfig)
    verdict_weights: VerdictWeightConfig = field(default_factory=VerdictWeightConfig)
    consensus: ConsensusConfig = field(default_factory=ConsensusConfig)
    confidence: ConfidenceConfig = field(default_factory=ConfidenceConfig)
    network: NetworkPostureConfig = field(default_factory=NetworkPostureConfig)
    blend: BlendConfig = field(default_factory=BlendConfig)
    membership: MembershipConfig = field(default_factory=MembershipConfig)

    engine_version: str = "1.0.0"

    def validate(self) -> None:
        """
        Check structural constraints.

        Raises:
            InvalidConfigurationError: On the first violated constraint
        """
        for provider, weight in self.provider_trust.weights.items():
            if weight <= 0:
                raise InvalidConfigurationError(
                    f"Trust weight for {provider.value} must be positive",
                    field_name="provider_trust.weights",
                )
        if self.provider_trust.default_weight <= 0:
            raise InvalidConfigurationError(
                "Default trust weight must be positive",
                field_name="provider_trust.default_weight",
            )
        missing = set(VerdictStatus) - set(self.verdict_weights.status_weights)
        if missing:
            raise InvalidConfigurationError(
                f"Missing status weights: {sorted(s.value for s in missing)}",
                field_name="verdict_weights.status_weights",
            )
        conf = self.confidence
        if conf.base_alignment <= 0 or conf.penalty_ramp < conf.penalty_threshold ** 2 * conf.penalty_gain / conf.base_alignment:
            raise InvalidConfigurationError(
                "penalty_ramp too small for the penalty size",
                field_name="confidence.penalty_ramp",
            )
        if self.network.min_adjustment > self.network.max_adjustment:
            raise InvalidConfigurationError(
                "Network adjustment bounds are inverted",
                field_name="network",
            )
        if set(self.membership.curves) != set(RiskCategory.all_categories()[:-1]):
            raise InvalidConfigurationError(
                "Membership curves must cover MINIMAL through HIGH",
                field_name="membership.curves",
            )
        for category, curve in self.membership.curves.items():
            if not curve.start <= curve.peak <= curve.end:
                raise InvalidConfigurationError(
                    f"Curve for {category.value} must satisfy start <= peak <= end",
                    field_name="membership.curves",
                )
        if not 0.0 <= self.membership.critical_start < 1.0:
            raise InvalidConfigurationError(
                "critical_start must be in [0, 1)",
                field_name="membership.critical_start",
            )
        if self.blend.risk_scale <= 0:
            raise InvalidConfigurationError("risk_scale must be positive", field_name="blend.risk_scale")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "engine_version": self.engine_version,
            "provider_trust": self.provider_trust.to_dict(),
            "verdict_weights": self.verdict_weights.to_dict(),
            "consensus": self.consensus.to_dict(),
            "confidence": self.confidence.to_dict(),
            "network": self.network.to_dict(),
            "blend": self.blend.to_dict(),
            "membership": self.membership.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RiskScoringConfig":
        """
        Build a configuration by overriding defaults.

        Scalar fields of consensus, confidence, network and blend are
        overridden by name; provider_trust accepts a provider -> weight map.
        """
        defaults = cls()
        trust = defaults.provider_trust
        if "provider_trust" in data:
            weights = dict(trust.weights)
            weights.update({Provider(name): float(w) for name, w in data["provider_trust"].items()})
            trust = dataclasses.replace(trust, weights=weights)

        config = dataclasses.replace(
            defaults,
            provider_trust=trust,
            consensus=dataclasses.replace(defaults.consensus, **data.get("consensus", {})),
            confidence=dataclasses.replace(defaults.confidence, **data.get("confidence", {})),
            network=dataclasses.replace(defaults.network, **data.get("network", {})),
            blend=dataclasses.replace(defaults.blend, **data.get("blend", {})),
        )
        config.validate()
        return config

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "RiskScoringConfig":
        """
        Load overrides from a YAML file.

        Raises:
            InvalidConfigurationError: If the file cannot be read or is invalid
        """
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
            return cls.from_dict(data)
        except (OSError, yaml.YAMLError, TypeError, ValueError) as e:
            raise InvalidConfigurationError(f"Cannot load scoring config from {path}: {e}") from e


def get_default_config() -> RiskScoringConfig:
    """Return the default calibrated configuration."""
    return RiskScoringConfig()
