"""
Risk Scoring Engine - Signal Extractors.

============================================================
PURPOSE
============================================================
Pure functions that turn raw evidence into the scalar
signals the engine blends:

1. verdict_severity    - one verdict -> severity in [0, 1]
2. aggregate_vendors   - all verdicts -> VendorAggregate
3. network_adjustment  - NetworkReport -> additive adjustment
4. network_floor       - adjustment -> minimum final risk
5. fuzzy_breakdown     - normalized risk -> RiskBreakdown

============================================================
INVARIANTS
============================================================
- No function raises on well-typed input
- Non-finite numbers are treated as 0
- Outputs are clamped to their documented ranges

============================================================
"""

import math
from typing import Dict, Iterable, Optional

from threat_intel.models import NetworkReport, VendorVerdict, VerdictStatus

from .config import (
    ConsensusConfig,
    MembershipConfig,
    NetworkPostureConfig,
    ProviderTrustConfig,
    TriangularCurve,
    VerdictWeightConfig,
)
from .types import RiskBreakdown, RiskCategory, VendorAggregate


def clamp(value: float, lower: float, upper: float) -> float:
    if not math.isfinite(value):
        value = 0.0
    return max(lower, min(upper, value))


def clamp01(value: float) -> float:
    return clamp(value, 0.0, 1.0)


# ============================================================
# VENDOR VERDICTS
# ============================================================


def verdict_severity(verdict: VendorVerdict, config: VerdictWeightConfig) -> float:
    """Blend a verdict's status weight and score into a severity in [0, 1]."""
    status_weight = config.status_weights.get(verdict.status, 0.0)
    severity = clamp01(status_weight * config.status_blend + clamp01(verdict.score) * config.score_blend)
    cap = config.provider_caps.get(verdict.provider)
    if cap is not None:
        severity = min(severity, cap)
    return severity


def consensus_boost(
    malicious: int,
    suspicious: int,
    clean: int,
    total: int,
    config: ConsensusConfig,
) -> float:
    """Agreement adjustment; see ConsensusConfig for the rules."""
    boost = 0.0
    if malicious >= config.min_malicious:
        boost += config.multi_malicious_boost
    elif malicious == 1 and suspicious >= 1:
        boost += config.mixed_boost

    broad = malicious >= config.min_malicious and malicious + suspicious >= config.broad_consensus_flagged
    if suspicious >= config.min_suspicious or broad:
        boost += config.suspicious_boost

    if total > 0 and clean == total:
        boost -= config.clean_penalty

    return clamp(boost, config.min_boost, config.max_boost)


def aggregate_vendors(
    verdicts: Iterable[VendorVerdict],
    trust: ProviderTrustConfig,
    weights: VerdictWeightConfig,
    consensus: ConsensusConfig,
) -> VendorAggregate:
    """
    Trust-weighted vendor severity, consensus boost and confidence.

    An empty verdict list yields an all-zero aggregate.
    """
    verdicts = list(verdicts)
    if not verdicts:
        return VendorAggregate()

    weighted_sum = 0.0
    weight_total = 0.0
    counts: Dict[VerdictStatus, int] = {status: 0 for status in VerdictStatus}

    for verdict in verdicts:
        reliability = trust.weight_for(verdict.provider)
        weighted_sum += verdict_severity(verdict, weights) * reliability
        weight_total += reliability
        counts[verdict.status] += 1

    score = clamp01(weighted_sum / weight_total) if weight_total > 0 else 0.0

    malicious = counts[VerdictStatus.MALICIOUS]
    suspicious = counts[VerdictStatus.SUSPICIOUS]
    clean = counts[VerdictStatus.CLEAN]
    inconclusive = counts[VerdictStatus.UNKNOWN] + counts[VerdictStatus.ERROR]
    total = len(verdicts)

    return VendorAggregate(
        score=score,
        consensus_boost=consensus_boost(malicious, suspicious, clean, total, consensus),
        confidence=(total - inconclusive) / total,
        malicious_count=malicious,
        suspicious_count=suspicious,
        clean_count=clean,
        inconclusive_count=inconclusive,
    )


# ============================================================
# NETWORK POSTURE
# ============================================================


def network_adjustment(report: Optional[NetworkReport], config: NetworkPostureConfig) -> float:
    """
    Additive risk adjustment from network posture.

    No report means no adjustment.
    """
    if report is None:
        return 0.0

    adjustment = 0.0

    if report.tls_version is None:
        adjustment += config.missing_tls
    else:
        adjustment += config.tls_adjustments.get(report.tls_version.strip(), config.unrecognized_tls)

    if report.cert_valid is False:
        adjustment += config.invalid_certificate
    elif report.cert_valid is True:
        adjustment += config.valid_certificate

    missing = report.missing_headers(config.required_headers)
    adjustment += config.missing_header * len(missing)
    if not missing and report.headers:
        adjustment += config.complete_headers

    if report.dnssec_signal is True:
        adjustment += config.dnssec_valid
    elif report.dnssec_signal is False:
        adjustment += config.dnssec_missing

    return clamp(adjustment, config.min_adjustment, config.max_adjustment)


def network_floor(adjustment: float, config: NetworkPostureConfig) -> float:
    """Minimum normalized risk implied by a weak posture; 0 below the threshold."""
    if adjustment <= config.floor_threshold:
        return 0.0
    return clamp(
        config.floor_base + (adjustment - config.floor_threshold) * config.floor_slope,
        config.floor_base,
        config.floor_max,
    )


# ============================================================
# FUZZY CATEGORIZATION
# ============================================================


def triangular(x: float, curve: TriangularCurve) -> float:
    """Triangular membership; a degenerate left edge (start == peak) is a left shoulder."""
    if x <= curve.start:
        return 1.0 if x == curve.start and curve.start == curve.peak else 0.0
    if x >= curve.end:
        return 0.0
    if x <= curve.peak:
        return (x - curve.start) / (curve.peak - curve.start)
    return (curve.end - x) / (curve.end - curve.peak)


def right_shoulder(x: float, start: float) -> float:
    if x <= start:
        return 0.0
    return clamp01((x - start) / (1.0 - start))


def fuzzy_breakdown(normalized: float, config: MembershipConfig) -> RiskBreakdown:
    """
    Category memberships of a normalized risk, rescaled to sum to 1.

    Rescaling keeps the ordering of memberships, so the dominant
    category is the one whose raw curve is highest.
    """
    x = clamp01(normalized)
    raw = {category: triangular(x, curve) for category, curve in config.curves.items()}
    raw[RiskCategory.CRITICAL] = right_shoulder(x, config.critical_start)

    total = sum(raw.values())
    if total <= 0:
        # Gap between curves; the whole mass goes to the nearest peak
        peaks = {category: curve.peak for category, curve in config.curves.items()}
        peaks[RiskCategory.CRITICAL] = 1.0
        nearest = min(peaks, key=lambda c: abs(peaks[c] - x))
        raw = {nearest: 1.0}
        total = 1.0

    return RiskBreakdown(
        categories={c: raw.get(c, 0.0) / total for c in RiskCategory.all_categories()}
    )
