"""
Risk Scoring Engine - Main Engine.

============================================================
PURPOSE
============================================================
Fuses the evidence of one scan into a scalar risk in [0, 5]
and a fuzzy category breakdown.

============================================================
PIPELINE
============================================================
1. Vendor verdicts -> trust-weighted severity, consensus
   boost and confidence
2. Network posture -> additive adjustment and risk floor
3. Blend by target type:
   - URL: vendor, ML probability, boost, network
   - FILE / VPN_CONFIG / INSTAGRAM: vendor, specialized
     report risk, boost
4. Confidence-aware alignment toward the vendor severity
5. URL only: dampen unanimous CLEAN with low ML, then
   apply the network floor
6. Scale to [0, 5] and categorize

============================================================
GUARANTEES
============================================================
- Pure and deterministic: same bundle, same result
- Never raises on a well-formed bundle
- risk in [0, 5]; breakdown sums to 1
- Upgrading a vendor verdict along CLEAN -> SUSPICIOUS ->
  MALICIOUS at equal or higher score never lowers risk

============================================================
"""

import logging
from typing import Optional, Tuple

from threat_intel.models import EvidenceBundle, TargetType, VerdictStatus

from .confidence import adjust_for_confidence
from .config import RiskScoringConfig
from .signals import (
    aggregate_vendors,
    clamp,
    clamp01,
    fuzzy_breakdown,
    network_adjustment,
    network_floor,
)
from .types import RiskAssessment, RiskBreakdown, RiskCategory, VendorAggregate


logger = logging.getLogger(__name__)


class RiskScorer:
    """
    Evidence fusion engine.

    ============================================================
    USAGE
    ============================================================
    ```python
    scorer = RiskScorer()
    risk, breakdown = scorer.aggregate_risk(bundle)

    assessment = scorer.assess(bundle)
    print(assessment.dominant_category, assessment.to_dict())
    ```

    ============================================================
    STATELESS
    ============================================================
    The scorer holds only its configuration, so one instance
    can serve concurrent scans.

    ============================================================
    """

    def __init__(self, config: Optional[RiskScoringConfig] = None):
        """
        Initialize the Risk Scorer.

        Args:
            config: Calibration constants. Uses defaults if not provided.

        Raises:
            InvalidConfigurationError: If the configuration is inconsistent
        """
        self.config = config or RiskScoringConfig()
        self.config.validate()

    def aggregate_risk(self, bundle: EvidenceBundle) -> Tuple[float, RiskBreakdown]:
        """
        Score a bundle.

        Returns:
            (risk in [0, 5], category breakdown)
        """
        assessment = self.assess(bundle)
        return assessment.risk, assessment.breakdown

    def assess(self, bundle: EvidenceBundle) -> RiskAssessment:
        """
        Score a bundle and keep the intermediate components.

        Args:
            bundle: Evidence gathered for one scan

        Returns:
            RiskAssessment
        """
        cfg = self.config

        # --------------------------------------------------
        # Step 1: Vendor aggregate
        # --------------------------------------------------
        vendor = aggregate_vendors(
            bundle.vendor_verdicts,
            cfg.provider_trust,
            cfg.verdict_weights,
            cfg.consensus,
        )

        # --------------------------------------------------
        # Step 2: Network posture
        # --------------------------------------------------
        net_adjustment = network_adjustment(bundle.network_report, cfg.network)
        floor = 0.0

        # --------------------------------------------------
        # Step 3-5: Target-specific blend
        # --------------------------------------------------
        ml_signal = bundle.ml_report.probability if bundle.ml_report is not None else None
        specialized_signal = None

        if bundle.target_type == TargetType.URL:
            floor = network_floor(net_adjustment, cfg.network)
            normalized = self._combine_url(vendor, ml_signal, net_adjustment, floor, bundle)
        else:
            report = bundle.specialized_report
            specialized_signal = report.risk_score if report is not None else None
            normalized = self._combine_specialized(vendor, specialized_signal)

        # --------------------------------------------------
        # Step 6: Scale and categorize
        # --------------------------------------------------
        normalized = clamp01(normalized)
        risk = clamp(normalized * cfg.blend.risk_scale, 0.0, cfg.blend.risk_scale)
        breakdown = fuzzy_breakdown(normalized, cfg.membership)

        logger.debug(
            f"Scored {bundle.target_type.value} bundle: risk={risk:.3f} "
            f"({breakdown.dominant_category.value}), vendor={vendor.score:.3f}, "
            f"confidence={vendor.confidence:.2f}, network={net_adjustment:+.3f}"
        )

        return RiskAssessment(
            risk=risk,
            normalized_risk=normalized,
            breakdown=breakdown,
            vendor_aggregate=vendor,
            network_adjustment=net_adjustment,
            network_floor=floor,
            ml_signal=ml_signal,
            specialized_signal=specialized_signal,
        )

    def _combine_url(
        self,
        vendor: VendorAggregate,
        ml_signal: Optional[float],
        net_adjustment: float,
        floor: float,
        bundle: EvidenceBundle,
    ) -> float:
        blend = self.config.blend

        # Missing ML is imputed from the vendor side rather than read as 0
        if ml_signal is None:
            ml_component = vendor.score * blend.ml_imputed_vendor_weight + vendor.consensus_boost * blend.ml_imputed_boost_weight
        else:
            ml_component = ml_signal

        base = clamp01(
            vendor.score * blend.url_vendor_weight
            + ml_component * blend.url_ml_weight
            + vendor.consensus_boost
            + net_adjustment
        )
        adjusted = adjust_for_confidence(base, vendor.score, vendor.confidence, self.config.confidence)

        all_clean = bool(bundle.vendor_verdicts) and all(
            v.status == VerdictStatus.CLEAN for v in bundle.vendor_verdicts
        )
        if all_clean and (ml_signal or 0.0) < blend.clean_dampening_ml_threshold:
            adjusted *= blend.clean_dampening

        return max(adjusted, floor)

    def _combine_specialized(self, vendor: VendorAggregate, specialized_signal: Optional[float]) -> float:
        blend = self.config.blend

        if specialized_signal is None:
            base = vendor.score
        else:
            base = vendor.score * blend.specialized_vendor_weight + specialized_signal * blend.specialized_report_weight
        base = clamp01(base + vendor.consensus_boost * blend.specialized_boost_weight)

        return adjust_for_confidence(base, vendor.score, vendor.confidence, self.config.confidence)

    def get_config(self) -> RiskScoringConfig:
        """Return the current engine configuration."""
        return self.config


# ============================================================
# CONVENIENCE FUNCTIONS
# ============================================================


_default_scorer: Optional[RiskScorer] = None


def get_default_scorer() -> RiskScorer:
    """Get the shared scorer built from the default configuration."""
    global _default_scorer
    if _default_scorer is None:
        _default_scorer = RiskScorer()
    return _default_scorer


def aggregate_risk(
    bundle: EvidenceBundle,
    config: Optional[RiskScoringConfig] = None,
) -> Tuple[float, RiskBreakdown]:
    """
    Convenience function to score a bundle.

    Args:
        bundle: Evidence gathered for one scan
        config: Optional configuration

    Returns:
        (risk in [0, 5], category breakdown)
    """
    scorer = RiskScorer(config) if config is not None else get_default_scorer()
    return scorer.aggregate_risk(bundle)


def get_category_from_risk(risk: float, config: Optional[RiskScoringConfig] = None) -> RiskCategory:
    """Dominant category of a risk value on the [0, 5] scale."""
    cfg = config or RiskScoringConfig()
    normalized = clamp01(risk / cfg.blend.risk_scale)
    return fuzzy_breakdown(normalized, cfg.membership).dominant_category


def format_risk_summary(assessment: RiskAssessment) -> str:
    """
    Format an assessment as a human-readable summary.

    Args:
        assessment: Result of RiskScorer.assess()

    Returns:
        Multi-line summary string
    """
    vendor = assessment.vendor_aggregate
    lines = [
        f"Risk: {assessment.risk:.2f}/5 ({assessment.dominant_category.value.upper()})",
        f"Vendors: {vendor.malicious_count} malicious, {vendor.suspicious_count} suspicious, "
        f"{vendor.clean_count} clean, {vendor.inconclusive_count} inconclusive "
        f"(confidence {vendor.confidence:.0%})",
        f"Network adjustment: {assessment.network_adjustment:+.3f}",
    ]
    if assessment.ml_signal is not None:
        lines.append(f"ML probability: {assessment.ml_signal:.2f}")
    if assessment.specialized_signal is not None:
        lines.append(f"Specialized report: {assessment.specialized_signal:.2f}")
    lines.append(
        "Breakdown: " + ", ".join(
            f"{c.value}={m:.2f}" for c, m in assessment.breakdown.categories.items() if m > 0
        )
    )
    return "\n".join(lines)
