"""
Risk Scoring Engine - Package.

============================================================
PURPOSE
============================================================
Fuses heterogeneous scan evidence into one confidence-
weighted risk score in [0, 5] and a fuzzy category
breakdown.

============================================================
WHAT IT IS
============================================================
- Deterministic, pure evidence fusion
- Trust-weighted vendor aggregation with consensus
- Confidence-aware alignment toward vendor evidence
- Network posture adjustment with a weak-posture floor
- Overlapping fuzzy categories, not hard thresholds

============================================================
WHAT IT IS NOT
============================================================
- NOT a network client (see threat_intel)
- NOT stateful: nothing carries over between scans
- NOT a renderer or persistence layer

============================================================
CATEGORIES
============================================================
MINIMAL, LOW, MEDIUM, HIGH, CRITICAL with memberships that
sum to 1; the dominant category is the argmax.

============================================================
USAGE
============================================================
    from risk_scoring import RiskScorer, aggregate_risk
    from threat_intel import (
        EvidenceBundle,
        MlReport,
        Provider,
        TargetType,
        VendorVerdict,
        VerdictStatus,
    )

    bundle = EvidenceBundle(
        target_type=TargetType.URL,
        vendor_verdicts=(
            VendorVerdict(Provider.VIRUS_TOTAL, VerdictStatus.MALICIOUS, 0.95),
            VendorVerdict(Provider.URL_HAUS, VerdictStatus.MALICIOUS, 0.92),
        ),
        ml_report=MlReport(probability=0.87),
    )

    risk, breakdown = aggregate_risk(bundle)
    print(f"{risk:.2f} {breakdown.dominant_category.value}")

============================================================
"""

# Types
from .types import (
    RiskAssessment,
    RiskBreakdown,
    RiskCategory,
    VendorAggregate,
    # Exceptions
    InvalidConfigurationError,
    RiskScoringError,
)

# Configuration
from .config import (
    BlendConfig,
    ConfidenceConfig,
    ConsensusConfig,
    MembershipConfig,
    NetworkPostureConfig,
    ProviderTrustConfig,
    RiskScoringConfig,
    TriangularCurve,
    VerdictWeightConfig,
    get_default_config,
)

# Confidence
from .confidence import adjust_for_confidence

# Signals
from .signals import (
    aggregate_vendors,
    fuzzy_breakdown,
    network_adjustment,
    network_floor,
    verdict_severity,
)

# Engine
from .engine import (
    RiskScorer,
    aggregate_risk,
    format_risk_summary,
    get_category_from_risk,
    get_default_scorer,
)


__all__ = [
    # Types
    "RiskAssessment",
    "RiskBreakdown",
    "RiskCategory",
    "VendorAggregate",
    "InvalidConfigurationError",
    "RiskScoringError",
    # Configuration
    "BlendConfig",
    "ConfidenceConfig",
    "ConsensusConfig",
    "MembershipConfig",
    "NetworkPostureConfig",
    "ProviderTrustConfig",
    "RiskScoringConfig",
    "TriangularCurve",
    "VerdictWeightConfig",
    "get_default_config",
    # Confidence
    "adjust_for_confidence",
    # Signals
    "aggregate_vendors",
    "fuzzy_breakdown",
    "network_adjustment",
    "network_floor",
    "verdict_severity",
    # Engine
    "RiskScorer",
    "aggregate_risk",
    "format_risk_summary",
    "get_category_from_risk",
    "get_default_scorer",
]
