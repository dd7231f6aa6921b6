"""
Risk Scoring Engine - Type Definitions.

============================================================
PURPOSE
============================================================
Data contracts for the Risk Scoring Engine.

The engine consumes an EvidenceBundle (threat_intel.models)
and produces a scalar risk in [0, 5] plus a fuzzy category
breakdown. This module defines the output side and the
intermediate signal types.

============================================================
DESIGN PRINCIPLES
============================================================
- All types are immutable
- Enums for discrete categories
- Dataclasses for structured data
- Every output type serializes with to_dict()

============================================================
RISK CATEGORIES
============================================================
Five overlapping fuzzy categories:

1. MINIMAL  - No credible threat signal
2. LOW      - Weak or isolated signals
3. MEDIUM   - Mixed or partially corroborated signals
4. HIGH     - Corroborated threat signals
5. CRITICAL - Strong consensus of malicious intent

A breakdown assigns every category a membership in [0, 1];
memberships always sum to 1.

============================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4


# ============================================================
# ENUMS
# ============================================================


class RiskCategory(str, Enum):
    """
    Fuzzy risk categories in increasing order of severity.
    """

    MINIMAL = "minimal"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @classmethod
    def all_categories(cls) -> List["RiskCategory"]:
        """Return all categories in severity order."""
        return [cls.MINIMAL, cls.LOW, cls.MEDIUM, cls.HIGH, cls.CRITICAL]

    @property
    def severity_order(self) -> int:
        """Numeric ordering for severity comparison."""
        return RiskCategory.all_categories().index(self)


# ============================================================
# INTERMEDIATE SIGNALS
# ============================================================


@dataclass(frozen=True)
class VendorAggregate:
    """
    Trust-weighted summary of all vendor verdicts.

    score: weighted severity in [0, 1]
    consensus_boost: agreement adjustment, negative for unanimous CLEAN
    confidence: fraction of verdicts that were conclusive
    """

    score: float = 0.0
    consensus_boost: float = 0.0
    confidence: float = 0.0
    malicious_count: int = 0
    suspicious_count: int = 0
    clean_count: int = 0
    inconclusive_count: int = 0

    @property
    def total_count(self) -> int:
        return self.malicious_count + self.suspicious_count + self.clean_count + self.inconclusive_count

    @property
    def all_clean(self) -> bool:
        return self.total_count > 0 and self.clean_count == self.total_count

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": round(self.score, 6),
            "consensus_boost": round(self.consensus_boost, 6),
            "confidence": round(self.confidence, 6),
            "malicious_count": self.malicious_count,
            "suspicious_count": self.suspicious_count,
            "clean_count": self.clean_count,
            "inconclusive_count": self.inconclusive_count,
        }


# ============================================================
# OUTPUT DATA CONTRACTS
# ============================================================


@dataclass(frozen=True)
class RiskBreakdown:
    """
    Fuzzy membership of a risk value in each category.

    Values are non-negative and sum to 1.
    """

    categories: Dict[RiskCategory, float] = field(default_factory=dict)

    def membership(self, category: RiskCategory) -> float:
        return self.categories.get(category, 0.0)

    @property
    def dominant_category(self) -> RiskCategory:
        """Category with the highest membership; ties go to the less severe one."""
        return max(
            RiskCategory.all_categories(),
            key=lambda c: (self.membership(c), -c.severity_order),
        )

    def to_dict(self) -> Dict[str, float]:
        return {c.value: round(self.membership(c), 6) for c in RiskCategory.all_categories()}


@dataclass(frozen=True)
class RiskAssessment:
    """
    Complete result of one risk aggregation.

    Carries the intermediate components so a result can be explained
    without re-running the engine.
    """

    risk: float
    normalized_risk: float
    breakdown: RiskBreakdown
    vendor_aggregate: VendorAggregate
    network_adjustment: float
    network_floor: float
    ml_signal: Optional[float]
    specialized_signal: Optional[float]
    assessment_id: UUID = field(default_factory=uuid4)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def dominant_category(self) -> RiskCategory:
        return self.breakdown.dominant_category

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "assessment_id": str(self.assessment_id),
            "risk": round(self.risk, 6),
            "normalized_risk": round(self.normalized_risk, 6),
            "dominant_category": self.dominant_category.value,
            "breakdown": self.breakdown.to_dict(),
            "components": {
                "vendor": self.vendor_aggregate.to_dict(),
                "network_adjustment": round(self.network_adjustment, 6),
                "network_floor": round(self.network_floor, 6),
                "ml_signal": self.ml_signal,
                "specialized_signal": self.specialized_signal,
            },
            "timestamp": self.timestamp.isoformat(),
        }


# ============================================================
# EXCEPTIONS
# ============================================================


class RiskScoringError(Exception):
    """Base exception for risk scoring errors."""
    pass


class InvalidConfigurationError(RiskScoringError):
    """Raised when a scoring configuration violates its constraints."""

    def __init__(self, message: str, field_name: Optional[str] = None) -> None:
        super().__init__(message)
        self.field_name = field_name
