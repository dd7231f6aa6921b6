"""
Risk Scoring Engine - Confidence Adjuster.

============================================================
PURPOSE
============================================================
Pulls a blended risk value toward the directional vendor
signal, harder when the vendors were confident, and
discounts upward pulls backed by very low confidence.

    alignment = base + confidence ** exponent * gain
    aligned   = value + (signal - value) * alignment
    penalty   = (threshold - confidence) ** 2 * penalty_gain
                * clamp((signal - value) / penalty_ramp, 0, 1)
                (only when confidence < threshold)
    result    = clamp(aligned - penalty, 0, 1)

The ramp phases the penalty in over the first penalty_ramp
of upward gap, so the result stays continuous and
non-decreasing in the signal.

============================================================
PROPERTIES
============================================================
For fixed value and signal in [0, 1]:
- Malicious signal (signal > value): higher confidence
  never yields a lower result
- Clean signal (signal < value): higher confidence never
  yields a higher result
- Below the threshold, lower confidence yields a strictly
  lower result for a malicious signal

============================================================
"""

import math
from typing import Optional

from .config import ConfidenceConfig


_DEFAULT = ConfidenceConfig()


def _unit(value: float) -> float:
    if not math.isfinite(value):
        return 0.0
    return max(0.0, min(1.0, value))


def adjust_for_confidence(
    base: float,
    directional_signal: float,
    confidence: float,
    config: Optional[ConfidenceConfig] = None,
) -> float:
    """
    Apply confidence-aware alignment to a risk value.

    Args:
        base: Blended risk value in [0, 1]
        directional_signal: Vendor severity the value is pulled toward
        confidence: Fraction of conclusive vendor answers in [0, 1]
        config: Calibration constants (defaults if omitted)

    Returns:
        Adjusted value in [0, 1]
    """
    cfg = config or _DEFAULT
    value = _unit(base)
    signal = _unit(directional_signal)
    conf = _unit(confidence)

    alignment = cfg.base_alignment + (conf ** cfg.alignment_exponent) * cfg.alignment_gain
    aligned = value + (signal - value) * alignment

    penalty = 0.0
    if conf < cfg.penalty_threshold and signal > value:
        ramp = min(1.0, (signal - value) / cfg.penalty_ramp)
        penalty = (cfg.penalty_threshold - conf) ** 2 * cfg.penalty_gain * ramp

    return _unit(aligned - penalty)
