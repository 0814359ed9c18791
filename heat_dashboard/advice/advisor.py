"""
Heat Stress Risk Classification

Maps a heat stress index to one of five ordered risk tiers and provides the
precaution text shown next to the current conditions.
"""

from dataclasses import dataclass
from typing import Dict, List, Tuple, Union

from ..core.lookup import IndexFamily


@dataclass(frozen=True)
class RiskTier:
    """A risk tier with its display color; severity 0 is the safest."""
    label: str
    color: str
    severity: int


RISK_TIERS: List[RiskTier] = [
    RiskTier("Safe", "#4caf50", 0),
    RiskTier("Caution", "#ffeb3b", 1),
    RiskTier("Extreme Caution", "#ff9800", 2),
    RiskTier("Danger", "#f44336", 3),
    RiskTier("Extreme Danger", "#b71c1c", 4),
]

# Upper bounds (°C, exclusive) of the first four tiers
RISK_THRESHOLDS: Dict[IndexFamily, Tuple[float, float, float, float]] = {
    IndexFamily.BASELINE: (27.0, 32.0, 39.0, 51.0),
    IndexFamily.LOOKUP: (26.0, 31.0, 37.0, 45.0),
}

RISK_ADVICE: Dict[str, str] = {
    "Safe": "Normal activity. Stay hydrated.",
    "Caution": "Fatigue possible with prolonged exposure and activity.",
    "Extreme Caution": "Heat cramps and exhaustion possible; schedule regular rest in shade.",
    "Danger": "Heat exhaustion likely; limit strenuous work and drink water every 15-20 minutes.",
    "Extreme Danger": "Heat stroke highly likely; stop strenuous outdoor work.",
}


def classify_risk(value: float, family: Union[IndexFamily, str] = IndexFamily.BASELINE) -> RiskTier:
    """
    Classify a heat stress index into a risk tier.

    Args:
        value: Index value in Celsius
        family: Engine that produced the value; each has its own thresholds

    Returns:
        The first tier whose threshold the value is strictly below,
        or Extreme Danger when it is above all of them
    """
    thresholds = RISK_THRESHOLDS[IndexFamily(family)]
    for tier, upper in zip(RISK_TIERS, thresholds):
        if value < upper:
            return tier
    return RISK_TIERS[-1]


def risk_advice(tier: RiskTier) -> str:
    """Short precaution text for a risk tier"""
    return RISK_ADVICE[tier.label]
