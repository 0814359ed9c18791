"""
Advice Package for Heat Stress

Risk tier classification and precaution text.
"""

from .advisor import (
    RISK_THRESHOLDS,
    RISK_TIERS,
    RiskTier,
    classify_risk,
    risk_advice
)

__all__ = [
    'RISK_THRESHOLDS',
    'RISK_TIERS',
    'RiskTier',
    'classify_risk',
    'risk_advice'
]
