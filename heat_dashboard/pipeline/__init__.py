"""
Data acquisition pipeline and per-region derived results.
"""

from .acquisition import (
    AcquisitionPipeline,
    PhaseSequencer,
    PhaseStatus,
    PipelineReport,
    Region,
    RegionOutcome,
)
from .derived import (
    CurrentConditions,
    HistoricalSummary,
    WarmingTrend,
    derive_current,
    derive_history,
    derive_projections,
    derive_trend,
)

__all__ = [
    "AcquisitionPipeline",
    "PhaseSequencer",
    "PhaseStatus",
    "PipelineReport",
    "Region",
    "RegionOutcome",
    "CurrentConditions",
    "HistoricalSummary",
    "WarmingTrend",
    "derive_current",
    "derive_history",
    "derive_projections",
    "derive_trend",
]
