"""
Analysis Package for Heat Stress

Aggregates daily observations into yearly, monthly and seasonal summaries,
exceedance counts and warming trends.
"""

from .aggregator import (
    DailyObservation,
    ExceedanceCounts,
    MonthlyPeakGrid,
    MonthlySeries,
    SeasonalCalendar,
    TrendFit,
    YearlySeries,
    exceedance_counts,
    linear_trend,
    monthly_peak_grid,
    observations_from_daily,
    split_observations,
    seasonal_calendar,
    to_monthly,
    to_yearly
)

__all__ = [
    'DailyObservation',
    'ExceedanceCounts',
    'MonthlyPeakGrid',
    'MonthlySeries',
    'SeasonalCalendar',
    'TrendFit',
    'YearlySeries',
    'exceedance_counts',
    'linear_trend',
    'monthly_peak_grid',
    'observations_from_daily',
    'split_observations',
    'seasonal_calendar',
    'to_monthly',
    'to_yearly'
]
