"""
Derived display data for each dashboard region.

Pure functions turning decoded upstream payloads into the values handed to
the renderer. They raise KeyError, TypeError or ValueError on malformed
payloads and DegenerateAggregation when a trend cannot be fitted; the
pipeline turns those into region error messages.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..advice.advisor import RiskTier, classify_risk, risk_advice
from ..analysis.aggregator import (
    ExceedanceCounts,
    MonthlyPeakGrid,
    SeasonalCalendar,
    TrendFit,
    YearlySeries,
    exceedance_counts,
    linear_trend,
    monthly_peak_grid,
    observations_from_daily,
    seasonal_calendar,
    split_observations,
    to_yearly,
)
from ..core.calculations import HeatCalculations
from ..core.lookup import IndexFamily, LookupEngine, LookupTableCache, WorkLevel, effective_index

PROJECTION_KEY = "temperature_2m_max"
MULTI_MODEL_MEAN = "Multi-Model Mean"


@dataclass
class CurrentConditions:
    """Current readings with both heat stress indices and their risk tiers"""
    name: str
    temperature: float
    humidity: float
    apparent_temperature: Optional[float]
    wind_speed: Optional[float]
    heat_index: float
    heat_index_risk: RiskTier
    work_level: WorkLevel
    stress_index: float
    stress_family: IndexFamily
    stress_risk: RiskTier
    advice: str
    lookup_by_level: Dict[str, Optional[float]] = field(default_factory=dict)


@dataclass
class HistoricalSummary:
    seasonal: SeasonalCalendar
    peaks: MonthlyPeakGrid
    exceedance: ExceedanceCounts


@dataclass
class WarmingTrend:
    yearly: YearlySeries
    fit: TrendFit


def derive_current(payload: Dict[str, Any], name: str, cache: LookupTableCache,
                   level: WorkLevel = WorkLevel.MODERATE) -> CurrentConditions:
    """Current conditions card from a forecast ``current`` block"""
    current = payload["current"]
    temp = float(current["temperature_2m"])
    rh = float(current["relative_humidity_2m"])

    heat_index = HeatCalculations.heat_index(temp, rh)
    engine = LookupEngine(cache)
    by_level = {lvl.value: engine.lookup(temp, rh, lvl) for lvl in WorkLevel}

    stress, family = effective_index(temp, rh, level, cache)
    stress_risk = classify_risk(stress, family)

    apparent = current.get("apparent_temperature")
    wind = current.get("wind_speed_10m")
    return CurrentConditions(
        name=name,
        temperature=temp,
        humidity=rh,
        apparent_temperature=None if apparent is None else float(apparent),
        wind_speed=None if wind is None else float(wind),
        heat_index=heat_index,
        heat_index_risk=classify_risk(heat_index, IndexFamily.BASELINE),
        work_level=WorkLevel(level),
        stress_index=stress,
        stress_family=family,
        stress_risk=stress_risk,
        advice=risk_advice(stress_risk),
        lookup_by_level=by_level,
    )


def derive_projections(payload: Dict[str, Any]) -> Dict[str, YearlySeries]:
    """
    Yearly mean max temperature per climate model.

    ``temperature_2m_max_<MODEL>`` keys become one series each, named after the
    model with underscores as spaces. A bare ``temperature_2m_max`` key is the
    multi-model mean and is listed first.
    """
    daily = payload["daily"]
    dates = daily["time"]
    series: Dict[str, YearlySeries] = {}
    if PROJECTION_KEY in daily:
        series[MULTI_MODEL_MEAN] = to_yearly(dates, daily[PROJECTION_KEY])

    prefix = PROJECTION_KEY + "_"
    for key in daily:
        if key.startswith(prefix):
            model = key[len(prefix):].replace("_", " ") or "Model"
            series[model] = to_yearly(dates, daily[key])

    if not series:
        raise KeyError("No temperature_2m_max series in projection payload")
    return series


def derive_history(payload: Dict[str, Any]) -> HistoricalSummary:
    """Seasonal calendar, monthly peak grid and exceedance counts from the short window"""
    dates, tmax, atmax = split_observations(observations_from_daily(payload["daily"]))
    return HistoricalSummary(
        seasonal=seasonal_calendar(dates, tmax, atmax),
        peaks=monthly_peak_grid(dates, atmax),
        exceedance=exceedance_counts(dates, atmax),
    )


def derive_trend(payload: Dict[str, Any]) -> WarmingTrend:
    """Yearly mean max temperature and its linear trend from the long-term window"""
    dates, tmax, _ = split_observations(observations_from_daily(payload["daily"]))
    yearly = to_yearly(dates, tmax)
    return WarmingTrend(yearly=yearly, fit=linear_trend(yearly))
