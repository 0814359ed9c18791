"""
Time Series Aggregation for Heat Stress

Reduces daily observations into yearly means, monthly summaries, a seasonal
heat calendar, a monthly peak grid, yearly exceedance-day counts and a linear
warming trend.

Grouping keys always come from the date string itself: characters [0:4] give
the year and [5:7] the month. Missing values (None/NaN) are dropped before
every reduction and never counted as zero. Inputs are never modified.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
import statsmodels.api as sm

from ..exceptions import DegenerateAggregation

MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
               "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

DANGER_THRESHOLD = 35.0
EXCEEDANCE_THRESHOLDS = (35.0, 40.0, 45.0)


@dataclass(frozen=True)
class DailyObservation:
    """One day of upstream data; temperatures may be missing"""
    date: str
    temperature_max: Optional[float]
    apparent_temperature_max: Optional[float]


@dataclass
class YearlySeries:
    years: List[int]
    means: List[float]


@dataclass
class MonthlySeries:
    labels: List[str]
    means: List[float]
    maxes: List[float]


@dataclass
class SeasonalCalendar:
    months: List[str]
    avg_max: List[Optional[float]]
    avg_apparent: List[Optional[float]]
    days_above_35: List[float]
    years_observed: int


@dataclass
class MonthlyPeakGrid:
    years: List[int]
    months: List[str]
    peaks: List[List[Optional[float]]]


@dataclass
class ExceedanceCounts:
    years: List[int]
    days_35: List[int]
    days_40: List[int]
    days_45: List[int]
    observed_days: List[int] = field(default_factory=list)


@dataclass
class TrendFit:
    """Ordinary least squares fit of yearly means against year"""
    slope: float
    intercept: float
    total_change: float
    first_year: int
    last_year: int
    r_value: float

    def fitted(self, years: Sequence[int]) -> List[float]:
        """Trend line values for the given years"""
        return [self.slope * year + self.intercept for year in years]


def _frame(dates: Sequence[str], **columns: Sequence[Optional[float]]) -> pd.DataFrame:
    """Build a working frame with year/month keys; the caller's lists are copied."""
    n = len(dates)
    for name, values in columns.items():
        if len(values) != n:
            raise ValueError(f"Length mismatch: {n} dates but {len(values)} values for '{name}'")

    df = pd.DataFrame({
        name: pd.Series(list(values), dtype="float64")
        for name, values in columns.items()
    })
    date_str = pd.Series([str(d) for d in dates], dtype="object")
    df["year"] = date_str.str.slice(0, 4)
    df["month"] = date_str.str.slice(5, 7)
    return df


def _nullable(value) -> Optional[float]:
    if pd.isna(value):
        return None
    return float(value)


def _month_index(df: pd.DataFrame) -> pd.Series:
    return pd.to_numeric(df["month"], errors="coerce") - 1


def observations_from_daily(daily: Dict) -> List[DailyObservation]:
    """
    Zip an upstream ``daily`` block into DailyObservation records.

    A missing temperature key yields None for every day.

    Raises:
        KeyError: If the block has no ``time`` array
        ValueError: If a temperature array is not aligned with ``time``
    """
    dates = daily["time"]
    columns = {}
    for key in ("temperature_2m_max", "apparent_temperature_max"):
        values = daily.get(key)
        if values is None:
            values = [None] * len(dates)
        if len(values) != len(dates):
            raise ValueError(f"Length mismatch: {len(dates)} dates but {len(values)} values for '{key}'")
        columns[key] = values
    return [DailyObservation(d, t, a) for d, t, a in
            zip(dates, columns["temperature_2m_max"], columns["apparent_temperature_max"])]


def split_observations(observations: Sequence[DailyObservation]
                       ) -> Tuple[List[str], List[Optional[float]], List[Optional[float]]]:
    """Split observations into aligned date, max and apparent max lists"""
    return ([o.date for o in observations],
            [o.temperature_max for o in observations],
            [o.apparent_temperature_max for o in observations])


def to_yearly(dates: Sequence[str], values: Sequence[Optional[float]]) -> YearlySeries:
    """
    Mean value per year.

    Args:
        dates: ISO-like date strings
        values: Values aligned with dates, None for missing

    Returns:
        YearlySeries with ascending years, one per year with a valid value
    """
    df = _frame(dates, value=values).dropna(subset=["value"])
    grouped = df.groupby("year", sort=True)["value"].mean()
    return YearlySeries(
        years=[int(year) for year in grouped.index],
        means=[float(mean) for mean in grouped.values],
    )


def to_monthly(dates: Sequence[str], values: Sequence[Optional[float]]) -> MonthlySeries:
    """Mean and max value per ``YYYY-MM``, labels ascending"""
    df = _frame(dates, value=values).dropna(subset=["value"])
    df["label"] = df["year"] + "-" + df["month"]
    grouped = df.groupby("label", sort=True)["value"].agg(["mean", "max"])
    return MonthlySeries(
        labels=list(grouped.index),
        means=[float(v) for v in grouped["mean"]],
        maxes=[float(v) for v in grouped["max"]],
    )


def seasonal_calendar(dates: Sequence[str],
                      tmax: Sequence[Optional[float]],
                      atmax: Sequence[Optional[float]],
                      window_years: Optional[int] = None) -> SeasonalCalendar:
    """
    Seasonal heat calendar across all years of the input.

    Each month holds the mean daily max, the mean apparent max, and the
    average number of days per year with apparent max at or above 35 °C.
    The per-year average divides by the number of distinct years that have
    apparent temperature data, unless window_years is given.

    Args:
        dates: ISO-like date strings
        tmax: Daily max temperature, None for missing
        atmax: Daily max apparent temperature, None for missing
        window_years: Fixed number of years to average over

    Returns:
        SeasonalCalendar with 12 slots, None means for empty months
    """
    if window_years is not None and window_years < 1:
        raise ValueError(f"window_years must be positive, got {window_years}")

    df = _frame(dates, tmax=tmax, atmax=atmax)
    df["m"] = _month_index(df)
    df = df.dropna(subset=["m"])
    df["m"] = df["m"].astype(int)

    months = range(12)
    avg_max = df.dropna(subset=["tmax"]).groupby("m")["tmax"].mean().reindex(months)
    apparent = df.dropna(subset=["atmax"])
    avg_apparent = apparent.groupby("m")["atmax"].mean().reindex(months)
    hot_days = (apparent[apparent["atmax"] >= DANGER_THRESHOLD]
                .groupby("m")["atmax"].size()
                .reindex(months, fill_value=0))

    years_observed = window_years if window_years is not None else int(apparent["year"].nunique())
    if years_observed:
        days_above = [float(count) / years_observed for count in hot_days]
    else:
        days_above = [0.0] * 12

    return SeasonalCalendar(
        months=list(MONTH_NAMES),
        avg_max=[_nullable(v) for v in avg_max],
        avg_apparent=[_nullable(v) for v in avg_apparent],
        days_above_35=days_above,
        years_observed=years_observed,
    )


def monthly_peak_grid(dates: Sequence[str], atmax: Sequence[Optional[float]]) -> MonthlyPeakGrid:
    """Year x month grid of peak apparent temperature, None for empty cells"""
    df = _frame(dates, atmax=atmax).dropna(subset=["atmax"])
    df["m"] = _month_index(df)
    df = df.dropna(subset=["m"])
    df["m"] = df["m"].astype(int)
    if df.empty:
        return MonthlyPeakGrid(years=[], months=list(MONTH_NAMES), peaks=[])

    grid = (df.groupby(["year", "m"])["atmax"].max()
            .unstack("m")
            .reindex(columns=range(12))
            .sort_index())

    return MonthlyPeakGrid(
        years=[int(year) for year in grid.index],
        months=list(MONTH_NAMES),
        peaks=[[_nullable(v) for v in row] for row in grid.itertuples(index=False)],
    )


def exceedance_counts(dates: Sequence[str], atmax: Sequence[Optional[float]]) -> ExceedanceCounts:
    """
    Days per year with apparent max at or above 35, 40 and 45 °C.

    Buckets are inclusive and cumulative: a 46 °C day counts in all three.
    """
    df = _frame(dates, atmax=atmax).dropna(subset=["atmax"])
    counts = pd.DataFrame({
        f"d{int(threshold)}": (df["atmax"] >= threshold).astype(int)
        for threshold in EXCEEDANCE_THRESHOLDS
    })
    counts["total"] = 1
    counts["year"] = df["year"]
    per_year = counts.groupby("year", sort=True).sum()

    return ExceedanceCounts(
        years=[int(year) for year in per_year.index],
        days_35=[int(v) for v in per_year["d35"]],
        days_40=[int(v) for v in per_year["d40"]],
        days_45=[int(v) for v in per_year["d45"]],
        observed_days=[int(v) for v in per_year["total"]],
    )


def linear_trend(yearly: YearlySeries) -> TrendFit:
    """
    Ordinary least squares trend of yearly means.

    Args:
        yearly: YearlySeries with ascending years

    Returns:
        TrendFit; total_change is slope times the span of years

    Raises:
        DegenerateAggregation: If fewer than two distinct years are present
    """
    if len(yearly.years) != len(yearly.means):
        raise ValueError("YearlySeries years and means differ in length")

    x = np.asarray(yearly.years, dtype=float)
    y = np.asarray(yearly.means, dtype=float)
    if len(np.unique(x)) < 2 or np.var(x) == 0:
        raise DegenerateAggregation(
            f"Trend fit needs at least two distinct years, got {len(np.unique(x))}"
        )

    model = sm.OLS(y, sm.add_constant(x)).fit()
    intercept, slope = (float(p) for p in model.params)
    first_year, last_year = int(yearly.years[0]), int(yearly.years[-1])
    return TrendFit(
        slope=slope,
        intercept=intercept,
        total_change=slope * (last_year - first_year),
        first_year=first_year,
        last_year=last_year,
        r_value=float(np.sign(slope) * np.sqrt(max(float(model.rsquared), 0.0))),
    )
