"""
Example Usage of the Heat Stress Dashboard

Demonstrates the building blocks of the package: the baseline heat index,
risk tiers, lookup-table interpolation, aggregation of daily data and a
complete dashboard run against the live Open-Meteo API.
"""

import sys
import os

# Add the parent directory to the path to import heat_dashboard package
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from heat_dashboard import DashboardConfig, HeatDashboard, Region
from heat_dashboard.advice import classify_risk, risk_advice
from heat_dashboard.analysis import exceedance_counts, linear_trend, seasonal_calendar, to_yearly
from heat_dashboard.core import HeatCalculations, LookupTableCache, WorkLevel, effective_index
from heat_dashboard.utils import setup_logging


def run_index_example():
    """Baseline heat index and risk tiers for a few conditions"""
    print("🔥 Heat Stress Dashboard - Index Example")
    print("=" * 45)

    conditions = [(26.0, 40), (31.0, 55), (35.0, 60), (40.0, 10), (41.0, 75)]
    for temp, rh in conditions:
        hi = HeatCalculations.heat_index(temp, rh)
        tier = classify_risk(hi)
        print(f"   {temp:>5.1f}°C @ {rh:>3}% RH -> heat index {hi:5.1f}°C  [{tier.label}]")

    print(f"\n💡 At 35°C/60%: {risk_advice(classify_risk(HeatCalculations.heat_index(35.0, 60)))}")


def run_lookup_example():
    """Lookup-based index with an in-memory table and the baseline fallback"""
    print("\n📋 Lookup Table Example")
    print("=" * 45)

    table = {
        "moderate": {
            "32": {"60": 38.5},
            "33": {"60": 40.1},
        }
    }
    cache = LookupTableCache.from_mapping(table)
    for temp in (32.0, 32.5, 33.0, 36.0):
        value, family = effective_index(temp, 60, WorkLevel.MODERATE, cache)
        tier = classify_risk(value, family)
        print(f"   {temp:>4.1f}°C @ 60% -> {value:5.1f}°C via {family.value:<8} [{tier.label}]")


def run_aggregation_example():
    """Seasonal calendar, exceedance counts and a warming trend from synthetic data"""
    print("\n📈 Aggregation Example")
    print("=" * 45)

    dates, tmax, atmax = [], [], []
    for year in range(2015, 2025):
        for month in range(1, 13):
            for day in (5, 15, 25):
                base = 22 + 12 * (1 - abs(month - 7) / 6) + 0.08 * (year - 2015)
                dates.append(f"{year}-{month:02d}-{day:02d}")
                tmax.append(round(base + (day - 15) * 0.1, 1))
                atmax.append(round(base + 3 + (day - 15) * 0.15, 1))

    cal = seasonal_calendar(dates, tmax, atmax)
    hottest = max(range(12), key=lambda m: cal.avg_apparent[m] or 0)
    print(f"   Hottest month: {cal.months[hottest]} "
          f"(avg apparent max {cal.avg_apparent[hottest]:.1f}°C, "
          f"{cal.days_above_35[hottest]:.1f} danger days/year)")

    counts = exceedance_counts(dates, atmax)
    print(f"   Days ≥35°C in {counts.years[-1]}: {counts.days_35[-1]}")

    fit = linear_trend(to_yearly(dates, tmax))
    print(f"   Trend {fit.first_year}-{fit.last_year}: {fit.total_change:+.2f}°C "
          f"({fit.slope * 10:+.2f}°C per decade)")


def run_dashboard_example(output_dir="example_output"):
    """Complete run against the live API (needs network access)"""
    print("\n🌍 Live Dashboard Example")
    print("=" * 45)

    setup_logging("INFO")
    dashboard = HeatDashboard(25.2, 55.3, "Dubai", output_dir, config=DashboardConfig.from_env())
    report = dashboard.run_sync()

    for region in Region:
        outcome = report.outcomes.get(region)
        status = "✅" if report.succeeded(region) else f"❌ {outcome.error if outcome else ''}"
        print(f"   {region.value:<12} {status}")
    print(f"\n📁 Figures written to {output_dir}")


if __name__ == "__main__":
    run_index_example()
    run_lookup_example()
    run_aggregation_example()
    if "--live" in sys.argv:
        run_dashboard_example()
