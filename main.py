#!/usr/bin/env python3
"""
Main entry point for the Heat Stress Dashboard.

This script fetches live, historical and projected temperature data for a
location, derives heat stress indices and writes one figure per dashboard
region into an output directory.
"""

import sys
import argparse

from heat_dashboard import DashboardConfig, HeatDashboard, Region, WorkLevel
from heat_dashboard.utils.logging_config import setup_logging


def main():
    """Main function for command-line interface."""
    parser = argparse.ArgumentParser(
        description="Heat Stress Dashboard",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --lat 25.2 --lon 55.3 --name Dubai --output out/dubai
  python main.py --lat 33.4 --lon -112.1 --name Phoenix --level heavy --table ehi.json
  python main.py --help                 # Show this help
        """
    )

    parser.add_argument("--lat", type=float, required=True, help="Latitude in degrees")
    parser.add_argument("--lon", type=float, required=True, help="Longitude in degrees")
    parser.add_argument("--name", type=str, required=True, help="Display name of the location")
    parser.add_argument(
        "--output",
        type=str,
        default="heat_dashboard_output",
        help="Directory for the generated figures"
    )
    parser.add_argument(
        "--level",
        choices=[level.value for level in WorkLevel],
        help="Work intensity for the lookup-based heat stress index"
    )
    parser.add_argument("--table", type=str, help="Path or URL of the heat stress lookup table")
    parser.add_argument(
        "--no-delay",
        action="store_true",
        help="Skip the rate-limit pauses between phases and chunks"
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--version",
        action="version",
        version="Heat Stress Dashboard v1.0.0"
    )

    args = parser.parse_args()
    setup_logging("DEBUG" if args.verbose else "INFO")

    try:
        config = DashboardConfig.from_env()
        overrides = {}
        if args.level:
            overrides["work_level"] = args.level
        if args.table:
            overrides["table_source"] = args.table
        config = config.with_overrides(**overrides)
        if args.no_delay:
            config = config.without_delays()

        dashboard = HeatDashboard(args.lat, args.lon, args.name, args.output, config=config)
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(2)

    print(f"\n🌡️  Heat stress dashboard for {args.name} ({args.lat}, {args.lon})")
    report = dashboard.run_sync()

    print(f"\n📊 RESULTS (lookup table: {report.table_state.value})")
    for region in Region:
        outcome = report.outcomes.get(region)
        if outcome is None:
            continue
        if outcome.error is None:
            print(f"   ✅ {region.value:<12} rendered")
        else:
            print(f"   ❌ {region.value:<12} {outcome.error}")

    print(f"\n📁 Figures written to {args.output}")
    sys.exit(0 if report.any_succeeded else 1)


if __name__ == "__main__":
    main()
