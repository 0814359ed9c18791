"""
Heat Stress Dashboard Package

Fetches current conditions, historical observations and climate projections
for a location and turns them into heat stress indices, risk tiers and
seasonal/long-term summaries.
"""

import asyncio
from pathlib import Path
from typing import Optional, Union

from .advice.advisor import RiskTier, classify_risk
from .analysis.aggregator import (
    exceedance_counts,
    linear_trend,
    monthly_peak_grid,
    seasonal_calendar,
    to_monthly,
    to_yearly,
)
from .config import DashboardConfig
from .core.calculations import HeatCalculations
from .core.lookup import IndexFamily, LookupEngine, LookupTableCache, WorkLevel
from .exceptions import (
    DegenerateAggregation,
    FetchError,
    HeatDashboardError,
    RateLimited,
    TableUnavailable,
)
from .io.fetch_client import FetchClient, RetryPolicy
from .pipeline.acquisition import AcquisitionPipeline, PipelineReport, Region
from .visualization.visualizer import Renderer, Visualizer

__version__ = "1.0.0"

__all__ = [
    "HeatDashboard",
    "DashboardConfig",
    "HeatCalculations",
    "IndexFamily",
    "LookupEngine",
    "LookupTableCache",
    "WorkLevel",
    "RiskTier",
    "classify_risk",
    "to_yearly",
    "to_monthly",
    "seasonal_calendar",
    "monthly_peak_grid",
    "exceedance_counts",
    "linear_trend",
    "FetchClient",
    "RetryPolicy",
    "AcquisitionPipeline",
    "PipelineReport",
    "Region",
    "Renderer",
    "Visualizer",
    "HeatDashboardError",
    "TableUnavailable",
    "FetchError",
    "RateLimited",
    "DegenerateAggregation",
]


class HeatDashboard:
    """
    Main interface class for the heat stress dashboard.

    Examples:
        >>> dashboard = HeatDashboard(25.2, 55.3, "Dubai", "out/dubai")
        >>> report = dashboard.run_sync()
        >>> report.succeeded(Region.TREND)
        True
    """

    def __init__(self, lat: float, lon: float, name: str,
                 mount: Union[str, Path, Renderer],
                 config: Optional[DashboardConfig] = None):
        """
        Initialize the dashboard.

        Args:
            lat: Latitude in degrees (-90 to 90)
            lon: Longitude in degrees (-180 to 180)
            name: Display name of the location
            mount: Output directory for figures, or a Renderer
            config: Optional configuration (defaults from the environment)
        """
        if not -90 <= lat <= 90:
            raise ValueError(f"Latitude out of range: {lat}")
        if not -180 <= lon <= 180:
            raise ValueError(f"Longitude out of range: {lon}")

        self.lat = lat
        self.lon = lon
        self.name = name
        self.config = config or DashboardConfig.from_env()
        if isinstance(mount, (str, Path)):
            self.renderer = Visualizer(mount)
        else:
            self.renderer = mount
        self.table_cache = LookupTableCache()

    def pipeline(self, **kwargs) -> AcquisitionPipeline:
        """Build the acquisition pipeline for this location."""
        return AcquisitionPipeline(
            self.lat, self.lon, self.name, self.renderer,
            config=self.config, table_cache=self.table_cache, **kwargs
        )

    async def run(self, **kwargs) -> PipelineReport:
        """Fetch, derive and render every region."""
        return await self.pipeline(**kwargs).run()

    def run_sync(self, **kwargs) -> PipelineReport:
        """Blocking wrapper around run() for scripts."""
        return asyncio.run(self.run(**kwargs))
